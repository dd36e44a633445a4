from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any
from functools import lru_cache

from ..core.logging.buffer import BufferingMode
from ..validators.config_validators import to_lowercase, to_level

DEFAULT_TARGET = "ext://sys.stdout"


class LogBufferSettings(BaseSettings):
    """
    Settings of the buffered request logging.

    Plain values (logging, target, buffering_mode) can be set from the
    environment with the LOGBUFFER_ prefix, e.g. LOGBUFFER_BUFFERING_MODE=data.
    Field and tag specs are usually passed in code since they may hold callables.
    """

    # Enable logging. An int (or a level name like "debug") enables logging
    # with that minimum level, True uses INFO.
    logging: bool | int = True

    # Logger instance, log device, or False to disable buffered logging and
    # fall back to the plain CommonLogger.
    target: Any = DEFAULT_TARGET

    buffering_mode: BufferingMode = BufferingMode.FULL

    # Field / tag specs: literal values, mappings / sequences with callable
    # entries, or a callable returning such a value.
    request_fields: Any = None
    request_tags: Any = None
    response_fields: Any = None
    response_tags: Any = None

    # --- Derived settings ---
    @property
    def logging_enabled(self) -> bool:
        return self.logging is not False

    @property
    def log_level(self) -> int | None:
        """
        Return the explicitly configured level, or None to use the default.
        """
        if isinstance(self.logging, bool):
            return None
        return self.logging

    # --- Validators ---
    @field_validator("logging", mode="before")
    def normalize_logging(cls, v: Any) -> Any:
        """
        Convert level names ("debug", "WARNING") to their numeric level.
        """
        return to_level(v)

    @field_validator("target", mode="before")
    def normalize_target(cls, v: Any) -> Any:
        """
        Map the strings "false" / "off" / "no" (e.g. from LOGBUFFER_TARGET) to False.
        """
        if isinstance(v, str) and to_lowercase(v.strip()) in ("false", "off", "no"):
            return False
        return v

    @field_validator("buffering_mode", mode="before")
    def normalize_buffering_mode(cls, v: Any) -> Any:
        """
        Normalize the buffering mode to its lowercase value.
        """
        if isinstance(v, (BufferingMode, bool)):
            return BufferingMode.coerce(v)
        if isinstance(v, str):
            return to_lowercase(v)
        return v

    # --- ConfigDict settings ---
    model_config = SettingsConfigDict(
        env_prefix="LOGBUFFER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() takes no arguments and always returns the same settings from the environment,
# so caching it with @lru_cache() is good for performance.
@lru_cache()
def get_settings() -> LogBufferSettings:
    return LogBufferSettings()
