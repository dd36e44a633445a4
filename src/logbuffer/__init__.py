"""
logbuffer: request-scoped buffered structured logging for FastAPI / Starlette.

    from fastapi import Depends, FastAPI
    from logbuffer import Logger, get_request_logger, register

    app = FastAPI()
    register(app)

    @app.get("/")
    def index(logger: Logger = Depends(get_request_logger)):
        logger.info("Starting request...")
        return {"hello": "world"}

All messages logged during the request are emitted as a single JSON event
on stdout once the response is known.
"""

from .core.logging import (
    Buffer,
    BufferingMode,
    BufferedLoggingMiddleware,
    CommonLogger,
    Computed,
    JsonFormatter,
    LOGGER_KEY,
    Literal,
    Logger,
    MessageFormatter,
    SILENCE_KEY,
    build_logger,
    register,
    run,
    setup_logging,
    silence,
)
from .config.settings import LogBufferSettings, get_settings
from .core.dependencies import get_request_logger
from .exceptions import (
    LogBufferError,
    ConfigurationError,
    FieldSpecError,
    AdapterError,
    SuppressorError,
    LoggerNotConfiguredError,
)

__version__ = "0.1.0"

__all__ = [
    "Buffer",
    "BufferingMode",
    "BufferedLoggingMiddleware",
    "CommonLogger",
    "Computed",
    "JsonFormatter",
    "LOGGER_KEY",
    "Literal",
    "Logger",
    "MessageFormatter",
    "SILENCE_KEY",
    "build_logger",
    "register",
    "run",
    "setup_logging",
    "silence",
    "LogBufferSettings",
    "get_settings",
    "get_request_logger",
    "LogBufferError",
    "ConfigurationError",
    "FieldSpecError",
    "AdapterError",
    "SuppressorError",
    "LoggerNotConfiguredError",
]
