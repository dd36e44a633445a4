"""
Logging builder: register buffered request logging on a FastAPI / Starlette app.

This module:
 - builds the request Logger from LogBufferSettings (build_logger)
 - installs BufferedLoggingMiddleware, or the plain CommonLogger when buffered
   logging is disabled with `target=False` (setup_logging)
 - silences CommonLogger instances for requests handled by the buffered
   middleware (silence.apply, once per process)
 - disables uvicorn's own access log by default, since the buffered
   middleware already logs every request (server_settings / run)

Usage:

    from fastapi import FastAPI
    from logbuffer import LogBufferSettings, register, run

    app = FastAPI()
    register(app, LogBufferSettings(
        target="log/production.log",
        request_fields={"user_agent": lambda request: request.headers.get("user-agent")},
    ))

    if __name__ == "__main__":
        run(app, host="0.0.0.0", port=8000)

Human-readable development logs (one line per message, emitted immediately):

    logger = Logger("ext://sys.stdout", formatter=MessageFormatter(["@timestamp"]))
    register(app, LogBufferSettings(target=logger, buffering_mode="data"))
"""

from __future__ import annotations

import logging
from typing import Any

import uvicorn
from starlette.applications import Starlette

from logbuffer.config.settings import LogBufferSettings, get_settings
from . import silence
from .common_logger import CommonLogger
from .logger import Logger
from .middleware import BufferedLoggingMiddleware

logger = logging.getLogger(__name__)

STATE_SETTINGS = "logbuffer"
STATE_SERVER_SETTINGS = "server_settings"


def build_logger(settings: LogBufferSettings) -> Logger:
    """
    Return the Logger used by the middleware.

    - logging enabled and `target` is a Logger: use it directly.
    - logging enabled otherwise: build a new Logger writing to `target`, at
      the configured level (INFO by default).
    - logging disabled: a Logger with a null handler, so handlers can still
      log unconditionally.
    """
    if not settings.logging_enabled:
        return Logger(None, level=logging.INFO)

    if isinstance(settings.target, Logger):
        return settings.target

    level = settings.log_level
    return Logger(settings.target, level=logging.INFO if level is None else level)


def setup_logging(app: Starlette, settings: LogBufferSettings) -> Logger | None:
    """
    Install the request logging middleware on the app.

    `target=False` disables buffered logging regardless of the `logging`
    setting; the app then gets the plain CommonLogger when logging is enabled.
    """
    if settings.target is False:
        if settings.logging_enabled:
            app.add_middleware(CommonLogger)
        logger.debug("Buffered request logging disabled (target=False)")
        return None

    request_logger = build_logger(settings)

    app.add_middleware(
        BufferedLoggingMiddleware,
        logger=request_logger,
        buffering_mode=settings.buffering_mode,
        request_fields=settings.request_fields,
        request_tags=settings.request_tags,
        response_fields=settings.response_fields,
        response_tags=settings.response_tags,
    )
    logger.debug(
        "Buffered request logging enabled (buffering=%s, level=%s)",
        settings.buffering_mode.value,
        logging.getLevelName(request_logger.level),
    )
    return request_logger


def server_settings(app: Starlette) -> dict[str, Any]:
    """
    Return the app's uvicorn settings, creating them on first use.

    `access_log` defaults to False; an explicit value set by the app is kept.
    """
    settings = getattr(app.state, STATE_SERVER_SETTINGS, None)
    if settings is None:
        settings = {}
        setattr(app.state, STATE_SERVER_SETTINGS, settings)
    settings.setdefault("access_log", False)
    return settings


def register(app: Starlette, settings: LogBufferSettings | None = None) -> Logger | None:
    """
    Register buffered request logging on a FastAPI / Starlette application.

    Returns:
        The Logger attached to each request, or None when buffered logging
        is disabled with `target=False`.
    """
    settings = settings or get_settings()
    setattr(app.state, STATE_SETTINGS, settings)

    silence.apply()
    server_settings(app)

    return setup_logging(app, settings)


def run(app: Starlette, **kwargs: Any) -> None:
    """Run the app with uvicorn, using the app's server settings as defaults."""
    options = {**server_settings(app), **kwargs}
    uvicorn.run(app, **options)
