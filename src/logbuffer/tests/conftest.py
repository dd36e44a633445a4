"""
Core pytest configuration for the entire test suite.

This module provides the fixtures shared by all logbuffer tests:

- `events`: a list collecting every event emitted by `capture_logger`
- `capture_logger`: a Logger whose only flow appends raw events to `events`
- `make_app`: factory building a FastAPI app with logbuffer registered
- `pristine_common_logger`: restores CommonLogger.log around every test
"""

from __future__ import annotations

# -------------------------------
# Standard library imports
# -------------------------------
import sys
import logging
from pathlib import Path
from typing import Any, Callable

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Keep noisy third-party loggers quiet during collection.
NOISY_LOGGERS = (
    "asyncio",
    "httpx",
    "httpcore",
    "anyio",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

SRC = Path(__file__).resolve().parents[2]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from logbuffer.config.settings import LogBufferSettings, get_settings
from logbuffer.core.dependencies import get_request_logger
from logbuffer.core.logging.builder import register
from logbuffer.core.logging.common_logger import CommonLogger
from logbuffer.core.logging.logger import Logger

_ORIGINAL_COMMON_LOGGER_LOG = CommonLogger.__dict__["log"]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """
    get_settings() is lru_cached; clear it so environment changes made with
    monkeypatch are visible to every test.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def pristine_common_logger():
    """
    Restore the original CommonLogger.log after the test.

    register() and silence.apply() patch CommonLogger process-wide.
    """
    CommonLogger.log = _ORIGINAL_COMMON_LOGGER_LOG
    yield CommonLogger
    CommonLogger.log = _ORIGINAL_COMMON_LOGGER_LOG


@pytest.fixture()
def events() -> list[dict[str, Any]]:
    return []


@pytest.fixture()
def capture_logger(events) -> Logger:
    """A Logger passing every raw event dict to the `events` list."""
    return Logger(events.append)


@pytest.fixture()
def make_app() -> Callable[..., FastAPI]:
    """
    Build a FastAPI app with logbuffer registered.

    The app exposes:
      - GET /         logs a single warning "Hello"
      - GET /many     logs three messages
      - GET /boom     raises RuntimeError after logging a message
    """

    def _make_app(settings: LogBufferSettings | None = None, **overrides: Any) -> FastAPI:
        app = FastAPI()
        if settings is None:
            settings = LogBufferSettings(**overrides)

        @app.get("/")
        def index(logger: Logger = Depends(get_request_logger)):
            logger.warning("Hello")
            return PlainTextResponse("OK")

        @app.get("/many")
        def many(logger: Logger = Depends(get_request_logger)):
            logger.info("one")
            logger.info("two")
            logger.info("three")
            return PlainTextResponse("OK")

        @app.get("/boom")
        def boom(request: Request):
            request.scope["logbuffer.logger"].info("about to fail")
            raise RuntimeError("kaboom")

        register(app, settings)
        return app

    return _make_app


