"""
Log device -> handler factory.

A Logger writes its events through standard `logging.Handler` objects. This
module turns the configured log device (the `target` setting) into such a
handler:

| device                              | handler                                  |
| ----------------------------------- | ---------------------------------------- |
| None                                | logging.NullHandler                      |
| a logging.Handler                   | used as-is                               |
| a logging.Logger                    | LoggerHandler (re-emits into the logger) |
| "ext://sys.stdout" / "ext://sys.stderr" | logging.StreamHandler on that stream |
| other str / os.PathLike             | logging.handlers.WatchedFileHandler      |
| object with a `write` method        | logging.StreamHandler                    |
| other callables                     | CallbackHandler (receives the raw event) |

The "ext://" names follow the convention of `logging.config.dictConfig` and
are resolved when the handler is built, not when the settings are defined.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import WatchedFileHandler
from typing import Any, Callable

from logbuffer.exceptions import AdapterError
from .formatters import JsonFormatter, get_event

EXT_STREAMS = {
    "ext://sys.stdout": lambda: sys.stdout,
    "ext://sys.stderr": lambda: sys.stderr,
}


class CallbackHandler(logging.Handler):
    """
    Handler passing the raw event dict of every record to a callable.

    No formatter is applied; the callable gets the same dict the formatters
    would have encoded.
    """

    def __init__(self, callback: Callable[[dict[str, Any]], Any], level: int = logging.NOTSET):
        super().__init__(level)
        self.callback = callback

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.callback(get_event(record))
        except Exception:
            self.handleError(record)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.callback!r}>"


class LoggerHandler(logging.Handler):
    """
    Handler forwarding events into an existing standard library logger.

    The event is attached to the new record as `extra={"event": ...}` so a
    JsonFormatter on the target logger's handlers renders all fields.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.NOTSET):
        super().__init__(level)
        self.logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        event = get_event(record)
        self.logger.log(record.levelno, "%s", event.get("message", ""), extra={"event": event})

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.logger.name}>"


def get_handler(device: Any, formatter: logging.Formatter | None = None) -> logging.Handler:
    """
    Return a logging handler writing to the given log device.

    Args:
        device: the log device, see the module docstring for accepted values.
        formatter: formatter for handlers that write text. Defaults to a
            JsonFormatter. Ignored for handlers passed in directly and for
            callback / null handlers.

    Raises:
        AdapterError: if no handler can be built for the device.
    """
    if device is None:
        return logging.NullHandler()

    if isinstance(device, logging.Handler):
        return device

    if isinstance(device, logging.Logger):
        return LoggerHandler(device)

    if isinstance(device, str) and device in EXT_STREAMS:
        handler: logging.Handler = logging.StreamHandler(EXT_STREAMS[device]())
    elif isinstance(device, (str, os.PathLike)):
        handler = WatchedFileHandler(os.fspath(device), encoding="utf-8")
    elif callable(getattr(device, "write", None)):
        handler = logging.StreamHandler(device)
    elif callable(device):
        return CallbackHandler(device)
    else:
        raise AdapterError(f"Can not build a log handler for {device!r}")

    handler.setFormatter(formatter or JsonFormatter())
    return handler
