# src/logbuffer/core/logging/logger.py
"""
Structured logger with request-scoped buffers.

How it works (high level)
-------------------------
1. A Logger owns one or more Flows. Each Flow wraps a standard
   `logging.Handler` (stream, file, null, callback, ...) which receives the
   finished events.
2. Log calls (`logger.info(...)`, `logger.warning(...)`) append a Message to
   the *current* Buffer. The current buffer is looked up in a
   `contextvars.ContextVar` owned by the logger, so a single Logger instance
   can be shared by all concurrent requests while each request writes into
   its own buffer.
3. `with logger.buffered(...) as buffer:` pushes a fresh buffer for the
   current context and pops it again on exit. The BufferedLoggingMiddleware
   wraps every request in such a block.
4. Log calls made outside of any `buffered()` block, or after the block's
   buffer was released, use a transient buffer in NONE mode: the message is
   emitted as its own event right away.

Concurrency model
-----------------
- ContextVars are isolated per asyncio task and copied into Starlette's
  threadpool for sync endpoints, so each request sees only its own buffer.
- A Flow delegates locking to its handler (`Handler.handle` acquires the
  handler lock), exactly like the standard library does.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from .buffer import Buffer, BufferingMode, Message, FIELD_MESSAGE
from .handlers import get_handler


class Flow:
    """
    A single emission target of a Logger.

    `adapter` is the logging.Handler which actually writes the events.
    """

    def __init__(self, adapter: logging.Handler, *, name: str = "logbuffer"):
        self.adapter = adapter
        self.name = name

    def __repr__(self) -> str:
        return f"<Flow adapter={self.adapter!r}>"

    def write(self, event: dict[str, Any], severity: int = logging.INFO) -> None:
        """
        Hand the event to the handler as a LogRecord with an `event` attribute.

        Errors raised by the handler are reported through its `handleError`,
        the same way the standard library reports failing handlers.
        """
        if severity < self.adapter.level:
            return

        record = logging.makeLogRecord(
            {
                "name": self.name,
                "levelno": severity,
                "levelname": logging.getLevelName(severity),
                "msg": event.get(FIELD_MESSAGE, ""),
                "event": event,
            }
        )
        self.adapter.handle(record)

    def close(self) -> None:
        self.adapter.close()


class Flows(list):
    """The list of flows of a Logger. Every event is written to all flows."""

    @property
    def first(self) -> Flow | None:
        return self[0] if self else None

    def write(self, event: dict[str, Any], severity: int = logging.INFO) -> None:
        for flow in self:
            flow.write(event, severity=severity)

    def close(self) -> None:
        for flow in self:
            flow.close()


class Logger:
    """
    Structured, buffering logger.

    Args:
        target: the log device of the initial flow (see handlers.get_handler).
            `None` creates a logger with a null handler which discards all events.
        level: minimum severity of messages added to the buffer. Accepts
            standard logging levels as ints or names.
        formatter: optional formatter for text-writing handlers
            (defaults to JsonFormatter).

    Example:
        logger = Logger("ext://sys.stdout", level=logging.DEBUG)

        with logger.buffered() as buffer:
            logger.add_fields({"user": "alice"})
            logger.info("Starting request...")
            logger.info("Done")
        # -> one JSON event containing both messages and the user field
    """

    def __init__(
        self,
        target: Any = None,
        level: int | str = logging.INFO,
        *,
        formatter: logging.Formatter | None = None,
    ) -> None:
        self.level = level
        self.flows = Flows()
        self.flows.append(Flow(get_handler(target, formatter)))

        self._buffers: contextvars.ContextVar[tuple[Buffer, ...]] = contextvars.ContextVar(
            f"logbuffer_buffers_{id(self)}", default=()
        )

    def __repr__(self) -> str:
        return f"<Logger level={logging.getLevelName(self.level)} flows={len(self.flows)}>"

    # ------------------------
    # Level
    # ------------------------
    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, value: int | str) -> None:
        if isinstance(value, str):
            resolved = logging.getLevelName(value.upper())
            if not isinstance(resolved, int):
                raise ValueError(f"Unknown log level: {value!r}")
            value = resolved
        self._level = int(value)

    def is_enabled_for(self, level: int) -> bool:
        return level >= self._level

    # ------------------------
    # Buffers
    # ------------------------
    @contextmanager
    def buffered(
        self,
        buffering: BufferingMode | str = BufferingMode.FULL,
        *,
        allow_silent: bool = True,
    ) -> Iterator[Buffer]:
        """
        Push a new buffer for the current context for the duration of the block.

        The buffer is *not* flushed automatically; callers decide when and
        whether to flush (the middleware does so in its finally block).
        """
        buffer = Buffer(self.flows, buffering, allow_silent=allow_silent)
        token = self._buffers.set(self._buffers.get() + (buffer,))
        try:
            yield buffer
        finally:
            buffer.close()
            self._buffers.reset(token)

    @property
    def buffer(self) -> Buffer | None:
        """
        The active buffer of the current context, if any.

        Contexts copied inside a `buffered()` block (e.g. background tasks)
        keep the buffer stack; buffers closed in the meantime are skipped.
        """
        for buffer in reversed(self._buffers.get()):
            if not buffer.closed:
                return buffer
        return None

    def _current_buffer(self) -> Buffer:
        return self.buffer or Buffer(self.flows, BufferingMode.NONE)

    # ------------------------
    # Fields & tags
    # ------------------------
    @property
    def fields(self) -> dict[str, Any]:
        buffer = self.buffer
        return buffer.fields if buffer is not None else {}

    @property
    def tags(self) -> list[str]:
        buffer = self.buffer
        return buffer.tags if buffer is not None else []

    def add_fields(self, fields: Mapping[Any, Any]) -> dict[str, Any]:
        return self._current_buffer().add_fields(fields)

    def add_tags(self, *tags: Any) -> list[str]:
        return self._current_buffer().add_tags(*tags)

    def add_exception(self, exc: BaseException, *, force: bool = True) -> BaseException:
        return self._current_buffer().add_exception(exc, force=force)

    # ------------------------
    # Messages
    # ------------------------
    def log(self, level: int, msg: Any, *args: Any) -> Message | None:
        """
        Add a message at `level` to the current buffer.

        `msg % args` formatting is applied when args are given, like the
        standard library does. Messages below the logger's level are dropped.
        """
        return self._add_message(self._current_buffer(), level, msg, args)

    def _add_message(self, buffer: Buffer, level: int, msg: Any, args: tuple) -> Message | None:
        if not self.is_enabled_for(level):
            return None

        text = str(msg)
        if args:
            text = text % args

        return buffer.add_message(Message(text, severity=level))

    def debug(self, msg: Any, *args: Any) -> Message | None:
        return self.log(logging.DEBUG, msg, *args)

    def info(self, msg: Any, *args: Any) -> Message | None:
        return self.log(logging.INFO, msg, *args)

    def warning(self, msg: Any, *args: Any) -> Message | None:
        return self.log(logging.WARNING, msg, *args)

    warn = warning

    def error(self, msg: Any, *args: Any) -> Message | None:
        return self.log(logging.ERROR, msg, *args)

    def critical(self, msg: Any, *args: Any) -> Message | None:
        return self.log(logging.CRITICAL, msg, *args)

    fatal = critical

    def exception(self, msg: Any, *args: Any, exc_info: Any = True) -> Message | None:
        """
        Log an ERROR message and record the exception in the error fields.

        Like `logging.Logger.exception`, meant to be called from an exception
        handler: with `exc_info=True` the exception currently being handled
        is recorded. An exception instance can be passed instead; a false
        value records nothing.
        """
        buffer = self._current_buffer()

        if isinstance(exc_info, BaseException):
            exc = exc_info
        elif exc_info:
            exc = sys.exc_info()[1]
        else:
            exc = None

        if exc is not None:
            buffer.add_exception(exc)
        return self._add_message(buffer, logging.ERROR, msg, args)

    def close(self) -> None:
        self.flows.close()
