# src/logbuffer/core/logging/buffer.py
"""
Per-request log buffer.

A Buffer collects everything logged while a single request is handled:

  - fields:   a mapping of field name -> value (last write wins)
  - tags:     an ordered list of strings (duplicates allowed)
  - messages: the individual log messages with their severity

When flushed, the buffer is turned into a single event dict which is handed
to the logger's flows. The buffering mode decides when that happens:

  - FULL: messages are kept until the buffer is flushed explicitly, usually
    once at the end of the request. One event per request.
  - DATA: every message is flushed immediately as its own event carrying the
    fields and tags accumulated so far. Fields and tags are kept. Fields
    added after the last message are written by the final explicit flush.
  - NONE: every message is flushed immediately and the whole buffer
    (including fields and tags) is cleared afterwards.

Event shape
-----------
    {
        <fields...>,
        "tags": ["a", "b"],
        "message": "first message\\nsecond message\\n",
        "@timestamp": "2025-09-27T13:22:45.123456Z",
    }

The event is built from copies of the buffer state, so mutating the buffer
after a flush never changes an event that was already emitted.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from logbuffer.validators.config_validators import to_lowercase

FIELD_TAGS = "tags"
FIELD_MESSAGE = "message"
FIELD_TIMESTAMP = "@timestamp"

FIELD_ERROR = "error"
FIELD_ERROR_MESSAGE = "error_message"
FIELD_ERROR_TRACE = "error_trace"

RESERVED_FIELDS = frozenset({FIELD_TAGS, FIELD_MESSAGE, FIELD_TIMESTAMP})


class BufferingMode(str, Enum):
    FULL = "full"
    DATA = "data"
    NONE = "none"

    @classmethod
    def coerce(cls, value: "BufferingMode | str | bool") -> "BufferingMode":
        """
        Accept an enum member, its (case-insensitive) value or a boolean.

        `True` maps to FULL and `False` to NONE.
        """
        if isinstance(value, cls):
            return value
        if value is True:
            return cls.FULL
        if value is False:
            return cls.NONE
        return cls(to_lowercase(str(value)))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Message:
    """A single logged message."""

    message: str
    severity: int = logging.INFO
    time: datetime = field(default_factory=_utcnow)

    @property
    def severity_name(self) -> str:
        return logging.getLevelName(self.severity)

    def __str__(self) -> str:
        return self.message


class Buffer:
    """
    Accumulator for the fields, tags and messages of one request.

    A buffer is owned by exactly one request at a time. It writes finished
    events to `flows`, an object providing `write(event)` (see logger.Flows).

    Args:
        flows: target for flushed events.
        buffering: the BufferingMode, fixed for the lifetime of the buffer.
        allow_silent: when False, a FULL buffer is flushed even when no
            message was logged (so a request always produces its event), and
            a DATA buffer is flushed when it holds unwritten fields or tags.
    """

    def __init__(
        self,
        flows,
        buffering: BufferingMode | str = BufferingMode.FULL,
        *,
        allow_silent: bool = True,
    ) -> None:
        self.flows = flows
        self.buffering = BufferingMode.coerce(buffering)
        self.allow_silent = allow_silent

        self.fields: dict[str, Any] = {}
        self.tags: list[str] = []
        self.messages: list[Message] = []
        self.closed = False
        self._changed = False

    def __repr__(self) -> str:
        return (
            f"<Buffer buffering={self.buffering.value} fields={len(self.fields)} "
            f"tags={len(self.tags)} messages={len(self.messages)}>"
        )

    # ------------------------
    # Mutation
    # ------------------------
    def add_message(self, message: Message) -> Message:
        """
        Append a message. In DATA and NONE mode it is flushed right away.
        """
        self.messages.append(message)

        if self.buffering is not BufferingMode.FULL:
            self.flush()
            if self.buffering is BufferingMode.NONE:
                self.clear()
            else:
                self.messages.clear()

        return message

    def add_fields(self, fields: Mapping[Any, Any]) -> dict[str, Any]:
        for key, value in fields.items():
            self.fields[str(key)] = value
            self._changed = True
        return self.fields

    def add_tags(self, *tags: Any) -> list[str]:
        if tags:
            self._changed = True
        self.tags.extend(str(tag) for tag in tags)
        return self.tags

    def add_exception(self, exc: BaseException, *, force: bool = True) -> BaseException:
        """
        Record an exception in the error fields.

        With `force=False` existing error fields are kept, so the first
        recorded exception of a request wins.
        """
        if not force and FIELD_ERROR in self.fields:
            return exc

        self.add_fields(
            {
                FIELD_ERROR: type(exc).__name__,
                FIELD_ERROR_MESSAGE: str(exc),
                FIELD_ERROR_TRACE: "".join(
                    traceback.format_exception(type(exc), exc, exc.__traceback__)
                ).rstrip(),
            }
        )
        return exc

    def clear(self) -> None:
        self.fields.clear()
        self.tags.clear()
        self.messages.clear()
        self._changed = False

    def close(self) -> None:
        """Mark the buffer as released. Loggers no longer write into it."""
        self.closed = True

    # ------------------------
    # Flushing
    # ------------------------
    def pending(self) -> bool:
        """
        Return whether a flush would emit an event.

        A non-silent buffer in DATA mode is also pending when fields or tags
        were added since its last event, so data added after the last message
        (e.g. the response status) still gets written.
        """
        if self.messages:
            return True
        if self.allow_silent:
            return False
        if self.buffering is BufferingMode.FULL:
            return True
        if self.buffering is BufferingMode.DATA:
            return self._changed
        return False

    def flush(self) -> dict[str, Any] | None:
        """
        Write the current buffer state to the flows if anything is pending.

        Returns:
            The emitted event, or None when nothing was pending.
        """
        if not self.pending():
            return None

        event = self.to_event()
        self._changed = False
        self.flows.write(event, severity=self.severity())
        return event

    def to_event(self) -> dict[str, Any]:
        event = {k: v for k, v in self.fields.items() if k not in RESERVED_FIELDS}
        event[FIELD_TAGS] = list(self.tags)
        event[FIELD_MESSAGE] = "".join(f"{m.message}\n" for m in self.messages)
        event[FIELD_TIMESTAMP] = format_timestamp(self.timestamp())
        return event

    def timestamp(self) -> datetime:
        if self.messages:
            return self.messages[0].time
        return _utcnow()

    def severity(self) -> int:
        """Highest severity of the buffered messages (INFO when there are none)."""
        return max((m.severity for m in self.messages), default=logging.INFO)
