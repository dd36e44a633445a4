# src/logbuffer/core/logging/formatters.py
"""
Event formatters for buffered log events.

A flushed Buffer is written to a standard `logging.Handler` as a LogRecord
whose `event` attribute carries the event dict (see logger.Flow). The
formatters in this module turn that record into the final output line:

  - JsonFormatter: emits one JSON object per event, suitable for ingestion by
    log collectors (ELK, Fluentd, CloudWatch, etc.). Values which are not JSON
    serializable are converted to strings, so formatting never raises.

  - MessageFormatter: a human-friendly formatter intended for local
    development consoles. It prints only the logged messages, optionally
    prefixed with selected event fields (e.g. "@timestamp") and colored by
    the record's level.

Records without an `event` attribute (plain records logged through the
standard library) are formatted from their message, so both formatters can
also be attached to handlers shared with ordinary loggers.
"""

import json
import logging
from typing import Any, Iterable
from logging import LogRecord

from .buffer import FIELD_MESSAGE


def get_event(record: LogRecord) -> dict[str, Any]:
    """Return the event carried by the record, or build a minimal one."""
    event = getattr(record, "event", None)
    if isinstance(event, dict):
        return event
    return {FIELD_MESSAGE: record.getMessage()}


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    Construction:
      - static_fields: optional mapping merged *under* every event (event
        fields win), e.g. {"service": "my-api", "env": "production"}.
      - sort_keys: sort the keys of the output object.
    """

    def __init__(self, *, static_fields: dict[str, Any] | None = None, sort_keys: bool = False):
        super().__init__()
        self.static_fields = dict(static_fields or {})
        self.sort_keys = sort_keys

    def format(self, record: LogRecord) -> str:
        log_record: dict[str, Any] = dict(self.static_fields)

        for k, v in get_event(record).items():
            try:
                json.dumps(v)
                log_record[k] = v
            except (TypeError, ValueError):
                log_record[k] = str(v)

        return json.dumps(log_record, ensure_ascii=False, default=str, sort_keys=self.sort_keys)


class MessageFormatter(logging.Formatter):
    """
    Development-friendly formatter which renders only the messages of an event.

    Each line of the event's message is written on its own line, prefixed by
    the values of `prefix_fields` (joined by a single space) when present.

    Example with prefix_fields=["@timestamp"]:
        2025-09-27T13:22:45.123456Z Starting request...
        2025-09-27T13:22:45.123456Z Done
    """

    COLOR_CODES = {
        "DEBUG": "\033[1;36;47m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",
        "RESET": "\033[0m",
    }

    def __init__(self, prefix_fields: Iterable[str] = (), *, colored: bool = False) -> None:
        super().__init__()
        self.prefix_fields = list(prefix_fields)
        self.colored = colored

    def format(self, record: LogRecord) -> str:
        event = get_event(record)

        prefix = " ".join(
            str(event[name]) for name in self.prefix_fields if event.get(name) is not None
        )
        lines = str(event.get(FIELD_MESSAGE) or "").splitlines()
        if prefix:
            lines = [f"{prefix} {line}" for line in lines]
        text = "\n".join(lines)

        if self.colored and text:
            color = self.COLOR_CODES.get(record.levelname, "")
            text = f"{color}{text}{self.COLOR_CODES['RESET']}"

        return text
