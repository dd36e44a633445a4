# src/logbuffer/core/logging/
# ├─ __init__.py            # public API: register, Logger, BufferedLoggingMiddleware, ...
# ├─ buffer.py              # BufferingMode, Message, Buffer
# ├─ formatters.py          # JsonFormatter, MessageFormatter
# ├─ handlers.py            # log device -> logging.Handler factory
# ├─ logger.py              # Flow, Flows, Logger (contextvar buffer stack)
# ├─ resolver.py            # Literal / Computed specs, resolve_fields, resolve_tags
# ├─ middleware.py          # BufferedLoggingMiddleware, scope keys
# ├─ common_logger.py       # CommonLogger access-log middleware
# ├─ silence.py             # silence CommonLogger for buffered requests
# └─ builder.py             # register(app, settings), build_logger, run


from .buffer import Buffer, BufferingMode, Message
from .formatters import JsonFormatter, MessageFormatter
from .handlers import CallbackHandler, LoggerHandler, get_handler
from .logger import Flow, Flows, Logger
from .resolver import Computed, Literal, as_spec, resolve_fields, resolve_tags
from .middleware import BufferedLoggingMiddleware, LOGGER_KEY, SILENCE_KEY
from .common_logger import CommonLogger
from . import silence
from .builder import build_logger, register, run, server_settings, setup_logging

__all__ = [
    "Buffer", "BufferingMode", "Message",
    "JsonFormatter", "MessageFormatter",
    "CallbackHandler", "LoggerHandler", "get_handler",
    "Flow", "Flows", "Logger",
    "Computed", "Literal", "as_spec", "resolve_fields", "resolve_tags",
    "BufferedLoggingMiddleware", "LOGGER_KEY", "SILENCE_KEY",
    "CommonLogger", "silence",
    "build_logger", "register", "run", "server_settings", "setup_logging",
]
