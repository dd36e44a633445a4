# logbuffer/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   └── base.py                    # Package-level errors (e.g. ConfigurationError, SuppressorError)

from .base import (
    LogBufferError,
    ConfigurationError,
    FieldSpecError,
    AdapterError,
    SuppressorError,
    LoggerNotConfiguredError,
)

__all__ = [
    "LogBufferError",
    "ConfigurationError",
    "FieldSpecError",
    "AdapterError",
    "SuppressorError",
    "LoggerNotConfiguredError",
]
