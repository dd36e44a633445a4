# src/logbuffer/core/logging/silence.py
"""
Silence legacy access loggers for requests already logged by logbuffer.

Servers and app templates often put a plain access logger (CommonLogger or a
similar class) into the middleware stack outside of our control. When a
BufferedLoggingMiddleware handles the same request, the request would be
logged twice. The `silenced` decorator wraps an access logger's
`log(self, scope, ...)` method so it does nothing if, and only if,

  1. the request scope carries the suppression flag (SILENCE_KEY) set to True, and
  2. the scope's attached logger (LOGGER_KEY) is a logbuffer Logger.

In every other case the original method runs unchanged.

`apply()` installs the decorator on CommonLogger (or any other access logger
class) once per process. Calling it again is a no-op.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from logbuffer.exceptions import SuppressorError
from .common_logger import CommonLogger
from .logger import Logger
from .middleware import LOGGER_KEY, SILENCE_KEY

logger = logging.getLogger(__name__)

_MARKER = "__logbuffer_silenced__"


def should_silence(scope: Any) -> bool:
    """Return True if the request in `scope` is already logged by logbuffer."""
    return scope.get(SILENCE_KEY) is True and isinstance(scope.get(LOGGER_KEY), Logger)


def silenced(log: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorate an access logger's `log(self, scope, *args, **kwargs)` method.
    """

    @functools.wraps(log)
    def wrapper(self, scope, *args, **kwargs):
        if should_silence(scope):
            return None
        return log(self, scope, *args, **kwargs)

    setattr(wrapper, _MARKER, True)
    return wrapper


def is_applied(target: type = CommonLogger) -> bool:
    """Return whether `target` (or one of its base classes) is already patched."""
    return getattr(getattr(target, "log", None), _MARKER, False) is True


def apply(target: type = CommonLogger) -> None:
    """
    Install `silenced` on the `log` method of the target class.

    Raises:
        SuppressorError: if the target has no callable `log` method.
    """
    log = getattr(target, "log", None)
    if not callable(log):
        raise SuppressorError(f"{target!r} has no log method to silence")

    if is_applied(target):
        return

    target.log = silenced(log)
    logger.debug("Silenced access logger %s.%s", target.__module__, target.__qualname__)
