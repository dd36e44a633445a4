# src/logbuffer/core/logging/middleware.py
"""
Buffered request logging middleware for FastAPI / Starlette.

Purpose
-------
This middleware provides a structured Logger to each incoming request. All
messages, fields and tags logged while the request is handled are collected
in a per-request Buffer and, by default, emitted as a single log event once
the response is known.

How it works (high level)
-------------------------
1. A new Buffer is opened on the logger for the current request context
   (`logger.buffered(...)`), using the configured buffering mode.
2. The logger is attached to the request scope under LOGGER_KEY and the
   SILENCE_KEY flag is set, so any CommonLogger in the same stack stays
   silent (see silence.py). Default request fields (method, path, remote_ip)
   and the configured `request_fields` / `request_tags` are merged in.
3. The request is forwarded to the application via `call_next(request)`.
4. The response status and the configured `response_fields` /
   `response_tags` (computed from the response headers) are merged in.
5. If the application raised, the exception is recorded on the buffer and
   re-raised unchanged after finalization.
6. In a `finally` block the request duration is added and the buffer is
   flushed according to its buffering mode, then released.

Integration notes
-----------------
- Usually installed by `register(app)` (see builder.py). Manual use:
      app.add_middleware(BufferedLoggingMiddleware, logger=Logger("ext://sys.stdout"))

- Route handlers get the logger through the `get_request_logger` dependency
  or directly from `request.scope[LOGGER_KEY]`.

Field precedence
----------------
Fields overwrite by key in this order: default request fields, request_fields,
status, response_fields, error fields, duration. Tags are appended, request
tags first.
"""

from __future__ import annotations

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .buffer import Buffer, BufferingMode
from .logger import Logger
from .resolver import as_spec, resolve_fields, resolve_tags

LOGGER_KEY = "logbuffer.logger"
SILENCE_KEY = "logbuffer.silence_common_logger"


class BufferedLoggingMiddleware(BaseHTTPMiddleware):
    """
    Starlette / FastAPI middleware buffering all logs of a request.

    Args:
        app: the wrapped ASGI application.
        logger: the Logger attached to every request.
        buffering_mode: BufferingMode (or its value) of the per-request buffers.
        request_fields / request_tags: specs resolved against the Request
            before the request is handled.
        response_fields / response_tags: specs resolved against the response
            headers after the request was handled.
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: Logger,
        *,
        buffering_mode: BufferingMode | str = BufferingMode.FULL,
        request_fields: Any = None,
        request_tags: Any = None,
        response_fields: Any = None,
        response_tags: Any = None,
    ) -> None:
        super().__init__(app)
        self.logger = logger
        self.buffering_mode = BufferingMode.coerce(buffering_mode)

        self.request_fields = as_spec(request_fields)
        self.request_tags = as_spec(request_tags)
        self.response_fields = as_spec(response_fields)
        self.response_tags = as_spec(response_tags)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        with self.logger.buffered(self.buffering_mode, allow_silent=False) as buffer:
            began_at = time.monotonic()
            try:
                self.on_request(request, buffer)
                response = await call_next(request)
                self.on_response(response, buffer)
                return response
            except Exception as exc:
                self.on_error(exc, buffer)
                raise
            finally:
                self.on_finish(buffer, began_at)

    def on_request(self, request: Request, buffer: Buffer) -> None:
        request.scope[LOGGER_KEY] = self.logger
        request.scope[SILENCE_KEY] = True

        buffer.add_fields(
            {
                "method": request.method,
                "path": request.url.path,
                "remote_ip": request.client.host if request.client else None,
            }
        )
        buffer.add_fields(resolve_fields(self.request_fields, request))
        buffer.add_tags(*resolve_tags(self.request_tags, request))

    def on_response(self, response: Response, buffer: Buffer) -> None:
        buffer.add_fields({"status": response.status_code})
        buffer.add_fields(resolve_fields(self.response_fields, response.headers))
        buffer.add_tags(*resolve_tags(self.response_tags, response.headers))

    def on_error(self, exc: Exception, buffer: Buffer) -> None:
        buffer.add_fields({"status": 500})
        buffer.add_exception(exc, force=False)
        self.logger.error("%s: %s", type(exc).__name__, exc)

    def on_finish(self, buffer: Buffer, began_at: float) -> None:
        buffer.add_fields({"duration": round(time.monotonic() - began_at, 6)})
        buffer.flush()
