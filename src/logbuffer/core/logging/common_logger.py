# src/logbuffer/core/logging/common_logger.py
"""
Plain access-log middleware.

CommonLogger writes one line per HTTP request in the Apache "common log"
style once the response has been sent:

    127.0.0.1 - - [27/Sep/2025:13:22:45 +0000] "GET /hello?x=1 HTTP/1.1" 200 12 0.0012

It is the framework's default request logging when buffered logging is
disabled (`target=False`). When a BufferedLoggingMiddleware is active in the
same middleware stack, the registration patches `CommonLogger.log` (see
silence.py) so requests are not logged twice.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, TextIO

from starlette.types import ASGIApp, Message, Receive, Scope, Send

access_logger = logging.getLogger("logbuffer.access")


class CommonLogger:
    """
    ASGI middleware that logs each HTTP request as a single access-log line.

    Args:
        app: the wrapped ASGI application.
        stream: text stream to write lines to. When None, lines are logged
            through the "logbuffer.access" standard library logger instead.
    """

    FORMAT = '%s - %s [%s] "%s %s%s %s" %d %s %0.4f\n'

    def __init__(self, app: ASGIApp, stream: TextIO | None = None) -> None:
        self.app = app
        self.stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        began_at = time.monotonic()
        response: dict[str, Any] = {"status": 500, "length": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response["status"] = message["status"]
                for key, value in message.get("headers", []):
                    if key.lower() == b"content-length":
                        response["length"] = value.decode("latin-1")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self.log(scope, response["status"], response["length"], began_at)

    def log(self, scope: Scope, status: int, length: str | None, began_at: float) -> None:
        client = scope.get("client")
        query = scope.get("query_string", b"").decode("latin-1")

        line = self.FORMAT % (
            client[0] if client else "-",
            "-",
            datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z"),
            scope.get("method", "-"),
            scope.get("root_path", "") + scope.get("path", ""),
            f"?{query}" if query else "",
            f"HTTP/{scope.get('http_version', '1.1')}",
            status,
            length if length and length != "0" else "-",
            time.monotonic() - began_at,
        )

        if self.stream is not None:
            self.stream.write(line)
        else:
            access_logger.info(line.rstrip("\n"))
