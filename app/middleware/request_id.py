# app/middleware/request_id.py
from __future__ import annotations

"""
# Reelkeeper — Request ID Middleware (pure ASGI)

- Reuses a client-supplied `X-Request-ID` when it is a short, safe token
  (letters, digits, `.`, `_`, `-`); otherwise generates a UUIDv4.
- Stores it on `request.state.request_id` and echoes it as a response header.
- Binds `request_id` into the **loguru** context for the whole request, so
  ingest stage logs can be stitched to the call that triggered them.

## Env
- `REQUEST_ID_HEADER_NAME` (default: `X-Request-ID`)
- `REQUEST_ID_TRUST_CLIENT_IDS` ("true"/"false"; default: "true")
- `REQUEST_ID_MAX_LENGTH` (default: 128)
"""

import os
import re
import uuid

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID")
TRUST_CLIENT_IDS = os.getenv("REQUEST_ID_TRUST_CLIENT_IDS", "true").lower() == "true"
MAX_ID_LENGTH = int(os.getenv("REQUEST_ID_MAX_LENGTH", "128"))

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")


class RequestIDMiddleware:
    """Attach a correlation id to every HTTP request."""

    def __init__(self, app: ASGIApp, header_name: str = HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        req_id = self._choose_request_id(Headers(scope=scope))
        scope.setdefault("state", {})["request_id"] = req_id
        header = self.header_name.encode("latin-1")

        async def _send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                raw = message.get("headers", [])
                message["headers"] = [(k, v) for (k, v) in raw if k.lower() != header.lower()]
                message["headers"].append((header, req_id.encode("latin-1")))
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, _send_wrapper)

    def _choose_request_id(self, headers: Headers) -> str:
        if TRUST_CLIENT_IDS:
            incoming = (headers.get(self.header_name) or "").strip()
            if 0 < len(incoming) <= MAX_ID_LENGTH and _SAFE_ID_RE.fullmatch(incoming):
                return incoming
        return str(uuid.uuid4())


def get_request_id(request) -> str:
    """Current request id from `request.state` ("" when absent)."""
    return getattr(getattr(request, "state", object()), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "get_request_id"]
