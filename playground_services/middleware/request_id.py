from __future__ import annotations

"""
Request ID & tracing middleware.

- Generates or propagates **X-Request-Id** for every request.
- Honors the W3C **traceparent** header: an incoming trace-id is kept and a new
  span-id is assigned; otherwise a fresh pair is created.
- Exposes ``request.state.request_id`` / ``trace_id`` / ``span_id`` for handlers
  (the error envelope echoes ``request_id``).
- Binds the ids into ``structlog.contextvars`` for the duration of the request,
  so every log line emitted while serving it carries them.

Usage
-----
    from playground_services.middleware.request_id import install_request_id_middleware

    install_request_id_middleware(app)
"""

import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from structlog.contextvars import bind_contextvars, unbind_contextvars

# --------------------------- helpers ---------------------------

_TRACEPARENT_RE = re.compile(
    r"^(?P<ver>[0-9a-f]{2})-(?P<trace_id>[0-9a-f]{32})-(?P<span_id>[0-9a-f]{16})-(?P<flags>[0-9a-f]{2})$"
)
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_CONTEXT_KEYS = ("request_id", "trace_id", "span_id")


def _parse_traceparent(value: str) -> Optional[Tuple[str, str, str]]:
    """Parse W3C traceparent into (trace_id, parent_span_id, flags), or None if invalid."""
    m = _TRACEPARENT_RE.match(value.strip())
    if not m:
        return None
    trace_id, span_id, flags = m.group("trace_id"), m.group("span_id"), m.group("flags")
    # All-zero ids are invalid per the W3C format
    if trace_id == "0" * 32 or span_id == "0" * 16:
        return None
    return trace_id, span_id, flags


def _format_traceparent(trace_id: str, span_id: str, flags: str = "01") -> str:
    return f"00-{trace_id}-{span_id}-{flags}"


# --------------------------- middleware ---------------------------


@dataclass(frozen=True)
class RequestIdConfig:
    request_id_header: str = "X-Request-Id"
    traceparent_header: str = "traceparent"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that manages request/trace ids and propagates headers."""

    def __init__(self, app, config: Optional[RequestIdConfig] = None):
        super().__init__(app)
        self.cfg = config or RequestIdConfig()

    async def dispatch(self, request: Request, call_next):
        headers = request.headers
        req_id = headers.get(self.cfg.request_id_header.lower()) or ""
        # Echoed into logs and headers, so only accept well-formed inbound ids
        if not _REQUEST_ID_RE.match(req_id):
            req_id = uuid.uuid4().hex

        parent = headers.get(self.cfg.traceparent_header.lower())
        parsed = _parse_traceparent(parent) if parent else None
        if parsed:
            trace_id, _parent_span, flags = parsed
        else:
            trace_id, flags = secrets.token_hex(16), "01"
        span_id = secrets.token_hex(8)

        request.state.request_id = req_id
        request.state.trace_id = trace_id
        request.state.span_id = span_id

        bind_contextvars(request_id=req_id, trace_id=trace_id, span_id=span_id)
        try:
            response: Response = await call_next(request)
        finally:
            unbind_contextvars(*_CONTEXT_KEYS)

        response.headers[self.cfg.request_id_header] = req_id
        response.headers[self.cfg.traceparent_header] = _format_traceparent(trace_id, span_id, flags)
        return response


# --------------------------- install helper ---------------------------


def install_request_id_middleware(
    app: FastAPI,
    *,
    request_id_header: str = "X-Request-Id",
    traceparent_header: str = "traceparent",
) -> RequestIdConfig:
    cfg = RequestIdConfig(request_id_header=request_id_header, traceparent_header=traceparent_header)
    app.add_middleware(RequestIdMiddleware, config=cfg)
    return cfg


__all__ = [
    "RequestIdConfig",
    "RequestIdMiddleware",
    "install_request_id_middleware",
]
