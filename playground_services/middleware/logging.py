from __future__ import annotations

"""
Access logging middleware.

- One structured log line per request, emitted through structlog.
- Captures: method, path, route, status, latency_ms, rx_bytes, tx_bytes,
  client_ip, user_agent, request_id (via contextvars).
- Request bodies are never logged (they can carry signing secrets).

Install:
    from playground_services.middleware.logging import install_access_log_middleware

    install_access_log_middleware(app)
"""

import time
from typing import Callable

import structlog
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

log = structlog.get_logger("access")


def _client_ip(request: Request) -> str:
    # Prefer X-Forwarded-For (first hop), then X-Real-IP, then ASGI client addr
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[0].strip()
    real = request.headers.get("x-real-ip")
    if real:
        return real.strip()
    if request.client:
        return request.client.host
    return ""


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    if route is None:
        return ""
    return getattr(route, "path_format", None) or getattr(route, "path", "") or ""


def _int_header(value) -> int:
    try:
        return int(value or 0)
    except ValueError:
        return 0


def _level_for_status(status: int) -> str:
    if status >= 500:
        return "error"
    if status >= 400:
        return "warning"
    return "info"


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit a structured access log for every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_ns = time.perf_counter_ns()
        fields = {
            "method": request.method,
            "path": request.url.path,
            "rx_bytes": _int_header(request.headers.get("content-length")),
            "client_ip": _client_ip(request),
            "user_agent": request.headers.get("user-agent", ""),
        }
        try:
            response = await call_next(request)
        except Exception:
            latency_ms = (time.perf_counter_ns() - start_ns) / 1e6
            log.exception("access", status=500, latency_ms=round(latency_ms, 3), **fields)
            raise

        latency_ms = (time.perf_counter_ns() - start_ns) / 1e6
        getattr(log, _level_for_status(response.status_code))(
            "access",
            status=response.status_code,
            route=_route_template(request),
            latency_ms=round(latency_ms, 3),
            tx_bytes=_int_header(response.headers.get("content-length")),
            **fields,
        )
        return response


def install_access_log_middleware(app: FastAPI) -> None:
    app.add_middleware(AccessLogMiddleware)


__all__ = ["AccessLogMiddleware", "install_access_log_middleware"]
