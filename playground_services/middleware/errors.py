from __future__ import annotations

"""
Exception → response-envelope mappers for FastAPI.

Every failure leaves the service as::

    {"success": false, "message": "...", "error": {"code", "message", "details?"}, "request_id": "..."}

- ApiError subclasses (playground_services.errors) keep their status/code.
- Starlette/FastAPI HTTPException → code derived from the status.
- RequestValidationError → 422 ``validation_error`` with pydantic's error list
  (offending input values are dropped so secrets in a bad body are not echoed).
- Anything else → 500 ``server_error``; the stack trace is logged, never returned.

String values in ``details`` are scrubbed of Stellar secret seeds before they
are logged or returned.
"""

from typing import Any, Dict, List, Mapping, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from playground_services.errors import ApiError
from playground_services.logging import scrub_text
from playground_services.models.common import failure

log = structlog.get_logger(__name__)

_HTTP_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "validation_error",
    429: "rate_limited",
    500: "server_error",
    502: "bad_gateway",
    503: "unavailable",
    504: "timeout",
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "") or ""


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, Mapping):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def _envelope(
    request: Request,
    *,
    status: int,
    code: str,
    message: str,
    details: Optional[Mapping[str, Any]] = None,
) -> JSONResponse:
    body = failure(
        code,
        scrub_text(message),
        _scrub(dict(details)) if details else None,
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status, content=body)


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]


# --------------------------- Handlers ---------------------------


async def _handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    status = int(exc.status_code)
    fields = {"status": status, "code": exc.code, "error": scrub_text(exc.message), "path": request.url.path}
    if status >= 500:
        log.error("api_error", **fields)
    else:
        log.warning("api_error", **fields)
    return _envelope(request, status=status, code=exc.code, message=exc.message, details=exc.details)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status = int(exc.status_code)
    message = str(exc.detail) if getattr(exc, "detail", None) else "HTTP error"
    (log.warning if 400 <= status < 500 else log.error)(
        "http_exception", status=status, error=message, path=request.url.path
    )
    return _envelope(request, status=status, code=_HTTP_CODES.get(status, "http_error"), message=message)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _validation_errors(exc)
    log.warning("validation_error", path=request.url.path, errors=errors)
    return _envelope(
        request,
        status=422,
        code="validation_error",
        message="Request validation failed",
        details={"errors": errors},
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled_exception", path=request.url.path)
    err = ApiError.from_unexpected(exc)
    return _envelope(
        request,
        status=err.status_code,
        code=err.code,
        message="An unexpected error occurred. Please retry or contact support with the request_id.",
    )


# --------------------------- Installer ---------------------------


def install_error_handlers(app: FastAPI) -> None:
    """
    Register exception handlers on the given FastAPI app.

    Usage:
        app = FastAPI()
        install_error_handlers(app)
    """
    app.add_exception_handler(ApiError, _handle_api_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected_error)


__all__ = ["install_error_handlers"]
