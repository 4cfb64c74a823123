from __future__ import annotations

"""
Common API model types: the response envelope shared by every endpoint.

Every POST endpoint answers with::

    {"success": true,  "message": "Success", "data": {...}}
    {"success": false, "message": "...", "error": {"code": "...", "message": "...", "details": {...}}}

Error envelopes are produced by ``playground_services.middleware.errors``; the
routers only ever build the success form via :func:`ok`.
"""

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ErrorBody(BaseModel):
    code: str = Field(..., description="Stable machine-readable error code, e.g. `toolchain_error`.")
    message: str = Field(..., description="Human-readable summary.")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Structured diagnostics (raw CLI stderr lives here)."
    )


class ApiEnvelope(BaseModel, Generic[T]):
    """
    Uniform wrapper for API responses.

    Fields
    ------
    success: bool
        False only for error responses. A failed *build* or *invocation* is
        still a successful request; inspect ``data.success`` for those.
    message: str
        "Success" or the error summary.
    data: Optional[T]
        Endpoint payload on success.
    error: Optional[ErrorBody]
        Populated on failure.
    request_id: Optional[str]
        Correlation id, echoed on error responses.
    """

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    data: Optional[T] = None
    error: Optional[ErrorBody] = None
    request_id: Optional[str] = None


def ok(data: Any, message: str = "Success") -> Dict[str, Any]:
    """Success envelope as a plain dict (FastAPI validates it against the route's response_model)."""
    return {"success": True, "message": message, "data": data}


def failure(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    *,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    body: Dict[str, Any] = {"success": False, "message": message, "error": error}
    if request_id:
        body["request_id"] = request_id
    return body


__all__ = ["ApiEnvelope", "ErrorBody", "ok", "failure"]
