from __future__ import annotations

"""
Error hierarchy and helpers for Playground Services.

Every failure the lifecycle core can surface is an :class:`ApiError` subclass
with a stable machine ``code``. The HTTP layer renders them into the response
envelope (see ``playground_services.middleware.errors``); the CLI prints them.

Usage
-----
    from playground_services.errors import NotFoundError

    raise NotFoundError("Compiled artifact", details={"project_id": "demo"})

Design
------
- Every error has:
  - ``status_code`` (int): HTTP status
  - ``code`` (str): stable machine code (e.g., "toolchain_error")
  - ``message`` (str): human-friendly summary
  - ``details`` (dict|None): optional structured diagnostics (raw stderr lives here)
- ``to_body()`` returns the ``error`` member of the response envelope.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class ApiError(Exception):
    message: str
    status_code: int = 400
    code: str = "bad_request"
    details: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        # Ensure Exception str is meaningful
        super().__init__(self.message)

    def title(self) -> str:
        return {
            "bad_request": "Bad Request",
            "config_error": "Configuration Error",
            "not_found": "Not Found",
            "spawn_error": "Toolchain Unavailable",
            "workspace_error": "Workspace Error",
            "toolchain_error": "Toolchain Command Failed",
            "extraction_error": "Unrecognized Toolchain Output",
            "timeout": "Toolchain Timeout",
            "server_error": "Internal Server Error",
        }.get(self.code, self.message or "Error")

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = dict(self.details)
        return body

    @classmethod
    def from_unexpected(cls, err: BaseException) -> "ApiError":
        """
        Convert an unexpected exception into a generic server error while
        preserving a minimal diagnostic in ``details``.
        """
        return ServerError(
            "Unhandled server error",
            details={"exc_type": err.__class__.__name__, "str": str(err)},
        )


# ------------------------------ Concrete types ------------------------------- #


class BadRequest(ApiError):
    def __init__(self, message: str = "Bad request", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=400, code="bad_request", details=details)


class ConfigError(ApiError):
    """A required configuration value is missing or unusable."""

    def __init__(self, message: str = "Missing configuration", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=500, code="config_error", details=details)


class NotFoundError(ApiError):
    def __init__(self, what: str = "Resource", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=f"{what} not found", status_code=404, code="not_found", details=details)


class SpawnError(ApiError):
    """The external executable could not be located or started."""

    def __init__(self, message: str = "Failed to start toolchain command", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=500, code="spawn_error", details=details)


class WorkspaceError(ApiError):
    def __init__(self, message: str = "Workspace provisioning failed", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=500, code="workspace_error", details=details)


class ToolchainError(ApiError):
    """An external command exited non-zero where success was required."""

    def __init__(
        self,
        message: str = "Toolchain command failed",
        *,
        stderr: str = "",
        exit_code: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        merged: Dict[str, Any] = {"stderr": stderr, "exit_code": exit_code}
        if details:
            merged.update(details)
        super().__init__(message=message, status_code=502, code="toolchain_error", details=merged)


class ExtractionError(ApiError):
    """An expected identifier or hash could not be recovered from tool output."""

    def __init__(self, message: str = "Could not parse toolchain output", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=502, code="extraction_error", details=details)


class CommandTimeout(ApiError):
    def __init__(self, command: str, timeout: float):
        super().__init__(
            message=f"Command '{command}' timed out after {timeout:g}s",
            status_code=504,
            code="timeout",
            details={"command": command, "timeout_seconds": timeout},
        )


class ServerError(ApiError):
    def __init__(self, message: str = "Internal server error", *, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message=message, status_code=500, code="server_error", details=details)


__all__ = [
    "ApiError",
    "BadRequest",
    "ConfigError",
    "NotFoundError",
    "SpawnError",
    "WorkspaceError",
    "ToolchainError",
    "ExtractionError",
    "CommandTimeout",
    "ServerError",
]
