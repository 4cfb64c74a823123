from __future__ import annotations

"""
Compile models.

- CompileRequest/CompileResponse:
    Submit Rust contract source for a user's project and get the compiler's
    exit status, full output, artifact details and (when derivable) the
    contract spec back.

Notes
-----
A failed build is reported with ``success=false`` *inside* a successful
envelope; only infrastructure failures (workspace, missing CLI, timeouts)
produce error envelopes.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from playground_services.services.compile import BuildResult


class CompileRequest(BaseModel):
    """
    Fields
    ------
    user_id: str
        Owner of the project; first path segment under PROJECTS_DIR.
    project_id: str
        Project name; second path segment under PROJECTS_DIR.
    code: str
        Full contents of the contract's ``lib.rs``.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., min_length=1, max_length=128, description="Project owner id.")
    project_id: str = Field(..., min_length=1, max_length=128, description="Project id.")
    code: str = Field(..., description="Rust source for the contract crate (lib.rs).")


class CompileDetails(BaseModel):
    status: str = Field(..., description='"success" or "failed".')
    compilation_time: float = Field(..., description="Seconds spent in `stellar contract build`.")
    project_path: str
    wasm_size: Optional[int] = Field(default=None, description="Artifact size in bytes, if found.")
    optimized: bool = Field(default=True, description="`stellar contract build` optimizes by default.")


class CompileResponse(BaseModel):
    success: bool
    exit_code: int
    stdout: str
    stderr: str
    details: CompileDetails
    spec: Optional[Any] = Field(default=None, description="Contract spec (interface) as JSON.")

    @classmethod
    def from_result(cls, res: BuildResult) -> "CompileResponse":
        return cls(
            success=res.success,
            exit_code=res.exit_code,
            stdout=res.stdout,
            stderr=res.stderr,
            details=CompileDetails(
                status=res.status,
                compilation_time=res.elapsed_seconds,
                project_path=str(res.project_path),
                wasm_size=res.artifact_size,
                optimized=True,
            ),
            spec=res.spec,
        )


__all__ = ["CompileRequest", "CompileResponse", "CompileDetails"]
