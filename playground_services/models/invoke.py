from __future__ import annotations

"""
Invoke models.

``method_type`` selects the mode: ``"view"`` simulates without submitting,
anything else (normally ``"call"``) signs and submits a transaction.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from playground_services.services.invoke import InvokeResult


class InvokeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    contract_id: str = Field(..., min_length=1, description="Contract id (C…).")
    method_name: str = Field(..., min_length=1)
    args: Any = Field(
        default=None,
        description="Object → `--name value` pairs; array → positional values.",
    )
    method_type: str = Field(..., min_length=1, description='"view" (simulate) or "call" (submit).')
    source_account: Optional[SecretStr] = Field(
        default=None, description="Optional signer secret; defaults to the server account."
    )

    @field_validator("contract_id")
    @classmethod
    def _not_an_option(cls, v: str) -> str:
        # Passed to the CLI before "--"; a leading dash would be read as a flag.
        if v.strip().startswith("-"):
            raise ValueError("contract_id must not start with '-'")
        return v

    def secret(self) -> Optional[str]:
        return self.source_account.get_secret_value() if self.source_account else None


class InvokeResponse(BaseModel):
    success: bool
    result: Optional[Any] = None
    transaction_hash: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
    fee: Optional[str] = None
    error: Optional[str] = None
    raw_output: Optional[str] = None

    @classmethod
    def from_result(cls, res: InvokeResult) -> "InvokeResponse":
        return cls(
            success=res.success,
            result=res.result,
            transaction_hash=res.transaction_hash,
            logs=list(res.logs),
            fee=res.fee,
            error=res.error,
            raw_output=res.raw_output,
        )


__all__ = ["InvokeRequest", "InvokeResponse"]
