from __future__ import annotations

"""
Deploy models.

- DeployRequest/DeployResponse:
    Deploy the last compiled artifact of a project. The signer defaults to
    the server's STELLAR_SECRET_KEY; ``account_secret`` overrides it for one
    call and is never logged or echoed back.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from playground_services.services.deploy import DeployResult


class DeployRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., min_length=1, max_length=128)
    project_id: str = Field(..., min_length=1, max_length=128)
    account_secret: Optional[SecretStr] = Field(
        default=None, description="Optional signer secret (S…) or identity; defaults to the server account."
    )

    def secret(self) -> Optional[str]:
        return self.account_secret.get_secret_value() if self.account_secret else None


class DeployDetails(BaseModel):
    network: str
    ledger_sequence: int = Field(default=0, description="Not queried; always 0.")
    timestamp: datetime
    deployer_address: str


class DeployResponse(BaseModel):
    """
    Deployment record. ``success`` is true only when both the contract id and
    the transaction hash were recovered from the CLI output.
    """

    success: bool
    transaction_hash: str
    contract_id: str
    explorer_url: str
    fee: Optional[str] = Field(default=None, description="Approximate fee in stroops.")
    proof_tx_hash: Optional[str] = None
    details: DeployDetails

    @classmethod
    def from_result(cls, res: DeployResult) -> "DeployResponse":
        return cls(
            success=res.success,
            transaction_hash=res.transaction_hash,
            contract_id=res.contract_id,
            explorer_url=res.explorer_url,
            fee=res.fee,
            proof_tx_hash=res.proof_tx_hash,
            details=DeployDetails(
                network=res.network,
                ledger_sequence=res.ledger_sequence,
                timestamp=res.timestamp,
                deployer_address=res.deployer_address,
            ),
        )


__all__ = ["DeployRequest", "DeployResponse", "DeployDetails"]
