"""
Deploy service: publish a compiled contract with ``stellar contract deploy``.

Steps of :meth:`DeployOrchestrator.deploy`, in order:

1. Resolve signer + network (``ConfigError`` when anything is missing).
2. Require the project directory and its ``.wasm`` artifact (``NotFoundError``
   before any process is spawned; deploy never builds on its own).
3. ``stellar --verbose contract deploy --wasm P --source S --rpc-url U --network-passphrase N``.
4. Contract id = last non-blank stdout line (format mismatches only warn).
5. Transaction hash from stderr; its absence is fatal, since success without a
   hash cannot be told apart from a deploy that never reached the network.
6. Deployer address via ``stellar keys address S``.
7. Optional proof-of-deployment payment (best effort).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from playground_services.adapters.extractors import DEFAULT_EXTRACTOR, StellarOutputExtractor
from playground_services.adapters.process import ProcessRunner, best_effort
from playground_services.config import NetworkCredentials, Settings
from playground_services.errors import ExtractionError, NotFoundError, ToolchainError
from playground_services.storage.workspace import ProjectLocks, WorkspaceManager

log = logging.getLogger(__name__)


@dataclass
class DeployResult:
    contract_id: str
    transaction_hash: str
    deployer_address: str
    network: str
    explorer_url: str
    wasm_path: Path
    timestamp: datetime
    fee: Optional[str] = None
    proof_tx_hash: Optional[str] = None
    ledger_sequence: int = 0

    @property
    def success(self) -> bool:
        return bool(self.contract_id and self.transaction_hash)


class DeployOrchestrator:
    """
    Deploy the latest build artifact of a project.

    Parameters
    ----------
    settings : Settings
        Credentials, network, proof-payment and response settings.
    runner : ProcessRunner
        Executes ``stellar``.
    workspace : WorkspaceManager
        Resolves project directories and artifacts.
    extractor : StellarOutputExtractor
        Output parsing strategy.
    locks : ProjectLocks | None
        Shared lock registry; a private one is created when omitted.
    """

    def __init__(
        self,
        settings: Settings,
        runner: ProcessRunner,
        workspace: WorkspaceManager,
        extractor: StellarOutputExtractor = DEFAULT_EXTRACTOR,
        locks: Optional[ProjectLocks] = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.workspace = workspace
        self.extractor = extractor
        self.locks = locks or ProjectLocks()

    # ---------- Helpers ----------

    def _run(self, args: list[str], creds: NetworkCredentials):
        return self.runner.run(
            self.settings.stellar_bin,
            args,
            timeout=self.settings.toolchain_timeout_seconds,
            redact=[creds.secret_key],
        )

    def locate_artifact(self, user_id: str, project_id: str) -> Path:
        project = self.workspace.project_path(user_id, project_id)
        if not project.is_dir():
            raise NotFoundError(
                "Project directory",
                details={"user_id": user_id, "project_id": project_id},
            )
        artifact = self.workspace.find_artifact(project)
        if artifact is None:
            raise NotFoundError(
                "Compiled WASM file",
                details={
                    "user_id": user_id,
                    "project_id": project_id,
                    "hint": "Please compile the project first.",
                },
            )
        return artifact

    def deployer_address(self, creds: NetworkCredentials) -> str:
        """Public ``G…`` address of the signing account."""
        res = self._run(["keys", "address", creds.secret_key], creds)
        if not res.ok:
            raise ToolchainError(
                "Failed to derive public key",
                stderr=res.stderr_text,
                exit_code=res.exit_code,
            )
        address = res.stdout_text.strip()
        if not address:
            raise ExtractionError("stellar keys address printed nothing")
        return address

    def send_proof(self, creds: NetworkCredentials, deployer_address: str) -> Optional[str]:
        """Send a small payment that marks the deployment; returns its hash if printed."""
        destination = self.settings.stellar_proof_destination or deployer_address
        log.info("sending proof-of-deployment payment to %s", destination)
        res = self._run(
            [
                "--verbose",
                "tx",
                "new",
                "payment",
                "--source-account",
                creds.secret_key,
                "--destination",
                destination,
                "--amount",
                str(self.settings.stellar_proof_amount),
                "--rpc-url",
                creds.rpc_url,
                "--network-passphrase",
                creds.network_passphrase,
            ],
            creds,
        )
        if not res.ok:
            raise ToolchainError(
                "Proof transfer failed",
                stderr=res.stderr_text,
                exit_code=res.exit_code,
            )
        return self.extractor.transaction_hash(res.stderr_text + "\n" + res.stdout_text)

    # ---------- Public API ----------

    def deploy(
        self,
        user_id: str,
        project_id: str,
        account_secret: Optional[str] = None,
    ) -> DeployResult:
        """
        Deploy the project's artifact and describe the resulting contract.

        Raises
        ------
        ConfigError
            Signer, RPC URL or network passphrase missing.
        NotFoundError
            Project or artifact missing.
        ToolchainError
            ``contract deploy`` or ``keys address`` exited non-zero.
        ExtractionError
            No contract id or no transaction hash in the deploy output.
        """
        creds = self.settings.credentials(account_secret)
        log.info("deploying project %s/%s to %s", user_id, project_id, creds.network_name)

        with self.locks.hold(user_id, project_id):
            artifact = self.locate_artifact(user_id, project_id)
            log.info("deploying WASM file %s", artifact)
            res = self._run(
                [
                    "--verbose",
                    "contract",
                    "deploy",
                    "--wasm",
                    str(artifact),
                    "--source",
                    creds.secret_key,
                    "--rpc-url",
                    creds.rpc_url,
                    "--network-passphrase",
                    creds.network_passphrase,
                ],
                creds,
            )

        stdout, stderr = res.stdout_text, res.stderr_text
        log.debug("deploy stdout: %s", stdout)
        log.debug("deploy stderr: %s", stderr)
        if not res.ok:
            log.error("deployment failed with exit code %s", res.exit_code)
            raise ToolchainError("Deployment failed", stderr=stderr, exit_code=res.exit_code)

        contract_id = self.extractor.contract_id(stdout)
        if not contract_id:
            raise ExtractionError("No contract ID in deployment output", details={"stderr": stderr})
        if not self.extractor.is_contract_id(contract_id):
            log.warning(
                "contract ID format looks suspicious: %s (expected C followed by 55 base32 characters)",
                contract_id,
            )

        tx_hash = self.extractor.transaction_hash(stderr)
        if tx_hash is None:
            raise ExtractionError(
                "Failed to extract transaction hash from deployment output. "
                "The deployment may not have succeeded on-chain.",
                details={"contract_id": contract_id, "stderr": stderr},
            )
        log.info("contract %s deployed in transaction %s", contract_id, tx_hash)

        address = self.deployer_address(creds)

        proof_hash: Optional[str] = None
        if self.settings.stellar_proof_enabled:
            proof_hash = best_effort("proof transfer", self.send_proof, creds, address).value

        return DeployResult(
            contract_id=contract_id,
            transaction_hash=tx_hash,
            deployer_address=address,
            network=creds.network_name,
            explorer_url=self.settings.explorer_url(contract_id),
            wasm_path=artifact,
            timestamp=datetime.now(timezone.utc),
            fee=self.settings.deploy_fee_estimate,
            proof_tx_hash=proof_hash,
        )


__all__ = ["DeployOrchestrator", "DeployResult"]
