from __future__ import annotations

from pathlib import Path

import pytest

from playground_services.errors import (
    CommandTimeout,
    ConfigError,
    ExtractionError,
    NotFoundError,
    ToolchainError,
)
from playground_services.services.compile import BuildOrchestrator
from playground_services.services.deploy import DeployOrchestrator
from playground_services.storage.workspace import WorkspaceManager
from tests.conftest import (
    CONTRACT_ID,
    DEPLOY_HASH,
    DEPLOYER,
    HELLO_SOURCE,
    OTHER_SECRET,
    PASSPHRASE,
    PROOF_HASH,
    RPC_URL,
    SECRET,
    FakeRunner,
    Reply,
)


@pytest.fixture()
def deployer(settings, runner: FakeRunner) -> DeployOrchestrator:
    return DeployOrchestrator(settings, runner, WorkspaceManager.from_settings(settings))  # type: ignore[arg-type]


@pytest.fixture()
def built(settings, runner: FakeRunner) -> Path:
    """Compile the sample contract for alice/counter and forget the build commands."""
    orchestrator = BuildOrchestrator(settings, runner, WorkspaceManager.from_settings(settings))  # type: ignore[arg-type]
    res = orchestrator.build(HELLO_SOURCE, "alice", "counter")
    assert res.artifact_path is not None
    runner.calls.clear()
    return res.artifact_path


def test_deploy_success(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    res = deployer.deploy("alice", "counter")

    assert res.success
    assert res.contract_id == CONTRACT_ID
    assert res.transaction_hash == DEPLOY_HASH
    assert res.deployer_address == DEPLOYER
    assert res.network == "testnet"
    assert res.explorer_url == f"https://testnet.stellarchain.io/contracts/{CONTRACT_ID}"
    assert res.wasm_path == built
    assert res.fee == "100000"
    assert res.proof_tx_hash == PROOF_HASH
    assert res.ledger_sequence == 0
    assert res.timestamp.tzinfo is not None

    assert runner.labels == ["stellar contract deploy", "stellar keys address", "stellar tx new"]
    deploy = runner.calls[0]
    assert deploy.argv == [
        "stellar",
        "--verbose",
        "contract",
        "deploy",
        "--wasm",
        str(built),
        "--source",
        SECRET,
        "--rpc-url",
        RPC_URL,
        "--network-passphrase",
        PASSPHRASE,
    ]
    assert all(SECRET in c.redact for c in runner.calls)


def test_account_secret_override(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    deployer.deploy("alice", "counter", account_secret=OTHER_SECRET)
    for call in runner.calls:
        assert SECRET not in call.argv
        assert call.redact == [OTHER_SECRET]
    assert OTHER_SECRET in runner.calls_for("stellar contract deploy")[0].argv


def test_proof_payment_arguments(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    deployer.deploy("alice", "counter")
    proof = runner.calls_for("stellar tx new")[0]
    assert proof.argv[1:5] == ["--verbose", "tx", "new", "payment"]
    assert proof.argv[proof.argv.index("--destination") + 1] == DEPLOYER
    assert proof.argv[proof.argv.index("--amount") + 1] == "1"
    assert proof.argv[proof.argv.index("--source-account") + 1] == SECRET


def test_proof_destination_setting(settings, runner: FakeRunner, built: Path):
    settings.stellar_proof_destination = "GBPROOFDESTINATION"
    DeployOrchestrator(settings, runner, WorkspaceManager.from_settings(settings)).deploy("alice", "counter")  # type: ignore[arg-type]
    proof = runner.calls_for("stellar tx new")[0]
    assert proof.argv[proof.argv.index("--destination") + 1] == "GBPROOFDESTINATION"


def test_proof_failure_is_not_fatal(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    runner.script("stellar tx new", Reply(exit_code=1, stderr="error: account not found\n"))
    res = deployer.deploy("alice", "counter")
    assert res.success
    assert res.proof_tx_hash is None


def test_proof_disabled(settings, runner: FakeRunner, built: Path):
    settings.stellar_proof_enabled = False
    res = DeployOrchestrator(settings, runner, WorkspaceManager.from_settings(settings)).deploy("alice", "counter")  # type: ignore[arg-type]
    assert res.proof_tx_hash is None
    assert "stellar tx new" not in runner.labels


def test_missing_project_spawns_nothing(deployer: DeployOrchestrator, runner: FakeRunner):
    with pytest.raises(NotFoundError) as ei:
        deployer.deploy("alice", "never-compiled")
    assert ei.value.status_code == 404
    assert ei.value.message == "Project directory not found"
    assert runner.calls == []


def test_missing_artifact_spawns_nothing(deployer: DeployOrchestrator, runner: FakeRunner, settings):
    WorkspaceManager.from_settings(settings).ensure_project("alice", "counter", HELLO_SOURCE)
    with pytest.raises(NotFoundError) as ei:
        deployer.deploy("alice", "counter")
    assert ei.value.message == "Compiled WASM file not found"
    assert ei.value.details["hint"] == "Please compile the project first."
    assert runner.calls == []


def test_missing_signer(settings, runner: FakeRunner, built: Path):
    settings.stellar_secret_key = None
    with pytest.raises(ConfigError):
        DeployOrchestrator(settings, runner, WorkspaceManager.from_settings(settings)).deploy("alice", "counter")  # type: ignore[arg-type]
    assert runner.calls == []


def test_missing_rpc_url(settings, runner: FakeRunner, built: Path):
    settings.stellar_rpc_url = None
    with pytest.raises(ConfigError) as ei:
        DeployOrchestrator(settings, runner, WorkspaceManager.from_settings(settings)).deploy("alice", "counter")  # type: ignore[arg-type]
    assert ei.value.details["missing"] == ["STELLAR_RPC_URL"]


def test_deploy_command_failure(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    runner.script("stellar contract deploy", Reply(exit_code=1, stderr="error: insufficient balance\n"))
    with pytest.raises(ToolchainError) as ei:
        deployer.deploy("alice", "counter")
    assert ei.value.message == "Deployment failed"
    assert ei.value.details["stderr"] == "error: insufficient balance\n"
    assert ei.value.details["exit_code"] == 1
    assert runner.labels == ["stellar contract deploy"]


def test_deploy_without_contract_id(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    runner.script("stellar contract deploy", Reply(stdout="\n", stderr=f"Signing transaction: {DEPLOY_HASH}\n"))
    with pytest.raises(ExtractionError):
        deployer.deploy("alice", "counter")


def test_deploy_without_transaction_hash(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    runner.script("stellar contract deploy", Reply(stdout=f"{CONTRACT_ID}\n", stderr="✅ Deployed!\n"))
    with pytest.raises(ExtractionError) as ei:
        deployer.deploy("alice", "counter")
    assert ei.value.details["contract_id"] == CONTRACT_ID
    assert "stellar keys address" not in runner.labels


def test_hash_from_transaction_hash_marker(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    other = "9e" * 32
    runner.script("stellar contract deploy", Reply(stdout=f"{CONTRACT_ID}\n", stderr=f"Transaction hash is {other}\n"))
    assert deployer.deploy("alice", "counter").transaction_hash == other


def test_suspicious_contract_id_only_warns(deployer: DeployOrchestrator, runner: FakeRunner, built: Path, caplog):
    runner.script(
        "stellar contract deploy",
        Reply(stdout="contract-alias\n", stderr=f"Signing transaction: {DEPLOY_HASH}\n"),
    )
    caplog.set_level("WARNING", logger="playground_services.services.deploy")
    res = deployer.deploy("alice", "counter")
    assert res.contract_id == "contract-alias"
    assert "suspicious" in caplog.text


def test_deployer_address_failure(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    runner.script("stellar keys address", Reply(exit_code=1, stderr="error: invalid secret key\n"))
    with pytest.raises(ToolchainError) as ei:
        deployer.deploy("alice", "counter")
    assert ei.value.message == "Failed to derive public key"


def test_deploy_timeout(deployer: DeployOrchestrator, runner: FakeRunner, built: Path):
    runner.script("stellar contract deploy", CommandTimeout("stellar contract deploy", 120))
    with pytest.raises(CommandTimeout):
        deployer.deploy("alice", "counter")
