from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Union

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from playground_services.adapters.process import ProcessResult, command_label
from playground_services.app import create_app
from playground_services.config import Settings, load_settings

# Realistic-looking StrKeys; none of them belong to a funded account.
SECRET = "SBZVMB74Z76QZ3ZOY7UTDFYKMEGKW5XFJEB6PFKBF4UYSSWHG4EDH7PY"
OTHER_SECRET = "SCZANGBA5YHTNYVVV4C3U252E2B6P6F5T3U6MM63WBSBZATAQI3EBTQ4"
DEPLOYER = "GAAZI4TCR3TY5OJHCTJC2A4QSY6CJWJH5IAJTGKIN2ER7LBNVKOCCWN7"
CONTRACT_ID = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"
DEPLOY_HASH = "3f" * 32
PROOF_HASH = "a1" * 32
CALL_HASH = "c0" * 32

RPC_URL = "https://soroban-testnet.stellar.org"
PASSPHRASE = "Test SDF Network ; September 2015"

CONTRACT_SPEC = [{"type": "function", "name": "increment", "inputs": [], "outputs": [{"type": "u32"}]}]

HELLO_SOURCE = """#![no_std]
use soroban_sdk::{contract, contractimpl, Env};

#[contract]
pub struct Counter;

#[contractimpl]
impl Counter {
    pub fn increment(_env: Env) -> u32 { 1 }
}
"""


# ----------------------------
# Scripted process runner
# ----------------------------
@dataclass
class Call:
    argv: List[str]
    cwd: Optional[Path]
    timeout: Optional[float]
    redact: List[str]

    @property
    def label(self) -> str:
        return command_label(self.argv[0], self.argv[1:])


@dataclass
class Reply:
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""


Scripted = Union[Reply, BaseException, Callable[[Call], Reply]]


def _write_artifact(call: Call, name: str = "hello_world.wasm") -> None:
    release = Path(call.cwd or ".") / "target" / "wasm32v1-none" / "release"
    release.mkdir(parents=True, exist_ok=True)
    (release / name).write_bytes(b"\x00asm\x01\x00\x00\x00" + b"\x00" * 56)


def _default_build(call: Call) -> Reply:
    _write_artifact(call)
    return Reply(stderr="    Finished `release` profile [optimized] target(s)\n")


def _default_invoke(call: Call) -> Reply:
    if "yes" in call.argv:
        return Reply(stdout="1\n", stderr=f"ℹ️ Signing transaction: {CALL_HASH}\n")
    return Reply(stdout="1\n", stderr="ℹ️ Simulation identified as read-only. Send by using `--send=yes`.\n")


DEFAULT_REPLIES: Dict[str, Scripted] = {
    "rustup target add": Reply(stderr="info: component 'rust-std' is up to date\n"),
    "stellar": Reply(stdout="stellar 23.1.4 (a1b2c3d)\nstellar-xdr 23.0.0\n"),
    "stellar contract build": _default_build,
    "stellar contract bindings": Reply(stdout='[{"type":"function","name":"increment","inputs":[],"outputs":[{"type":"u32"}]}]'),
    "stellar contract deploy": Reply(
        stdout=f"{CONTRACT_ID}\n",
        stderr=(
            "ℹ️ Simulating install transaction…\n"
            f"ℹ️ Signing transaction: {DEPLOY_HASH}\n"
            "🌎 Submitting deploy transaction…\n"
            "✅ Deployed!\n"
        ),
    ),
    "stellar keys address": Reply(stdout=f"{DEPLOYER}\n"),
    "stellar tx new": Reply(stderr=f"ℹ️ Transaction hash is {PROOF_HASH}\n"),
    "stellar contract invoke": _default_invoke,
}


class FakeRunner:
    """
    Stand-in for ``ProcessRunner`` that never spawns anything.

    Replies are keyed by command label (e.g. ``stellar contract deploy``);
    ``script`` overrides the default for one label. A scripted exception is
    raised instead of returning, which is how spawn failures and timeouts are
    simulated.
    """

    def __init__(self) -> None:
        self.calls: List[Call] = []
        self.replies: Dict[str, Scripted] = dict(DEFAULT_REPLIES)

    def script(self, label: str, reply: Scripted) -> None:
        self.replies[label] = reply

    @property
    def labels(self) -> List[str]:
        return [c.label for c in self.calls]

    def calls_for(self, label: str) -> List[Call]:
        return [c for c in self.calls if c.label == label]

    def run(
        self,
        executable: str,
        args: Sequence[str] = (),
        cwd=None,
        *,
        timeout: Optional[float] = None,
        redact=(),
    ) -> ProcessResult:
        call = Call(
            argv=[executable, *[str(a) for a in args]],
            cwd=Path(cwd) if cwd is not None else None,
            timeout=timeout,
            redact=list(redact),
        )
        self.calls.append(call)

        scripted = self.replies.get(call.label, Reply(exit_code=127, stderr=f"unscripted: {call.label}\n"))
        if isinstance(scripted, BaseException):
            raise scripted
        reply = scripted(call) if callable(scripted) else scripted
        return ProcessResult(
            argv=tuple(call.argv),
            exit_code=reply.exit_code,
            stdout=reply.stdout.encode("utf-8"),
            stderr=reply.stderr.encode("utf-8"),
        )


# ----------------------------
# Workspace & settings
# ----------------------------
@pytest.fixture()
def template_dir(tmp_path: Path) -> Path:
    """A minimal project template, including build leftovers that must not be copied."""
    root = tmp_path / "base_project"
    src = root / "contracts" / "hello-world" / "src"
    src.mkdir(parents=True)
    (root / "Cargo.toml").write_text('[workspace]\nmembers = ["contracts/*"]\n', encoding="utf-8")
    (root / "contracts" / "hello-world" / "Cargo.toml").write_text(
        '[package]\nname = "hello-world"\nversion = "0.0.0"\n', encoding="utf-8"
    )
    (src / "lib.rs").write_text("// template\n", encoding="utf-8")
    stale = root / "target" / "wasm32v1-none" / "release"
    stale.mkdir(parents=True)
    (stale / "stale.wasm").write_bytes(b"\x00asm")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    return root


@pytest.fixture()
def projects_dir(tmp_path: Path) -> Path:
    return tmp_path / "projects"


@pytest.fixture()
def settings(template_dir: Path, projects_dir: Path) -> Settings:
    return load_settings(
        projects_dir=projects_dir,
        base_project_dir=template_dir,
        stellar_secret_key=SECRET,
        stellar_rpc_url=RPC_URL,
        stellar_network_passphrase=PASSPHRASE,
        stellar_network="testnet",
        stellar_proof_destination=None,
        stellar_proof_enabled=True,
        wasm_targets=["wasm32v1-none"],
        startup_checks=False,
    )


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()


# ----------------------------
# FastAPI application fixtures
# ----------------------------
@pytest.fixture()
def app(settings: Settings, runner: FakeRunner) -> FastAPI:
    return create_app(settings, runner)  # type: ignore[arg-type]


@pytest_asyncio.fixture()
async def aclient(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Async HTTP client bound to the ASGI app; no server is started."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
