from __future__ import annotations

import pytest

from playground_services.errors import ConfigError, SpawnError
from playground_services.services.invoke import InvokeOrchestrator, marshal_args
from tests.conftest import CALL_HASH, CONTRACT_ID, OTHER_SECRET, PASSPHRASE, RPC_URL, SECRET, FakeRunner, Reply


@pytest.fixture()
def invoker(settings, runner: FakeRunner) -> InvokeOrchestrator:
    return InvokeOrchestrator(settings, runner)  # type: ignore[arg-type]


# ---------------------------
# Argument marshaling
# ---------------------------


@pytest.mark.parametrize(
    "args,expected",
    [
        ({"amount": 42, "to": "GABC"}, ["--amount", "42", "--to", "GABC"]),
        (["x", 7], ["x", "7"]),
        ({"flag": True, "off": False, "none": None}, ["--flag", "true", "--off", "false", "--none", "null"]),
        ({"cfg": {"a": [1, 2]}}, ["--cfg", '{"a":[1,2]}']),
        ({"name": "héllo"}, ["--name", "héllo"]),
        ({"label": {"k": "ü"}}, ["--label", '{"k":"ü"}']),
        ({"ratio": 1.5}, ["--ratio", "1.5"]),
        ([[1, "a"]], ['[1,"a"]']),
        ({}, []),
        ([], []),
        (None, []),
        (5, []),
        ("plain", []),
    ],
)
def test_marshal_args(args, expected):
    assert marshal_args(args) == expected


def test_marshal_keeps_key_order():
    assert marshal_args({"b": 1, "a": 2}) == ["--b", "1", "--a", "2"]


# ---------------------------
# Orchestrator
# ---------------------------


def test_view_invocation(invoker: InvokeOrchestrator, runner: FakeRunner):
    res = invoker.invoke(CONTRACT_ID, "get_count", None, "view")

    assert res.success
    assert res.result == 1
    assert res.transaction_hash is None
    assert res.raw_output == "1\n"
    assert res.error is None
    assert res.logs == []

    (call,) = runner.calls
    assert call.argv == [
        "stellar",
        "contract",
        "invoke",
        "--id",
        CONTRACT_ID,
        "--source",
        SECRET,
        "--rpc-url",
        RPC_URL,
        "--network-passphrase",
        PASSPHRASE,
        "--send",
        "no",
        "--",
        "get_count",
    ]
    assert call.redact == [SECRET]


def test_view_never_reports_a_hash(invoker: InvokeOrchestrator, runner: FakeRunner):
    runner.script("stellar contract invoke", Reply(stdout="1\n", stderr=f"Signing transaction: {CALL_HASH}\n"))
    assert invoker.invoke(CONTRACT_ID, "get_count", None, "view").transaction_hash is None


def test_call_invocation_submits(invoker: InvokeOrchestrator, runner: FakeRunner):
    res = invoker.invoke(CONTRACT_ID, "increment", {"by": 2}, "call")

    assert res.success
    assert res.transaction_hash == CALL_HASH
    argv = runner.calls[0].argv
    assert argv[argv.index("--send") + 1] == "yes"
    assert "--verbose" in argv
    assert argv[argv.index("--") :] == ["--", "increment", "--by", "2"]


def test_any_non_view_type_submits(invoker: InvokeOrchestrator, runner: FakeRunner):
    invoker.invoke(CONTRACT_ID, "increment", None, "write")
    argv = runner.calls[0].argv
    assert argv[argv.index("--send") + 1] == "yes"


def test_missing_hash_on_call_is_not_an_error(invoker: InvokeOrchestrator, runner: FakeRunner):
    runner.script("stellar contract invoke", Reply(stdout='"done"\n', stderr="submitted\n"))
    res = invoker.invoke(CONTRACT_ID, "increment", None, "call")
    assert res.success
    assert res.result == "done"
    assert res.transaction_hash is None


def test_non_json_result_is_trimmed_text(invoker: InvokeOrchestrator, runner: FakeRunner):
    runner.script("stellar contract invoke", Reply(stdout="  GABC is the admin  \n"))
    assert invoker.invoke(CONTRACT_ID, "admin", None, "view").result == "GABC is the admin"


def test_positional_arguments(invoker: InvokeOrchestrator, runner: FakeRunner):
    invoker.invoke(CONTRACT_ID, "transfer", ["GA", "GB", 10], "view")
    argv = runner.calls[0].argv
    assert argv[argv.index("--") :] == ["--", "transfer", "GA", "GB", "10"]


def test_failed_invocation_is_a_result(invoker: InvokeOrchestrator, runner: FakeRunner):
    stderr = "error: HostError: Error(WasmVm, InvalidAction)\n"
    runner.script("stellar contract invoke", Reply(exit_code=1, stdout="ignored", stderr=stderr))
    res = invoker.invoke(CONTRACT_ID, "panic", None, "call")

    assert not res.success
    assert res.error == stderr
    assert res.raw_output == stderr
    assert res.result is None
    assert res.transaction_hash is None


def test_source_account_override(invoker: InvokeOrchestrator, runner: FakeRunner):
    invoker.invoke(CONTRACT_ID, "get_count", None, "view", source_account=OTHER_SECRET)
    call = runner.calls[0]
    assert call.argv[call.argv.index("--source") + 1] == OTHER_SECRET
    assert SECRET not in call.argv
    assert call.redact == [OTHER_SECRET]


def test_missing_network_config(settings, runner: FakeRunner):
    settings.stellar_network_passphrase = None
    with pytest.raises(ConfigError) as ei:
        InvokeOrchestrator(settings, runner).invoke(CONTRACT_ID, "get_count", None, "view")  # type: ignore[arg-type]
    assert ei.value.details["missing"] == ["STELLAR_NETWORK_PASSPHRASE"]
    assert runner.calls == []


def test_missing_signer(settings, runner: FakeRunner):
    settings.stellar_secret_key = None
    with pytest.raises(ConfigError):
        InvokeOrchestrator(settings, runner).invoke(CONTRACT_ID, "get_count", None, "view")  # type: ignore[arg-type]
    assert runner.calls == []


def test_spawn_failure_propagates(invoker: InvokeOrchestrator, runner: FakeRunner):
    runner.script("stellar contract invoke", SpawnError("stellar missing"))
    with pytest.raises(SpawnError):
        invoker.invoke(CONTRACT_ID, "get_count", None, "view")
