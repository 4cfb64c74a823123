"""
Invoke service: call a deployed contract method through ``stellar contract invoke``.

- ``method_type == "view"`` simulates only (``--send no``) and never yields a
  transaction hash.
- Anything else submits (``--send yes --verbose``); the hash is read from
  stderr when present, and its absence is only logged.
- A non-zero exit is reported as an unsuccessful :class:`InvokeResult`
  carrying the CLI's stderr rather than raised.

JSON call arguments are turned into CLI arguments by :func:`marshal_args`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from playground_services.adapters.extractors import DEFAULT_EXTRACTOR, StellarOutputExtractor
from playground_services.adapters.process import ProcessRunner
from playground_services.config import Settings

log = logging.getLogger(__name__)

VIEW = "view"


@dataclass
class InvokeResult:
    success: bool
    result: Any = None
    transaction_hash: Optional[str] = None
    logs: List[str] = field(default_factory=list)
    fee: Optional[str] = None
    error: Optional[str] = None
    raw_output: Optional[str] = None


# ---------- Argument marshaling ----------


def _arg_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    # bool before int: True is an int in Python
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def marshal_args(args: Any) -> list[str]:
    """
    Convert parsed JSON call arguments into ``stellar contract invoke`` arguments.

    >>> marshal_args({"amount": 42, "to": "GABC"})
    ['--amount', '42', '--to', 'GABC']
    >>> marshal_args(["x", "y"])
    ['x', 'y']
    >>> marshal_args({"cfg": {"a": [1, 2]}, "flag": True, "none": None})
    ['--cfg', '{"a":[1,2]}', '--flag', 'true', '--none', 'null']

    Any other top-level value (scalar or null) contributes no arguments.
    """
    out: list[str] = []
    if isinstance(args, dict):
        for key, value in args.items():
            out.append(f"--{key}")
            out.append(_arg_text(value))
    elif isinstance(args, list):
        out.extend(_arg_text(v) for v in args)
    return out


# ---------- Orchestrator ----------


class InvokeOrchestrator:
    def __init__(
        self,
        settings: Settings,
        runner: ProcessRunner,
        extractor: StellarOutputExtractor = DEFAULT_EXTRACTOR,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.extractor = extractor

    def invoke(
        self,
        contract_id: str,
        method_name: str,
        args_json: Any = None,
        method_type: str = "call",
        source_account: Optional[str] = None,
    ) -> InvokeResult:
        """
        Call ``method_name`` on ``contract_id``.

        Raises ``ConfigError`` when RPC settings or a signer are missing, and
        ``SpawnError`` / ``CommandTimeout`` from the runner; every other outcome
        is an :class:`InvokeResult`.
        """
        self.settings.rpc_config()
        creds = self.settings.credentials(source_account)

        is_view = method_type == VIEW
        send_mode = "no" if is_view else "yes"
        log.info(
            "invoking %s.%s (type=%s, send=%s)", contract_id, method_name, method_type, send_mode
        )

        argv = [
            "contract",
            "invoke",
            "--id",
            contract_id,
            "--source",
            creds.secret_key,
            "--rpc-url",
            creds.rpc_url,
            "--network-passphrase",
            creds.network_passphrase,
            "--send",
            send_mode,
        ]
        if not is_view:
            argv.append("--verbose")
        argv += ["--", method_name, *marshal_args(args_json)]

        res = self.runner.run(
            self.settings.stellar_bin,
            argv,
            timeout=self.settings.toolchain_timeout_seconds,
            redact=[creds.secret_key],
        )
        stdout, stderr = res.stdout_text, res.stderr_text
        log.debug("invoke stdout: %s", stdout)
        log.debug("invoke stderr: %s", stderr)

        if not res.ok:
            log.error("invocation of %s.%s failed: %s", contract_id, method_name, stderr.strip())
            return InvokeResult(success=False, error=stderr, raw_output=stderr)

        tx_hash: Optional[str] = None
        if not is_view:
            tx_hash = self.extractor.transaction_hash(stderr)
            if tx_hash is None:
                log.warning("could not extract transaction hash from call method output")
            else:
                log.info("transaction hash: %s", tx_hash)

        return InvokeResult(
            success=True,
            result=self.extractor.result_value(stdout),
            transaction_hash=tx_hash,
            raw_output=stdout,
        )


__all__ = ["InvokeOrchestrator", "InvokeResult", "marshal_args"]
