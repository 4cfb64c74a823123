from __future__ import annotations

"""
Structured logging for Playground Services.

structlog renders every record, including the stdlib ``logging`` records the
service layer and uvicorn emit, through one processor chain:

    level -> timestamp -> contextvars (request_id, trace_id) -> %-args
    -> exception text -> secret redaction -> service name -> renderer

Redaction
---------
Signing secrets travel on ``stellar`` command lines and in request bodies, so
the chain masks them twice:

- values under well-known keys (``secret_key``, ``account_secret``, ...) become ``***``
- anything shaped like a Stellar secret seed (``S`` + 55 base32 chars) inside
  any string, list or dict value becomes ``S***``; this covers formatted
  messages and rendered tracebacks

Environment
-----------
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default INFO)
- LOG_FORMAT: "json" (default) or "console"
- LOG_INCLUDE_STACKTRACE: "1"/"0"; defaults to on for json, off for console
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.types import Processor

REDACT_KEYS = frozenset(
    {
        "authorization",
        "password",
        "secret",
        "secret_key",
        "stellar_secret_key",
        "account_secret",
        "source_account",
        "api_key",
    }
)

# Stellar ed25519 secret seed in StrKey form.
SECRET_SEED_RE = re.compile(r"\bS[A-Z2-7]{55}\b")

_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def scrub_text(text: str) -> str:
    """Mask anything shaped like a Stellar secret seed."""
    return SECRET_SEED_RE.sub("S***", text)


def _scrub_value(value: Any) -> Any:
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, dict):
        return {k: _scrub_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub_value(v) for v in value]
    return value


def redact_secrets(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor: mask secret-keyed values and seed-shaped substrings."""
    for key, value in list(event_dict.items()):
        if value is None:
            continue
        if key.lower() in REDACT_KEYS:
            event_dict[key] = "***"
        else:
            event_dict[key] = _scrub_value(value)
    return event_dict


def _service_stamp(service_name: str) -> Processor:
    def stamp(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return stamp


# ------------------------------ Options ---------------------------------------


@dataclass(frozen=True)
class LogOptions:
    level: str
    fmt: str
    stacktrace: bool

    @classmethod
    def resolve(
        cls,
        level: Optional[str | int] = None,
        log_format: Optional[str] = None,
        include_stacktrace: Optional[bool] = None,
    ) -> "LogOptions":
        if isinstance(level, int):
            level = logging.getLevelName(level)
        lvl = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
        fmt = (log_format or os.getenv("LOG_FORMAT") or "json").lower()
        if include_stacktrace is None:
            env = os.getenv("LOG_INCLUDE_STACKTRACE")
            if env is not None:
                include_stacktrace = env.strip().lower() in ("1", "true", "yes", "on")
            else:
                include_stacktrace = fmt == "json"
        return cls(level=lvl, fmt=fmt, stacktrace=include_stacktrace)


def _chain(service_name: str, opts: LogOptions) -> List[Processor]:
    chain: List[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        merge_contextvars,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]
    if opts.stacktrace:
        chain.append(structlog.processors.format_exc_info)
    chain += [
        redact_secrets,
        structlog.processors.UnicodeDecoder(),
        _service_stamp(service_name),
    ]
    return chain


def _renderer(opts: LogOptions) -> Processor:
    if opts.fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)
    return structlog.processors.JSONRenderer(sort_keys=True)


# ------------------------------ Setup ----------------------------------------


def setup_logging(
    *,
    service_name: str = "playground-services",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
    include_stacktrace: Optional[bool] = None,
) -> LogOptions:
    """
    Configure structlog and the stdlib root logger. Call once at process start.

    Explicit arguments win over the environment. Logs go to stderr so the CLI
    can keep stdout for JSON results.
    """
    opts = LogOptions.resolve(level, log_format, include_stacktrace)
    chain = _chain(service_name, opts)
    renderer = _renderer(opts)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *chain,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *chain],
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(opts.level)

    for name in _UVICORN_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False
        lg.setLevel(opts.level)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return opts


__all__ = [
    "LogOptions",
    "REDACT_KEYS",
    "redact_secrets",
    "scrub_text",
    "setup_logging",
]
