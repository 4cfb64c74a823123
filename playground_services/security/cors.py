from __future__ import annotations

"""
Strict CORS setup for the playground frontends.

- Allowlist comes from ``Settings.cors`` (``CORS_ALLOW_*`` env vars); the
  default admits the hosted playground and the local Vite dev server.
- Exact origins and safe wildcard patterns (e.g. "https://*.stellarplay.app")
  are both supported; patterns are compiled into one anchored regex.
- "*" together with credentials is rejected at startup.

Usage
-----
    from playground_services.security.cors import setup_cors

    setup_cors(app, settings.cors)
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from playground_services.config import CorsConfig
from playground_services.errors import ConfigError

log = logging.getLogger(__name__)

EXPOSE_HEADERS = ["X-Request-Id", "traceparent"]


@dataclass(frozen=True)
class CORSPolicy:
    allow_origins: List[str]
    allow_origin_regex: Optional[str]
    allow_methods: List[str]
    allow_headers: List[str]
    expose_headers: List[str]
    allow_credentials: bool
    max_age: int


# ------------------------- helpers: parsing & validation -------------------------

_GLOB_CHARS = re.compile(r"\*")


def _glob_to_regex(glob_origin: str) -> str:
    """
    Convert a limited glob origin like "https://*.example.com" to an anchored regex.
    '*' stands for one or more hostname labels; paths are not allowed.
    """
    if "://" not in glob_origin:
        raise ConfigError(f"Invalid origin pattern (missing scheme): {glob_origin!r}")
    _, rest = glob_origin.split("://", 1)
    if "/" in rest:
        raise ConfigError(f"Origin patterns must not include paths: {glob_origin!r}")
    escaped = re.escape(glob_origin).replace(r"\*\.", r"(?:[^/.:]+\.)+").replace(r"\*", r"[^/.:]+")
    return r"^" + escaped + r"$"


def _combine_regexes(regexes: List[str]) -> Optional[str]:
    if not regexes:
        return None
    if len(regexes) == 1:
        return regexes[0]
    return r"^(?:" + r"|".join(regexes) + r")$"


def resolve_cors(cfg: CorsConfig) -> CORSPolicy:
    origins = [o.rstrip("/") for o in cfg.allow_origins]
    if origins == ["*"]:
        if cfg.allow_credentials:
            raise ConfigError('CORS_ALLOW_ORIGINS="*" is incompatible with CORS_ALLOW_CREDENTIALS=true')
        return CORSPolicy(
            allow_origins=["*"],
            allow_origin_regex=None,
            allow_methods=list(cfg.allow_methods),
            allow_headers=list(cfg.allow_headers),
            expose_headers=list(EXPOSE_HEADERS),
            allow_credentials=False,
            max_age=max(0, cfg.max_age),
        )

    exact = [o for o in origins if not _GLOB_CHARS.search(o)]
    regexes = [_glob_to_regex(o) for o in origins if _GLOB_CHARS.search(o)]
    return CORSPolicy(
        allow_origins=exact,
        allow_origin_regex=_combine_regexes(regexes),
        allow_methods=list(cfg.allow_methods),
        allow_headers=list(cfg.allow_headers),
        expose_headers=list(EXPOSE_HEADERS),
        allow_credentials=cfg.allow_credentials,
        max_age=max(0, cfg.max_age),
    )


# ---------------------------------- install -------------------------------------


def setup_cors(app: FastAPI, cfg: CorsConfig) -> CORSPolicy:
    """Attach CORSMiddleware to ``app`` using the resolved allowlist."""
    policy = resolve_cors(cfg)
    log.debug(
        "CORS policy: origins=%s regex=%s credentials=%s",
        policy.allow_origins,
        policy.allow_origin_regex,
        policy.allow_credentials,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=policy.allow_origins,
        allow_origin_regex=policy.allow_origin_regex,
        allow_credentials=policy.allow_credentials,
        allow_methods=policy.allow_methods,
        allow_headers=policy.allow_headers,
        expose_headers=policy.expose_headers,
        max_age=policy.max_age,
    )
    return policy


__all__ = ["CORSPolicy", "resolve_cors", "setup_cors"]
