from __future__ import annotations

"""
Configuration loader for Stellar Playground Services.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Provides typed sub-configs for CORS plus helpers that resolve network
  credentials for a single deploy/invoke call.
- ``load_settings()`` builds a *fresh* instance every time: credentials are
  resolved once per call and never cached across calls.

Environment variables (high-level):
    STELLAR_SECRET_KEY            (str)                  : Default signing secret (S…)
    STELLAR_RPC_URL               (str)                  : Soroban RPC endpoint
    STELLAR_NETWORK_PASSPHRASE    (str)                  : Network passphrase
    STELLAR_NETWORK               (str, "testnet")       : Network name
    STELLAR_PROOF_DESTINATION     (str, optional)        : Proof tx destination (default: deployer)
    STELLAR_PROOF_ENABLED         (bool, True)
    STELLAR_PROOF_AMOUNT          (int, 1)               : Proof payment amount in stroops

Toolchain & workspace:
    STELLAR_BIN / RUSTUP_BIN      (str, "stellar" / "rustup")
    WASM_TARGETS                  (csv|json list)        : rustup targets ensured before builds
    PROJECTS_DIR                  (str, "projects")      : Root of per-user project trees
    BASE_PROJECT_DIR              (str, "base_project")  : Template copied into new projects
    CONTRACT_SOURCE_PATH          (str)                  : File overwritten with user code
    TOOLCHAIN_TIMEOUT_SECONDS     (float, 120)
    BUILD_TIMEOUT_SECONDS         (float, 600)

CORS:
    CORS_ALLOW_ORIGINS            (csv|json list)
    CORS_ALLOW_HEADERS            (csv|json list)
    CORS_ALLOW_METHODS            (csv|json list)
    CORS_ALLOW_CREDENTIALS        (bool, default True)

Notes
-----
- Lists accept comma-separated strings or JSON arrays.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

# ----------------------------- Helpers & Models ------------------------------ #


def _parse_list(val: Optional[str | List[str]], *, default: List[str]) -> List[str]:
    if val is None:
        return list(default)
    if isinstance(val, list):
        return val
    s = val.strip()
    if not s:
        return []
    # Try JSON first
    if s.startswith("[") and s.endswith("]"):
        try:
            parsed = json.loads(s)
            return [str(x) for x in parsed]
        except ValueError:
            pass
    # Fallback: CSV
    return [x.strip() for x in s.split(",") if x.strip()]


class CorsConfig(BaseModel):
    allow_origins: List[str] = Field(
        default_factory=lambda: [
            "https://stellarplay.app",
            "https://www.stellarplay.app",
            "http://localhost:5173",
        ]
    )
    allow_headers: List[str] = Field(
        default_factory=lambda: ["Authorization", "Content-Type", "Accept"]
    )
    allow_methods: List[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allow_credentials: bool = True
    max_age: int = 3600

    @field_validator("allow_origins", "allow_headers", "allow_methods", mode="before")
    @classmethod
    def _coerce_list(cls, v):
        return _parse_list(v, default=[])


@dataclass(frozen=True)
class NetworkCredentials:
    """Signer + network coordinates for one toolchain call. Never log ``secret_key``."""

    secret_key: str
    rpc_url: str
    network_passphrase: str
    network_name: str

    def __repr__(self) -> str:
        return (
            f"NetworkCredentials(secret_key='***', rpc_url={self.rpc_url!r}, "
            f"network_passphrase={self.network_passphrase!r}, network_name={self.network_name!r})"
        )


# --------------------------------- Settings ---------------------------------- #


class Settings(BaseSettings):
    # Network / signer
    stellar_secret_key: Optional[str] = Field(default=None, description="Default signing secret")
    stellar_rpc_url: Optional[str] = Field(default=None, description="Soroban RPC endpoint")
    stellar_network_passphrase: Optional[str] = Field(default=None, description="Network passphrase")
    stellar_network: str = Field("testnet", description="Network name")
    stellar_proof_destination: Optional[str] = None
    stellar_proof_enabled: bool = True
    stellar_proof_amount: int = Field(1, ge=1)

    # Toolchain
    stellar_bin: str = "stellar"
    rustup_bin: str = "rustup"
    wasm_targets: List[str] | str = Field(
        default_factory=lambda: ["wasm32v1-none", "wasm32-unknown-unknown"]
    )
    toolchain_timeout_seconds: float = Field(120.0, gt=0)
    build_timeout_seconds: float = Field(600.0, gt=0)

    # Workspace
    projects_dir: Path = Path("projects")
    base_project_dir: Path = Path("base_project")
    contract_source_path: str = "contracts/hello-world/src/lib.rs"
    build_output_dir: str = "target/wasm32v1-none/release"
    artifact_suffix: str = ".wasm"

    # Responses
    explorer_contract_url: str = "https://testnet.stellarchain.io/contracts/{contract_id}"
    deploy_fee_estimate: Optional[str] = "100000"

    # Service
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    startup_checks: bool = True

    # --- Env bridges for convenience (.env keys -> nested models) ------------
    # Declared before `cors` so they are visible in its validator.
    CORS_ALLOW_ORIGINS: Optional[str | List[str]] = Field(default=None, alias="CORS_ALLOW_ORIGINS")
    CORS_ALLOW_HEADERS: Optional[str | List[str]] = Field(default=None, alias="CORS_ALLOW_HEADERS")
    CORS_ALLOW_METHODS: Optional[str | List[str]] = Field(default=None, alias="CORS_ALLOW_METHODS")
    CORS_ALLOW_CREDENTIALS: Optional[bool] = Field(default=None, alias="CORS_ALLOW_CREDENTIALS")
    cors: CorsConfig = Field(default_factory=CorsConfig, validate_default=True)

    # pydantic-settings
    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", case_sensitive=False, extra="ignore"
    )

    @field_validator("wasm_targets", mode="before")
    @classmethod
    def _coerce_targets(cls, v):
        return _parse_list(v, default=["wasm32v1-none", "wasm32-unknown-unknown"])

    @field_validator("stellar_secret_key", "stellar_rpc_url", "stellar_network_passphrase", "stellar_proof_destination", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("cors", mode="after")
    def _apply_cors_env(cls, v: CorsConfig, info):
        data = info.data  # full model input so far
        ao = data.get("CORS_ALLOW_ORIGINS")
        ah = data.get("CORS_ALLOW_HEADERS")
        am = data.get("CORS_ALLOW_METHODS")
        ac = data.get("CORS_ALLOW_CREDENTIALS")
        if ao is not None:
            v.allow_origins = _parse_list(ao, default=v.allow_origins)
        if ah is not None:
            v.allow_headers = _parse_list(ah, default=v.allow_headers)
        if am is not None:
            v.allow_methods = _parse_list(am, default=v.allow_methods)
        if ac is not None:
            v.allow_credentials = bool(ac)
        return v

    # ------------------------- credential resolution ------------------------

    def rpc_config(self) -> tuple[str, str]:
        """Return ``(rpc_url, network_passphrase)`` or raise :class:`ConfigError`."""
        missing = [
            name
            for name, value in (
                ("STELLAR_RPC_URL", self.stellar_rpc_url),
                ("STELLAR_NETWORK_PASSPHRASE", self.stellar_network_passphrase),
            )
            if not value
        ]
        if missing:
            raise ConfigError(
                f"{', '.join(missing)} not found in environment",
                details={"missing": missing},
            )
        return self.stellar_rpc_url, self.stellar_network_passphrase  # type: ignore[return-value]

    def credentials(self, secret_override: Optional[str] = None) -> NetworkCredentials:
        """
        Resolve signer + network for one call. An explicit secret takes
        precedence over ``STELLAR_SECRET_KEY``.
        """
        secret = (secret_override or "").strip() or self.stellar_secret_key
        if not secret:
            raise ConfigError(
                "No source account provided and STELLAR_SECRET_KEY not found",
                details={"missing": ["STELLAR_SECRET_KEY"]},
            )
        rpc_url, passphrase = self.rpc_config()
        return NetworkCredentials(
            secret_key=secret,
            rpc_url=rpc_url,
            network_passphrase=passphrase,
            network_name=self.stellar_network,
        )

    def explorer_url(self, contract_id: str) -> str:
        return self.explorer_contract_url.format(contract_id=contract_id)


# ------------------------------- Accessor API -------------------------------- #


def load_settings(**overrides) -> Settings:
    """Build a fresh settings instance from the environment (no caching)."""
    return Settings(**overrides)


__all__ = [
    "Settings",
    "CorsConfig",
    "NetworkCredentials",
    "load_settings",
]
