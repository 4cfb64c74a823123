from __future__ import annotations

"""
Health & version endpoints.

  - GET /health  : legacy payload kept for existing playground frontends
  - GET /healthz : liveness (always 200 while serving)
  - GET /readyz  : readiness; template present, ``stellar`` on PATH, projects dir writable
  - GET /version : version metadata
"""

import logging
import os
import shutil
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Tuple

from fastapi import APIRouter, Depends, Response, status

from playground_services import version as svc_version
from playground_services.config import Settings
from playground_services.routers.deps import get_settings

log = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

SERVICE_NAME = "stellar-playground-backend"

_PROCESS_START = time.time()


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uptime_seconds() -> float:
    return max(0.0, time.time() - _PROCESS_START)


def _check_template(settings: Settings) -> Tuple[bool, Dict[str, Any]]:
    template = Path(settings.base_project_dir)
    info: Dict[str, Any] = {"path": str(template)}
    if not template.is_dir():
        info["error"] = "template directory missing"
        return False, info
    source = template / settings.contract_source_path
    if not source.is_file():
        info["error"] = f"{settings.contract_source_path} missing from template"
        return False, info
    return True, info


def _check_toolchain(settings: Settings) -> Tuple[bool, Dict[str, Any]]:
    found = shutil.which(settings.stellar_bin)
    if not found:
        return False, {"binary": settings.stellar_bin, "error": "not found on PATH"}
    return True, {"binary": found}


def _check_projects_dir(settings: Settings) -> Tuple[bool, Dict[str, Any]]:
    """The projects root (or, before first use, its nearest existing parent) must be writable."""
    root = Path(settings.projects_dir)
    info: Dict[str, Any] = {"path": str(root)}
    probe = root
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    if not probe.is_dir() or not os.access(probe, os.W_OK | os.X_OK):
        info["error"] = f"{probe} is not a writable directory"
        return False, info
    return True, info


def _version_blob() -> Dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": svc_version.__version__,
        "build": svc_version.build_version(),
        "python": {
            "version": "{}.{}.{}".format(*sys.version_info[:3]),
            "impl": sys.implementation.name,
        },
        "started_at": datetime.fromtimestamp(_PROCESS_START, tz=timezone.utc).isoformat(),
        "now": _utcnow_iso(),
        "uptime_seconds": round(_uptime_seconds(), 3),
    }


@router.get("/health", summary="Legacy health check", response_model=None)
def health() -> Dict[str, Any]:
    return {"status": "healthy", "service": SERVICE_NAME, "version": svc_version.__version__}


@router.get("/healthz", summary="Liveness probe", response_model=None)
def healthz() -> Dict[str, Any]:
    """Simple liveness probe: always returns 200 if the process is serving requests."""
    return {"status": "ok", "service": SERVICE_NAME, "uptime_seconds": round(_uptime_seconds(), 3)}


@router.get("/version", summary="Service version", response_model=None)
def version(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    meta = _version_blob()
    meta["network"] = settings.stellar_network
    return meta


@router.get("/readyz", summary="Readiness probe", response_model=None)
def readyz(response: Response, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """
    Readiness probe: verifies the template, the stellar CLI and the projects dir.
    Returns 200 when all checks pass; 503 otherwise.
    """
    checks: Dict[str, Dict[str, Any]] = {}
    ok_all = True
    for name, check in (
        ("template", _check_template),
        ("toolchain", _check_toolchain),
        ("projects_dir", _check_projects_dir),
    ):
        ok, info = check(settings)
        checks[name] = {"ok": ok, **info}
        ok_all = ok_all and ok

    if not ok_all:
        log.warning("readiness check failed: %s", {k: v for k, v in checks.items() if not v["ok"]})
    response.status_code = status.HTTP_200_OK if ok_all else status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ok" if ok_all else "degraded",
        "now": _utcnow_iso(),
        "uptime_seconds": round(_uptime_seconds(), 3),
        "checks": checks,
    }


def get_router() -> APIRouter:
    return router
