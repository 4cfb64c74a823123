"""
Routers package: aggregates all HTTP routes into a single APIRouter.

Usage (from app factory):
    from playground_services.routers import build_router
    app.include_router(build_router())
"""

from __future__ import annotations

import importlib
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from fastapi import APIRouter

log = logging.getLogger(__name__)

# Order controls route declaration order and OpenAPI grouping.
ROUTER_MODULES: Tuple[str, ...] = (
    "playground_services.routers.health",
    "playground_services.routers.compile",
    "playground_services.routers.deploy",
    "playground_services.routers.invoke",
)


def _load_router(module_path: str) -> APIRouter:
    """
    Import a module and return its APIRouter.

    The module must expose either ``router: APIRouter`` or ``get_router() -> APIRouter``.
    """
    mod = importlib.import_module(module_path)
    router = getattr(mod, "router", None)
    if isinstance(router, APIRouter):
        return router
    get_router = getattr(mod, "get_router", None)
    if callable(get_router):
        r = get_router()
        if isinstance(r, APIRouter):
            return r
    raise RuntimeError(f"module {module_path} has no APIRouter export")


def collect_routers(candidates: Sequence[str] = ROUTER_MODULES) -> List[APIRouter]:
    """Load all routers in order."""
    routers: List[APIRouter] = []
    for mod in candidates:
        r = _load_router(mod)
        routers.append(r)
        log.debug("mounted router from %s (tags=%s)", mod, getattr(r, "tags", []))
    return routers


def build_router(extra_modules: Optional[Iterable[str]] = None) -> APIRouter:
    """
    Build a single top-level APIRouter that includes all sub-routers.

    Args:
        extra_modules: Optional sequence of additional module paths to load.
    """
    root = APIRouter()
    modules: List[str] = list(ROUTER_MODULES)
    if extra_modules:
        modules.extend(extra_modules)
    for r in collect_routers(modules):
        root.include_router(r)
    return root


__all__ = [
    "ROUTER_MODULES",
    "build_router",
    "collect_routers",
]
