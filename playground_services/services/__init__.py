"""
playground_services.services
============================

Lifecycle orchestrators. Each one receives a ``Settings`` instance, a process
runner and (where relevant) the workspace manager / output extractor at
construction time, and never calls another orchestrator.

Usage
-----
    from playground_services.services import compile, deploy

    result = compile.BuildOrchestrator(settings, runner, workspace).build(code, "u1", "p1")
    record = deploy.DeployOrchestrator(settings, runner, workspace).deploy("u1", "p1")

Public submodules
-----------------
- compile : provision workspace, ``stellar contract build``, artifact + spec discovery.
- deploy  : ``stellar contract deploy``, contract id / hash extraction, proof transaction.
- invoke  : argument marshaling and ``stellar contract invoke`` (simulate or submit).
- environment : startup / doctor checks (template, projects dir, stellar CLI, rustup targets).
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["compile", "deploy", "invoke", "environment"]


def __getattr__(name: str):
    """Lazily import service submodules on first access."""
    if name in __all__:
        return import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals().keys()) + __all__)


if TYPE_CHECKING:  # pragma: no cover
    from . import compile as compile
    from . import deploy as deploy
    from . import environment as environment
    from . import invoke as invoke
