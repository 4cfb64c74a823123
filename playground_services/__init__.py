"""
Stellar Playground Services
===========================

FastAPI service that compiles, deploys and invokes Soroban smart contracts
for many playground users by driving the ``stellar`` CLI.

This package exposes:

- ``__version__``: semantic version string
- ``build_app()``: convenience creator for a configured FastAPI app

Prefer importing submodules directly for specific concerns:
``playground_services.config``, ``playground_services.services.*``,
``playground_services.routers.*``, etc.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__", "build_app"]


def build_app():
    """
    Create and return a fully configured FastAPI application.

    Light wrapper around :func:`playground_services.app.create_app`, imported
    lazily so consumers that only need version metadata skip FastAPI.
    """
    from .app import create_app

    return create_app()
