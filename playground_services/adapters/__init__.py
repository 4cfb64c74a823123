"""
Adapters for driving the Stellar toolchain from playground-services.

Thin, testable facades over external executables so the orchestrators in
``playground_services.services`` never touch ``subprocess`` directly:

- process    : bounded subprocess runner (argv redaction, timeouts, observer hook)
- extractors : tolerant parsers for ``stellar`` CLI output (hashes, contract ids, artifacts)

Submodules are loaded lazily via PEP 562 (__getattr__).
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

__all__ = [
    "process",
    "extractors",
]


def __getattr__(name: str):
    if name in __all__:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals().keys()) + __all__)


if TYPE_CHECKING:
    from . import extractors, process
