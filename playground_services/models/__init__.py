from __future__ import annotations

"""
Public model surface for playground-services.

Typed request/response models used by the HTTP API, lazily re-exported from
submodules via __getattr__ (PEP 562).

Submodules:
- common.py   → ApiEnvelope, ErrorBody
- compile.py  → CompileRequest, CompileResponse, CompileDetails
- deploy.py   → DeployRequest, DeployResponse, DeployDetails
- invoke.py   → InvokeRequest, InvokeResponse
"""

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__all__ = [
    # common
    "ApiEnvelope",
    "ErrorBody",
    # compile
    "CompileRequest",
    "CompileResponse",
    "CompileDetails",
    # deploy
    "DeployRequest",
    "DeployResponse",
    "DeployDetails",
    # invoke
    "InvokeRequest",
    "InvokeResponse",
]

# name -> (module, attribute)
_EXPORTS: Dict[str, Tuple[str, str]] = {
    "ApiEnvelope": ("playground_services.models.common", "ApiEnvelope"),
    "ErrorBody": ("playground_services.models.common", "ErrorBody"),
    "CompileRequest": ("playground_services.models.compile", "CompileRequest"),
    "CompileResponse": ("playground_services.models.compile", "CompileResponse"),
    "CompileDetails": ("playground_services.models.compile", "CompileDetails"),
    "DeployRequest": ("playground_services.models.deploy", "DeployRequest"),
    "DeployResponse": ("playground_services.models.deploy", "DeployResponse"),
    "DeployDetails": ("playground_services.models.deploy", "DeployDetails"),
    "InvokeRequest": ("playground_services.models.invoke", "InvokeRequest"),
    "InvokeResponse": ("playground_services.models.invoke", "InvokeResponse"),
}


def __getattr__(name: str) -> Any:
    try:
        module_name, attr = _EXPORTS[name]
    except KeyError:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}") from None
    value = getattr(import_module(module_name), attr)
    globals()[name] = value
    return value


def __dir__():
    return sorted(list(globals().keys()) + __all__)


if TYPE_CHECKING:  # pragma: no cover
    from .common import ApiEnvelope, ErrorBody
    from .compile import CompileDetails, CompileRequest, CompileResponse
    from .deploy import DeployDetails, DeployRequest, DeployResponse
    from .invoke import InvokeRequest, InvokeResponse
