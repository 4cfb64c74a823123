"""Test package for playground_services.

Pytest discovers tests via file patterns; this module exists so the shared
constants in ``tests/conftest.py`` can be imported as ``tests.conftest``.
"""

from __future__ import annotations

__all__: list[str] = []
