"""
Tolerant parsers for ``stellar`` CLI output.

The CLI prints human-oriented text whose exact shape drifts between releases,
so every extractor here is total: it returns ``None`` (or a best guess) rather
than raising, and callers decide whether a missing value is fatal.

- extract_transaction_hash : 64-hex hash following a known marker line
- extract_contract_id      : last non-blank stdout line of ``contract deploy``
- extract_build_artifact   : first ``*.wasm`` in the release directory
- is_contract_id           : StrKey shape check for ``C…`` contract ids
- parse_result_value       : JSON if possible, else trimmed text

:class:`StellarOutputExtractor` bundles these so orchestrators can be handed a
different strategy when the CLI output format changes.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional

log = logging.getLogger(__name__)

# Tried in order on each line; the first line yielding a valid token wins.
HASH_MARKERS: tuple[str, ...] = ("transaction hash", "signing transaction:")

_HEX64_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_CONTRACT_ID_RE = re.compile(r"^C[A-Z2-7]{55}$")


def _strip_non_hex(token: str) -> str:
    # Trims punctuation such as quotes, colons and trailing periods around a hash.
    start, end = 0, len(token)
    while start < end and token[start] not in "0123456789abcdefABCDEF":
        start += 1
    while end > start and token[end - 1] not in "0123456789abcdefABCDEF":
        end -= 1
    return token[start:end]


def _hash_after(line: str, marker: str) -> Optional[str]:
    m = re.search(re.escape(marker), line, re.IGNORECASE)
    if m is None:
        return None
    for token in line[m.end():].split():
        candidate = _strip_non_hex(token)
        if _HEX64_RE.match(candidate):
            return candidate
    return None


def extract_transaction_hash(text: str, markers: Iterable[str] = HASH_MARKERS) -> Optional[str]:
    """
    Find a transaction hash in CLI output.

    Lines are scanned top to bottom; on each line the markers are tried in
    order (``transaction hash`` before ``signing transaction:``).
    """
    if not text:
        return None
    markers = tuple(markers)
    for line in text.splitlines():
        for marker in markers:
            found = _hash_after(line, marker)
            if found is not None:
                return found
    return None


def extract_contract_id(stdout: str) -> Optional[str]:
    """Return the last non-blank line of ``stdout``, trimmed."""
    for line in reversed((stdout or "").splitlines()):
        if line.strip():
            return line.strip()
    return None


def is_contract_id(value: Optional[str]) -> bool:
    return bool(value) and _CONTRACT_ID_RE.match(value) is not None  # type: ignore[arg-type]


def extract_build_artifact(directory: Path, suffix: str = ".wasm") -> Optional[Path]:
    """
    First regular file in ``directory`` whose name ends with ``suffix``.

    Entries are taken in sorted order so repeated calls agree. A missing or
    unreadable directory yields ``None``.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return None
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        log.warning("cannot list %s: %s", directory, e)
        return None
    for entry in entries:
        if entry.name.endswith(suffix) and entry.is_file():
            return entry
    return None


def parse_result_value(text: str) -> Any:
    trimmed = (text or "").strip()
    try:
        return json.loads(trimmed)
    except ValueError:
        return trimmed


class StellarOutputExtractor:
    """Extraction strategy for the ``stellar`` CLI (23.x output format)."""

    hash_markers: tuple[str, ...] = HASH_MARKERS

    def transaction_hash(self, text: str) -> Optional[str]:
        return extract_transaction_hash(text, self.hash_markers)

    def contract_id(self, stdout: str) -> Optional[str]:
        return extract_contract_id(stdout)

    def is_contract_id(self, value: Optional[str]) -> bool:
        return is_contract_id(value)

    def build_artifact(self, directory: Path, suffix: str = ".wasm") -> Optional[Path]:
        return extract_build_artifact(directory, suffix)

    def result_value(self, text: str) -> Any:
        return parse_result_value(text)


DEFAULT_EXTRACTOR = StellarOutputExtractor()


__all__ = [
    "HASH_MARKERS",
    "StellarOutputExtractor",
    "DEFAULT_EXTRACTOR",
    "extract_transaction_hash",
    "extract_contract_id",
    "extract_build_artifact",
    "is_contract_id",
    "parse_result_value",
]
