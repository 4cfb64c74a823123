"""
Version helpers for Stellar Playground Services.

- ``__version__`` is the semantic version for packaging.
- ``git_commit()`` returns the short commit of the checkout (or $GIT_COMMIT).
- ``build_version()`` composes a PEP 440 local version with that commit.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Optional

# Bump this when making a release; use semver (MAJOR.MINOR.PATCH)
__version__ = "0.1.0"


def _repo_root() -> Path:
    here = Path(__file__).resolve()
    for p in (here.parent, here.parent.parent):
        if (p / ".git").exists():
            return p
    return here.parent


def git_commit() -> Optional[str]:
    env_commit = os.getenv("GIT_COMMIT") or os.getenv("BUILD_SHA")
    if env_commit:
        return env_commit[:12]
    try:
        out = subprocess.run(
            ["git", "-C", str(_repo_root()), "rev-parse", "--short", "HEAD"],
            capture_output=True,
            timeout=1.5,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    commit = out.stdout.decode(errors="replace").strip()
    return commit if out.returncode == 0 and commit else None


def build_version(base: str = __version__) -> str:
    """
    Examples
    --------
    - "0.1.0"            (no git available)
    - "0.1.0+gabc1234"   (commit attached)
    """
    commit = git_commit()
    return f"{base}+g{commit}" if commit else base


__all__ = ["__version__", "git_commit", "build_version"]
