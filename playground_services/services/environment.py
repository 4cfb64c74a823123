"""
Environment verification used at startup and by ``playground-services doctor``.

Checks, in order:

1. The project template exists and contains the contract source file.
2. The projects root can be created.
3. ``stellar --version`` runs and exits 0.
4. The rustup wasm targets are installed (best effort, optional).

Steps 1-3 raise; step 4 only reports which targets were installed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from playground_services.adapters.process import ProcessRunner
from playground_services.config import Settings
from playground_services.errors import ToolchainError, WorkspaceError
from playground_services.services.compile import BuildOrchestrator
from playground_services.storage.workspace import WorkspaceManager

log = logging.getLogger(__name__)


@dataclass
class EnvironmentReport:
    template_dir: Path
    projects_dir: Path
    stellar_version: str
    installed_targets: Optional[List[str]] = field(default=None)


def stellar_version(settings: Settings, runner: ProcessRunner) -> str:
    res = runner.run(
        settings.stellar_bin,
        ["--version"],
        timeout=settings.toolchain_timeout_seconds,
    )
    if not res.ok:
        raise ToolchainError(
            "stellar --version failed",
            stderr=res.stderr_text,
            exit_code=res.exit_code,
        )
    first = res.stdout_text.strip().splitlines()
    return first[0] if first else ""


def check_environment(
    settings: Settings,
    runner: ProcessRunner,
    *,
    install_targets: bool = True,
) -> EnvironmentReport:
    workspace = WorkspaceManager.from_settings(settings)

    source = workspace.source_path(workspace.template_dir)
    if not workspace.template_dir.is_dir() or not source.is_file():
        raise WorkspaceError(
            f"Base project template not found at {workspace.template_dir}",
            details={"template_dir": str(workspace.template_dir), "source": str(source)},
        )
    log.info("base project template found at %s", workspace.template_dir)

    try:
        workspace.projects_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkspaceError(
            "Failed to create projects directory",
            details={"path": str(workspace.projects_root), "error": str(e)},
        ) from e

    version = stellar_version(settings, runner)
    log.info("stellar CLI available: %s", version)

    installed: Optional[List[str]] = None
    if install_targets:
        installed = BuildOrchestrator(settings, runner, workspace).ensure_targets()

    return EnvironmentReport(
        template_dir=workspace.template_dir,
        projects_dir=workspace.projects_root,
        stellar_version=version,
        installed_targets=installed,
    )


__all__ = ["EnvironmentReport", "check_environment", "stellar_version"]
