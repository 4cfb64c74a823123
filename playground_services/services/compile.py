"""
Compile service: provision a project workspace and run ``stellar contract build``.

Flow of :meth:`BuildOrchestrator.build`:

1. Copy the template into ``<PROJECTS_DIR>/<user>/<project>`` if needed and
   overwrite the contract source with the submitted code.
2. Ensure the rustup wasm targets are installed (best effort; a missing
   ``rustup`` is only logged).
3. Run ``stellar contract build`` inside the project and time it.
4. Look for the ``.wasm`` artifact; when present, record its size and try to
   derive the contract spec with ``stellar contract bindings json``.

A failing build is *not* an error: the caller needs the compiler's stdout and
stderr, so they come back in :class:`BuildResult` with ``success=False``.
Only workspace, spawn and timeout failures raise.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from playground_services.adapters.extractors import DEFAULT_EXTRACTOR, StellarOutputExtractor
from playground_services.adapters.process import ProcessRunner, best_effort
from playground_services.config import Settings
from playground_services.errors import ExtractionError, ToolchainError
from playground_services.storage.workspace import ProjectLocks, WorkspaceManager

log = logging.getLogger(__name__)


@dataclass
class BuildResult:
    success: bool
    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float
    project_path: Path
    artifact_path: Optional[Path] = None
    artifact_size: Optional[int] = None
    spec: Optional[Any] = None

    @property
    def status(self) -> str:
        return "success" if self.success else "failed"


# ---------- Helpers ----------


def _normalize_exit(code: int) -> int:
    # Negative codes mean the child died from a signal; report it as -1.
    return code if code >= 0 else -1


def _file_size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError as e:
        log.warning("cannot stat artifact %s: %s", path, e)
        return None


# ---------- Orchestrator ----------


class BuildOrchestrator:
    """
    Compile user contract code inside its persistent project workspace.

    Parameters
    ----------
    settings : Settings
        Toolchain binaries, targets and timeouts.
    runner : ProcessRunner
        Executes ``rustup`` / ``stellar``.
    workspace : WorkspaceManager
        Provisions the project tree and locates artifacts.
    extractor : StellarOutputExtractor
        Output parsing strategy.
    locks : ProjectLocks | None
        Shared lock registry; a private one is created when omitted.
    """

    def __init__(
        self,
        settings: Settings,
        runner: ProcessRunner,
        workspace: WorkspaceManager,
        extractor: StellarOutputExtractor = DEFAULT_EXTRACTOR,
        locks: Optional[ProjectLocks] = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.workspace = workspace
        self.extractor = extractor
        self.locks = locks or ProjectLocks()

    def ensure_targets(self) -> list[str]:
        """Install the configured wasm targets, returning the ones that succeeded."""
        installed: list[str] = []
        for target in self.settings.wasm_targets:
            outcome = best_effort(f"rustup target add {target}", self._add_target, target)
            if outcome.ok:
                installed.append(target)
        return installed

    def _add_target(self, target: str) -> None:
        res = self.runner.run(
            self.settings.rustup_bin,
            ["target", "add", target],
            timeout=self.settings.toolchain_timeout_seconds,
        )
        if not res.ok:
            raise ToolchainError(
                f"Failed to add {target} target",
                stderr=res.stderr_text,
                exit_code=res.exit_code,
            )

    def contract_spec(self, artifact: Path) -> Any:
        """Contract interface as JSON, from ``stellar contract bindings json``."""
        res = self.runner.run(
            self.settings.stellar_bin,
            ["contract", "bindings", "json", "--wasm", str(artifact)],
            timeout=self.settings.toolchain_timeout_seconds,
        )
        if not res.ok:
            raise ToolchainError(
                "Failed to extract contract spec",
                stderr=res.stderr_text,
                exit_code=res.exit_code,
            )
        try:
            return json.loads(res.stdout_text)
        except ValueError as e:
            raise ExtractionError(
                "Contract spec output is not JSON",
                details={"error": str(e)},
            ) from e

    def build(self, source_code: str, user_id: str, project_id: str) -> BuildResult:
        """
        Compile ``source_code`` as the contract of ``(user_id, project_id)``.

        Returns
        -------
        BuildResult
            ``success`` mirrors the build's exit status, whether or not an
            artifact was found afterwards.
        """
        with self.locks.hold(user_id, project_id):
            project = self.workspace.ensure_project(user_id, project_id, source_code)
            log.info("compiling project %s/%s in %s", user_id, project_id, project)

            self.ensure_targets()

            started = time.perf_counter()
            res = self.runner.run(
                self.settings.stellar_bin,
                ["contract", "build"],
                cwd=project,
                timeout=self.settings.build_timeout_seconds,
            )
            elapsed = time.perf_counter() - started

            artifact = self.workspace.find_artifact(project)
            size: Optional[int] = None
            spec: Any = None
            if artifact is None:
                log.warning("no %s artifact in %s", self.workspace.suffix, self.workspace.release_dir(project))
            else:
                log.info("found artifact %s", artifact)
                size = _file_size(artifact)
                spec = best_effort("contract spec extraction", self.contract_spec, artifact).value

        result = BuildResult(
            success=res.ok,
            exit_code=_normalize_exit(res.exit_code),
            stdout=res.stdout_text,
            stderr=res.stderr_text,
            elapsed_seconds=elapsed,
            project_path=project,
            artifact_path=artifact,
            artifact_size=size,
            spec=spec,
        )
        log.info(
            "compilation of %s/%s %s in %.2fs",
            user_id,
            project_id,
            result.status,
            elapsed,
        )
        return result


__all__ = ["BuildOrchestrator", "BuildResult"]
