"""
Per-user / per-project build workspaces on the local filesystem.

Layout:
    <PROJECTS_DIR>/<user_id>/<project_id>/        copied from BASE_PROJECT_DIR on first use
        contracts/hello-world/src/lib.rs          overwritten with user code on every compile
        target/wasm32v1-none/release/*.wasm       written by ``stellar contract build``

- A project directory is created once by copying the template (``target`` and
  ``.git`` directories are skipped) and is never deleted.
- A project counts as provisioned only once ``.playground-ready`` exists in its
  root; the marker is written after the copy completes. A failed copy leaves a
  partial tree without it, and the next call re-copies over that tree
  (``dirs_exist_ok``) before writing the contract source.
- Ids are single path segments; anything that could escape the projects root
  is rejected before the filesystem is touched.

Public API:
  - WorkspaceManager.ensure_project(user_id, project_id, source_code) -> Path
  - WorkspaceManager.project_path(user_id, project_id) -> Path
  - WorkspaceManager.release_dir(project) -> Path
  - WorkspaceManager.find_artifact(project) -> Path | None
  - ProjectLocks.hold(user_id, project_id)
"""

from __future__ import annotations

import logging
import re
import shutil
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from playground_services.adapters.extractors import extract_build_artifact
from playground_services.errors import BadRequest, WorkspaceError

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------#
# Ids
# -----------------------------------------------------------------------------#

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")
SKIP_DIRS = frozenset({"target", ".git"})
READY_MARKER = ".playground-ready"


def validate_segment(kind: str, value: str) -> str:
    if not isinstance(value, str) or not _SEGMENT_RE.match(value) or value in (".", ".."):
        raise BadRequest(
            f"Invalid {kind}: use 1-128 characters from [A-Za-z0-9_.-]",
            details={kind: value},
        )
    return value


def _ignore_build_dirs(src: str, names: List[str]) -> List[str]:
    # Only directories are skipped; a regular file called "target" is copied.
    return [
        n for n in names if n == READY_MARKER or (n in SKIP_DIRS and (Path(src) / n).is_dir())
    ]


# -----------------------------------------------------------------------------#
# Workspace manager
# -----------------------------------------------------------------------------#


class WorkspaceManager:
    """
    Materializes project directories from a template and locates build outputs.

    Parameters
    ----------
    projects_root : Path
        Root under which ``<user_id>/<project_id>`` trees live.
    template_dir : Path
        Project template (a Cargo workspace with one contract crate).
    source_relpath : str
        Path, relative to a project, of the contract file replaced on each compile.
    output_dir : str
        Path, relative to a project, of the release directory holding artifacts.
    suffix : str
        Artifact file suffix.
    """

    def __init__(
        self,
        projects_root: Path,
        template_dir: Path,
        *,
        source_relpath: str = "contracts/hello-world/src/lib.rs",
        output_dir: str = "target/wasm32v1-none/release",
        suffix: str = ".wasm",
    ) -> None:
        self.projects_root = Path(projects_root)
        self.template_dir = Path(template_dir)
        self.source_relpath = source_relpath
        self.output_dir = output_dir
        self.suffix = suffix

    @classmethod
    def from_settings(cls, settings) -> "WorkspaceManager":
        return cls(
            settings.projects_dir,
            settings.base_project_dir,
            source_relpath=settings.contract_source_path,
            output_dir=settings.build_output_dir,
            suffix=settings.artifact_suffix,
        )

    # -- paths -------------------------------------------------------------

    def project_path(self, user_id: str, project_id: str) -> Path:
        validate_segment("user_id", user_id)
        validate_segment("project_id", project_id)
        return self.projects_root / user_id / project_id

    def source_path(self, project: Path) -> Path:
        return Path(project) / self.source_relpath

    def release_dir(self, project: Path) -> Path:
        return Path(project) / self.output_dir

    def find_artifact(self, project: Path) -> Optional[Path]:
        return extract_build_artifact(self.release_dir(project), self.suffix)

    # -- provisioning ------------------------------------------------------

    def _copy_template(self, dest: Path) -> None:
        if not self.template_dir.is_dir():
            raise WorkspaceError(
                f"Project template not found at {self.template_dir}",
                details={"template_dir": str(self.template_dir)},
            )
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(
                "Failed to create user projects directory",
                details={"path": str(dest.parent), "error": str(e)},
            ) from e
        log.info("creating project %s from template %s", dest, self.template_dir)
        try:
            shutil.copytree(self.template_dir, dest, ignore=_ignore_build_dirs, dirs_exist_ok=True)
        except (OSError, shutil.Error) as e:
            raise WorkspaceError(
                "Failed to copy project template",
                details={"path": str(dest), "error": str(e)},
            ) from e
        try:
            (dest / READY_MARKER).touch()
        except OSError as e:
            raise WorkspaceError(
                "Failed to finalize project directory",
                details={"path": str(dest), "error": str(e)},
            ) from e

    def is_provisioned(self, project: Path) -> bool:
        return (Path(project) / READY_MARKER).is_file()

    def ensure_project(self, user_id: str, project_id: str, source_code: str) -> Path:
        """
        Make sure the project exists and holds ``source_code`` as its contract.

        The template is copied until one copy has completed (see ``READY_MARKER``);
        the contract source file is rewritten unconditionally.
        """
        project = self.project_path(user_id, project_id)
        if not self.is_provisioned(project):
            if project.exists():
                log.warning("project %s is incomplete, copying template again", project)
            self._copy_template(project)

        target = self.source_path(project)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source_code, encoding="utf-8")
        except OSError as e:
            raise WorkspaceError(
                "Failed to write user contract code",
                details={"path": str(target), "error": str(e)},
            ) from e
        log.debug("wrote %d bytes of contract source to %s", len(source_code), target)
        return project


# -----------------------------------------------------------------------------#
# Per-project serialization
# -----------------------------------------------------------------------------#


class ProjectLocks:
    """
    In-process lock registry keyed by ``(user_id, project_id)``.

    Compile and deploy on the same project run one at a time within a worker
    process. Locks are created on demand and kept for the process lifetime.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}

    def get(self, user_id: str, project_id: str) -> threading.Lock:
        key = (user_id, project_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, user_id: str, project_id: str) -> Iterator[None]:
        with self.get(user_id, project_id):
            yield

    def __len__(self) -> int:
        return len(self._locks)


__all__ = [
    "WorkspaceManager",
    "ProjectLocks",
    "validate_segment",
    "SKIP_DIRS",
    "READY_MARKER",
]
