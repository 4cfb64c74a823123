"""
Synchronous process runner for the external ``stellar`` / ``rustup`` toolchain.

The runner never interprets output. It captures exit status and both streams in
full, and only raises when the command could not run at all:

- :class:`~playground_services.errors.SpawnError`: executable missing or not launchable
- :class:`~playground_services.errors.CommandTimeout`: bounded timeout expired (child and its
  descendants killed as one process group)

A non-zero exit is a normal, inspectable :class:`ProcessResult`.

Secrets passed on the command line (``--source S…``) are masked before the
argv is logged; callers list them in ``redact=``.

Side steps that must never abort their parent (target installation, proof
transactions, spec extraction) go through :func:`best_effort`, which turns an
``ApiError`` into a logged :class:`BestEffort` value.
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, Optional, Sequence, TypeVar

from playground_services.errors import ApiError, CommandTimeout, SpawnError

log = logging.getLogger(__name__)

T = TypeVar("T")

# (command label, outcome, seconds) -> None
CommandObserver = Callable[[str, str, float], None]


@dataclass(frozen=True)
class ProcessResult:
    argv: tuple[str, ...]
    exit_code: int
    stdout: bytes
    stderr: bytes
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


def redact_argv(argv: Sequence[str], secrets: Iterable[str]) -> list[str]:
    hidden = {s for s in secrets if s}
    return ["***" if a in hidden else a for a in argv]


def command_label(executable: str, args: Sequence[str]) -> str:
    """Low-cardinality name for a command, e.g. ``stellar contract deploy``."""
    words = [Path(executable).name]
    for a in args:
        if a.startswith("-") or len(words) >= 3:
            if a == "--verbose":
                continue
            break
        words.append(a)
    return " ".join(words)


class ProcessRunner:
    """
    Run one external command to completion.

    Parameters
    ----------
    default_timeout : float | None
        Applied when ``run`` is called without an explicit timeout.
    observer : callable | None
        Receives ``(label, outcome, seconds)`` after every invocation; used by
        the metrics layer. Outcomes: ``ok``, ``nonzero``, ``spawn_error``, ``timeout``.
    env : mapping | None
        Extra environment variables merged over ``os.environ``.
    """

    def __init__(
        self,
        default_timeout: Optional[float] = None,
        *,
        observer: Optional[CommandObserver] = None,
        env: Optional[dict[str, str]] = None,
    ) -> None:
        self.default_timeout = default_timeout
        self.observer = observer
        self.env = env

    def _observe(self, label: str, outcome: str, seconds: float) -> None:
        if self.observer is None:
            return
        try:
            self.observer(label, outcome, seconds)
        except Exception:  # pragma: no cover - metrics must never break a request
            log.debug("command observer failed", exc_info=True)

    def run(
        self,
        executable: str,
        args: Sequence[str] = (),
        cwd: Optional[os.PathLike[str] | str] = None,
        *,
        timeout: Optional[float] = None,
        redact: Iterable[str] = (),
    ) -> ProcessResult:
        argv = [executable, *[str(a) for a in args]]
        secrets = list(redact)
        shown = shlex.join(redact_argv(argv, secrets))
        label = command_label(executable, argv[1:])
        limit = timeout if timeout is not None else self.default_timeout

        env = None
        if self.env:
            env = {**os.environ, **self.env}

        log.debug("exec %s (cwd=%s, timeout=%s)", shown, cwd, limit)
        start = time.perf_counter()
        try:
            # Own session: a timeout kills the whole tree (cargo, rustc), not just the CLI.
            proc = subprocess.Popen(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            elapsed = time.perf_counter() - start
            self._observe(label, "spawn_error", elapsed)
            log.error("failed to start %s: %s", shown, e)
            raise SpawnError(
                f"Failed to execute {label}. Make sure '{executable}' is installed and on PATH.",
                details={"executable": executable, "error": str(e)},
            ) from e

        try:
            stdout, stderr = proc.communicate(timeout=limit)
        except subprocess.TimeoutExpired as e:
            _kill_tree(proc)
            elapsed = time.perf_counter() - start
            self._observe(label, "timeout", elapsed)
            log.error("command timed out after %.1fs: %s", elapsed, shown)
            raise CommandTimeout(label, float(limit or 0.0)) from e
        except BaseException:
            _kill_tree(proc)
            raise

        elapsed = time.perf_counter() - start
        self._observe(label, "ok" if proc.returncode == 0 else "nonzero", elapsed)
        log.debug("%s exited with %s in %.2fs", label, proc.returncode, elapsed)
        return ProcessResult(
            argv=tuple(argv),
            exit_code=proc.returncode,
            stdout=stdout or b"",
            stderr=stderr or b"",
            elapsed=elapsed,
        )


def _kill_tree(proc: subprocess.Popen) -> None:
    """SIGKILL the child's process group, then reap the child."""
    if hasattr(os, "killpg"):
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:  # pragma: no cover - no process groups on Windows
        proc.kill()
    proc.communicate()


# ----------------------------- best-effort steps ------------------------------


@dataclass(frozen=True)
class BestEffort(Generic[T]):
    """Outcome of a side step whose failure is logged and otherwise ignored."""

    value: Optional[T] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def best_effort(label: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> BestEffort[T]:
    try:
        return BestEffort(value=fn(*args, **kwargs))
    except ApiError as e:
        log.warning("%s failed, continuing: %s", label, e.message)
        return BestEffort(error=e.message, details=dict(e.details or {}))


__all__ = [
    "ProcessResult",
    "ProcessRunner",
    "CommandObserver",
    "BestEffort",
    "best_effort",
    "redact_argv",
    "command_label",
]
