"""
FastAPI dependency providers for the lifecycle routers.

Settings are resolved per request: an instance injected through
``create_app(settings=...)`` wins, otherwise the environment is read afresh so
credential changes take effect without a restart. The process runner and the
project lock registry are process-wide and live on ``app.state``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from playground_services.adapters.process import ProcessRunner
from playground_services.config import Settings, load_settings
from playground_services.services.compile import BuildOrchestrator
from playground_services.services.deploy import DeployOrchestrator
from playground_services.services.invoke import InvokeOrchestrator
from playground_services.storage.workspace import ProjectLocks, WorkspaceManager


def get_settings(request: Request) -> Settings:
    injected = getattr(request.app.state, "settings", None)
    return injected if injected is not None else load_settings()


def get_runner(request: Request) -> ProcessRunner:
    return request.app.state.runner


def get_locks(request: Request) -> ProjectLocks:
    return request.app.state.project_locks


def get_workspace(settings: Settings = Depends(get_settings)) -> WorkspaceManager:
    return WorkspaceManager.from_settings(settings)


def get_build_orchestrator(
    settings: Settings = Depends(get_settings),
    runner: ProcessRunner = Depends(get_runner),
    workspace: WorkspaceManager = Depends(get_workspace),
    locks: ProjectLocks = Depends(get_locks),
) -> BuildOrchestrator:
    return BuildOrchestrator(settings, runner, workspace, locks=locks)


def get_deploy_orchestrator(
    settings: Settings = Depends(get_settings),
    runner: ProcessRunner = Depends(get_runner),
    workspace: WorkspaceManager = Depends(get_workspace),
    locks: ProjectLocks = Depends(get_locks),
) -> DeployOrchestrator:
    return DeployOrchestrator(settings, runner, workspace, locks=locks)


def get_invoke_orchestrator(
    settings: Settings = Depends(get_settings),
    runner: ProcessRunner = Depends(get_runner),
) -> InvokeOrchestrator:
    return InvokeOrchestrator(settings, runner)
