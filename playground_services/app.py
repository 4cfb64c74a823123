from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from .adapters.process import ProcessRunner
from .config import Settings, load_settings
from .metrics import setup_metrics
from .middleware.errors import install_error_handlers
from .middleware.logging import install_access_log_middleware
from .middleware.request_id import install_request_id_middleware
from .routers import build_router
from .security.cors import setup_cors
from .services.environment import check_environment
from .storage.workspace import ProjectLocks
from .version import __version__


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    App lifespan: verify the template and the stellar CLI before serving.
    A failed check aborts startup while STARTUP_CHECKS is on.
    """
    settings: Settings = app.state.settings or load_settings()
    if settings.startup_checks:
        app.state.environment = await run_in_threadpool(check_environment, settings, app.state.runner)
    yield


def create_app(
    settings: Optional[Settings] = None,
    runner: Optional[ProcessRunner] = None,
) -> FastAPI:
    """
    FastAPI factory. Mounts routers, middleware and metrics.

    ``settings`` pins configuration for every request (tests, embedding);
    without it each request reads the environment afresh. ``runner`` replaces
    the subprocess runner (tests use a scripted one).
    """
    boot = settings or load_settings()

    app = FastAPI(
        title="Stellar Playground Services",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.environment = None
    app.state.project_locks = ProjectLocks()

    # Core middleware stack
    install_request_id_middleware(app)
    install_access_log_middleware(app)

    # CORS (strict allowlist from config)
    setup_cors(app, boot.cors)

    # Error → response envelope mapping
    install_error_handlers(app)

    # Metrics (/metrics); toolchain commands are reported through the runner
    metrics = setup_metrics(app, service_version=__version__)
    app.state.runner = runner or ProcessRunner(
        boot.toolchain_timeout_seconds,
        observer=metrics.observe_command,
    )

    app.include_router(build_router())
    return app
