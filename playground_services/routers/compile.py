from __future__ import annotations

"""
Compile Router

Endpoints:
  - POST /compile : write user code into the project workspace and build it

A failed build still answers 200 with ``data.success=false`` so the editor can
show the compiler output; workspace, spawn and timeout failures are raised as
ApiError and rendered by the error middleware.
"""

import logging

from fastapi import APIRouter, Depends

from playground_services.models.common import ApiEnvelope, ok
from playground_services.models.compile import CompileRequest, CompileResponse
from playground_services.routers.deps import get_build_orchestrator
from playground_services.services.compile import BuildOrchestrator

log = logging.getLogger(__name__)
router = APIRouter(tags=["compile"])


@router.post(
    "/compile",
    summary="Compile a Soroban contract",
    response_model=ApiEnvelope[CompileResponse],
)
def post_compile(
    req: CompileRequest,
    orchestrator: BuildOrchestrator = Depends(get_build_orchestrator),
):
    log.info("compile request for project %s by user %s", req.project_id, req.user_id)
    res = orchestrator.build(req.code, req.user_id, req.project_id)
    return ok(CompileResponse.from_result(res))


def get_router() -> APIRouter:
    return router
