from __future__ import annotations

"""
Deploy Router

Endpoints:
  - POST /deploy : deploy a project's compiled artifact to the configured network

Thin shim over ``services.deploy``; missing configuration, missing artifacts,
CLI failures and unparseable output surface as ApiError.
"""

import logging

from fastapi import APIRouter, Depends

from playground_services.models.common import ApiEnvelope, ok
from playground_services.models.deploy import DeployRequest, DeployResponse
from playground_services.routers.deps import get_deploy_orchestrator
from playground_services.services.deploy import DeployOrchestrator

log = logging.getLogger(__name__)
router = APIRouter(tags=["deploy"])


@router.post(
    "/deploy",
    summary="Deploy a compiled contract",
    response_model=ApiEnvelope[DeployResponse],
)
def post_deploy(
    req: DeployRequest,
    orchestrator: DeployOrchestrator = Depends(get_deploy_orchestrator),
):
    log.info("deploy request for project %s by user %s", req.project_id, req.user_id)
    res = orchestrator.deploy(req.user_id, req.project_id, req.secret())
    log.info("deployment completed for project %s: contract_id=%s", req.project_id, res.contract_id)
    return ok(DeployResponse.from_result(res))


def get_router() -> APIRouter:
    return router
