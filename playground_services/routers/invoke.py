from __future__ import annotations

"""
Invoke Router

Endpoints:
  - POST /invoke : call a contract method ("view" simulates, "call" submits)

An invocation the CLI rejects is still a 200 with ``data.success=false`` and
the CLI's stderr in ``data.error``.
"""

import logging

from fastapi import APIRouter, Depends

from playground_services.models.common import ApiEnvelope, ok
from playground_services.models.invoke import InvokeRequest, InvokeResponse
from playground_services.routers.deps import get_invoke_orchestrator
from playground_services.services.invoke import InvokeOrchestrator

log = logging.getLogger(__name__)
router = APIRouter(tags=["invoke"])


@router.post(
    "/invoke",
    summary="Invoke a contract method",
    response_model=ApiEnvelope[InvokeResponse],
)
def post_invoke(
    req: InvokeRequest,
    orchestrator: InvokeOrchestrator = Depends(get_invoke_orchestrator),
):
    log.info("invoke request for contract %s method %s", req.contract_id, req.method_name)
    res = orchestrator.invoke(
        req.contract_id,
        req.method_name,
        req.args,
        req.method_type,
        req.secret(),
    )
    if not res.success:
        log.warning("invocation of %s.%s failed", req.contract_id, req.method_name)
    return ok(InvokeResponse.from_result(res))


def get_router() -> APIRouter:
    return router
