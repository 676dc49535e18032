"""
Alert Integration Endpoints.

GET  /api/v1/integrations           - configured targets
PUT  /api/v1/integrations           - replace targets (admin)
POST /api/v1/integrations/{id}/test - simulated test alert
"""

from fastapi import APIRouter, Depends

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_admin, require_analyst
from securepay.schemas.integrations import DispatchResult, IntegrationTarget
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1/integrations", tags=["integrations"])


@router.get("", response_model=list[IntegrationTarget])
async def list_targets(service: ReviewService = Depends(get_review_service)):
    return await service.integration_targets()


@router.put(
    "",
    response_model=list[IntegrationTarget],
    dependencies=[Depends(require_admin)],
)
async def replace_targets(
    targets: list[IntegrationTarget],
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.save_integration_targets(targets, actor=ctx.actor, address=ctx.address)


@router.post(
    "/{target_id}/test",
    response_model=DispatchResult,
    dependencies=[Depends(require_analyst)],
)
async def send_test_alert(
    target_id: str,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.send_test_alert(target_id, actor=ctx.actor, address=ctx.address)
