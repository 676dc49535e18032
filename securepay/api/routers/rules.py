"""
Override Rule Endpoints.

GET /api/v1/rules - active rule set (defaults when nothing valid is stored)
PUT /api/v1/rules - replace the rule set
"""

from fastapi import APIRouter, Depends

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_analyst
from securepay.schemas.rules import RuleDefinition
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1/rules", tags=["rules"])


@router.get("", response_model=list[RuleDefinition])
async def list_rules(service: ReviewService = Depends(get_review_service)):
    return await service.rules()


@router.put(
    "",
    response_model=list[RuleDefinition],
    dependencies=[Depends(require_analyst)],
)
async def replace_rules(
    rules: list[RuleDefinition],
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.save_rules(rules, actor=ctx.actor, address=ctx.address)
