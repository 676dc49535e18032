"""
Analyst Feedback & Monitoring Endpoints.

POST /api/v1/feedback            - label a scored transaction
GET  /api/v1/feedback            - all labels
GET  /api/v1/feedback/monitoring - coverage, precision, drift snapshot
"""

from fastapi import APIRouter, Depends

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_analyst
from securepay.schemas.feedback import FeedbackItem, MonitoringSnapshot
from securepay.schemas.requests import FeedbackRequest
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1/feedback", tags=["feedback"])


@router.post(
    "",
    response_model=FeedbackItem,
    dependencies=[Depends(require_analyst)],
)
async def submit_feedback(
    body: FeedbackRequest,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    """404 if the transaction is not in the scoring history."""
    return await service.submit_feedback(
        body.transaction_id,
        body.label,
        actor=ctx.actor,
        address=ctx.address,
    )


@router.get("", response_model=list[FeedbackItem])
async def list_feedback(service: ReviewService = Depends(get_review_service)):
    return await service.feedback.list_feedback()


@router.get("/monitoring", response_model=MonitoringSnapshot)
async def monitoring(service: ReviewService = Depends(get_review_service)):
    return await service.monitoring_snapshot()
