"""
Adaptive Threshold Endpoints.

POST /api/v1/thresholds/resolve - resolve (and blend) a threshold
GET  /api/v1/thresholds/config  - current layered config
PUT  /api/v1/thresholds/config  - replace the config (admin)
"""

from fastapi import APIRouter, Depends

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_admin
from securepay.engine.thresholds import blend_thresholds
from securepay.schemas.requests import ThresholdResolveRequest, ThresholdResolveResponse
from securepay.schemas.thresholds import ThresholdConfig
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1/thresholds", tags=["thresholds"])


@router.post("/resolve", response_model=ThresholdResolveResponse)
async def resolve_threshold(
    body: ThresholdResolveRequest,
    service: ReviewService = Depends(get_review_service),
):
    """Adaptive threshold plus the value blended with the manual threshold."""
    resolution = await service.resolve_threshold(body.transaction, body.country, body.now)
    runtime = await service.runtime_settings()
    return ThresholdResolveResponse(
        threshold=resolution.threshold,
        notes=resolution.notes,
        blended_threshold=blend_thresholds(
            runtime.risk_threshold,
            resolution.threshold,
            service.config.threshold_floor,
            service.config.threshold_ceiling,
        ),
    )


@router.get("/config", response_model=ThresholdConfig)
async def get_config(service: ReviewService = Depends(get_review_service)):
    return await service.threshold_config()


@router.put(
    "/config",
    response_model=ThresholdConfig,
    dependencies=[Depends(require_admin)],
)
async def put_config(
    config: ThresholdConfig,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.save_threshold_config(config, actor=ctx.actor, address=ctx.address)
