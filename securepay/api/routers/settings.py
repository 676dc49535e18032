"""
Runtime Settings & Session Endpoints.

GET  /api/v1/settings - manual risk threshold, realtime alerts, auto-lock
PUT  /api/v1/settings - save them (admin)
POST /api/v1/sessions - record a sign-in / sign-out
"""

from fastapi import APIRouter, Depends

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_admin
from securepay.schemas.audit import AuditLogEntry
from securepay.schemas.session import SessionRecord
from securepay.schemas.settings import RuntimeSettings
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1", tags=["settings"])


@router.get("/settings", response_model=RuntimeSettings)
async def get_settings(service: ReviewService = Depends(get_review_service)):
    return await service.runtime_settings()


@router.put(
    "/settings",
    response_model=RuntimeSettings,
    dependencies=[Depends(require_admin)],
)
async def put_settings(
    runtime: RuntimeSettings,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.save_runtime_settings(runtime, actor=ctx.actor, address=ctx.address)


@router.post("/sessions", response_model=AuditLogEntry, status_code=201)
async def record_session(
    body: SessionRecord,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.record_session(
        body.actor,
        event=body.event,
        role=body.role,
        address=ctx.address,
    )
