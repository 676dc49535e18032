"""
Audit Trail API Endpoints.

GET  /api/v1/audit-trail           - ledger entries, newest first, filterable
POST /api/v1/audit-trail           - append an entry
GET  /api/v1/audit-trail/integrity - verify the stored hash chain
POST /api/v1/audit-trail/integrity - verify supplied entries (newest first)
GET  /api/v1/audit-trail/export    - CSV export
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_analyst
from securepay.schemas.audit import AuditCategory, AuditLogEntry, AuditStatus, ChainVerification
from securepay.schemas.requests import AuditAppendRequest, AuditTrailResponse
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1/audit-trail", tags=["audit"])


@router.get("", response_model=AuditTrailResponse)
async def list_audit_trail(
    category: AuditCategory | None = Query(default=None),
    status: AuditStatus | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    service: ReviewService = Depends(get_review_service),
):
    """Ledger entries, most recent first."""
    entries = await service.audit_log()
    if category:
        entries = [e for e in entries if e.category == category]
    if status:
        entries = [e for e in entries if e.status == status]

    total = len(entries)
    return AuditTrailResponse(
        entries=entries[offset:offset + limit],
        total=total,
        has_more=(offset + limit) < total,
    )


@router.post(
    "",
    response_model=AuditLogEntry,
    status_code=201,
    dependencies=[Depends(require_analyst)],
)
async def append_entry(
    body: AuditAppendRequest,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.append_log(
        body.action,
        body.category,
        body.details,
        status=body.status,
        actor=ctx.actor,
        address=ctx.address,
    )


@router.get("/integrity", response_model=ChainVerification)
async def check_integrity(service: ReviewService = Depends(get_review_service)):
    """Verify the stored hash chain is unbroken."""
    return await service.verify_ledger()


@router.post("/integrity", response_model=ChainVerification)
async def check_supplied_entries(
    entries: list[AuditLogEntry],
    service: ReviewService = Depends(get_review_service),
):
    """Verify an exported chain (entries most recent first)."""
    return await service.verify_ledger(entries)


@router.get("/export", response_class=PlainTextResponse)
async def export_csv(service: ReviewService = Depends(get_review_service)):
    return PlainTextResponse(
        await service.export_audit_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="audit-ledger.csv"'},
    )
