"""
Transaction Scoring Endpoints.

POST /api/v1/transactions/score                - score one transaction
POST /api/v1/transactions/score-batch          - score a list of transactions
POST /api/v1/transactions/score-batch/csv      - score CSV text
GET  /api/v1/transactions/score-batch/template - sample CSV
GET  /api/v1/transactions/history              - recent scores, newest first
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from securepay.api.deps import RequestContext, get_request_context, get_review_service
from securepay.api.rbac import require_analyst
from securepay.schemas.prediction import BatchReport, ScoredTransaction, ScoringOutcome
from securepay.schemas.requests import BatchCsvRequest, BatchScoreRequest
from securepay.schemas.transaction import TransactionRecord
from securepay.services.batch import TEMPLATE
from securepay.services.review import ReviewService

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


@router.post(
    "/score",
    response_model=ScoringOutcome,
    dependencies=[Depends(require_analyst)],
)
async def score_transaction(
    transaction: TransactionRecord,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    """Score with the blended (manual + adaptive) threshold and active rules."""
    return await service.score(transaction, actor=ctx.actor, address=ctx.address)


@router.post(
    "/score-batch",
    response_model=BatchReport,
    dependencies=[Depends(require_analyst)],
)
async def score_batch(
    body: BatchScoreRequest,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.score_batch(
        body.transactions,
        default_country=body.default_country,
        actor=ctx.actor,
        address=ctx.address,
    )


@router.post(
    "/score-batch/csv",
    response_model=BatchReport,
    dependencies=[Depends(require_analyst)],
)
async def score_batch_csv(
    body: BatchCsvRequest,
    service: ReviewService = Depends(get_review_service),
    ctx: RequestContext = Depends(get_request_context),
):
    return await service.score_batch_csv(
        body.csv,
        default_country=body.default_country,
        actor=ctx.actor,
        address=ctx.address,
    )


@router.get("/score-batch/template", response_class=PlainTextResponse)
async def batch_template():
    return PlainTextResponse(TEMPLATE, media_type="text/csv")


@router.get("/history", response_model=list[ScoredTransaction])
async def history(
    limit: int | None = Query(default=None, ge=1, le=200),
    service: ReviewService = Depends(get_review_service),
):
    return service.history(limit)
