"""
SecurePay Risk Engine - FastAPI Application.

Run: uvicorn securepay.main:app --host 0.0.0.0 --port 8080 --reload

Endpoints (prefix /api/v1):
  - /transactions   score, batch score, history
  - /thresholds     adaptive threshold resolution and config
  - /rules          override rules
  - /audit-trail    hash-chained ledger, integrity, export
  - /feedback       analyst labels, monitoring snapshot
  - /integrations   alert targets, test alerts
  - /settings       runtime settings; /sessions sign-in / sign-out
  - /health         liveness
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from securepay import __version__
from securepay.api.routers.audit_trail import router as audit_trail_router
from securepay.api.routers.feedback import router as feedback_router
from securepay.api.routers.integrations import router as integrations_router
from securepay.api.routers.rules import router as rules_router
from securepay.api.routers.settings import router as settings_router
from securepay.api.routers.thresholds import router as thresholds_router
from securepay.api.routers.transactions import router as transactions_router
from securepay.config import settings
from securepay.db.engine import close_db, get_session_factory, init_db
from securepay.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from securepay.middleware.request_context import RequestContextMiddleware
from securepay.observability import configure_logging
from securepay.services.review import ReviewService, create_review_service
from securepay.storage.base import InMemoryKeyValueStore, KeyValueStore
from securepay.storage.sql import SqlKeyValueStore

logger = structlog.get_logger(__name__)


async def build_store() -> KeyValueStore:
    """Slot store for the configured backend."""
    if settings.uses_database:
        await init_db()
        return SqlKeyValueStore(get_session_factory())
    return InMemoryKeyValueStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info(
        "securepay_starting",
        version=settings.app_version,
        storage_backend=settings.storage_backend,
    )

    if getattr(app.state, "review_service", None) is None:
        store = await build_store()
        app.state.review_service = create_review_service(store, settings)

    await app.state.review_service.ledger.ensure_initialized()
    yield

    if settings.uses_database:
        await close_db()
    logger.info("securepay_shutdown")


def create_app(review_service: Optional[ReviewService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        review_service: Pre-built service (tests); built in the lifespan otherwise
    """
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Fraud review decision engine: heuristic risk scoring, adaptive "
            "thresholds, override rules and a tamper-evident audit ledger."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
        openapi_tags=[
            {"name": "health", "description": "Liveness probe"},
            {"name": "transactions", "description": "Scoring and history"},
            {"name": "thresholds", "description": "Adaptive decision boundary"},
            {"name": "rules", "description": "Administrator override rules"},
            {"name": "audit", "description": "Audit ledger with hash chain integrity"},
            {"name": "feedback", "description": "Analyst labels and model monitoring"},
            {"name": "integrations", "description": "Simulated alert delivery"},
            {"name": "settings", "description": "Runtime settings and sessions"},
        ],
    )
    app.state.review_service = review_service

    # ── Middleware (last added = outermost) ───────────────────────────────
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(transactions_router)
    app.include_router(thresholds_router)
    app.include_router(rules_router)
    app.include_router(audit_trail_router)
    app.include_router(feedback_router)
    app.include_router(integrations_router)
    app.include_router(settings_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe. Does NOT check the store."""
        return {
            "status": "ok",
            "version": __version__,
            "service": "securepay-risk-engine",
            "storage_backend": settings.storage_backend,
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "securepay.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
