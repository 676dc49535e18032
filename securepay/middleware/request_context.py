"""
Request Context Middleware.

Adds to every request:
- request_id: from X-Request-ID (set by an upstream proxy) or generated
- actor: from X-Actor, used to attribute audit ledger entries
- client_address: the peer host, or 127.0.0.1 when unknown (test clients)
- X-Response-Time timing header and a structured completion log line

request_id and actor are bound into the structlog context so every log
line emitted while handling the request carries them.
"""

import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

ACTOR_HEADER = "X-Actor"
REQUEST_ID_HEADER = "X-Request-ID"
FALLBACK_ADDRESS = "127.0.0.1"


def resolve_actor(request: Request) -> str | None:
    actor = request.headers.get(ACTOR_HEADER, "").strip()
    return actor or None


def resolve_address(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return FALLBACK_ADDRESS


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Adds request_id, actor attribution and timing to every request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, str(uuid.uuid4()))
        request.state.request_id = request_id
        request.state.actor = resolve_actor(request)
        request.state.client_address = resolve_address(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            actor=request.state.actor or "anonymous",
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

        logger.info(
            "request_completed",
            status=response.status_code,
            elapsed_ms=elapsed_ms,
        )
        return response
