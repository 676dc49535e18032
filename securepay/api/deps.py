"""
FastAPI dependencies for API routes.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from securepay.middleware.request_context import resolve_actor, resolve_address
from securepay.services.review import ReviewService


@dataclass(frozen=True)
class RequestContext:
    """Who made the request and from where, for ledger attribution."""
    actor: Optional[str]
    address: str


def get_review_service(request: Request) -> ReviewService:
    """The process-wide ReviewService built in the app lifespan."""
    return request.app.state.review_service


def get_request_context(request: Request) -> RequestContext:
    # Falls back to the headers when the context middleware is not installed
    actor = getattr(request.state, "actor", None) or resolve_actor(request)
    address = getattr(request.state, "client_address", None) or resolve_address(request)
    return RequestContext(actor=actor, address=address)
