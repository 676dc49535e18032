"""
Global Error Handling.

- ErrorHandlerMiddleware catches anything unhandled and returns structured
  JSON. It NEVER leaks stack traces or internal details to clients; every
  error gets an error_id for correlation with server logs.
- SecurePayError subclasses map to their own status codes through an
  exception handler (unknown transaction / integration target -> 404).
"""

import traceback
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from securepay.config import settings
from securepay.exceptions import SecurePayError

logger = structlog.get_logger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Outermost application middleware.

    Returns:
    {
      "error": "human-readable message",
      "error_id": "uuid for log correlation",
      "status": 500
    }
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)

        except Exception as exc:
            error_id = str(uuid.uuid4())

            logger.error(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                error=str(exc),
                traceback=traceback.format_exc(),
            )

            status_code = getattr(exc, "status_code", 500)
            body: dict = {
                "error": "An internal error occurred. Please try again later.",
                "error_id": error_id,
                "status": status_code,
            }

            # Type name only, never the traceback
            if settings.debug:
                body["debug_hint"] = type(exc).__name__

            return JSONResponse(status_code=status_code, content=body)


async def securepay_exception_handler(request: Request, exc: SecurePayError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "request_rejected",
        error=type(exc).__name__,
        message=exc.message,
        status_code=exc.status_code,
        request_id=request_id,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={**exc.to_dict(), "request_id": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SecurePayError, securepay_exception_handler)
