"""HTTP middleware and exception handlers."""

from securepay.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from securepay.middleware.request_context import RequestContextMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestContextMiddleware",
    "register_exception_handlers",
]
