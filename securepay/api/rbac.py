"""
Role-Based Access Control.

Role hierarchy: VIEWER < ANALYST < ADMIN
- viewer: read-only
- analyst: score, label, edit rules, append to the ledger
- admin: everything, including runtime settings, thresholds and integrations

The role comes from the X-Role header; requests without one get the
configured default role.
"""

from enum import IntEnum
from typing import Callable

import structlog
from fastapi import HTTPException, Request

from securepay.config import settings

logger = structlog.get_logger(__name__)

ROLE_HEADER = "X-Role"


class Role(IntEnum):
    """Ordered role hierarchy; higher value = more permissions."""

    VIEWER = 10
    ANALYST = 20
    ADMIN = 30

    @classmethod
    def from_str(cls, value: str) -> "Role":
        """Case-insensitive; unknown names map to VIEWER."""
        mapping = {
            "viewer": cls.VIEWER,
            "analyst": cls.ANALYST,
            "admin": cls.ADMIN,
        }
        return mapping.get(value.strip().lower(), cls.VIEWER)


def role_from_request(request: Request) -> Role:
    return Role.from_str(request.headers.get(ROLE_HEADER) or settings.default_role)


def check_role(request: Request, minimum_role: Role) -> None:
    """Raises HTTPException 403 if the request's role is below minimum_role."""
    role = role_from_request(request)
    if role < minimum_role:
        logger.warning(
            "role_denied",
            role=role.name,
            required_role=minimum_role.name,
            path=request.url.path,
        )
        raise HTTPException(
            status_code=403,
            detail={
                "error": "insufficient_role",
                "required_role": minimum_role.name.lower(),
                "your_role": role.name.lower(),
            },
        )


def require_role(minimum_role: Role) -> Callable[[Request], None]:
    """Dependency factory: `dependencies=[Depends(require_role(Role.ADMIN))]`."""

    def _dependency(request: Request) -> None:
        check_role(request, minimum_role)

    return _dependency


require_analyst = require_role(Role.ANALYST)
require_admin = require_role(Role.ADMIN)
