"""
Session tracking for audit attribution.

Holds the most recently signed-in user so ledger entries written without an
explicit actor are attributed to them instead of "system".
"""

from typing import Optional

import structlog

from securepay.schemas.session import UserRole

logger = structlog.get_logger(__name__)


class SessionTracker:
    def __init__(self):
        self._actor: Optional[str] = None
        self._role: Optional[UserRole] = None

    def login(self, actor: str, role: UserRole) -> None:
        self._actor = actor
        self._role = role
        logger.info("session_started", actor=actor, role=role.value)

    def logout(self) -> None:
        if self._actor is not None:
            logger.info("session_ended", actor=self._actor)
        self._actor = None
        self._role = None

    def current_actor(self) -> Optional[str]:
        return self._actor

    @property
    def current_role(self) -> Optional[UserRole]:
        return self._role
