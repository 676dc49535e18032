"""
Session Schemas - sign-in / sign-out events attributed in the audit ledger.
"""

from enum import StrEnum

from pydantic import BaseModel, Field


class UserRole(StrEnum):
    ADMIN = "admin"
    ANALYST = "analyst"
    VIEWER = "viewer"


class SessionEvent(StrEnum):
    LOGIN = "login"
    LOGOUT = "logout"


class SessionRecord(BaseModel):
    actor: str = Field(min_length=1)
    role: UserRole = UserRole.ANALYST
    event: SessionEvent = SessionEvent.LOGIN
