"""
HTTP request / response bodies that are not domain models themselves.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from securepay.schemas.audit import AuditCategory, AuditLogEntry, AuditStatus
from securepay.schemas.feedback import FeedbackLabel
from securepay.schemas.transaction import TransactionRecord


class ThresholdResolveRequest(BaseModel):
    transaction: TransactionRecord
    country: Optional[str] = None
    now: Optional[datetime] = None


class ThresholdResolveResponse(BaseModel):
    threshold: float
    notes: list[str] = Field(default_factory=list)
    blended_threshold: float


class BatchScoreRequest(BaseModel):
    transactions: list[TransactionRecord] = Field(min_length=1)
    default_country: Optional[str] = None


class BatchCsvRequest(BaseModel):
    csv: str
    default_country: Optional[str] = None


class AuditAppendRequest(BaseModel):
    action: str = Field(min_length=1)
    category: AuditCategory
    details: str = ""
    status: AuditStatus = AuditStatus.SUCCESS


class AuditTrailResponse(BaseModel):
    entries: list[AuditLogEntry]
    total: int
    has_more: bool


class FeedbackRequest(BaseModel):
    transaction_id: str
    label: FeedbackLabel
