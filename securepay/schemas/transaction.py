"""
Transaction Schemas.

Field names are snake_case; the PaySim column names (oldbalanceOrg,
newbalanceOrig, ...) are accepted on input so exported datasets can be
posted unchanged.
"""

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TransactionType(StrEnum):
    CASH_OUT = "CASH_OUT"
    TRANSFER = "TRANSFER"
    PAYMENT = "PAYMENT"
    CASH_IN = "CASH_IN"
    DEBIT = "DEBIT"


def _transaction_id() -> str:
    return f"TXN-{uuid.uuid4().hex[:10].upper()}"


class TransactionRecord(BaseModel):
    """A submitted transaction. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=_transaction_id)
    timestamp: datetime = Field(default_factory=datetime.now)
    amount: float = Field(ge=0, allow_inf_nan=False)
    type: TransactionType

    origin_balance_before: float = Field(
        default=0.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("origin_balance_before", "oldbalanceOrg"),
    )
    origin_balance_after: float = Field(
        default=0.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("origin_balance_after", "newbalanceOrig"),
    )
    dest_balance_before: float = Field(
        default=0.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("dest_balance_before", "oldbalanceDest"),
    )
    dest_balance_after: float = Field(
        default=0.0,
        allow_inf_nan=False,
        validation_alias=AliasChoices("dest_balance_after", "newbalanceDest"),
    )

    country: Optional[str] = None

    @property
    def origin_delta(self) -> float:
        """Funds that left the origin account."""
        return self.origin_balance_before - self.origin_balance_after

    @property
    def dest_delta(self) -> float:
        """Funds that arrived in the destination account."""
        return self.dest_balance_after - self.dest_balance_before
