"""
SQLAlchemy models.

Each persisted data set (rules, threshold config, ledger, feedback,
integration targets, runtime settings) is one row holding serialized JSON.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from securepay.db.engine import Base


class KeyValueSlot(Base):
    """One named slot of serialized state."""

    __tablename__ = "securepay_kv_slots"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
