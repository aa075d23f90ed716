from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: processed_deposits
# ---------------------------


class ProcessedDeposit(Base):
    """One row per transaction id that has triggered a notification.

    Rows are inserted once and never updated. The existence of a row is the
    only signal the dispatcher uses to decide that a deposit was handled.
    """

    __tablename__ = "processed_deposits"

    # Upstream transaction uuid (opaque string).
    transaction_id: Mapped[str] = mapped_column(String, primary_key=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


__all__ = [
    "Base",
    "ProcessedDeposit",
]
