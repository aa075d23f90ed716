"""Data models for ``deposit_notifier``.

Domain records are frozen dataclasses. Upstream JSON payloads are validated
into these by :mod:`deposit_notifier.source`, so nothing here knows about the
bank API's field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from .amounts import format_rand

# ---------------------------------------------------------------------------
# Records produced by the transaction source
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single deposit transaction as returned by one fetch.

    Attributes
    ----------
    id:
        Opaque, unique identifier (the upstream ``uuid``). This is the ledger
        key.
    description:
        Free-text reference shown in the notification.
    amount:
        Deposit amount; non-negative for deposits.
    """

    id: str
    description: str
    amount: Decimal
    transaction_date: str | None = None
    posting_date: str | None = None
    type: str | None = None


@dataclass(frozen=True, slots=True)
class Account:
    account_id: str
    account_number: str | None = None
    account_name: str | None = None
    reference_name: str | None = None
    product_name: str | None = None


@dataclass(frozen=True, slots=True)
class ProcessedRecord:
    """A ledger entry: ``id`` was notified at ``processed_at``."""

    id: str
    processed_at: datetime


# ---------------------------------------------------------------------------
# Outbound notification
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NotificationMessage:
    description: str
    amount: Decimal
    derived_balance: Decimal

    title: str = "Bank Deposit"

    def render(self) -> str:
        """Return the message body sent to the push service."""

        return (
            f"Amount: {format_rand(self.amount)}\n"
            f"Reference: {self.description}\n"
            f"Balance: {format_rand(self.derived_balance)}"
        )


# ---------------------------------------------------------------------------
# Run outcomes
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class DispatchReport:
    """Per-run tally of dispatcher decisions, in processing order.

    Observability detail only; callers of the invocation trigger see just the
    coarse :class:`RunResult`.
    """

    notified: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def seen(self) -> int:
        return len(self.notified) + len(self.skipped)

    def describe(self) -> str:
        if not self.seen:
            return "No deposits found."
        return f"{len(self.notified)} notified, {len(self.skipped)} already processed."


@dataclass(frozen=True, slots=True)
class RunResult:
    ok: bool
    summary: str
    report: DispatchReport | None = None


__all__ = [
    "Account",
    "DispatchReport",
    "NotificationMessage",
    "ProcessedRecord",
    "RunResult",
    "Transaction",
]
