"""Per-transaction dedup-and-notify decisions.

For each transaction, strictly in the order received:

1. Skip it if the ledger already holds a record for its id.
2. Read the available balance (fresh for every transaction) and derive the
   actual cash amount: ``balance - credit_facility``, rounded half-up.
3. Send exactly one notification.
4. Record the id in the ledger.

Failures propagate to the caller. Transactions completed earlier in the batch
keep their effects; later ones are not attempted. A failed notification is not
recorded, so the next run notifies again. A failed record after a successful
notification also leads to a second notification on the next run
(at-least-once).

With ``atomic_claims`` enabled and a ledger that supports it
(:class:`AtomicLedger`), steps 1 and 4 collapse into a single
``insert_if_absent`` taken before notifying, so two overlapping runs cannot
both notify for the same id. A claim whose notification fails is released
again so the next run retries it. The claim is written before delivery, so a
crash or a failed release in between leaves the id marked processed without a
notification (at-most-once); the mode is off by default.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from decimal import Decimal
from typing import cast

from .amounts import derive_cash_amount
from .config import NotifierSettings
from .errors import StorageUnavailable, UpstreamError
from .ledger import AtomicLedger, DedupLedger
from .models import DispatchReport, NotificationMessage, Transaction
from .observability import DispatchObserver, LoggingObserver
from .sink import NotificationSink
from .source import AccountFeed

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class NotificationDispatcher:
    def __init__(
        self,
        settings: NotifierSettings,
        *,
        ledger: DedupLedger,
        sink: NotificationSink,
        observer: DispatchObserver | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self.ledger = ledger
        self.sink = sink
        self.observer: DispatchObserver = observer or LoggingObserver()
        self.clock = clock

    @property
    def uses_atomic_claims(self) -> bool:
        return self.settings.atomic_claims and isinstance(self.ledger, AtomicLedger)

    def dispatch(self, transactions: Iterable[Transaction], feed: AccountFeed) -> DispatchReport:
        """Process ``transactions`` sequentially and return what was done."""

        batch = list(transactions)
        report = DispatchReport()
        self.observer.batch_started(len(batch))

        for tx in batch:
            if self.uses_atomic_claims:
                handled = self._claim_and_notify(cast(AtomicLedger, self.ledger), tx, feed)
            else:
                handled = self._check_notify_record(tx, feed)
            if handled:
                report.notified.append(tx.id)
            else:
                report.skipped.append(tx.id)

        self.observer.batch_finished(report)
        return report

    # -- per-transaction sequences ---------------------------------------------

    def _check_notify_record(self, tx: Transaction, feed: AccountFeed) -> bool:
        if self.ledger.exists(tx.id):
            self.observer.transaction_skipped(tx)
            return False

        self._notify(tx, feed)

        try:
            self.ledger.record(tx.id, self.clock())
        except StorageUnavailable as e:
            # Already notified; the next run will notify again for this id.
            self.observer.transaction_failed(tx, "record", e)
            raise

        self.observer.transaction_notified(tx)
        return True

    def _claim_and_notify(
        self, ledger: AtomicLedger, tx: Transaction, feed: AccountFeed
    ) -> bool:
        if not ledger.insert_if_absent(tx.id, self.clock()):
            self.observer.transaction_skipped(tx)
            return False

        try:
            self._notify(tx, feed)
        except Exception:
            try:
                ledger.release(tx.id)
            except StorageUnavailable as release_err:
                # The claim stays; this id will not be retried automatically.
                self.observer.transaction_failed(tx, "release", release_err)
            raise

        self.observer.transaction_notified(tx)
        return True

    def _notify(self, tx: Transaction, feed: AccountFeed) -> None:
        try:
            balance = feed.fetch_balance()
            derived = self._derive(balance)
        except Exception as e:
            self.observer.transaction_failed(tx, "balance", e)
            raise
        self.observer.balance_read(tx, balance, derived)

        message = NotificationMessage(
            description=tx.description, amount=tx.amount, derived_balance=derived
        )
        try:
            self.sink.notify(message)
        except Exception as e:
            self.observer.transaction_failed(tx, "notify", e)
            raise

    def _derive(self, balance: Decimal | None) -> Decimal:
        try:
            return derive_cash_amount(balance, self.settings.credit_facility)
        except ValueError as e:
            raise UpstreamError(f"cannot derive cash amount: {e}") from e


__all__ = ["Clock", "NotificationDispatcher", "utc_now"]
