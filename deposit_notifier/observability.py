"""Structured dispatch events.

The dispatcher reports what it decided through a :class:`DispatchObserver`
and never logs directly; error propagation does not depend on the observer.
:class:`LoggingObserver` is the default and writes to the package logger.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Protocol

from .logging_setup import get_logger
from .models import DispatchReport, Transaction


class DispatchObserver(Protocol):
    def batch_started(self, count: int) -> None: ...

    def transaction_skipped(self, tx: Transaction) -> None: ...

    def balance_read(self, tx: Transaction, balance: Decimal, derived: Decimal) -> None: ...

    def transaction_notified(self, tx: Transaction) -> None: ...

    def transaction_failed(self, tx: Transaction, stage: str, error: BaseException) -> None: ...

    def batch_finished(self, report: DispatchReport) -> None: ...


class NullObserver:
    def batch_started(self, count: int) -> None:
        pass

    def transaction_skipped(self, tx: Transaction) -> None:
        pass

    def balance_read(self, tx: Transaction, balance: Decimal, derived: Decimal) -> None:
        pass

    def transaction_notified(self, tx: Transaction) -> None:
        pass

    def transaction_failed(self, tx: Transaction, stage: str, error: BaseException) -> None:
        pass

    def batch_finished(self, report: DispatchReport) -> None:
        pass


class LoggingObserver:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or get_logger("deposit_notifier.dispatcher")

    def batch_started(self, count: int) -> None:
        if count:
            self._log.info("Processing %d deposit(s)...", count)
        else:
            self._log.info("No deposits found.")

    def transaction_skipped(self, tx: Transaction) -> None:
        self._log.info("Transaction %s already processed.", tx.id)

    def balance_read(self, tx: Transaction, balance: Decimal, derived: Decimal) -> None:
        self._log.debug(
            "Transaction %s: available balance %s, actual cash %s", tx.id, balance, derived
        )

    def transaction_notified(self, tx: Transaction) -> None:
        self._log.info(
            "Notified deposit %s (description=%r, amount=%s)", tx.id, tx.description, tx.amount
        )

    def transaction_failed(self, tx: Transaction, stage: str, error: BaseException) -> None:
        self._log.error("Transaction %s failed during %s: %s", tx.id, stage, error)

    def batch_finished(self, report: DispatchReport) -> None:
        if report.seen:
            self._log.info("Deposits check finished: %s", report.describe())


__all__ = ["DispatchObserver", "LoggingObserver", "NullObserver"]
