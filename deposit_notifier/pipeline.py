"""One deposits check, end to end, plus the invocation boundary.

``run_deposit_check`` composes source → account selection → deposits →
dispatcher and lets every error propagate. ``invoke`` is the externally
exposed trigger (used by the CLI and the HTTP app): it builds the default
collaborators from settings, runs one check, and reduces the outcome to a
coarse :class:`RunResult`. Nothing here retries; a failed run is retried by
whatever scheduled it.
"""

from __future__ import annotations

from .config import NotifierSettings, load_settings
from .dispatcher import Clock, NotificationDispatcher, utc_now
from .ledger import DedupLedger, SqlLedger
from .logging_setup import get_logger
from .models import DispatchReport, RunResult
from .observability import DispatchObserver
from .sink import NotificationSink, PushoverNotifier
from .source import (
    AccountSelector,
    DateRange,
    InvestecClient,
    TransactionSource,
    first_account,
    open_account,
)

SUCCESS_SUMMARY = "Deposits check completed."
FAILURE_SUMMARY = "Error executing deposits check."

_logger = get_logger("deposit_notifier.pipeline")


def run_deposit_check(
    settings: NotifierSettings,
    *,
    source: TransactionSource,
    ledger: DedupLedger,
    sink: NotificationSink,
    select_account: AccountSelector = first_account,
    observer: DispatchObserver | None = None,
    clock: Clock = utc_now,
    date_range: DateRange | None = None,
) -> DispatchReport:
    """Fetch the selected account's deposits and dispatch notifications."""

    _logger.info("Authenticating...")
    account = open_account(source, select_account=select_account)
    _logger.info("Checking account %s", account.account.account_id)

    deposits = account.fetch_deposits(date_range)
    dispatcher = NotificationDispatcher(
        settings, ledger=ledger, sink=sink, observer=observer, clock=clock
    )
    return dispatcher.dispatch(deposits, account)


def build_ledger(settings: NotifierSettings) -> SqlLedger:
    url = settings.require("database_url")["database_url"]
    return SqlLedger.from_url(url)


def invoke(
    settings: NotifierSettings | None = None,
    *,
    source: TransactionSource | None = None,
    ledger: DedupLedger | None = None,
    sink: NotificationSink | None = None,
    select_account: AccountSelector = first_account,
    observer: DispatchObserver | None = None,
) -> RunResult:
    """Run one deposits check and report overall success or failure.

    Collaborators not supplied are built from ``settings`` (which default to
    :func:`load_settings`). Any failure, including configuration errors, is
    logged and reported as a failed :class:`RunResult`; per-transaction
    outcomes are only visible in the logs and the returned report.
    """

    try:
        settings = settings or load_settings()
        report = run_deposit_check(
            settings,
            source=source if source is not None else InvestecClient.from_settings(settings),
            ledger=ledger if ledger is not None else build_ledger(settings),
            sink=sink if sink is not None else PushoverNotifier.from_settings(settings),
            select_account=select_account,
            observer=observer,
        )
    except Exception:
        _logger.exception(FAILURE_SUMMARY)
        return RunResult(ok=False, summary=FAILURE_SUMMARY)

    return RunResult(ok=True, summary=SUCCESS_SUMMARY, report=report)


__all__ = [
    "FAILURE_SUMMARY",
    "SUCCESS_SUMMARY",
    "build_ledger",
    "invoke",
    "run_deposit_check",
]
