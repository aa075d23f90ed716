"""Public interface for the ``deposit_notifier`` package.

Symbol re-exports only; see :mod:`deposit_notifier.pipeline` for the run
entry points and :mod:`deposit_notifier.dispatcher` for the dedup-and-notify
core.
"""

from .amounts import derive_cash_amount
from .config import NotificationPriority, NotifierSettings, load_settings
from .dispatcher import NotificationDispatcher
from .errors import (
    AuthError,
    ConfigurationError,
    DeliveryError,
    DepositNotifierError,
    NoAccountError,
    NotFoundError,
    SourceError,
    StorageUnavailable,
    UpstreamError,
)
from .ledger import AtomicLedger, DedupLedger, InMemoryLedger, SqlLedger
from .models import (
    Account,
    DispatchReport,
    NotificationMessage,
    ProcessedRecord,
    RunResult,
    Transaction,
)
from .pipeline import invoke, run_deposit_check
from .sink import PushoverNotifier
from .source import DateRange, InvestecClient, first_account

__all__ = [
    # Entry points
    "invoke",
    "run_deposit_check",
    "NotificationDispatcher",
    "derive_cash_amount",
    # Settings
    "NotifierSettings",
    "NotificationPriority",
    "load_settings",
    # Collaborators
    "InvestecClient",
    "PushoverNotifier",
    "SqlLedger",
    "InMemoryLedger",
    "DedupLedger",
    "AtomicLedger",
    "DateRange",
    "first_account",
    # Models
    "Account",
    "Transaction",
    "ProcessedRecord",
    "NotificationMessage",
    "DispatchReport",
    "RunResult",
    # Errors
    "DepositNotifierError",
    "ConfigurationError",
    "SourceError",
    "AuthError",
    "NotFoundError",
    "UpstreamError",
    "NoAccountError",
    "DeliveryError",
    "StorageUnavailable",
]
