"""Error taxonomy for ``deposit_notifier``.

Library modules raise these; only the invocation boundary
(:func:`deposit_notifier.pipeline.invoke`) catches them and converts them into
a coarse failure result.
"""

from __future__ import annotations


class DepositNotifierError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(DepositNotifierError):
    """Settings are missing or invalid; raised once at startup."""


# ---------------------------------------------------------------------------
# Transaction source (bank API)
# ---------------------------------------------------------------------------


class SourceError(DepositNotifierError):
    """Any failure retrieving data from the bank API."""

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body


class AuthError(SourceError):
    """Credentials were rejected or the token is not valid."""


class NotFoundError(SourceError):
    """The requested account or resource does not exist upstream."""


class UpstreamError(SourceError):
    """Non-2xx response, transport failure, or malformed payload."""


class NoAccountError(SourceError):
    """The account listing was empty, so there is no account to check."""


# ---------------------------------------------------------------------------
# Notification sink and ledger
# ---------------------------------------------------------------------------


class DeliveryError(DepositNotifierError):
    """The push notification could not be delivered."""

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body


class StorageUnavailable(DepositNotifierError):
    """The dedup ledger's backing store could not be reached."""


__all__ = [
    "AuthError",
    "ConfigurationError",
    "DeliveryError",
    "DepositNotifierError",
    "NoAccountError",
    "NotFoundError",
    "SourceError",
    "StorageUnavailable",
    "UpstreamError",
]
