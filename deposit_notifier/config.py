"""Runtime settings for ``deposit_notifier``.

Settings are an immutable :class:`NotifierSettings` built once at process
start by :func:`load_settings` and passed explicitly to the components that
need them. Invalid values abort startup with :class:`ConfigurationError`.

Environment variables (``.env`` is loaded by the entry points, never here):

- ``INVESTEC_API_BASE``, ``CLIENT_ID``, ``CLIENT_SECRET``, ``API_KEY``
- ``PUSHOVER_USER_KEY``, ``PUSHOVER_APP_TOKEN``
- ``CREDIT_FACILITY``, ``DEVICE_NAME``, ``NOTIFICATION_PRIORITY``,
  ``TRANSACTION_TYPE``
- ``DATABASE_URL``, ``HTTP_TIMEOUT_SECONDS``, ``ATOMIC_CLAIMS``
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from decimal import Decimal
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigurationError

DEFAULT_INVESTEC_API_BASE = "https://openapi.investec.com"


class NotificationPriority(IntEnum):
    """Pushover priority levels."""

    LOWEST = -2
    LOW = -1
    NORMAL = 0
    HIGH = 1
    EMERGENCY = 2


class NotifierSettings(BaseModel):
    """Validated, immutable process configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    # Core values consumed by the dispatcher and sink
    credit_facility: Decimal = Decimal("15000")
    device_name: str = "iphone"
    notification_priority: NotificationPriority = NotificationPriority.HIGH
    transaction_type: str = "Deposits"

    # Bank API
    investec_api_base: str = DEFAULT_INVESTEC_API_BASE
    client_id: str | None = None
    client_secret: str | None = None
    api_key: str | None = None

    # Push service
    pushover_user_key: str | None = None
    pushover_app_token: str | None = None

    # Ledger and runtime
    database_url: str | None = None
    http_timeout: float = 30.0
    atomic_claims: bool = False

    @field_validator("credit_facility")
    @classmethod
    def _credit_facility_non_negative(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v < 0:
            raise ValueError("credit facility must be a non-negative amount")
        return v

    @field_validator("notification_priority", mode="before")
    @classmethod
    def _priority_from_text(cls, v: Any) -> Any:
        # Env values arrive as strings ("1", "-2"); the enum check runs after.
        if isinstance(v, str):
            try:
                return int(v.strip())
            except ValueError:
                raise ValueError(
                    f"priority must be one of {[p.value for p in NotificationPriority]}"
                ) from None
        return v

    @field_validator("device_name", "transaction_type", "investec_api_base")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("investec_api_base")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("http_timeout")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    def require(self, *names: str) -> dict[str, str]:
        """Return the named credential fields, failing if any is unset."""

        missing = [n for n in names if not getattr(self, n)]
        if missing:
            raise ConfigurationError(
                "missing required settings: " + ", ".join(sorted(missing))
            )
        return {n: getattr(self, n) for n in names}


# Environment variable → settings field
_ENV_FIELDS: dict[str, str] = {
    "CREDIT_FACILITY": "credit_facility",
    "DEVICE_NAME": "device_name",
    "NOTIFICATION_PRIORITY": "notification_priority",
    "TRANSACTION_TYPE": "transaction_type",
    "INVESTEC_API_BASE": "investec_api_base",
    "CLIENT_ID": "client_id",
    "CLIENT_SECRET": "client_secret",
    "API_KEY": "api_key",
    "PUSHOVER_USER_KEY": "pushover_user_key",
    "PUSHOVER_APP_TOKEN": "pushover_app_token",
    "DATABASE_URL": "database_url",
    "HTTP_TIMEOUT_SECONDS": "http_timeout",
    "ATOMIC_CLAIMS": "atomic_claims",
}


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "settings"
        parts.append(f"{loc}: {err.get('msg')}")
    return "invalid settings: " + "; ".join(parts)


def build_settings(**values: Any) -> NotifierSettings:
    """Construct settings, translating validation failures."""

    try:
        return NotifierSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e


def load_settings(
    env: Mapping[str, str] | None = None, **overrides: Any
) -> NotifierSettings:
    """Build settings from environment variables plus keyword overrides.

    Empty environment values are treated as unset so defaults apply.
    """

    source = os.environ if env is None else env
    values: dict[str, Any] = {}
    for var, field_name in _ENV_FIELDS.items():
        raw = source.get(var)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return build_settings(**values)


__all__ = [
    "DEFAULT_INVESTEC_API_BASE",
    "NotificationPriority",
    "NotifierSettings",
    "build_settings",
    "load_settings",
]
