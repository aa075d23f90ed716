"""Transaction source: the Investec Private Bank API.

The dispatcher only needs two things from a source, the current deposits for
one account and its available balance, so it depends on :class:`AccountFeed`
rather than on the HTTP client. :class:`InvestecClient` implements the four
raw calls (token, accounts, deposits, balance) and maps HTTP failures to the
package error taxonomy:

- 401/403 → :class:`AuthError`
- 404 → :class:`NotFoundError`
- any other non-2xx, transport failure, or malformed body → :class:`UpstreamError`
"""

from __future__ import annotations

import base64
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .amounts import to_decimal
from .config import NotifierSettings
from .errors import AuthError, NoAccountError, NotFoundError, UpstreamError
from .http_client import HttpResponse, TransportError, request_json
from .logging_setup import get_logger
from .models import Account, Transaction

_logger = get_logger("deposit_notifier.source")

# The bank API expects slash-separated dates.
DATE_FORMAT = "%Y/%m/%d"


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class TransactionSource(Protocol):
    def authenticate(self) -> str: ...

    def list_accounts(self, token: str) -> list[Account]: ...

    def list_deposits(
        self, token: str, account_id: str, date_range: DateRange | None = None
    ) -> list[Transaction]: ...

    def get_balance(self, token: str, account_id: str) -> Decimal: ...


class AccountFeed(Protocol):
    """What the dispatcher reads: one account's balance, fresh on every call."""

    def fetch_balance(self) -> Decimal: ...


AccountSelector = Callable[[Sequence[Account]], Account]


@dataclass(frozen=True, slots=True)
class DateRange:
    start: date
    end: date

    @classmethod
    def today(cls, today: date | None = None) -> DateRange:
        d = today or date.today()
        return cls(start=d, end=d)


def first_account(accounts: Sequence[Account]) -> Account:
    """Default account-selection policy: the first account listed.

    The bank lists the main Private Bank account first. Raises
    :class:`NoAccountError` when the list is empty.
    """

    if not accounts:
        raise NoAccountError("no accounts returned; nothing to check")
    return accounts[0]


# ---------------------------------------------------------------------------
# Payload views
# ---------------------------------------------------------------------------


class _AccountItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    accountId: str
    accountNumber: str | None = None
    accountName: str | None = None
    referenceName: str | None = None
    productName: str | None = None


class _TransactionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uuid: str
    description: str = ""
    amount: Decimal
    transactionDate: str | None = None
    postingDate: str | None = None
    type: str | None = None

    @field_validator("uuid")
    @classmethod
    def _uuid_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("transaction uuid must be non-empty")
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_decimal(cls, v: Any) -> Decimal:
        amount = to_decimal(v)
        if amount < 0:
            raise ValueError(f"deposit amount must be non-negative, got {amount}")
        return amount

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


def _data(resp: HttpResponse, what: str) -> dict[str, Any]:
    body = resp.body
    if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
        raise UpstreamError(f"malformed {what} response", status=resp.status, body=resp.text)
    return body["data"]


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


class InvestecClient:
    """Blocking client for the four endpoints the notifier uses."""

    def __init__(
        self,
        *,
        base_url: str,
        client_id: str,
        client_secret: str,
        api_key: str,
        transaction_type: str = "Deposits",
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._api_key = api_key
        self.transaction_type = transaction_type
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: NotifierSettings) -> InvestecClient:
        creds = settings.require("client_id", "client_secret", "api_key")
        return cls(
            base_url=settings.investec_api_base,
            transaction_type=settings.transaction_type,
            timeout=settings.http_timeout,
            **creds,
        )

    # -- plumbing -------------------------------------------------------------

    def _request(self, method: str, path: str, what: str, **kwargs: Any) -> HttpResponse:
        try:
            resp = request_json(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except TransportError as e:
            raise UpstreamError(f"failed to retrieve {what}: {e}") from e
        if resp.ok:
            return resp

        detail = f"failed to retrieve {what}: HTTP {resp.status}"
        if resp.status in (401, 403):
            raise AuthError(detail, status=resp.status, body=resp.text)
        if resp.status == 404:
            raise NotFoundError(detail, status=resp.status, body=resp.text)
        raise UpstreamError(detail, status=resp.status, body=resp.text)

    def _bearer(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "x-api-key": self._api_key}

    # -- endpoints ------------------------------------------------------------

    def authenticate(self) -> str:
        """Exchange client credentials for an OAuth2 access token."""

        basic = base64.b64encode(f"{self._client_id}:{self._client_secret}".encode()).decode()
        resp = self._request(
            "POST",
            "/identity/v2/oauth2/token",
            "auth token",
            headers={"Authorization": f"Basic {basic}", "x-api-key": self._api_key},
            form={"grant_type": "client_credentials"},
        )
        token = resp.body.get("access_token") if isinstance(resp.body, dict) else None
        if not isinstance(token, str) or not token:
            # A 2xx without a token means the credentials were not honoured.
            raise AuthError("token response did not include an access_token", status=resp.status)
        return token

    def list_accounts(self, token: str) -> list[Account]:
        resp = self._request("GET", "/za/pb/v1/accounts", "accounts", headers=self._bearer(token))
        raw = _data(resp, "accounts").get("accounts") or []
        try:
            items = [_AccountItem.model_validate(a) for a in raw]
        except ValidationError as e:
            raise UpstreamError(f"malformed accounts response: {e}", body=resp.text) from e
        _logger.debug("Retrieved %d account(s)", len(items))
        return [
            Account(
                account_id=i.accountId,
                account_number=i.accountNumber,
                account_name=i.accountName,
                reference_name=i.referenceName,
                product_name=i.productName,
            )
            for i in items
        ]

    def list_deposits(
        self, token: str, account_id: str, date_range: DateRange | None = None
    ) -> list[Transaction]:
        """Return the account's transactions of the configured type.

        Defaults to today's transactions only.
        """

        rng = date_range or DateRange.today()
        resp = self._request(
            "GET",
            f"/za/pb/v1/accounts/{account_id}/transactions",
            "account deposits",
            headers=self._bearer(token),
            params={
                "fromDate": rng.start.strftime(DATE_FORMAT),
                "toDate": rng.end.strftime(DATE_FORMAT),
                "transactionType": self.transaction_type,
            },
        )
        raw = _data(resp, "transactions").get("transactions") or []
        try:
            items = [_TransactionItem.model_validate(t) for t in raw]
        except (ValidationError, ValueError) as e:
            raise UpstreamError(f"malformed transactions response: {e}", body=resp.text) from e
        return [
            Transaction(
                id=i.uuid,
                description=i.description,
                amount=i.amount,
                transaction_date=i.transactionDate,
                posting_date=i.postingDate,
                type=i.type,
            )
            for i in items
        ]

    def get_balance(self, token: str, account_id: str) -> Decimal:
        resp = self._request(
            "GET",
            f"/za/pb/v1/accounts/{account_id}/balance",
            "account balance",
            headers=self._bearer(token),
        )
        raw = _data(resp, "balance").get("availableBalance")
        if raw is None:
            raise UpstreamError("balance response did not include availableBalance", body=resp.text)
        try:
            balance = to_decimal(raw)
        except ValueError as e:
            raise UpstreamError(f"malformed balance response: {e}", body=resp.text) from e
        _logger.debug("Available balance for %s: %s", account_id, balance)
        return balance


# ---------------------------------------------------------------------------
# Bound feed for one run
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BoundAccount:
    """A source bound to one token and one account for the length of a run."""

    source: TransactionSource
    token: str
    account: Account

    def fetch_deposits(self, date_range: DateRange | None = None) -> list[Transaction]:
        return self.source.list_deposits(self.token, self.account.account_id, date_range)

    def fetch_balance(self) -> Decimal:
        return self.source.get_balance(self.token, self.account.account_id)


def open_account(
    source: TransactionSource,
    *,
    select_account: AccountSelector = first_account,
) -> BoundAccount:
    """Authenticate, list accounts, and bind the selected one."""

    token = source.authenticate()
    _logger.info("Authentication successful.")
    accounts = source.list_accounts(token)
    account = select_account(accounts)
    return BoundAccount(source=source, token=token, account=account)


__all__ = [
    "AccountFeed",
    "AccountSelector",
    "BoundAccount",
    "DATE_FORMAT",
    "DateRange",
    "InvestecClient",
    "TransactionSource",
    "first_account",
    "open_account",
]
