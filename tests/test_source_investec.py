from __future__ import annotations

import base64
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

import deposit_notifier.source as source_mod
from deposit_notifier.config import build_settings
from deposit_notifier.errors import (
    AuthError,
    ConfigurationError,
    NoAccountError,
    NotFoundError,
    UpstreamError,
)
from deposit_notifier.http_client import HttpResponse, TransportError
from deposit_notifier.models import Account
from deposit_notifier.source import DateRange, InvestecClient, first_account, open_account

BASE = "https://api.test"


# ---- Helpers -----------------------------------------------------------------


class _FakeTransport:
    """Replaces ``request_json`` with canned responses keyed by URL suffix."""

    def __init__(self, routes: dict[str, HttpResponse | Exception]) -> None:
        self.routes = routes
        self.calls: list[dict[str, Any]] = []

    def __call__(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        for suffix, resp in self.routes.items():
            if url.endswith(suffix):
                if isinstance(resp, Exception):
                    raise resp
                return resp
        raise AssertionError(f"unexpected request: {method} {url}")


def _ok(body: Any) -> HttpResponse:
    return HttpResponse(status=200, body=body, text="")


def _client() -> InvestecClient:
    return InvestecClient(
        base_url=BASE + "/",
        client_id="cid",
        client_secret="secret",
        api_key="key",
        transaction_type="Deposits",
        timeout=7,
    )


def _install(monkeypatch: pytest.MonkeyPatch, routes: dict[str, HttpResponse | Exception]):
    fake = _FakeTransport(routes)
    monkeypatch.setattr(source_mod, "request_json", fake)
    return fake


# ---- Endpoints ---------------------------------------------------------------


def test_authenticate_uses_basic_auth_and_client_credentials(monkeypatch: pytest.MonkeyPatch):
    fake = _install(monkeypatch, {"/identity/v2/oauth2/token": _ok({"access_token": "tok"})})

    assert _client().authenticate() == "tok"

    call = fake.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == f"{BASE}/identity/v2/oauth2/token"
    assert call["form"] == {"grant_type": "client_credentials"}
    assert call["headers"]["x-api-key"] == "key"
    expected = base64.b64encode(b"cid:secret").decode()
    assert call["headers"]["Authorization"] == f"Basic {expected}"
    assert call["timeout"] == 7


def test_authenticate_without_token_is_an_auth_error(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, {"/identity/v2/oauth2/token": _ok({})})
    with pytest.raises(AuthError):
        _client().authenticate()


def test_list_accounts_maps_payload(monkeypatch: pytest.MonkeyPatch):
    body = {
        "data": {
            "accounts": [
                {
                    "accountId": "1001",
                    "accountNumber": "100200300",
                    "accountName": "Mr J Doe",
                    "referenceName": "Main",
                    "productName": "Private Bank Account",
                    "kycCompliant": True,
                },
                {"accountId": "1002"},
            ]
        }
    }
    fake = _install(monkeypatch, {"/za/pb/v1/accounts": _ok(body)})

    accounts = _client().list_accounts("tok")

    assert [a.account_id for a in accounts] == ["1001", "1002"]
    assert accounts[0].product_name == "Private Bank Account"
    assert fake.calls[0]["headers"]["Authorization"] == "Bearer tok"


def test_list_deposits_queries_today_with_type_filter(monkeypatch: pytest.MonkeyPatch):
    body = {
        "data": {
            "transactions": [
                {
                    "uuid": "u-1",
                    "description": "SALARY",
                    "amount": 500,
                    "type": "CREDIT",
                    "transactionDate": "2026-10-17",
                },
                {"uuid": "u-2", "description": None, "amount": "12.5"},
            ]
        }
    }
    fake = _install(monkeypatch, {"/za/pb/v1/accounts/1001/transactions": _ok(body)})

    deposits = _client().list_deposits("tok", "1001", DateRange.today(date(2026, 10, 7)))

    assert [d.id for d in deposits] == ["u-1", "u-2"]
    assert deposits[0].amount == Decimal("500")
    assert deposits[0].transaction_date == "2026-10-17"
    assert deposits[1].description == ""
    assert fake.calls[0]["params"] == {
        "fromDate": "2026/10/07",
        "toDate": "2026/10/07",
        "transactionType": "Deposits",
    }


def test_list_deposits_rejects_malformed_items(monkeypatch: pytest.MonkeyPatch):
    body = {"data": {"transactions": [{"uuid": "u-1", "amount": "not-money"}]}}
    _install(monkeypatch, {"/transactions": _ok(body)})
    with pytest.raises(UpstreamError, match="malformed transactions"):
        _client().list_deposits("tok", "1001")


def test_list_deposits_rejects_negative_amounts(monkeypatch: pytest.MonkeyPatch):
    body = {"data": {"transactions": [{"uuid": "u-1", "amount": "-25.00"}]}}
    _install(monkeypatch, {"/transactions": _ok(body)})
    with pytest.raises(UpstreamError, match="non-negative"):
        _client().list_deposits("tok", "1001")


def test_empty_transaction_list(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, {"/transactions": _ok({"data": {"transactions": []}})})
    assert _client().list_deposits("tok", "1001") == []


def test_get_balance_reads_available_balance(monkeypatch: pytest.MonkeyPatch):
    body = {"data": {"accountId": "1001", "currentBalance": 1.0, "availableBalance": 12000.555}}
    _install(monkeypatch, {"/za/pb/v1/accounts/1001/balance": _ok(body)})
    assert _client().get_balance("tok", "1001") == Decimal("12000.555")


def test_get_balance_without_available_balance(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, {"/balance": _ok({"data": {"currentBalance": 1}})})
    with pytest.raises(UpstreamError, match="availableBalance"):
        _client().get_balance("tok", "1001")


# ---- Error mapping -----------------------------------------------------------


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, AuthError),
        (403, AuthError),
        (404, NotFoundError),
        (429, UpstreamError),
        (500, UpstreamError),
    ],
)
def test_non_2xx_statuses_map_to_error_taxonomy(monkeypatch: pytest.MonkeyPatch, status, error):
    _install(monkeypatch, {"/balance": HttpResponse(status=status, body=None, text="nope")})
    with pytest.raises(error) as exc_info:
        _client().get_balance("tok", "1001")
    assert exc_info.value.status == status
    assert exc_info.value.body == "nope"


def test_transport_failure_is_upstream_error(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, {"/za/pb/v1/accounts": TransportError("connection reset")})
    with pytest.raises(UpstreamError, match="connection reset"):
        _client().list_accounts("tok")


def test_body_without_data_is_upstream_error(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, {"/za/pb/v1/accounts": _ok({"error": "x"})})
    with pytest.raises(UpstreamError, match="malformed accounts"):
        _client().list_accounts("tok")


# ---- Account selection -------------------------------------------------------


def test_first_account_policy():
    accounts = [Account(account_id="a"), Account(account_id="b")]
    assert first_account(accounts).account_id == "a"
    with pytest.raises(NoAccountError):
        first_account([])


def test_open_account_binds_selected_account(monkeypatch: pytest.MonkeyPatch):
    routes = {
        "/identity/v2/oauth2/token": _ok({"access_token": "tok"}),
        "/za/pb/v1/accounts": _ok({"data": {"accounts": [{"accountId": "a"}, {"accountId": "b"}]}}),
        "/za/pb/v1/accounts/b/balance": _ok({"data": {"availableBalance": "10"}}),
    }
    _install(monkeypatch, routes)

    bound = open_account(_client(), select_account=lambda accts: accts[-1])

    assert bound.token == "tok"
    assert bound.account.account_id == "b"
    assert bound.fetch_balance() == Decimal("10")


def test_from_settings_requires_credentials():
    with pytest.raises(ConfigurationError, match="client_secret"):
        InvestecClient.from_settings(build_settings(client_id="x", api_key="k"))
    client = InvestecClient.from_settings(
        build_settings(client_id="x", client_secret="s", api_key="k", transaction_type="Fees")
    )
    assert client.base_url == "https://openapi.investec.com"
    assert client.transaction_type == "Fees"
