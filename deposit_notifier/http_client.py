"""Minimal JSON-over-HTTP helper shared by the bank and push clients.

Non-streaming requests via ``urllib.request``. Returns the HTTP status and the
parsed JSON body; callers map failures onto their own error types. No retries
and no logging here.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    body: Any
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class TransportError(Exception):
    """The request never produced an HTTP response (DNS, TLS, timeout...)."""


def _decode(raw: bytes) -> tuple[Any, str]:
    text = raw.decode("utf-8", errors="replace")
    if not text.strip():
        return None, text
    try:
        return json.loads(text), text
    except json.JSONDecodeError:
        return None, text


def request_json(
    method: str,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, Any] | None = None,
    form: Mapping[str, Any] | None = None,
    json_body: Mapping[str, Any] | None = None,
    timeout: float = 30.0,
) -> HttpResponse:
    """Execute one request and return status plus parsed body.

    ``form`` is sent as ``application/x-www-form-urlencoded``; ``json_body`` as
    ``application/json``. Non-2xx responses are returned, not raised.
    """

    if params:
        url = f"{url}?{urllib.parse.urlencode(params, safe='/')}"

    data: bytes | None = None
    req_headers = {"Accept": "application/json", **(headers or {})}
    if form is not None:
        data = urllib.parse.urlencode(form).encode("utf-8")
        req_headers["Content-Type"] = "application/x-www-form-urlencoded"
    elif json_body is not None:
        data = json.dumps(json_body).encode("utf-8")
        req_headers["Content-Type"] = "application/json"

    req = urllib.request.Request(url, data=data, method=method.upper())
    for key, value in req_headers.items():
        req.add_header(key, value)

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = resp.status
            raw = resp.read()
    except urllib.error.HTTPError as e:
        # Read error body if available to surface a helpful message
        try:
            raw = e.read() or b""
        except OSError:
            raw = b""
        body, text = _decode(raw)
        return HttpResponse(status=e.code, body=body, text=text)
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise TransportError(f"{method.upper()} {url} failed: {e}") from e

    body, text = _decode(raw)
    return HttpResponse(status=status, body=body, text=text)


__all__ = ["HttpResponse", "TransportError", "request_json"]
