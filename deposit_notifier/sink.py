"""Notification sink: Pushover push messages.

``PushoverNotifier.notify`` sends one message and returns on a 2xx response.
Anything else raises :class:`DeliveryError`; there is no retry.
"""

from __future__ import annotations

from typing import Any, Protocol

from .config import NotificationPriority, NotifierSettings
from .errors import DeliveryError
from .http_client import TransportError, request_json
from .logging_setup import get_logger
from .models import NotificationMessage

PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"

# Emergency-priority messages repeat until acknowledged; Pushover requires
# both values for priority 2.
EMERGENCY_RETRY_SECONDS = 60
EMERGENCY_EXPIRE_SECONDS = 3600

_logger = get_logger("deposit_notifier.sink")


class NotificationSink(Protocol):
    def notify(self, message: NotificationMessage) -> None: ...


class PushoverNotifier:
    def __init__(
        self,
        *,
        app_token: str,
        user_key: str,
        device: str,
        priority: NotificationPriority = NotificationPriority.HIGH,
        api_url: str = PUSHOVER_API_URL,
        timeout: float = 30.0,
    ) -> None:
        self._app_token = app_token
        self._user_key = user_key
        self.device = device
        self.priority = NotificationPriority(priority)
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: NotifierSettings) -> PushoverNotifier:
        creds = settings.require("pushover_app_token", "pushover_user_key")
        return cls(
            app_token=creds["pushover_app_token"],
            user_key=creds["pushover_user_key"],
            device=settings.device_name,
            priority=settings.notification_priority,
            timeout=settings.http_timeout,
        )

    def build_payload(self, message: NotificationMessage) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "token": self._app_token,
            "user": self._user_key,
            "device": self.device,
            "message": message.render(),
            "title": message.title,
            "priority": int(self.priority),
        }
        if self.priority is NotificationPriority.EMERGENCY:
            payload["retry"] = EMERGENCY_RETRY_SECONDS
            payload["expire"] = EMERGENCY_EXPIRE_SECONDS
        return payload

    def notify(self, message: NotificationMessage) -> None:
        try:
            resp = request_json(
                "POST", self.api_url, json_body=self.build_payload(message), timeout=self.timeout
            )
        except TransportError as e:
            raise DeliveryError(f"failed to send Pushover notification: {e}") from e

        if not resp.ok:
            raise DeliveryError(
                f"failed to send Pushover notification: HTTP {resp.status}",
                status=resp.status,
                body=resp.text,
            )
        request_id = resp.body.get("request") if isinstance(resp.body, dict) else None
        _logger.debug("Pushover notification sent (request=%s)", request_id)


__all__ = [
    "EMERGENCY_EXPIRE_SECONDS",
    "EMERGENCY_RETRY_SECONDS",
    "NotificationSink",
    "PUSHOVER_API_URL",
    "PushoverNotifier",
]
