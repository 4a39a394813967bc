from __future__ import annotations  # Transactional email delivery

import logging
import os
from typing import Any, Dict, Mapping, Optional, Protocol

import httpx

from observability import log_event


logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):  # Email provider rejected or was unreachable
    pass


class Notifier(Protocol):  # Templated transactional email sender
    def send(self, recipient: str, subject: str, template: str, fields: Mapping[str, Any]) -> None: ...


class HttpEmailNotifier:  # Posts templated messages to a JSON email API
    def __init__(
        self,
        api_url: str,
        *,
        sender: str,
        api_key_env: Optional[str] = None,
        timeout_s: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_url = api_url
        self._sender = sender
        self._api_key_env = api_key_env
        self._timeout_s = timeout_s
        self._client = client

    def send(self, recipient: str, subject: str, template: str, fields: Mapping[str, Any]) -> None:
        payload: Dict[str, Any] = {
            "from": self._sender,
            "to": [recipient],
            "subject": subject,
            "template": template,
            "variables": dict(fields),
        }
        headers = {"Content-Type": "application/json"}
        if self._api_key_env:
            api_key = os.getenv(self._api_key_env)
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
        try:
            if self._client is not None:
                response = self._client.post(self._api_url, json=payload, headers=headers, timeout=self._timeout_s)
            else:
                with httpx.Client(timeout=self._timeout_s) as client:
                    response = client.post(self._api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise NotificationError("Email provider unreachable") from exc
        if response.status_code >= 400:
            raise NotificationError(f"Email provider returned status {response.status_code}")
        logger.info("Email sent template=%s", template)


class LogNotifier:  # Used when no email provider is configured
    def send(self, recipient: str, subject: str, template: str, fields: Mapping[str, Any]) -> None:
        logger.info("Email delivery disabled; skipped template=%s subject=%s", template, subject)


def notify_best_effort(
    notifier: Notifier,
    recipient: Optional[str],
    *,
    subject: str,
    template: str,
    fields: Mapping[str, Any],
    reference: str = "-",
) -> bool:
    """Send a notification without letting delivery failures escape.

    Returns ``True`` when the notifier accepted the message.
    """

    if not recipient:
        logger.info("No recipient for template=%s; notification skipped", template)
        return False
    try:
        notifier.send(recipient, subject, template, fields)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Notification failed template=%s: %s", template, exc)
        log_event("notification_failed", reference, level=logging.WARNING, reason=exc.__class__.__name__)
        return False
    return True


__all__ = ["HttpEmailNotifier", "LogNotifier", "NotificationError", "Notifier", "notify_best_effort"]
