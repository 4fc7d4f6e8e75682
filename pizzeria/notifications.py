from typing import Optional

import httpx

from . import config
from .logs import correlation_id_var, logger


class Notifier:
    """Best-effort customer e-mails through the notification service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = config.NOTIFICATION_SERVICE_URL if base_url is None else base_url
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def get_http_client(self):
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def notify(self, event_type: str, recipient: Optional[str], subject: str, message: str) -> bool:
        if not (self.enabled and recipient):
            return False
        cid = correlation_id_var.get()
        try:
            with self.get_http_client() as client:
                r = client.post(
                    f"{self.base_url}/v1/notifications/email",
                    json={
                        "event_type": event_type,
                        "recipient": recipient,
                        "subject": subject,
                        "message": message,
                        "correlation_id": cid,
                    },
                    headers={"X-Correlation-Id": cid},
                )
            r.raise_for_status()
            return True
        except Exception as e:
            logger.warning(f"Failed to send {event_type} notification: {e}")
            return False
