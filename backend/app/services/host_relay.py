"""
Host Relay

Forwards namespaced messages seen by the host window to the host site's
webhook (e.g. a WordPress REST endpoint). Best-effort only: the host may not
be listening, and a failed POST never reaches the caller.
"""

import httpx
from datetime import datetime
from typing import Any, Dict, Optional
from app.core.config import get_settings


class HostRelay:
    """Publishes frame messages to the host webhook via HTTP POST"""

    def __init__(self, webhook_url: str = "", timeout: float = 2.0, transport: Optional[httpx.BaseTransport] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def publish(self, session_id: str, message: Dict[str, Any]) -> bool:
        """
        POST one message to the webhook.

        Returns True when the host answered with a 2xx status.
        """
        if not self.enabled:
            return False

        envelope = {
            "session_id": session_id,
            "relayed_at": datetime.now().isoformat(),
            "message": message
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.webhook_url, json=envelope)
                response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            print(f"[HOST_RELAY] Could not relay {message.get('type')}: {e}")
            return False


def get_host_relay() -> HostRelay:
    settings = get_settings()
    return HostRelay(settings.host_webhook_url, settings.host_webhook_timeout)
