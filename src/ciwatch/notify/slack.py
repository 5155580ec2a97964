"""
Slack incoming-webhook notifications.
"""

import logging
import time
from typing import Any, Dict

import requests

from ..validation import NotificationError

logger = logging.getLogger(__name__)

STATUS_COLORS = {"success": "good", "failure": "danger", "warning": "warning"}
STATUS_EMOJI = {"success": "✅", "failure": "❌", "warning": "⚠️"}
DEFAULT_COLOR = "#0066ff"
DEFAULT_EMOJI = "ℹ️"
DEFAULT_FOOTER = "Sent by GitHub Actions"


class SlackNotifier:
    """Posts build status messages to a Slack webhook."""

    def __init__(self, webhook_url: str, channel: str = "", footer: str = DEFAULT_FOOTER, timeout: float = 10.0):
        if not webhook_url:
            raise ValueError("Slack webhook URL is required")
        self.webhook_url = webhook_url
        self.channel = channel
        self.footer = footer
        self.timeout = timeout

    def build_payload(self, status: str, title: str, message: str) -> Dict[str, Any]:
        color = STATUS_COLORS.get(status, DEFAULT_COLOR)
        emoji = STATUS_EMOJI.get(status, DEFAULT_EMOJI)
        payload: Dict[str, Any] = {
            "attachments": [
                {
                    "color": color,
                    "title": f"{emoji} {title}",
                    "text": message,
                    "footer": self.footer,
                    "ts": int(time.time()),
                }
            ]
        }
        if self.channel:
            payload["channel"] = self.channel
        return payload

    def send(self, status: str, title: str, message: str) -> bool:
        """
        Send a message.

        Raises:
            NotificationError: If Slack could not be reached or rejected it
        """
        payload = self.build_payload(status, title, message)
        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Slack request failed: {e}") from e
        if not response.ok:
            raise NotificationError(f"Slack rejected the message: {response.status_code} {response.text}")
        logger.info(f"Slack notification sent: {title}")
        return True
