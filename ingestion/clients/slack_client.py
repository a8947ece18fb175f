"""Best-effort Slack notifications for pipeline runs."""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackNotifier:
    """Posts a message to one channel. Never raises.

    Without a token or channel every call is a silent no-op.
    """

    DEFAULT_TIMEOUT_SECS = 10

    def __init__(
        self,
        token: Optional[str],
        channel: Optional[str],
        timeout: int = DEFAULT_TIMEOUT_SECS,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.channel = channel
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.channel)

    def notify(self, message: str) -> bool:
        if not self.enabled:
            logger.info("[SLACK] Credentials not configured, skipping notification")
            return False

        try:
            response = self.session.post(
                SLACK_POST_MESSAGE_URL,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.token}",
                },
                json={"channel": self.channel, "text": message},
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error("[SLACK] Failed to send notification: %s", e)
            return False

        if not result.get("ok"):
            logger.error("[SLACK] Notification rejected: %s", result.get("error"))
            return False
        return True
