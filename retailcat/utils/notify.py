"""Run notifications."""

from __future__ import annotations

import logging

import httpx

from retailcat.config import Settings

logger = logging.getLogger(__name__)

SLACK_URL = "https://slack.com/api/chat.postMessage"


class Notifier:
    """Posts run messages to Slack when a token is configured, else logs them."""

    def __init__(self, settings: Settings, *, session: httpx.AsyncClient | None = None) -> None:
        self.token = settings.slack_token
        self.channel = settings.slack_channel
        self._session = session

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.channel)

    async def send(self, message: str) -> None:
        if not self.enabled:
            logger.info("Notification (log): %s", message)
            return
        try:
            await self._post_slack(message)
        except httpx.HTTPError as exc:
            logger.warning("Slack notification failed: %s", exc)

    async def _post_slack(self, message: str) -> None:
        headers = {"Authorization": f"Bearer {self.token}"}
        payload = {"channel": self.channel, "text": message}
        if self._session is not None:
            response = await self._session.post(SLACK_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=15.0) as client:
                response = await client.post(SLACK_URL, json=payload, headers=headers)
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            logger.warning("Slack rejected notification: %s", body.get("error"))
