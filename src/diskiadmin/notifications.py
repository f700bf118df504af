"""Broadcast push notifications through OneSignal.

One request per broadcast to ``POST /notifications``, addressed to the
``All`` segment. Broadcasts are not retried: a timeout can still mean the
push went out, and a second attempt would notify every user twice.
"""

import logging
from typing import Any

import httpx

from diskiadmin.config import AdminConfig
from diskiadmin.exceptions import ConfigError, NotificationError, ValidationFailed

logger = logging.getLogger(__name__)


class PushNotifier:
    """OneSignal REST client for app-wide broadcasts.

    Usage::

        async with PushNotifier(config) as notifier:
            notification_id = await notifier.broadcast("Kick-off!", "Chiefs vs Pirates is live")
    """

    def __init__(
        self,
        config: AdminConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if config is None:
            config = AdminConfig()
        if not config.onesignal_app_id or not config.onesignal_rest_api_key:
            raise ConfigError(
                "OneSignal is not configured (set DISKIADMIN_ONESIGNAL_APP_ID "
                "and DISKIADMIN_ONESIGNAL_REST_API_KEY)"
            )
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.onesignal_base_url,
            headers={
                "Authorization": f"Basic {config.onesignal_rest_api_key}",
                "accept": "application/json",
            },
            timeout=config.http_timeout,
            transport=transport,
        )

    async def broadcast(self, title: str, body: str) -> str | None:
        """Send ``title``/``body`` to all subscribed devices.

        Returns:
            The provider's notification id.

        Raises:
            ValidationFailed: Title or body is empty.
            NotificationError: Transport failure, non-success status or an
                ``errors`` field in the response.
        """
        title = (title or "").strip()
        body = (body or "").strip()
        if not title or not body:
            raise ValidationFailed("Notification title and message are both required")

        payload = {
            "app_id": self._config.onesignal_app_id,
            "included_segments": ["All"],
            "headings": {"en": title},
            "contents": {"en": body},
        }
        url = f"{self._config.onesignal_base_url}/notifications"

        try:
            response = await self._client.post("/notifications", json=payload)
        except httpx.HTTPError as exc:
            raise NotificationError(f"Could not reach OneSignal: {exc}", url=url) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        errors = data.get("errors") if isinstance(data, dict) else None
        if not response.is_success or errors:
            raise NotificationError(
                f"OneSignal rejected the notification: {errors or response.text[:200]}",
                url=url,
                status_code=response.status_code,
            )

        notification_id = data.get("id")
        logger.info("Broadcast sent (id=%s): %s", notification_id, title)
        return notification_id

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PushNotifier":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
