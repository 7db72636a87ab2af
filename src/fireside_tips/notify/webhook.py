"""Webhook tip notifier - POSTs tip events to the room's broadcast endpoint."""

from __future__ import annotations

import logging

import httpx

from fireside_tips.models.config import NotifyConfig
from fireside_tips.models.records import TipEvent

log = logging.getLogger(__name__)


class WebhookTipNotifier:
    """Delivers TIP_RECEIVED events. Delivery failures are logged and dropped."""

    def __init__(self, config: NotifyConfig) -> None:
        self._cfg = config

    async def broadcast(self, event: TipEvent) -> None:
        if not self._cfg.url:
            log.debug("No notify URL configured; skipping broadcast")
            return

        headers = {}
        if self._cfg.auth_token:
            headers["Authorization"] = f"Bearer {self._cfg.auth_token}"

        try:
            async with httpx.AsyncClient(timeout=self._cfg.timeout) as client:
                resp = await client.post(self._cfg.url, json=event.to_dict(), headers=headers)
                resp.raise_for_status()
            log.info("Broadcast tip to room %s", event.room_id)
        except httpx.HTTPError as exc:
            log.warning("Tip broadcast to room %s failed: %s", event.room_id, exc)
