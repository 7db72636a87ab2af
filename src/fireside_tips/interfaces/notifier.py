"""TipNotifier protocol - announces completed tips to the room."""

from __future__ import annotations

from typing import Protocol

from fireside_tips.models.records import TipEvent


class TipNotifier(Protocol):
    """Fire-and-forget broadcast transport."""

    async def broadcast(self, event: TipEvent) -> None:
        """Send the event. Must not raise on delivery failure."""
        ...
