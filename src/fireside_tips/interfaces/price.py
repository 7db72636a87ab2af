"""PriceSource protocol - USD quotes for currencies that float."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from fireside_tips.models.currency import Currency


class PriceSource(Protocol):
    """Supplies a USD-per-unit quote for a currency."""

    async def get_usd_price(self, currency: Currency) -> Decimal | None:
        """Return a positive USD price, or None when no quote is available."""
        ...
