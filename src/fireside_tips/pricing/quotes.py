"""HTTP price source - CoinGecko for native currencies, DexScreener for tokens."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

import httpx

from fireside_tips.models.config import PricingConfig
from fireside_tips.models.currency import Currency

log = logging.getLogger(__name__)


def _positive(raw: object) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        price = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


class HttpPriceSource:
    """Fetches a fresh USD quote on every call. No caching."""

    def __init__(self, config: PricingConfig | None = None) -> None:
        self._cfg = config or PricingConfig()

    async def get_usd_price(self, currency: Currency) -> Decimal | None:
        try:
            if currency.is_native:
                price = await self._coingecko(currency)
            else:
                price = await self._dexscreener(currency)
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("Price lookup for %s failed: %s", currency.symbol, exc)
            return None

        if price is None:
            log.warning("No usable %s price in response", currency.symbol)
        else:
            log.debug("%s price: $%s", currency.symbol, price)
        return price

    async def _coingecko(self, currency: Currency) -> Decimal | None:
        coin_id = currency.price_id or currency.symbol.lower()
        url = f"{self._cfg.coingecko_url.rstrip('/')}/simple/price"
        async with httpx.AsyncClient(timeout=self._cfg.timeout) as client:
            resp = await client.get(
                url,
                params={"ids": coin_id, "vs_currencies": "usd"},
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
        return _positive((data.get(coin_id) or {}).get("usd"))

    async def _dexscreener(self, currency: Currency) -> Decimal | None:
        if not currency.token_address:
            return None
        url = (
            f"{self._cfg.dexscreener_url.rstrip('/')}/tokens/v1/"
            f"{self._cfg.dexscreener_chain}/{currency.token_address}"
        )
        async with httpx.AsyncClient(timeout=self._cfg.timeout) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            pairs = resp.json()
        if not isinstance(pairs, list) or not pairs:
            return None
        return _positive(pairs[0].get("priceUsd"))
