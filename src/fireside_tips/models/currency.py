"""Currency descriptors: the closed NATIVE | TOKEN variant."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CurrencyKind(str, Enum):
    """How value moves on-chain for a currency."""

    NATIVE = "native"  # value attached to the distribution call
    TOKEN = "token"  # ERC-20 approve + distributeToken


@dataclass(frozen=True)
class Currency:
    """A tippable currency and the static facts needed to move it."""

    symbol: str
    kind: CurrencyKind
    decimals: int
    token_address: str = ""  # TOKEN only
    usd_pegged: bool = False  # TOKEN only: 1 unit == 1 USD, no quote needed
    price_id: str = ""  # quote lookup key (coingecko id for native)

    @property
    def is_native(self) -> bool:
        return self.kind == CurrencyKind.NATIVE

    @property
    def needs_price(self) -> bool:
        """True when a USD quote is required to convert the tip amount."""
        return self.is_native or not self.usd_pegged


# Defaults match the Base mainnet deployment the tipping contract runs on.
ETH = Currency(
    symbol="ETH",
    kind=CurrencyKind.NATIVE,
    decimals=18,
    price_id="ethereum",
)

USDC = Currency(
    symbol="USDC",
    kind=CurrencyKind.TOKEN,
    decimals=6,
    token_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    usd_pegged=True,
)

FIRE = Currency(
    symbol="FIRE",
    kind=CurrencyKind.TOKEN,
    decimals=18,
    token_address="0x9e68E029cBDe7513620Fcb537A44abff88a56186",
)

DEFAULT_CURRENCIES: dict[str, Currency] = {c.symbol: c for c in (ETH, USDC, FIRE)}
