"""Configuration models for the tipping engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from fireside_tips.models.currency import DEFAULT_CURRENCIES, Currency

DEFAULT_MAX_BATCH_SIZE = 20


@dataclass(frozen=True)
class ContractAddresses:
    """On-chain entry points the call planner targets."""

    distribution_contract: str


@dataclass
class PricingConfig:
    coingecko_url: str = "https://api.coingecko.com/api/v3"
    dexscreener_url: str = "https://api.dexscreener.com"
    dexscreener_chain: str = "base"
    timeout: int = 10  # seconds


@dataclass
class RosterConfig:
    base_url: str = "http://localhost:8000"
    timeout: int = 10
    auth_token: str = ""


@dataclass
class NotifyConfig:
    url: str = ""  # empty disables broadcasting
    timeout: int = 5
    auth_token: str = ""


@dataclass
class EngineConfig:
    """Complete engine configuration."""

    # Engine
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    log_level: str = "info"

    # Chain
    chain_id: int = 8453  # Base mainnet
    distribution_contract: str = ""
    wallet_rpc_url: str = "http://127.0.0.1:8545"
    from_address: str = ""
    wallet_timeout: int = 30  # seconds per JSON-RPC request
    status_poll_interval: float = 2.0  # seconds between status checks
    status_max_attempts: int = 10

    # Currencies
    currencies: dict[str, Currency] = field(
        default_factory=lambda: dict(DEFAULT_CURRENCIES)
    )

    # Collaborators
    pricing: PricingConfig = field(default_factory=PricingConfig)
    roster: RosterConfig = field(default_factory=RosterConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)

    # Storage
    db_path: str = "~/.fireside_tips/tips.db"

    def contracts(self) -> ContractAddresses:
        return ContractAddresses(distribution_contract=self.distribution_contract)

    def currency(self, symbol: str) -> Currency:
        try:
            return self.currencies[symbol.upper()]
        except KeyError:
            raise KeyError(f"unknown currency {symbol!r}") from None
