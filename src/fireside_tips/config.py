"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from fireside_tips.engine.batcher import validate_batch_size
from fireside_tips.errors import ConfigurationError
from fireside_tips.models.config import EngineConfig
from fireside_tips.models.currency import Currency, CurrencyKind


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "FIRESIDE_TIPS_",
) -> EngineConfig:
    """Load engine configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (FIRESIDE_TIPS_MAX_BATCH_SIZE, etc.)
        2. TOML config file
        3. Defaults from EngineConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = EngineConfig()

    # ── Engine section ─────────────────────────────────────
    engine = raw.get("engine", {})
    if "max_batch_size" in engine:
        cfg.max_batch_size = engine["max_batch_size"]
    if v := engine.get("log_level"):
        cfg.log_level = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("chain_id"):
        cfg.chain_id = int(v)
    if v := chain.get("distribution_contract"):
        cfg.distribution_contract = str(v)
    if v := chain.get("wallet_rpc_url"):
        cfg.wallet_rpc_url = str(v)
    if v := chain.get("from_address"):
        cfg.from_address = str(v)
    if v := chain.get("wallet_timeout"):
        cfg.wallet_timeout = int(v)
    if v := chain.get("status_poll_interval"):
        cfg.status_poll_interval = float(v)
    if v := chain.get("status_max_attempts"):
        cfg.status_max_attempts = int(v)

    # ── Currencies ─────────────────────────────────────────
    for symbol, section in raw.get("currencies", {}).items():
        sym = symbol.upper()
        cfg.currencies[sym] = _parse_currency(sym, section, cfg.currencies.get(sym))

    # ── Pricing section ────────────────────────────────────
    pricing = raw.get("pricing", {})
    if v := pricing.get("coingecko_url"):
        cfg.pricing.coingecko_url = str(v)
    if v := pricing.get("dexscreener_url"):
        cfg.pricing.dexscreener_url = str(v)
    if v := pricing.get("dexscreener_chain"):
        cfg.pricing.dexscreener_chain = str(v)
    if v := pricing.get("timeout"):
        cfg.pricing.timeout = int(v)

    # ── Roster section ─────────────────────────────────────
    roster = raw.get("roster", {})
    if v := roster.get("base_url"):
        cfg.roster.base_url = str(v)
    if v := roster.get("timeout"):
        cfg.roster.timeout = int(v)
    if v := roster.get("auth_token"):
        cfg.roster.auth_token = str(v)

    # ── Notify section ─────────────────────────────────────
    notify = raw.get("notify", {})
    if v := notify.get("url"):
        cfg.notify.url = str(v)
    if v := notify.get("timeout"):
        cfg.notify.timeout = int(v)
    if v := notify.get("auth_token"):
        cfg.notify.auth_token = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if size := os.environ.get(f"{env_prefix}MAX_BATCH_SIZE"):
        try:
            cfg.max_batch_size = int(size)
        except ValueError:
            raise ConfigurationError(f"max_batch_size must be an integer, got {size!r}") from None
    if addr := os.environ.get(f"{env_prefix}DISTRIBUTION_CONTRACT"):
        cfg.distribution_contract = addr
    if rpc := os.environ.get(f"{env_prefix}WALLET_RPC_URL"):
        cfg.wallet_rpc_url = rpc
    if sender := os.environ.get(f"{env_prefix}FROM_ADDRESS"):
        cfg.from_address = sender
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if url := os.environ.get(f"{env_prefix}NOTIFY_URL"):
        cfg.notify.url = url

    validate_batch_size(cfg.max_batch_size)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _parse_currency(symbol: str, section: dict, base: Currency | None) -> Currency:
    """Build a currency from its TOML table, layered over a known default."""
    try:
        if base is None:
            base = Currency(
                symbol=symbol,
                kind=CurrencyKind(section.get("kind", "token")),
                decimals=int(section["decimals"]),
            )
        updates: dict = {}
        if "kind" in section:
            updates["kind"] = CurrencyKind(section["kind"])
        if "decimals" in section:
            updates["decimals"] = int(section["decimals"])
        for key in ("token_address", "price_id"):
            if key in section:
                updates[key] = str(section[key])
        if "usd_pegged" in section:
            updates["usd_pegged"] = bool(section["usd_pegged"])
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(f"invalid [currencies.{symbol}] section: {exc}") from None

    currency = dataclasses.replace(base, **updates)
    if currency.decimals < 0:
        raise ConfigurationError(f"{symbol}: decimals must be >= 0")
    if currency.kind == CurrencyKind.TOKEN and not currency.token_address:
        raise ConfigurationError(f"{symbol}: token currencies need a token_address")
    return currency
