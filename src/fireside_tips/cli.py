"""CLI entry point for the fireside_tips engine."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from fireside_tips.config import load_config
from fireside_tips.engine.amounts import to_human_units
from fireside_tips.errors import ConfigurationError, TipError
from fireside_tips.models.config import EngineConfig
from fireside_tips.models.plan import PreparedTip
from fireside_tips.models.tip import RecipientSelector, TipRequest
from fireside_tips.service import TippingService
from fireside_tips.storage.sqlite import SQLiteTipStore


def _load(ctx: click.Context) -> EngineConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _require_contract(cfg: EngineConfig) -> None:
    """Exit with error if no distribution contract is configured."""
    if not cfg.distribution_contract:
        click.echo("Error: No distribution contract configured.", err=True)
        click.echo("Set FIRESIDE_TIPS_DISTRIBUTION_CONTRACT or [chain] distribution_contract.", err=True)
        sys.exit(1)


def _require_sender(cfg: EngineConfig) -> None:
    """Exit with error if no sending wallet address is configured."""
    if not cfg.from_address:
        click.echo("Error: No sending wallet address configured.", err=True)
        click.echo("Set FIRESIDE_TIPS_FROM_ADDRESS or [chain] from_address.", err=True)
        sys.exit(1)


def _build_request(
    cfg: EngineConfig,
    amount: str,
    currency: str,
    to: tuple[str, ...],
    roles: tuple[str, ...],
    room: str,
    payer: str,
    tipper: str,
) -> TipRequest:
    try:
        cur = cfg.currency(currency)
    except KeyError:
        known = ", ".join(sorted(cfg.currencies))
        click.echo(f"Error: Unknown currency {currency!r} (known: {known})", err=True)
        sys.exit(1)
    selector = RecipientSelector.explicit(to) if to else RecipientSelector.by_roles(roles)
    return TipRequest(
        payer_id=payer,
        room_id=room,
        recipient_selector=selector,
        usd_amount=amount,
        currency=cur,
        tipper_name=tipper,
    )


def _echo_plan(prepared: PreparedTip) -> None:
    cur = prepared.plan.currency
    dist = prepared.distribution
    click.echo(f"Amount:      ${prepared.usd_amount} in {cur.symbol}")
    if prepared.price is not None:
        click.echo(f"Price:       ${prepared.price} per {cur.symbol}")
    click.echo(f"On-chain:    {prepared.on_chain_amount} ({to_human_units(prepared.on_chain_amount, cur.decimals)} {cur.symbol})")
    click.echo(f"Recipients:  {dist.recipient_count}")
    click.echo(f"Share:       {dist.share} ({to_human_units(dist.share, cur.decimals)} {cur.symbol})")
    click.echo(f"Remainder:   {dist.remainder} (kept by payer)")
    click.echo(f"Batches:     {len(prepared.batches)}")
    click.echo("")
    for i, call in enumerate(prepared.plan.calls):
        batch = ""
        if call.batch_index is not None:
            batch = f" batch={call.batch_index} recipients={len(prepared.batches[call.batch_index])}"
        click.echo(f"  [{i}] {call.kind.value:<10} to={call.target} value={call.value}{batch}")


def _tip_options(fn):
    """Options shared by the plan and send commands."""
    decorators = [
        click.option("--amount", required=True, help="Tip amount in USD"),
        click.option("--currency", default="USDC", show_default=True, help="Currency symbol"),
        click.option("--to", "to", multiple=True, help="Recipient wallet address (repeatable)"),
        click.option("--role", "roles", multiple=True, help="Room role to tip (repeatable)"),
        click.option("--room", required=True, help="Room ID"),
        click.option("--payer", required=True, help="Payer ID (one tip in flight per payer)"),
        click.option("--tipper", default="Someone", help="Display name in the room broadcast"),
    ]
    for deco in reversed(decorators):
        fn = deco(fn)
    return fn


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """fireside-tips - Batched multi-currency tip distribution."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show engine configuration."""
    cfg = _load(ctx)
    click.echo(f"Chain ID:   {cfg.chain_id}")
    click.echo(f"Contract:   {cfg.distribution_contract or '(not set)'}")
    click.echo(f"Wallet RPC: {cfg.wallet_rpc_url}")
    click.echo(f"From:       {cfg.from_address or '(not set)'}")
    click.echo(f"Batch size: {cfg.max_batch_size}")
    click.echo(f"Notify URL: {cfg.notify.url or '(disabled)'}")
    click.echo(f"DB path:    {cfg.db_path}")
    click.echo("Currencies:")
    for sym, cur in sorted(cfg.currencies.items()):
        extra = f" token={cur.token_address}" if cur.token_address else ""
        pegged = " pegged" if cur.usd_pegged else ""
        click.echo(f"  {sym:<6} {cur.kind.value:<6} decimals={cur.decimals}{pegged}{extra}")


# ── Tipping ────────────────────────────────────────────


@cli.command()
@_tip_options
@click.pass_context
def plan(
    ctx: click.Context, amount: str, currency: str, to: tuple[str, ...],
    roles: tuple[str, ...], room: str, payer: str, tipper: str,
) -> None:
    """Build and print the call plan for a tip without submitting it."""
    cfg = _load(ctx)
    _require_contract(cfg)
    request = _build_request(cfg, amount, currency, to, roles, room, payer, tipper)

    async def _plan():
        service = TippingService.from_config(cfg)
        try:
            prepared = await service.prepare(request)
        except TipError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
        _echo_plan(prepared)

    asyncio.run(_plan())


@cli.command()
@_tip_options
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def send(
    ctx: click.Context, amount: str, currency: str, to: tuple[str, ...],
    roles: tuple[str, ...], room: str, payer: str, tipper: str, yes: bool,
) -> None:
    """Submit a tip through the configured wallet."""
    cfg = _load(ctx)
    _require_contract(cfg)
    _require_sender(cfg)
    request = _build_request(cfg, amount, currency, to, roles, room, payer, tipper)

    async def _send():
        service = TippingService.from_config(cfg)
        try:
            prepared = await service.prepare(request)
            _echo_plan(prepared)
            if not yes:
                click.confirm("\nSubmit this tip?", abort=True)

            await service.initialize()
            click.echo(f"\nSubmitting via {service.executor.strategy} strategy...")
            outcome = await service.submit(prepared)
        except TipError as exc:
            click.echo(f"\nTip not sent: {exc}", err=True)
            sys.exit(1)
        finally:
            await service.close()

        click.echo(outcome.message)
        if outcome.record is not None:
            for tx in outcome.record.tx_hashes:
                click.echo(f"  Tx hash:  {tx}")
        if outcome.uncovered_recipients:
            click.echo("Unconfirmed recipients:" if outcome.outcome_unknown else "Unpaid recipients:")
            for addr in outcome.uncovered_recipients:
                click.echo(f"  {addr}")
        if outcome.persistence_error is not None:
            click.echo(f"Warning: {outcome.persistence_error}", err=True)
        if not outcome.any_payment or outcome.uncovered_recipients:
            sys.exit(1)

    asyncio.run(_send())


# ── History ────────────────────────────────────────────


@cli.command()
@click.option("--room", required=True, help="Room ID")
@click.pass_context
def stats(ctx: click.Context, room: str) -> None:
    """Show tip totals for a room."""
    cfg = _load(ctx)

    async def _stats():
        store = SQLiteTipStore(cfg.db_path)
        await store.initialize()
        try:
            s = await store.get_tip_statistics(room)
        finally:
            await store.close()

        click.echo(f"Room:       {s.room_id}")
        click.echo(f"Tips:       {s.tip_count}")
        click.echo(f"Total USD:  ${s.total_usd}")
        for sym, totals in sorted(s.by_currency.items()):
            click.echo(f"  {sym:<6} {totals.count} tip(s), ${totals.total_usd}, {totals.total_native} {sym}")

    asyncio.run(_stats())


@cli.command()
@click.option("--room", required=True, help="Room ID")
@click.option("--limit", type=int, default=5, show_default=True, help="Number of tips to show")
@click.pass_context
def history(ctx: click.Context, room: str, limit: int) -> None:
    """Show the most recent tips in a room."""
    cfg = _load(ctx)

    async def _history():
        store = SQLiteTipStore(cfg.db_path)
        await store.initialize()
        try:
            tips = await store.get_recent_tips(room, limit)
        finally:
            await store.close()

        if not tips:
            click.echo("No tips recorded.")
            return
        for tip in tips:
            click.echo(
                f"{tip.timestamp}  {tip.tipper_name}  ${tip.usd_amount} "
                f"({tip.native_amount} {tip.currency}) -> {len(tip.recipients)} recipient(s)"
            )

    asyncio.run(_history())


@cli.command()
@click.option("--days", type=int, default=7, show_default=True, help="Keep tips newer than this")
@click.pass_context
def purge(ctx: click.Context, days: int) -> None:
    """Delete tip records older than --days."""
    cfg = _load(ctx)

    async def _purge():
        store = SQLiteTipStore(cfg.db_path)
        await store.initialize()
        try:
            removed = await store.purge_expired(days)
        finally:
            await store.close()
        click.echo(f"Purged {removed} tip record(s)")

    asyncio.run(_purge())
