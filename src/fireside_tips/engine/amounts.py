"""Fixed-point amount math: USD -> smallest on-chain units -> per-recipient share.

Rounding policy: every conversion floors, and the per-recipient split uses
integer division. The remainder (at most ``recipient_count - 1`` smallest
units) is left with the payer rather than spread unevenly.
"""

from __future__ import annotations

import logging
from decimal import ROUND_FLOOR, Decimal, InvalidOperation, localcontext

from fireside_tips.errors import InvalidAmount, NoRecipients, PriceUnavailable
from fireside_tips.models.currency import Currency
from fireside_tips.models.tip import Distribution

log = logging.getLogger(__name__)

# uint256 needs 78 digits; leave headroom for the intermediate product.
_PRECISION = 96


def parse_usd_amount(value: Decimal | str | int | float | None) -> Decimal:
    """Validate a user-entered USD amount. Raises InvalidAmount."""
    if value is None or isinstance(value, bool):
        raise InvalidAmount("Please specify a tip amount")
    try:
        # str() keeps floats like 1.1 from turning into 1.1000000000000000888
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"Please enter a valid tip amount: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmount(f"Please enter a valid tip amount: {value!r}")
    if amount <= 0:
        raise InvalidAmount(f"Tip amount must be positive, got {amount}")
    return amount


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def compute_on_chain_amount(
    usd_amount: Decimal,
    currency: Currency,
    price: Decimal | None = None,
) -> int:
    """Convert a USD amount into the currency's smallest integer unit.

    Native and floating-price tokens: floor(usd / price * 10**decimals).
    USD-pegged tokens: floor(usd * 10**decimals); ``price`` is ignored.
    """
    usd = parse_usd_amount(usd_amount)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = usd * (Decimal(10) ** currency.decimals)
        if not currency.needs_price:
            return _floor(scaled)

        if price is None:
            raise PriceUnavailable(currency.symbol)
        try:
            quote = price if isinstance(price, Decimal) else Decimal(str(price))
        except (InvalidOperation, ValueError) as exc:
            raise PriceUnavailable(currency.symbol, f"bad quote {price!r}") from exc
        if not quote.is_finite() or quote <= 0:
            raise PriceUnavailable(currency.symbol, f"bad quote {quote}")

        # Multiply before dividing so the only rounding is the final floor.
        return _floor(scaled / quote)


def compute_per_recipient_share(total: int, recipient_count: int) -> Distribution:
    """Floor-divide ``total`` across ``recipient_count`` recipients."""
    if recipient_count <= 0:
        raise NoRecipients("No users found for tipping")
    if total < 0:
        raise InvalidAmount(f"on-chain total must be non-negative, got {total}")
    share, remainder = divmod(total, recipient_count)
    if remainder:
        log.debug(
            "Dropping remainder of %d smallest units across %d recipients",
            remainder, recipient_count,
        )
    return Distribution(
        total=total,
        share=share,
        remainder=remainder,
        recipient_count=recipient_count,
    )


def to_human_units(amount: int, decimals: int) -> Decimal:
    """Smallest units -> whole currency units, exact."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        value = Decimal(amount).scaleb(-decimals).normalize()
        if value.as_tuple().exponent > 0:  # avoid "1E+2" for whole amounts
            value = value.quantize(Decimal(1))
        return value
