"""Tip intent and the pure values derived from it before submission."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fireside_tips.models.currency import Currency


@dataclass(frozen=True)
class RecipientSelector:
    """Who to tip: explicit wallet addresses, or room roles resolved live.

    Exactly one of ``addresses`` / ``roles`` is used. When ``addresses`` is
    non-empty the roles are ignored.
    """

    addresses: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()

    @classmethod
    def explicit(cls, addresses: list[str] | tuple[str, ...]) -> RecipientSelector:
        return cls(addresses=tuple(addresses))

    @classmethod
    def by_roles(cls, roles: list[str] | tuple[str, ...]) -> RecipientSelector:
        return cls(roles=tuple(roles))

    @property
    def is_role_based(self) -> bool:
        return not self.addresses and bool(self.roles)

    def describe(self) -> str:
        """Short human form used in broadcast messages."""
        if self.is_role_based:
            return ", ".join(r if r == "host" else f"{r}s" for r in self.roles)
        return f"{len(self.addresses)} recipient(s)"


@dataclass(frozen=True)
class TipRequest:
    """A user's confirmed tip. Immutable once submission begins."""

    payer_id: str
    room_id: str
    recipient_selector: RecipientSelector
    usd_amount: Decimal | str | int | float
    currency: Currency
    tipper_name: str = "Someone"


@dataclass(frozen=True)
class Distribution:
    """Integer split of an on-chain total across recipients.

    share * recipient_count + remainder == total, 0 <= remainder < recipient_count.
    The remainder is never distributed.
    """

    total: int
    share: int
    remainder: int
    recipient_count: int

    @property
    def distributed(self) -> int:
        return self.share * self.recipient_count


@dataclass(frozen=True)
class Batch:
    """A contiguous slice of the resolved recipients for one distribution call."""

    index: int
    recipients: tuple[str, ...]
    total: int = 0  # share * len(recipients)

    @property
    def value(self) -> int:
        """Native value attached to this batch's call (same as total)."""
        return self.total

    def __len__(self) -> int:
        return len(self.recipients)

