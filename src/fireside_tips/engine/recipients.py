"""Resolve a recipient selector into a clean, ordered address list."""

from __future__ import annotations

import logging
from typing import Iterable

from eth_utils import is_address, to_checksum_address

from fireside_tips.errors import NoRecipients
from fireside_tips.interfaces.roster import RosterResolver
from fireside_tips.models.tip import RecipientSelector

log = logging.getLogger(__name__)


def normalize_addresses(candidates: Iterable[str | None]) -> list[str]:
    """Drop empty/invalid entries, checksum the rest, dedupe keeping first seen."""
    seen: set[str] = set()
    out: list[str] = []
    for raw in candidates:
        if not raw or not isinstance(raw, str):
            continue
        addr = raw.strip()
        if not is_address(addr):
            log.debug("Skipping invalid recipient address %r", addr[:16])
            continue
        checksummed = to_checksum_address(addr)
        if checksummed in seen:
            continue
        seen.add(checksummed)
        out.append(checksummed)
    return out


async def resolve_recipients(
    selector: RecipientSelector,
    room_id: str,
    roster: RosterResolver | None = None,
) -> list[str]:
    """Explicit addresses are used as given; roles are looked up live.

    Raises NoRecipients when nothing valid remains.
    """
    if selector.addresses:
        candidates: list[str] = list(selector.addresses)
    elif selector.roles:
        if roster is None:
            raise NoRecipients("Role-based tips need a roster resolver")
        candidates = []
        for role in selector.roles:
            found = await roster.resolve_role_to_addresses(room_id, role)
            log.debug("Role %s in room %s -> %d address(es)", role, room_id, len(found))
            candidates.extend(found)
    else:
        raise NoRecipients("Please select users or roles to tip")

    recipients = normalize_addresses(candidates)
    if not recipients:
        raise NoRecipients("No users found for tipping")
    return recipients
