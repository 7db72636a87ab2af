"""RosterResolver protocol - maps room roles to wallet addresses."""

from __future__ import annotations

from typing import Protocol


class RosterResolver(Protocol):
    """Looks up who currently holds a role in a live room.

    Called once per role at submission time. Implementations must not cache,
    so the result reflects the roster at the moment of payment.
    """

    async def resolve_role_to_addresses(self, room_id: str, role: str) -> list[str]:
        """Wallet addresses of every participant currently holding ``role``."""
        ...
