"""HTTP roster resolver - reads the live peer list of a room."""

from __future__ import annotations

import json
import logging

import httpx

from fireside_tips.models.config import RosterConfig

log = logging.getLogger(__name__)

INTERNAL_ROLE_PREFIX = "__internal_"


def _wallet_of(peer: dict) -> str:
    raw = peer.get("metadata")
    if not raw:
        return ""
    if isinstance(raw, dict):
        meta = raw
    else:
        try:
            meta = json.loads(raw)
        except (TypeError, ValueError):
            log.debug("Unparseable metadata for peer %s", str(peer.get("id", "?"))[:16])
            return ""
    wallet = meta.get("wallet") if isinstance(meta, dict) else None
    return wallet if isinstance(wallet, str) else ""


def wallets_for_role(peers: dict | list, role: str) -> list[str]:
    """Wallets of peers holding ``role``, skipping internal roles and empties."""
    entries = peers.values() if isinstance(peers, dict) else peers
    out = []
    for peer in entries:
        peer_role = peer.get("role") or ""
        if peer_role.startswith(INTERNAL_ROLE_PREFIX) or peer_role != role:
            continue
        if wallet := _wallet_of(peer):
            out.append(wallet)
    return out


class HttpRosterResolver:
    """GET {base_url}/rooms/{room_id}/peers on every lookup."""

    def __init__(self, config: RosterConfig | None = None) -> None:
        self._cfg = config or RosterConfig()

    async def resolve_role_to_addresses(self, room_id: str, role: str) -> list[str]:
        url = f"{self._cfg.base_url.rstrip('/')}/rooms/{room_id}/peers"
        headers = {}
        if self._cfg.auth_token:
            headers["Authorization"] = f"Bearer {self._cfg.auth_token}"

        try:
            async with httpx.AsyncClient(timeout=self._cfg.timeout) as client:
                resp = await client.get(url, headers=headers)
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("Roster lookup for room %s failed: %s", room_id, exc)
            return []

        # Accept both {"peers": ...} and {"ok": true, "data": {"peers": ...}}.
        peers = body.get("peers")
        if peers is None:
            peers = (body.get("data") or {}).get("peers") or {}
        wallets = wallets_for_role(peers, role)
        log.debug("Room %s role %s: %d wallet(s)", room_id, role, len(wallets))
        return wallets
