"""JSON-RPC wallet transport - EIP-5792 call bundles with a per-call fallback."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

import httpx

from fireside_tips.models.plan import ContractCall
from fireside_tips.models.records import (
    FailureReason,
    SubmissionOutcome,
    WalletCapabilities,
)

log = logging.getLogger(__name__)

USER_REJECTED_CODE = 4001
METHOD_NOT_FOUND_CODE = -32601
CALLS_VERSION = "2.0.0"

# wallet_getCallsStatus numeric codes (EIP-5792)
_STATUS_PENDING = 100
_STATUS_CONFIRMED = 200
_STATUS_OFFCHAIN_FAILURE = 400
_STATUS_REVERTED = 500
_STATUS_PARTIAL_REVERT = 600


class WalletRpcError(Exception):
    """JSON-RPC error object returned by the wallet."""

    def __init__(self, code: int | None, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

    @property
    def user_rejected(self) -> bool:
        return self.code == USER_REJECTED_CODE


def _failure(exc: Exception, tx_hash: str | None = None) -> SubmissionOutcome:
    if isinstance(exc, WalletRpcError) and exc.user_rejected:
        return SubmissionOutcome(
            success=False, tx_hash=tx_hash, reason=FailureReason.USER_REJECTED,
            error="rejected by user",
        )
    return SubmissionOutcome(
        success=False, tx_hash=tx_hash, reason=FailureReason.ERROR, error=str(exc),
    )


def _receipt_ok(receipt: dict) -> bool:
    status = receipt.get("status")
    if isinstance(status, str):
        return int(status, 16) == 1
    return status == 1


class JsonRpcWallet:
    """Talks to the user's wallet over JSON-RPC.

    The same endpoint serves wallet_getCapabilities / wallet_sendCalls /
    wallet_getCallsStatus for bundles and eth_sendTransaction /
    eth_getTransactionReceipt for one call at a time. Every method returns a
    SubmissionOutcome; transport errors are logged, never raised.
    """

    def __init__(
        self,
        rpc_url: str,
        from_address: str,
        chain_id: int,
        timeout: int = 30,
        poll_interval: float = 2.0,
        max_attempts: int = 10,
    ) -> None:
        self._rpc_url = rpc_url
        self._from = from_address
        self._chain_hex = hex(chain_id)
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._ids = itertools.count(1)

    async def _rpc(self, method: str, params: list) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()

        if err := body.get("error"):
            raise WalletRpcError(err.get("code"), err.get("message", ""))
        return body.get("result")

    # ── Capabilities ───────────────────────────────────────

    async def capabilities(self) -> WalletCapabilities:
        try:
            result = await self._rpc(
                "wallet_getCapabilities", [self._from, [self._chain_hex]],
            )
        except WalletRpcError as exc:
            if exc.code != METHOD_NOT_FOUND_CODE:
                log.warning("wallet_getCapabilities failed: %s", exc)
            return WalletCapabilities(atomic=False)
        except httpx.HTTPError as exc:
            log.warning("wallet_getCapabilities unreachable: %s", exc)
            return WalletCapabilities(atomic=False)

        caps = (result or {}).get(self._chain_hex, result or {})
        atomic = False
        if isinstance(caps, dict):
            if isinstance(caps.get("atomic"), dict):
                atomic = caps["atomic"].get("status") in ("supported", "ready")
            elif isinstance(caps.get("atomicBatch"), dict):
                atomic = bool(caps["atomicBatch"].get("supported"))
        log.debug("Wallet capabilities for chain %s: atomic=%s", self._chain_hex, atomic)
        return WalletCapabilities(atomic=atomic)

    # ── Atomic bundles ─────────────────────────────────────

    async def submit_atomic(self, calls: list[ContractCall]) -> SubmissionOutcome:
        request = {
            "version": CALLS_VERSION,
            "chainId": self._chain_hex,
            "from": self._from,
            "atomicRequired": True,
            "calls": [c.to_rpc() for c in calls],
        }
        try:
            sent = await self._rpc("wallet_sendCalls", [request])
        except (WalletRpcError, httpx.HTTPError) as exc:
            log.warning("wallet_sendCalls failed: %s", exc)
            return _failure(exc)

        bundle_id = sent.get("id") if isinstance(sent, dict) else sent
        if not bundle_id:
            return SubmissionOutcome(
                success=False, reason=FailureReason.ERROR,
                error="wallet_sendCalls returned no bundle id",
            )
        log.info("Bundle %s submitted (%d calls)", str(bundle_id)[:16], len(calls))
        return await self._wait_for_bundle(str(bundle_id))

    async def _wait_for_bundle(self, bundle_id: str) -> SubmissionOutcome:
        for attempt in range(1, self._max_attempts + 1):
            try:
                status = await self._rpc("wallet_getCallsStatus", [bundle_id])
            except (WalletRpcError, httpx.HTTPError) as exc:
                log.warning(
                    "wallet_getCallsStatus failed for %s (attempt %d/%d): %s",
                    bundle_id[:16], attempt, self._max_attempts, exc,
                )
                status = None

            if status:
                outcome = self._bundle_outcome(status)
                if outcome is not None:
                    return outcome

            if attempt < self._max_attempts:
                await asyncio.sleep(self._poll_interval)

        log.warning("Bundle %s not final after %d checks", bundle_id[:16], self._max_attempts)
        return SubmissionOutcome(
            success=False, reason=FailureReason.TIMEOUT,
            error=f"bundle {bundle_id} not confirmed after {self._max_attempts} checks",
        )

    @staticmethod
    def _bundle_outcome(status: dict) -> SubmissionOutcome | None:
        """Map a wallet_getCallsStatus result to an outcome, or None while pending."""
        code = status.get("status")
        receipts = status.get("receipts") or []
        hashes = [r["transactionHash"] for r in receipts if r.get("transactionHash")]
        first = hashes[0] if hashes else None

        if code in (_STATUS_PENDING, "PENDING") or code is None:
            return None
        if code in (_STATUS_CONFIRMED, "CONFIRMED"):
            if receipts and not all(_receipt_ok(r) for r in receipts):
                return SubmissionOutcome(
                    success=False, tx_hash=first, tx_hashes=hashes,
                    reason=FailureReason.REVERTED, error="bundle reverted",
                )
            return SubmissionOutcome(success=True, tx_hash=first, tx_hashes=hashes)
        if code == _STATUS_OFFCHAIN_FAILURE:
            return SubmissionOutcome(
                success=False, reason=FailureReason.ERROR, error="bundle failed off-chain",
            )
        if code in (_STATUS_REVERTED, _STATUS_PARTIAL_REVERT):
            return SubmissionOutcome(
                success=False, tx_hash=first, tx_hashes=hashes,
                reason=FailureReason.REVERTED, error="bundle reverted",
            )
        if isinstance(code, int) and code < _STATUS_CONFIRMED:
            return None
        return SubmissionOutcome(
            success=False, tx_hash=first, tx_hashes=hashes,
            reason=FailureReason.ERROR, error=f"unexpected bundle status {code!r}",
        )

    # ── Single transactions ────────────────────────────────

    async def submit_one(self, call: ContractCall) -> SubmissionOutcome:
        tx = {"from": self._from, **call.to_rpc()}
        try:
            tx_hash = await self._rpc("eth_sendTransaction", [tx])
        except (WalletRpcError, httpx.HTTPError) as exc:
            log.warning("eth_sendTransaction to %s failed: %s", call.target[:10], exc)
            return _failure(exc)

        log.info("Transaction %s sent to %s", str(tx_hash)[:16], call.target[:10])
        return await self._wait_for_receipt(str(tx_hash))

    async def _wait_for_receipt(self, tx_hash: str) -> SubmissionOutcome:
        for attempt in range(1, self._max_attempts + 1):
            try:
                receipt = await self._rpc("eth_getTransactionReceipt", [tx_hash])
            except (WalletRpcError, httpx.HTTPError) as exc:
                log.warning(
                    "Receipt lookup for %s failed (attempt %d/%d): %s",
                    tx_hash[:16], attempt, self._max_attempts, exc,
                )
                receipt = None

            if receipt:
                if _receipt_ok(receipt):
                    return SubmissionOutcome(success=True, tx_hash=tx_hash, tx_hashes=[tx_hash])
                log.warning("Transaction %s reverted", tx_hash[:16])
                return SubmissionOutcome(
                    success=False, tx_hash=tx_hash, tx_hashes=[tx_hash],
                    reason=FailureReason.REVERTED, error="transaction reverted",
                )

            if attempt < self._max_attempts:
                await asyncio.sleep(self._poll_interval)

        return SubmissionOutcome(
            success=False, tx_hash=tx_hash, reason=FailureReason.TIMEOUT,
            error=f"no receipt for {tx_hash} after {self._max_attempts} checks",
        )
