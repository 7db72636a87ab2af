"""Error taxonomy for the tipping engine."""

from __future__ import annotations


class TipError(Exception):
    """Base exception for tipping errors."""

    # True when at least one recipient was paid before the error surfaced.
    any_payment = False


class ConfigurationError(TipError):
    """Static configuration is unusable (fatal at startup)."""
    pass


class InvalidAmount(TipError):
    """USD amount is not a positive number."""
    pass


class NoRecipients(TipError):
    """No valid recipient address left after resolution and filtering."""
    pass


class PriceUnavailable(TipError):
    """A required USD quote could not be obtained."""

    def __init__(self, symbol: str, detail: str = "") -> None:
        self.symbol = symbol
        msg = f"{symbol} price not available"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class SubmissionInFlight(TipError):
    """The payer already has a tip being submitted."""

    def __init__(self, payer_id: str) -> None:
        self.payer_id = payer_id
        super().__init__(f"a tip from {payer_id} is already being submitted")


class CallSubmissionRejected(TipError):
    """The user declined the transaction in their wallet."""
    pass


class OnChainExecutionFailed(TipError):
    """A submitted call reverted or otherwise failed after acceptance."""

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)


class PaymentUnconfirmed(TipError):
    """A call was handed to the network but never confirmed either way.

    It may still land on-chain, so the caller must not assume nothing was paid.
    """

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)


class PartialBatchFailure(TipError):
    """Sequential submission stopped part way: some batches paid, some not."""

    any_payment = True

    def __init__(
        self,
        covered: list[str],
        uncovered: list[str],
        succeeded_batches: list[int],
        cause: str = "",
    ) -> None:
        self.covered = covered
        self.uncovered = uncovered
        self.succeeded_batches = succeeded_batches
        self.cause = cause
        super().__init__(
            f"{len(covered)} recipient(s) paid, {len(uncovered)} not paid"
            + (f" ({cause})" if cause else "")
        )


class PersistenceFailure(TipError):
    """Saving the tip record failed. The on-chain payment still stands."""

    any_payment = True
