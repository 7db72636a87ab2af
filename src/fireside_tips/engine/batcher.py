"""Deterministic recipient batching bounded by the per-call recipient limit."""

from __future__ import annotations

import logging
from typing import Sequence

from fireside_tips.errors import ConfigurationError
from fireside_tips.models.tip import Batch

log = logging.getLogger(__name__)


def validate_batch_size(max_batch_size: int) -> int:
    """Raise ConfigurationError unless ``max_batch_size`` is a positive int."""
    if isinstance(max_batch_size, bool) or not isinstance(max_batch_size, int):
        raise ConfigurationError(f"max_batch_size must be an integer, got {max_batch_size!r}")
    if max_batch_size <= 0:
        raise ConfigurationError(f"max_batch_size must be positive, got {max_batch_size}")
    return max_batch_size


def split_into_batches(
    recipients: Sequence[str],
    max_batch_size: int,
    share: int = 0,
) -> list[Batch]:
    """Chunk ``recipients`` in order into batches of at most ``max_batch_size``.

    Each batch carries ``share * len(batch)`` as its total, so the values
    attached across all batches add up to exactly ``share * len(recipients)``.
    """
    validate_batch_size(max_batch_size)
    batches = [
        Batch(
            index=i,
            recipients=tuple(recipients[start:start + max_batch_size]),
            total=share * len(recipients[start:start + max_batch_size]),
        )
        for i, start in enumerate(range(0, len(recipients), max_batch_size))
    ]
    log.debug(
        "Split %d recipients into %d batch(es) of <= %d",
        len(recipients), len(batches), max_batch_size,
    )
    return batches
