"""Retry bookkeeping for the chunk currently being sent."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of a failed attempt.

    Attributes:
        retry: Whether the same chunk should be sent again.
        delay: Seconds to wait before the next attempt.
        attempts_left: Retries remaining after this one.
        attempt_count: Failed attempts recorded for the chunk so far.
    """

    retry: bool
    delay: float
    attempts_left: int
    attempt_count: int


class RetryManager:
    """Bounded, fixed-delay retry policy for one chunk at a time."""

    def __init__(self, attempts: int, delay_seconds: float) -> None:
        """Initialize the retry manager.

        Args:
            attempts: Retries allowed for each chunk, at least 1.
            delay_seconds: Fixed wait before every retry.
        """
        if attempts <= 0:
            raise ValueError(f"attempts must be a positive integer, got {attempts}")
        if delay_seconds < 0:
            raise ValueError(
                f"delay_seconds must be non-negative, got {delay_seconds}"
            )
        self._attempts = attempts
        self._delay = delay_seconds
        self._attempt_count = 0

    @property
    def attempt_count(self) -> int:
        """Failed attempts recorded for the current chunk."""
        return self._attempt_count

    @property
    def attempts_allowed(self) -> int:
        """Retries allowed for each chunk."""
        return self._attempts

    def on_failure(self, chunk_number: int) -> RetryDecision:
        """Record a transient failure of the current chunk.

        Args:
            chunk_number: Index of the failing chunk, used for logging.

        Returns:
            A RetryDecision; ``retry`` is False once the budget is spent.
        """
        if self._attempt_count < self._attempts:
            self._attempt_count += 1
            attempts_left = self._attempts - self._attempt_count
            logger.warning(
                f"Chunk {chunk_number} failed "
                f"(attempt {self._attempt_count}/{self._attempts}), "
                f"retrying in {self._delay}s"
            )
            return RetryDecision(
                retry=True,
                delay=self._delay,
                attempts_left=attempts_left,
                attempt_count=self._attempt_count,
            )

        logger.error(
            f"Chunk {chunk_number} failed after {self._attempt_count} retries"
        )
        return RetryDecision(
            retry=False,
            delay=0,
            attempts_left=0,
            attempt_count=self._attempt_count,
        )

    def reset(self) -> None:
        """Start counting afresh for the next chunk."""
        self._attempt_count = 0
