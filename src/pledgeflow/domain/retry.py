"""Retry backoff for failed capture attempts."""

import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from pledgeflow.domain.errors import RetryBudgetExhausted, ValidationError


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with a cap and bounded jitter.

    The delay for failure streak ``n`` is ``base_delay * 2 ** (n - 1)`` plus
    up to ``jitter_ratio`` of that amount, clamped to ``max_delay``. Since
    ``jitter_ratio`` is below 1, a jittered delay never exceeds the next
    un-jittered one, so successive delays do not shrink.
    """

    base_delay: timedelta = timedelta(hours=1)
    max_delay: timedelta = timedelta(hours=24)
    max_retries: int = 3
    jitter_ratio: float = 0.1

    def __post_init__(self):
        if self.base_delay <= timedelta(0):
            raise ValidationError("Retry base delay must be positive")
        if self.max_delay < self.base_delay:
            raise ValidationError("Retry max delay must not be below the base delay")
        if self.max_retries < 0:
            raise ValidationError("Max retries must not be negative")
        if not 0 <= self.jitter_ratio < 1:
            raise ValidationError("Retry jitter must be in [0, 1)")

    def next_retry_delay(
        self, failure_streak: int, rng: Optional[random.Random] = None
    ) -> timedelta:
        """Delay before the cycle may be attempted again.

        Args:
            failure_streak: Consecutive failures of the cycle, including the
                one just recorded
            rng: Random source for jitter (module-level random if None)

        Returns:
            Delay as a timedelta

        Raises:
            RetryBudgetExhausted: If failure_streak exceeds max_retries
        """
        if failure_streak < 1:
            raise ValueError(f"Failure streak must be at least 1: {failure_streak}")
        if failure_streak > self.max_retries:
            raise RetryBudgetExhausted(failure_streak, self.max_retries)

        # Cap the exponent; anything past the cap is clamped anyway.
        raw = self.base_delay * (2 ** min(failure_streak - 1, 32))
        if raw >= self.max_delay:
            return self.max_delay

        if self.jitter_ratio:
            source = rng if rng is not None else random
            raw = raw + raw * (self.jitter_ratio * source.random())
        return min(raw, self.max_delay)
