"""Bounded exponential backoff for the generation client."""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass

from dreampie.core.config import DreamPieConfig


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts a generation call makes and how long it waits.

    The wait after the failed attempt with zero-based index ``i`` is
    ``base_delay * 2**i`` plus a uniform jitter in ``[0, max_jitter]``.  With
    the defaults that is roughly 1 s before attempt 2 and 2 s before attempt 3.

    Attributes:
        max_attempts: Total attempts, including the first one.
        base_delay: Delay in seconds for the first retry, before jitter.
        max_jitter: Upper bound of the random jitter in seconds.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_jitter: float = 0.5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_jitter < 0:
            raise ValueError("base_delay and max_jitter must not be negative")

    @classmethod
    def from_config(cls, settings: DreamPieConfig) -> RetryPolicy:
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.backoff_base,
            max_jitter=settings.backoff_jitter,
        )

    def delay_for(self, attempt_index: int, rng: Callable[[], float] = random.random) -> float:
        """Return the wait in seconds after a failed attempt.

        Args:
            attempt_index: Zero-based index of the attempt that just failed.
            rng: Source of uniform values in ``[0, 1)``.

        Returns:
            Delay in seconds.
        """
        return self.base_delay * (2**attempt_index) + rng() * self.max_jitter


@dataclass
class RetryState:
    """Progress of one generation call; discarded when the call ends.

    Attributes:
        policy: Policy the call runs under.
        attempt: Number of attempts started so far.
        last_delay: Most recent backoff delay, ``None`` before the first wait.
    """

    policy: RetryPolicy
    attempt: int = 0
    last_delay: float | None = None

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt >= self.policy.max_attempts

    @property
    def remaining(self) -> int:
        return max(0, self.policy.max_attempts - self.attempt)
