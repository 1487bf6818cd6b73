"""
Sliding-window rate limiting for outbound executions.

The limiter is local and advisory: it keeps recent call timestamps in
memory per ``identifier:tier`` key and does not coordinate across
processes.
"""

import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitTier:
    """A sliding window admitting at most ``limit`` calls per ``window_seconds``."""

    name: str
    limit: int
    window_seconds: int


# Evaluated in order; the first exhausted tier decides the retry delay
DEFAULT_TIERS: Tuple[RateLimitTier, ...] = (
    RateLimitTier(name="minute", limit=60, window_seconds=60),
    RateLimitTier(name="hour", limit=1000, window_seconds=3600),
)


class RateLimitDecision(BaseModel):
    """Result of a rate limit check."""
    allowed: bool
    retry_after_seconds: int | None = None


class RateLimiter:
    """In-memory sliding-window limiter with one window per tier."""

    def __init__(
        self,
        tiers: Tuple[RateLimitTier, ...] = DEFAULT_TIERS,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the limiter.

        Args:
            tiers: Windows to enforce, checked in order
            clock: Returns the current time in seconds; defaults to time.monotonic
        """
        self.tiers = tiers
        self._clock = clock or time.monotonic
        self._calls: Dict[str, Deque[float]] = defaultdict(deque)

    def _window(self, identifier: str, tier: RateLimitTier, now: float) -> Deque[float]:
        calls = self._calls[f"{identifier}:{tier.name}"]
        window_start = now - tier.window_seconds
        while calls and calls[0] <= window_start:
            calls.popleft()
        return calls

    def allow(self, identifier: str) -> RateLimitDecision:
        """
        Check whether ``identifier`` may issue another call and record it if so.

        The retry delay reported on rejection is the full window length of
        the exhausted tier.
        """
        now = self._clock()
        windows = []

        for tier in self.tiers:
            calls = self._window(identifier, tier, now)
            if len(calls) >= tier.limit:
                logger.warning(
                    "Rate limit exceeded for %s (%s tier, %d calls)",
                    identifier, tier.name, tier.limit
                )
                return RateLimitDecision(allowed=False, retry_after_seconds=tier.window_seconds)
            windows.append(calls)

        for calls in windows:
            calls.append(now)

        return RateLimitDecision(allowed=True)

    def clear(self) -> None:
        """Forget all recorded calls."""
        self._calls.clear()
