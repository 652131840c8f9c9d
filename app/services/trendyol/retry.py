"""Explicit backoff policy applied by the sync services, never by the client."""

import logging
import time
from typing import Callable, Optional, TypeVar

from app.core.config import settings
from app.core.errors import MarketplaceError

__logger__ = logging.getLogger(__name__)

R = TypeVar("R")


class RetryPolicy:
    """
    Retry retryable marketplace errors with exponential backoff.

    Only errors flagged ``retryable`` (transient 5xx, rate limits, network
    failures) are retried; the last error is re-raised unchanged so its
    kind reaches the caller.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    @classmethod
    def none(cls) -> "RetryPolicy":
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=max(settings.trendyol_retry_attempts, 1),
            base_delay=settings.trendyol_retry_base_delay,
        )

    def delay_for(self, attempt: int, error: Optional[MarketplaceError] = None) -> float:
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            return min(float(retry_after), self.max_delay)
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def call(self, operation: Callable[[], R], description: str = "marketplace call") -> R:
        attempt = 0
        while True:
            try:
                return operation()
            except MarketplaceError as e:
                attempt += 1
                if not e.retryable or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt - 1, e)
                __logger__.warning(
                    f"{description} failed with {e.kind} "
                    f"(attempt {attempt}/{self.max_attempts}); retrying in {delay:.1f}s"
                )
                self.sleep(delay)
