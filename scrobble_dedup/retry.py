from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates on the first attempt. After ``max_attempts`` the last
    exception is re-raised unchanged.
    """

    max_attempts: int = 3
    initial_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 60.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based failed attempt."""
        return min(self.max_delay, self.initial_delay * self.multiplier**attempt)

    def call(self, func: Callable[..., T], *args: Any, operation: str = "operation", **kwargs: Any) -> T:
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_attempts - 1:
                    log.debug("%s gave up after %d attempts", operation, self.max_attempts)
                    raise
                delay = self.delay_for(attempt)
                log.warning(
                    "%s failed: %s (retry %d/%d in %.1fs)",
                    operation,
                    e,
                    attempt + 1,
                    self.max_attempts - 1,
                    delay,
                )
                time.sleep(delay)
                attempt += 1
