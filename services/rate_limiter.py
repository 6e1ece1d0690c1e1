from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Pause applied between upstream requests for consecutive stations."""

    def wait(self) -> None:
        raise NotImplementedError


class FixedDelayRateLimiter(RateLimiter):

    def __init__(
        self,
        delay_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the limiter.

        Args:
            delay_seconds: Seconds to pause on every call to :meth:`wait`.
            sleep: Sleep function, replaceable in tests.
        """
        if delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def wait(self) -> None:
        if self.delay_seconds <= 0:
            return
        logger.debug(f"Pausing {self.delay_seconds}s before next station")
        self._sleep(self.delay_seconds)


class NoDelayRateLimiter(RateLimiter):

    def wait(self) -> None:
        return None
