"""Scheduling policies applied between embedding batches."""
import time
import logging
from typing import Callable

from config import BATCH_DELAY_SECONDS

logger = logging.getLogger(__name__)


class NoDelayPolicy:
    """Issue batches back to back."""
    
    def wait(self, batch_tokens: int, is_last: bool) -> None:
        return None


class FixedDelayPolicy:
    """Pause for a fixed interval after every batch except the last one."""
    
    def __init__(
        self,
        delay_seconds: float = BATCH_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep
    ):
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        self.delay_seconds = delay_seconds
        self._sleep = sleep
    
    def wait(self, batch_tokens: int, is_last: bool) -> None:
        if is_last or self.delay_seconds == 0:
            return
        self._sleep(self.delay_seconds)


class TokenBucketPolicy:
    """
    Throttle batches against a tokens-per-minute budget.
    
    The bucket starts full and refills continuously. After a batch is sent its
    estimated tokens are drawn from the bucket; when the bucket runs negative
    the caller sleeps until it has refilled back to zero. A single batch larger
    than the whole budget therefore waits for a full refill rather than
    blocking forever.
    """
    
    def __init__(
        self,
        tokens_per_minute: int,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        if tokens_per_minute <= 0:
            raise ValueError("tokens_per_minute must be positive")
        self.capacity = float(tokens_per_minute)
        self.refill_rate = tokens_per_minute / 60.0
        self._sleep = sleep
        self._clock = clock
        self._available = self.capacity
        self._last_refill = clock()
    
    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._last_refill = now
        self._available = min(self.capacity, self._available + elapsed * self.refill_rate)
    
    def wait(self, batch_tokens: int, is_last: bool) -> None:
        self._refill()
        self._available -= batch_tokens
        if is_last or self._available >= 0:
            return
        
        delay = -self._available / self.refill_rate
        logger.info(f"Token budget exhausted, pausing {delay:.2f}s before next batch")
        self._sleep(delay)
        self._refill()
