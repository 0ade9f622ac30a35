"""
Client-side pacing for RPC requests
"""
import asyncio
import time


class TokenBucketRateLimiter:
    """
    Token bucket limiting how fast requests leave for a node.
    A rate of 0 or less disables limiting.
    """

    def __init__(self, rate: float, burst: int = 1):
        """
        Args:
            rate: Requests per second
            burst: Maximum requests sent back to back
        """
        self.rate = rate
        self.burst = max(burst, 1)
        self.tokens = float(self.burst)
        self.last_update = time.monotonic()
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.rate > 0

    def _refill(self, now: float):
        elapsed = now - self.last_update
        if elapsed > 0:
            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last_update = now

    async def acquire(self):
        """Wait until a request may be sent"""
        if not self.enabled:
            return

        async with self._lock:
            self._refill(time.monotonic())
            if self.tokens >= 1:
                self.tokens -= 1
                return
            # Reserve the next token and sleep until it is due
            wait_time = (1 - self.tokens) / self.rate
            self.tokens -= 1

        await asyncio.sleep(wait_time)
