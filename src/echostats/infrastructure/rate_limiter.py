"""
Token bucket rate limiter for outgoing Spotify calls.

Hey future me – this paces our side of the conversation with Spotify.
Spotify allows roughly 180 requests/minute per app; a single stats request fans
out 5-6 calls, so a handful of dashboard reloads in parallel can burst past that.

ALGORITHM: Token Bucket
- Bucket holds max_tokens
- Tokens refill at refill_rate per second
- Every request consumes 1 token
- Empty bucket: wait until a token is available

ON 429:
- We do NOT sleep and retry inside the request (the stats request would hang).
  The client raises RateLimitExceededError, which follows the normal failure path.
- drain() empties the bucket and pauses new calls for Retry-After seconds, so the
  NEXT request doesn't run straight into another 429. Callers pass max_wait to
  acquire(); a pause longer than that fails fast instead of stalling the request.

USAGE:
    limiter = get_spotify_limiter()
    if not await limiter.acquire(max_wait=timeout):
        ...  # fail the call, Spotify asked us to back off
    response = await client.get(url)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter.

    Defaults are tuned for Spotify: 2 req/sec sustained with bursts of 10.
    """

    max_tokens: int = 10  # Bucket size
    refill_rate: float = 2.0  # Tokens per second
    max_penalty_seconds: float = 60.0  # Cap for Retry-After driven pauses


@dataclass
class RateLimiter:
    """Token Bucket Rate Limiter.

    Use as an async context manager around each outgoing request.
    """

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    _tokens: float = field(default=0.0, init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _blocked_until: float = field(default=0.0, init=False)
    _lock: asyncio.Lock | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        """Initialize tokens to max capacity."""
        self._tokens = float(self.config.max_tokens)

    @classmethod
    def for_spotify(cls) -> "RateLimiter":
        """Create rate limiter tuned for the Spotify Web API."""
        return cls(
            config=RateLimiterConfig(max_tokens=10, refill_rate=2.0, max_penalty_seconds=60.0),
            name="spotify",
        )

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self.config.max_tokens, self._tokens + elapsed * self.config.refill_rate)
        self._last_refill = now

    def _wait_time(self) -> float:
        now = time.monotonic()
        blocked = max(0.0, self._blocked_until - now)
        deficit = max(0.0, (1.0 - self._tokens) / self.config.refill_rate)
        return max(blocked, deficit)

    @property
    def pause_remaining(self) -> float:
        """Seconds left of the pause set by the last 429 (0 when not paused)."""
        return max(0.0, self._blocked_until - time.monotonic())

    async def acquire(self, max_wait: float | None = None) -> bool:
        """Acquire one token, waiting if necessary.

        Hey future me - the lock only guards the bookkeeping. The token is RESERVED
        under the lock (the bucket may go negative) and the sleep happens outside it,
        so a 429 pause never turns into a queue where every caller waits for the one
        in front of it.

        Args:
            max_wait: Longest acceptable wait in seconds. None waits as long as needed.

        Returns:
            False without consuming a token if the wait would exceed max_wait
        """
        async with self._get_lock():
            self._refill_tokens()
            wait_time = self._wait_time()
            if max_wait is not None and wait_time > max_wait:
                logger.debug(
                    "RateLimiter[%s]: wait of %.2fs exceeds %.2fs, not waiting",
                    self.name,
                    wait_time,
                    max_wait,
                )
                return False
            self._tokens -= 1.0

        if wait_time > 0:
            logger.debug("RateLimiter[%s]: waiting %.2fs for a token", self.name, wait_time)
            await asyncio.sleep(wait_time)
        return True

    def drain(self, retry_after: float | None = None) -> float:
        """React to a 429: empty the bucket and pause new calls.

        Args:
            retry_after: Retry-After header value in seconds, if Spotify sent one

        Returns:
            The pause applied, in seconds
        """
        pause = min(
            retry_after if retry_after is not None else 1.0 / self.config.refill_rate,
            self.config.max_penalty_seconds,
        )
        self._refill_tokens()
        self._tokens = 0.0
        self._blocked_until = max(self._blocked_until, time.monotonic() + pause)
        logger.warning(
            "RateLimiter[%s]: 429 received, pausing new calls for %.1fs",
            self.name,
            pause,
        )
        return pause

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        return None

    @property
    def available_tokens(self) -> float:
        """Current available tokens (for debugging)."""
        self._refill_tokens()
        return self._tokens


_spotify_limiter: RateLimiter | None = None


def get_spotify_limiter() -> RateLimiter:
    """Get singleton Spotify rate limiter."""
    global _spotify_limiter
    if _spotify_limiter is None:
        _spotify_limiter = RateLimiter.for_spotify()
    return _spotify_limiter


__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
    "get_spotify_limiter",
]
