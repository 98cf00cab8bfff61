"""Fixed-window rate limiting per client key."""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from .errors import RateLimitExceeded

log = structlog.stdlib.get_logger()


@dataclass
class RateWindow:
    """Request count inside the window opened at ``window_start`` (seconds)."""
    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: int  # Epoch seconds when the window closes
    retry_after: int | None = None  # Seconds, only set on rejection

    def headers(self) -> dict[str, str]:
        """Rate-limit metadata for the transport layer's response headers."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiterService:
    """Fixed-window admission control keyed by client identity.

    Each route gets its own instance; windows are never shared between
    instances.
    """

    def __init__(
        self,
        name: str,
        window_ms: int = 60000,
        max_requests: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            name: Route or scope this limiter guards, used in logs
            window_ms: Window length in milliseconds
            max_requests: Admissions allowed per key per window
            clock: Wall clock returning epoch seconds
        """
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")

        self.name = name
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._window_seconds = window_ms / 1000
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

        log.info(
            "Rate limiter initialized",
            limiter=name,
            window_ms=window_ms,
            max_requests=max_requests,
        )

    def check(self, key: str | None) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether to admit it.

        A request without a client key cannot be attributed and is admitted
        without being counted.
        """
        now = self._clock()
        self._purge_expired(now)

        if not key:
            log.debug("Rate limit skipped for anonymous client", limiter=self.name)
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_at=math.ceil(now + self._window_seconds),
            )

        window = self._windows.get(key)
        if window is None or now - window.window_start >= self._window_seconds:
            window = RateWindow(count=1, window_start=now)
            self._windows[key] = window
        else:
            window.count += 1

        window_end = window.window_start + self._window_seconds
        reset_at = math.ceil(window_end)

        if window.count > self.max_requests:
            retry_after = max(1, math.ceil(window_end - now))
            log.warning(
                "Rate limit exceeded",
                limiter=self.name,
                client=key,
                count=window.count,
                retry_after=retry_after,
            )
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_at=reset_at,
                retry_after=retry_after,
            )

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - window.count,
            reset_at=reset_at,
        )

    def enforce(self, key: str | None) -> RateLimitDecision:
        """Like ``check`` but raises when the request is rejected.

        Raises:
            RateLimitExceeded: When the key is over its quota
        """
        decision = self.check(key)
        if not decision.allowed:
            raise RateLimitExceeded(
                retry_after=decision.retry_after or 1,
                limit=decision.limit,
                reset_at=decision.reset_at,
            )
        return decision

    def active_keys(self) -> int:
        """Number of keys currently tracked."""
        return len(self._windows)

    def _purge_expired(self, now: float) -> None:
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.window_start >= self._window_seconds
        ]
        for key in expired:
            del self._windows[key]
