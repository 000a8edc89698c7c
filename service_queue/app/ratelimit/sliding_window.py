"""
Sliding-window rate limiter keyed by client fingerprint.
"""

from typing import Any, Dict, List

from shared.logging import get_logger
from ..stores.base import KeyValueStore


class SlidingWindowRateLimiter:
    """Counts requests per fingerprint inside a moving time window.

    Accounting is approximate under concurrent requests for one fingerprint:
    two racing requests may both read the same window and one append is
    lost. That is acceptable for a defense-in-depth layer.
    """

    def __init__(self, store: KeyValueStore, window_seconds: float = 60.0, max_requests: int = 20):
        self.store = store
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.logger = get_logger("gateway.rate_limiter")

    def _make_key(self, fingerprint: str) -> str:
        """Generate rate limit key."""
        return f"rate:{fingerprint}"

    def _prune(self, timestamps: List[float], now: float) -> List[float]:
        return [t for t in timestamps if now - t < self.window_seconds]

    async def allow(self, fingerprint: str, now: float) -> bool:
        """Record a request at ``now`` if the window has room; False otherwise."""
        key = self._make_key(fingerprint)
        window = self._prune(await self.store.get(key) or [], now)

        if len(window) >= self.max_requests:
            self.logger.warning(
                "Fingerprint rate limit exceeded",
                fingerprint=fingerprint[:12],
                current_count=len(window),
                limit=self.max_requests
            )
            return False

        await self.store.set(key, window + [now], ttl=self.window_seconds)
        return True

    async def get_status(self, fingerprint: str, now: float) -> Dict[str, Any]:
        """Current usage of the fingerprint's window."""
        window = self._prune(await self.store.get(self._make_key(fingerprint)) or [], now)
        reset_in = self.window_seconds - (now - window[0]) if window else 0.0
        return {
            "current_count": len(window),
            "limit": self.max_requests,
            "remaining": max(0, self.max_requests - len(window)),
            "reset_in_seconds": max(0.0, reset_in),
        }

    async def reset(self, fingerprint: str) -> None:
        await self.store.delete(self._make_key(fingerprint))
        self.logger.info("Rate limit reset", fingerprint=fingerprint[:12])
