"""
Heuristics for spotting scripted clients from their request headers.
"""

from typing import Mapping, Optional, Set

from shared.logging import get_logger
from ..stores.base import KeyValueStore
from .fingerprint import header_value

MISSING_USER_AGENT = "missing_user_agent"
AUTOMATED_TOOL_SIGNATURE = "automated_tool_signature"
MISSING_ACCEPT = "missing_accept"

MIN_USER_AGENT_LENGTH = 10
AUTOMATED_SIGNATURES = ("bot", "crawler", "spider", "scraper", "curl", "wget", "python")


def detect_suspicious_patterns(headers: Mapping[str, str]) -> Set[str]:
    """Return the suspicion tags raised by ``headers`` (empty when clean)."""
    tags: Set[str] = set()

    user_agent = header_value(headers, "user-agent")
    if not user_agent or len(user_agent) < MIN_USER_AGENT_LENGTH:
        tags.add(MISSING_USER_AGENT)

    lowered = (user_agent or "").lower()
    if any(signature in lowered for signature in AUTOMATED_SIGNATURES):
        tags.add(AUTOMATED_TOOL_SIGNATURE)

    if not header_value(headers, "accept"):
        tags.add(MISSING_ACCEPT)

    return tags


class SuspicionDetector:
    """Tags suspicious requests and keeps a per-fingerprint tally of them."""

    def __init__(self, store: KeyValueStore, threshold: int = 10, counter_ttl: Optional[float] = None):
        self.store = store
        self.threshold = threshold
        self.counter_ttl = counter_ttl
        self.logger = get_logger("gateway.screening.suspicion")

    def _make_key(self, fingerprint: str) -> str:
        return f"suspicion:{fingerprint}"

    def detect(self, headers: Mapping[str, str]) -> Set[str]:
        return detect_suspicious_patterns(headers)

    async def record(self, fingerprint: str) -> int:
        """Return the incremented counter without storing it."""
        current = await self.store.get(self._make_key(fingerprint))
        return int(current or 0) + 1

    async def persist(self, fingerprint: str, count: int) -> None:
        await self.store.set(self._make_key(fingerprint), count, ttl=self.counter_ttl)

    async def count(self, fingerprint: str) -> int:
        return int(await self.store.get(self._make_key(fingerprint)) or 0)

    def reaches_threshold(self, count: int) -> bool:
        return count >= self.threshold
