"""
Process-wide temporary bans keyed by fingerprint.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from shared.logging import get_logger
from ..stores.base import KeyValueStore

RATE_LIMIT = "rate_limit"
SUSPICIOUS_PATTERN = "suspicious_pattern"
TOO_MANY_REQUESTS = "too_many_requests"
GLOBAL_BAN = "global_ban"


@dataclass(frozen=True)
class BanRecord:
    until: int
    reason: str
    issued_at: int

    def remaining(self, now: int) -> int:
        return max(0, self.until - now)


class BanRegistry:
    """Temporary ban list; expired records are removed when read."""

    def __init__(self, store: KeyValueStore, metrics=None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("gateway.bans")

    def _make_key(self, fingerprint: str) -> str:
        return f"ban:{fingerprint}"

    async def add(self, fingerprint: str, duration_seconds: int, reason: str, now: int) -> BanRecord:
        record = BanRecord(until=now + duration_seconds, reason=reason, issued_at=now)
        await self.store.set(self._make_key(fingerprint), asdict(record), ttl=duration_seconds)

        if self.metrics is not None:
            self.metrics.record_ban(reason)
        self.logger.warning(
            "Fingerprint banned",
            fingerprint=fingerprint[:12],
            reason=reason,
            duration_seconds=duration_seconds
        )
        return record

    async def check(self, fingerprint: str, now: int) -> Optional[BanRecord]:
        """Return the active ban for ``fingerprint``, or None."""
        key = self._make_key(fingerprint)
        data = await self.store.get(key)
        if not data:
            return None

        try:
            record = BanRecord(
                until=int(data["until"]),
                reason=str(data.get("reason") or GLOBAL_BAN),
                issued_at=int(data.get("issued_at", 0)),
            )
        except (KeyError, TypeError, ValueError):
            self.logger.warning("Discarding malformed ban record", fingerprint=fingerprint[:12])
            await self.store.delete(key)
            return None

        if record.until > now:
            return record

        await self.store.delete(key)
        return None

    async def lift(self, fingerprint: str) -> None:
        await self.store.delete(self._make_key(fingerprint))
        self.logger.info("Ban lifted", fingerprint=fingerprint[:12])
