"""
Time-rotating signing secret for queue tokens.
"""

import asyncio
import hashlib
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from shared.logging import get_logger


@dataclass(frozen=True)
class _SecretState:
    current: str
    previous: Optional[str]
    rotated_at: float


def derive_secret(static_secret: str, epoch: int) -> str:
    """Digest of the static secret plus the rotation timestamp."""
    return hashlib.sha256(f"{static_secret}{epoch}".encode("utf-8")).hexdigest()


class SecretRotator:
    """Holds the active token signing secret and rotates it periodically.

    The whole state is swapped by a single reference assignment, so readers
    always see a complete (current, previous) pair.
    """

    def __init__(
        self,
        static_secret: str,
        interval: float = 3600,
        grace_seconds: float = 0,
        clock: Callable[[], float] = time.time,
        metrics=None,
    ):
        self.static_secret = static_secret
        self.interval = interval
        self.grace_seconds = grace_seconds
        self.clock = clock
        self.metrics = metrics
        self.logger = get_logger("gateway.tokens.secret_rotator")

        self._state = _SecretState(current=static_secret, previous=None, rotated_at=clock())
        self._task: Optional[asyncio.Task] = None
        self.running = False

    @property
    def active_secret(self) -> str:
        return self._state.current

    def get_active_secret(self) -> str:
        return self._state.current

    def verification_keys(self) -> Tuple[str, ...]:
        """Keys a presented token may be signed with, newest first."""
        state = self._state
        if (
            state.previous is not None
            and self.grace_seconds > 0
            and self.clock() - state.rotated_at < self.grace_seconds
        ):
            return (state.current, state.previous)
        return (state.current,)

    def rotate(self, now: Optional[float] = None) -> str:
        """Derive and publish a new secret."""
        now = self.clock() if now is None else now
        new_secret = derive_secret(self.static_secret, int(now))
        self._state = _SecretState(current=new_secret, previous=self._state.current, rotated_at=now)

        if self.metrics is not None:
            self.metrics.record_secret_rotation()
        self.logger.info("Signing secret rotated", grace_seconds=self.grace_seconds)
        return new_secret

    async def start(self):
        """Start the rotation task."""
        if self._task is not None:
            return
        self.running = True
        self._task = asyncio.create_task(self._rotation_loop())
        self.logger.info("Secret rotation started", interval=self.interval)

    async def stop(self):
        """Stop the rotation task."""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self.logger.info("Secret rotation stopped")

    async def _rotation_loop(self):
        while self.running:
            try:
                await asyncio.sleep(self.interval)
                self.rotate()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error("Secret rotation failed", error=str(e))
