"""
Per-request admission decisions for the queue gateway.

Every inbound request is evaluated once, in a fixed order where the first
terminal step wins:

1. bypass for excluded paths and static assets
2. redirect absolute request targets to ``/``
3. fingerprint the client from its headers
4. refuse fingerprints with an active global ban
5. refuse (and ban) fingerprints over the sliding-window limit
6. count suspicious header patterns, banning at the threshold
7. read the queue token; missing, forged or foreign tokens restart the queue
8. honor a ban recorded inside the token
9. queue premature retries (banning after ``max_fails``) or admit the client

Whatever goes wrong inside steps 3-9 the client is sent back to the start of
the queue, never through to the hosted application.
"""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Mapping, Optional

from shared.config import GatewaySettings
from shared.logging import get_logger, set_fingerprint_context
from ..bans.registry import (
    BanRegistry,
    RATE_LIMIT,
    SUSPICIOUS_PATTERN,
    TOO_MANY_REQUESTS,
)
from ..ratelimit.sliding_window import SlidingWindowRateLimiter
from ..rendering.pages import PageRenderer
from ..rendering.theme import ThemeLoader
from ..screening.fingerprint import FingerprintExtractor
from ..screening.suspicion import SuspicionDetector
from ..stores.base import KeyValueStore
from ..stores.memory import MemoryStore
from ..tokens.codec import QueueToken, TokenCodec, new_nonce, new_token_id
from ..tokens.secret_rotator import SecretRotator

ABSOLUTE_TARGET = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


class Outcome(str, Enum):
    BYPASS = "bypass"
    REDIRECT = "redirect"
    BLOCK = "blocked"
    QUEUE = "queued"
    CONTINUE = "continue"


@dataclass
class GatewayRequest:
    """The parts of an inbound request the gateway looks at."""

    path: str
    target: str
    headers: Mapping[str, str]
    cookies: Mapping[str, str]


@dataclass(frozen=True)
class CookieDirective:
    name: str
    value: str
    expires_at: int


@dataclass
class GatewayDecision:
    """What to do with a request, plus the cookie changes to apply."""

    outcome: Outcome
    body: Optional[str] = None
    redirect_to: Optional[str] = None
    reason: Optional[str] = None
    remaining: Optional[int] = None
    queue_mode: Optional[str] = None
    token: Optional[QueueToken] = None
    set_cookies: List[CookieDirective] = field(default_factory=list)
    clear_cookies: List[str] = field(default_factory=list)


def is_absolute_target(target: str) -> bool:
    """True for targets carrying a scheme or a scheme-relative authority."""
    return bool(ABSOLUTE_TARGET.match(target)) or target.startswith(("//", "/\\"))


class QueueGateway:
    """Orchestrates fingerprinting, screening and the signed queue token."""

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        store: Optional[KeyValueStore] = None,
        rotator: Optional[SecretRotator] = None,
        renderer: Optional[PageRenderer] = None,
        metrics=None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.metrics = metrics
        self.clock = clock
        self.logger = get_logger("gateway.decisions")

        self.store = store or MemoryStore(
            max_entries=settings.store_max_entries,
            sweep_interval=settings.store_sweep_interval,
            clock=clock,
        )
        self.rotator = rotator or SecretRotator(
            settings.secret,
            interval=settings.rotate_secret_interval,
            grace_seconds=settings.secret_grace_seconds,
            clock=clock,
            metrics=metrics,
        )
        self.renderer = renderer or PageRenderer(
            site_name=settings.site_name,
            gateway_label=settings.gateway_label,
            queue_image_url=settings.queue_image_url,
            theme=ThemeLoader(settings.stylesheet_path, settings.theme_check_interval),
        )

        self.codec = TokenCodec(self.rotator)
        self.fingerprints = FingerprintExtractor(enabled=settings.enable_fingerprinting)
        self.rate_limiter = SlidingWindowRateLimiter(
            self.store,
            window_seconds=settings.fingerprint_rate_window_seconds,
            max_requests=settings.fingerprint_rate_max_requests,
        )
        self.suspicion = SuspicionDetector(self.store, threshold=settings.suspicious_pattern_threshold)
        self.bans = BanRegistry(self.store, metrics=metrics)

        self._excluded_extensions = {ext.lower().lstrip(".") for ext in settings.excluded_extensions}

    async def start(self):
        """Start background tasks (store sweeping, secret rotation)."""
        await self.store.start()
        await self.rotator.start()

    async def stop(self):
        await self.rotator.stop()
        await self.store.stop()

    def is_excluded(self, path: str) -> bool:
        for prefix in self.settings.excluded_path_prefixes:
            # Whole path segments only: /health must not cover /healthcare
            base = prefix.rstrip("/")
            if path == base or path.startswith(base + "/"):
                return True
        last_segment = path.rsplit("/", 1)[-1]
        if "." not in last_segment:
            return False
        return last_segment.rsplit(".", 1)[-1].lower() in self._excluded_extensions

    async def evaluate(self, request: GatewayRequest) -> GatewayDecision:
        """Decide how to answer ``request``."""
        if self.is_excluded(request.path):
            return GatewayDecision(outcome=Outcome.BYPASS)

        if is_absolute_target(request.target):
            self.logger.info("Refusing absolute request target", target=request.target[:200])
            decision = GatewayDecision(outcome=Outcome.REDIRECT, redirect_to="/")
            self._record(decision)
            return decision

        now = int(self.clock())
        fingerprint = self.fingerprints.compute(request.headers)
        set_fingerprint_context(fingerprint)

        try:
            decision = await self._decide(request, fingerprint, now)
        except Exception as e:
            self.logger.error(
                "Gateway decision failed, restarting queue",
                error=str(e),
                exc_info=True
            )
            decision = self._issue_first_visit(request, fingerprint, now, clear_access=False)

        self._record(decision)
        return decision

    async def _decide(self, request: GatewayRequest, fingerprint: str, now: int) -> GatewayDecision:
        settings = self.settings

        if settings.enable_fingerprinting:
            screened = await self._screen(request, fingerprint, now)
            if screened is not None:
                return screened

        raw_token = request.cookies.get(settings.queue_cookie)
        token = self.codec.decode(raw_token)
        if token is None:
            if raw_token:
                self._record_rejected_token()
            return self._issue_first_visit(request, fingerprint, now, clear_access=False)

        if token.fingerprint != fingerprint:
            self.logger.info("Queue token presented by a different fingerprint")
            return self._issue_first_visit(request, fingerprint, now, clear_access=True)

        if token.ban_until > now:
            return self._blocked(TOO_MANY_REQUESTS, token.ban_until - now, clear_access=True)

        remaining = token.allow_at - now
        if remaining > 0:
            return await self._premature_retry(request, token, fingerprint, now, remaining)

        return self._admit(request, token, now)

    async def _screen(self, request: GatewayRequest, fingerprint: str, now: int) -> Optional[GatewayDecision]:
        """Steps 4-6: global ban, rate limit and suspicion checks."""
        settings = self.settings

        ban = await self.bans.check(fingerprint, now)
        if ban is not None:
            return self._blocked(ban.reason, ban.until - now)

        if not await self.rate_limiter.allow(fingerprint, float(self.clock())):
            await self.bans.add(fingerprint, settings.ban_seconds, RATE_LIMIT, now)
            return self._blocked(RATE_LIMIT, settings.ban_seconds)

        tags = self.suspicion.detect(request.headers)
        if tags:
            if self.metrics is not None:
                self.metrics.record_suspicious_tags(tags)
            count = await self.suspicion.record(fingerprint)
            if self.suspicion.reaches_threshold(count):
                duration = settings.ban_seconds * 2
                await self.bans.add(fingerprint, duration, SUSPICIOUS_PATTERN, now)
                return self._blocked(SUSPICIOUS_PATTERN, duration)
            await self.suspicion.persist(fingerprint, count)
            self.logger.info("Suspicious request", tags=sorted(tags), count=count)

        return None

    async def _premature_retry(
        self,
        request: GatewayRequest,
        token: QueueToken,
        fingerprint: str,
        now: int,
        remaining: int,
    ) -> GatewayDecision:
        settings = self.settings
        fail_count = token.fail_count + 1

        if fail_count >= settings.max_fails:
            ban_until = now + settings.ban_seconds
            banned = token.evolve(
                allow_at=ban_until + settings.wait_seconds,
                fail_count=0,
                ban_until=ban_until,
                fingerprint=fingerprint,
            )
            if settings.enable_fingerprinting:
                await self.bans.add(fingerprint, settings.ban_seconds, TOO_MANY_REQUESTS, now)
            decision = self._blocked(TOO_MANY_REQUESTS, settings.ban_seconds, clear_access=True)
            self._attach_token(decision, banned, now)
            return decision

        retried = token.evolve(fail_count=fail_count, ban_until=0, fingerprint=fingerprint)
        return self._queued(request, retried, now, max(remaining, 1), mode="retry")

    def _admit(self, request: GatewayRequest, token: QueueToken, now: int) -> GatewayDecision:
        settings = self.settings
        decision = GatewayDecision(outcome=Outcome.CONTINUE)

        if not request.cookies.get(settings.access_cookie):
            decision.set_cookies.append(
                CookieDirective(settings.access_cookie, new_token_id(), now + settings.max_lifetime)
            )

        # Re-arm the queue for the client's next navigation.
        rearmed = token.evolve(
            nonce=new_nonce(),
            allow_at=now + settings.wait_seconds,
            fail_count=0,
            ban_until=0,
        )
        self._attach_token(decision, rearmed, now)
        return decision

    def _issue_first_visit(
        self,
        request: GatewayRequest,
        fingerprint: str,
        now: int,
        clear_access: bool,
    ) -> GatewayDecision:
        wait = self.settings.wait_seconds
        token = QueueToken(
            id=new_token_id(),
            allow_at=now + wait,
            fail_count=0,
            ban_until=0,
            fingerprint=fingerprint,
            nonce=new_nonce(),
        )
        decision = self._queued(request, token, now, wait, mode="first")
        if clear_access:
            decision.clear_cookies.append(self.settings.access_cookie)
        return decision

    def _queued(
        self,
        request: GatewayRequest,
        token: QueueToken,
        now: int,
        remaining: int,
        mode: str,
    ) -> GatewayDecision:
        decision = GatewayDecision(
            outcome=Outcome.QUEUE,
            body=self.renderer.render_queue(remaining, request.target, mode=mode),
            remaining=remaining,
            queue_mode=mode,
        )
        self._attach_token(decision, token, now)
        return decision

    def _blocked(self, reason: str, seconds: int, clear_access: bool = False) -> GatewayDecision:
        decision = GatewayDecision(
            outcome=Outcome.BLOCK,
            body=self.renderer.render_blocked(seconds, reason),
            reason=reason,
            remaining=seconds,
        )
        if clear_access:
            decision.clear_cookies.append(self.settings.access_cookie)
        return decision

    def _attach_token(self, decision: GatewayDecision, token: QueueToken, now: int) -> None:
        decision.token = token
        decision.set_cookies.append(
            CookieDirective(
                self.settings.queue_cookie,
                self.codec.encode(token),
                now + self.settings.max_lifetime,
            )
        )

    def _record(self, decision: GatewayDecision) -> None:
        if self.metrics is not None:
            self.metrics.record_gateway_decision(decision.outcome.value)
        if decision.outcome is Outcome.BLOCK:
            self.logger.info("Request blocked", reason=decision.reason, remaining=decision.remaining)

    def _record_rejected_token(self) -> None:
        if self.metrics is not None:
            self.metrics.record_token_rejection()
        self.logger.info("Discarding unverifiable queue token")
