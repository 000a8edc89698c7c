"""
Tamper-evident queue token codec.

Wire form: ``id|allowAt|failCount|banUntil|fingerprint|nonce|mac`` where
``mac`` is HMAC-SHA256 (hex) over the first six fields joined by ``|``.
The server keeps no record of issued tokens; the mac is the only integrity
control, and anything that fails to parse or verify decodes to ``None``.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass, replace
from typing import Iterable, Optional

FIELD_SEPARATOR = "|"
WIRE_FIELD_COUNT = 7


@dataclass(frozen=True)
class QueueToken:
    """Queue state carried in the client's cookie."""

    id: str
    allow_at: int
    fail_count: int
    ban_until: int
    fingerprint: str
    nonce: str

    def payload(self) -> str:
        return FIELD_SEPARATOR.join(
            (
                self.id,
                str(self.allow_at),
                str(self.fail_count),
                str(self.ban_until),
                self.fingerprint,
                self.nonce,
            )
        )

    def evolve(self, **changes) -> "QueueToken":
        return replace(self, **changes)


def new_token_id() -> str:
    """Random 128-bit identifier as lowercase hex."""
    return secrets.token_hex(16)


def new_nonce() -> str:
    return secrets.token_hex(16)


def sign(payload: str, key: str) -> str:
    return hmac.new(key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def encode_token(token: QueueToken, key: str) -> str:
    """Serialize ``token`` and append its mac under ``key``."""
    payload = token.payload()
    return f"{payload}{FIELD_SEPARATOR}{sign(payload, key)}"


def _parse_counter(value: str) -> Optional[int]:
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def decode_token(raw: Optional[str], key: str) -> Optional[QueueToken]:
    """Verify and parse a wire token; ``None`` stands for "no token presented"."""
    if not raw:
        return None

    parts = raw.split(FIELD_SEPARATOR)
    if len(parts) != WIRE_FIELD_COUNT:
        return None

    token_id, allow_at, fail_count, ban_until, fingerprint, nonce, mac = parts
    payload = FIELD_SEPARATOR.join(parts[:-1])
    expected = sign(payload, key)

    try:
        presented = mac.encode("ascii")
    except UnicodeEncodeError:
        return None
    if not hmac.compare_digest(expected.encode("ascii"), presented):
        return None

    counters = [_parse_counter(value) for value in (allow_at, fail_count, ban_until)]
    if any(value is None for value in counters):
        return None

    return QueueToken(
        id=token_id,
        allow_at=counters[0],
        fail_count=counters[1],
        ban_until=counters[2],
        fingerprint=fingerprint,
        nonce=nonce,
    )


class TokenCodec:
    """Codec bound to a secret rotator.

    Signs with the rotator's active secret; verifies against every key the
    rotator currently accepts (just the active one unless a grace window is
    configured).
    """

    def __init__(self, rotator):
        self.rotator = rotator

    def encode(self, token: QueueToken) -> str:
        return encode_token(token, self.rotator.active_secret)

    def decode(self, raw: Optional[str]) -> Optional[QueueToken]:
        return self._decode_with(raw, self.rotator.verification_keys())

    @staticmethod
    def _decode_with(raw: Optional[str], keys: Iterable[str]) -> Optional[QueueToken]:
        for key in keys:
            token = decode_token(raw, key)
            if token is not None:
                return token
        return None
