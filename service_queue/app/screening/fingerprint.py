"""
Header-derived client fingerprints.

Onion-service clients all arrive from the same local address, so a digest of
a few slow-changing request headers stands in for network identity.
"""

import hashlib
from typing import Mapping, Optional

FINGERPRINT_HEADERS = ("user-agent", "accept-language", "accept-encoding", "accept")


def header_value(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that works for plain dicts too."""
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def compute_fingerprint(headers: Mapping[str, str]) -> str:
    """sha256 hex digest over the fingerprint headers in fixed order."""
    components = "|".join(header_value(headers, name) or "" for name in FINGERPRINT_HEADERS)
    return hashlib.sha256(components.encode("utf-8")).hexdigest()


ANONYMOUS_FINGERPRINT = compute_fingerprint({})


class FingerprintExtractor:
    """Derives the per-client identifier used by every screening layer."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def compute(self, headers: Mapping[str, str]) -> str:
        if not self.enabled:
            return ANONYMOUS_FINGERPRINT
        return compute_fingerprint(headers)
