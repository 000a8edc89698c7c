"""
Shared fixtures for queue gateway tests.
"""

import time

import pytest

from shared.config import get_settings

BROWSER_HEADERS = {
    "user-agent": "Mozilla/5.0 (Windows NT 10.0; rv:115.0) Gecko/20100101 Firefox/115.0",
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "accept-language": "en-US,en;q=0.5",
    "accept-encoding": "gzip, deflate",
}


class FakeClock:
    """Manually advanced wall clock, starting at the real current time."""

    def __init__(self, start=None):
        self.now = float(int(start if start is not None else time.time()))

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def browser_headers():
    return dict(BROWSER_HEADERS)


@pytest.fixture
def settings():
    """Gateway settings used by most tests."""
    return get_settings(
        secret="S",
        wait_seconds=5,
        max_lifetime=3600,
        max_fails=3,
        ban_seconds=300,
        suspicious_pattern_threshold=10,
        fingerprint_rate_window_ms=60000,
        fingerprint_rate_max_requests=20,
        log_level="warning",
    )
