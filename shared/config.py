"""
Shared configuration management for the Zant queue gateway.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


DEFAULT_EXCLUDED_PATH_PREFIXES = ["/_queue/", "/health", "/metrics", "/favicon.ico"]
DEFAULT_EXCLUDED_EXTENSIONS = [
    "css", "js", "jpg", "jpeg", "png", "gif", "svg", "ico",
    "woff", "woff2", "ttf", "webp", "map",
]
STORE_BACKENDS = ("memory", "redis")


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ZANT_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    store_backend: str = Field(default="memory")
    store_max_entries: int = Field(default=100_000)
    store_sweep_interval: float = Field(default=60.0)


class GatewaySettings(BaseConfig):
    """Queue gateway settings.

    Every option can be supplied through a ``ZANT_``-prefixed environment
    variable, e.g. ``ZANT_SECRET`` or ``ZANT_WAIT_SECONDS``.
    """

    service_name: str = "queue-gateway"
    host: str = "0.0.0.0"
    port: int = 8000

    # Token signing
    secret: str = Field(default="replace-this-with-a-long-random-secret")
    rotate_secret_interval: int = Field(default=3600)
    secret_grace_seconds: int = Field(default=0)

    # Presentation
    site_name: str = Field(default="Protected Site")
    gateway_label: str = Field(default="Zant Gateway")
    queue_image_url: str = Field(default="/_queue/onion.webp")
    stylesheet_path: Optional[str] = Field(default=None)
    theme_check_interval: float = Field(default=5.0)

    # Cookies
    queue_cookie: str = Field(default="zant_q")
    access_cookie: str = Field(default="zant_a")
    cookie_secure: bool = Field(default=False)

    # Queue policy
    wait_seconds: int = Field(default=5)
    max_lifetime: int = Field(default=3600)
    max_fails: int = Field(default=3)
    ban_seconds: int = Field(default=300)

    # Screening
    enable_fingerprinting: bool = Field(default=True)
    suspicious_pattern_threshold: int = Field(default=10)
    fingerprint_rate_window_ms: int = Field(default=60_000)
    fingerprint_rate_max_requests: int = Field(default=20)

    # Declared for configuration compatibility; no decision path reads these.
    enable_proof_of_work: bool = Field(default=True)
    pow_difficulty: int = Field(default=4)

    # Routing
    excluded_path_prefixes: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_PATH_PREFIXES)
    )
    excluded_extensions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_EXTENSIONS)
    )

    @property
    def fingerprint_rate_window_seconds(self) -> float:
        return self.fingerprint_rate_window_ms / 1000.0

    def validate_policy(self) -> None:
        """Reject settings the gateway cannot operate with."""
        positive = {
            "wait_seconds": self.wait_seconds,
            "max_lifetime": self.max_lifetime,
            "max_fails": self.max_fails,
            "ban_seconds": self.ban_seconds,
            "rotate_secret_interval": self.rotate_secret_interval,
            "suspicious_pattern_threshold": self.suspicious_pattern_threshold,
            "fingerprint_rate_window_ms": self.fingerprint_rate_window_ms,
            "fingerprint_rate_max_requests": self.fingerprint_rate_max_requests,
            "store_max_entries": self.store_max_entries,
        }
        invalid = {name: value for name, value in positive.items() if value <= 0}
        if invalid:
            raise ConfigurationError("Gateway settings must be positive", details=invalid)

        if self.secret_grace_seconds < 0:
            raise ConfigurationError(
                "secret_grace_seconds must not be negative",
                details={"secret_grace_seconds": self.secret_grace_seconds},
            )

        if not self.secret:
            raise ConfigurationError("A signing secret is required")

        if self.store_backend not in STORE_BACKENDS:
            raise ConfigurationError(
                "Unknown store backend",
                details={"store_backend": self.store_backend, "supported": list(STORE_BACKENDS)},
            )

        if self.queue_cookie == self.access_cookie:
            raise ConfigurationError(
                "Queue and access cookies must use different names",
                details={"cookie": self.queue_cookie},
            )


def get_settings(**overrides) -> GatewaySettings:
    """Get gateway settings, applying explicit overrides over the environment."""
    settings = GatewaySettings(**overrides)
    settings.validate_policy()
    return settings
