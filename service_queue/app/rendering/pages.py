"""
HTML pages emitted by the gateway: the waiting room and the block notice.

Both pages work without JavaScript; the progress bar and the delayed
Continue button are pure CSS animations.
"""

import math
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from .theme import ThemeLoader

QUEUE_MODES = ("first", "retry")

BLOCK_REASONS = {
    "too_many_requests": "You sent too many requests in a short time.",
    "suspicious_pattern": "Suspicious activity detected from your connection.",
    "rate_limit": "Rate limit exceeded. Please slow down.",
    "global_ban": "Your fingerprint has been temporarily blocked.",
}


def block_message(reason: str) -> str:
    return BLOCK_REASONS.get(reason, BLOCK_REASONS["too_many_requests"])


class PageRenderer:
    """Renders the Queue and Blocked documents."""

    def __init__(
        self,
        site_name: str,
        gateway_label: str,
        queue_image_url: str,
        theme: Optional[ThemeLoader] = None,
    ):
        self.site_name = site_name
        self.gateway_label = gateway_label
        self.queue_image_url = queue_image_url
        self.theme = theme or ThemeLoader()
        self.jinja_env = Environment(
            loader=PackageLoader("service_queue.app.rendering", "templates"),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_queue(self, remaining: int, destination: Optional[str], mode: str = "first") -> str:
        if mode not in QUEUE_MODES:
            raise ValueError(f"Unknown queue mode: {mode}")
        template = self.jinja_env.get_template("queue.html")
        return template.render(
            site_name=self.site_name,
            gateway_label=self.gateway_label,
            queue_image_url=self.queue_image_url,
            colors=self.theme.colors(),
            duration=max(int(remaining), 1),
            destination=destination,
            mode=mode,
        )

    def render_blocked(self, seconds: int, reason: str = "too_many_requests") -> str:
        template = self.jinja_env.get_template("blocked.html")
        return template.render(
            gateway_label=self.gateway_label,
            colors=self.theme.colors(),
            message=block_message(reason),
            minutes=math.ceil(max(int(seconds), 0) / 60),
        )
