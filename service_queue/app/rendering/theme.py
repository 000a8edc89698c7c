"""
Theme colors pulled from the hosted site's stylesheet.
"""

import os
import re
import threading
import time
from typing import Callable, Dict, Optional

from shared.logging import get_logger

DEFAULT_COLORS: Dict[str, str] = {
    "background": "linear-gradient(135deg, #1a1a1a 0%, #222 50%, #1a1a1a 100%)",
    "foreground": "#eee",
    "box_background": "rgba(34, 34, 34, 0.9)",
    "border": "#9caf88",
    "accent": "#9caf88",
    "accent_light": "#b5c9a2",
    "primary": "#9caf88",
    "primary_dark": "#7b8e76",
    "shadow": "rgba(156, 175, 136, 0.3)",
    "error": "#ef4444",
    "error_light": "#fca5a5",
    "warning": "#fbbf24",
}

# CSS custom property -> theme slot
VARIABLE_MAP = {
    "sage": "primary",
    "sage-dark": "primary_dark",
    "sage-light": "accent_light",
    "bg-primary": "background",
    "bg-secondary": "box_background",
    "text-primary": "foreground",
    "border-color": "border",
    "error": "error",
    "warning": "warning",
}

ROOT_BLOCK = re.compile(r":root\s*{([^}]*)}")
CUSTOM_PROPERTY = re.compile(r"--([a-zA-Z0-9-]+)\s*:\s*([^;]+);")


def parse_css_colors(css: str) -> Dict[str, str]:
    """Map the ``:root`` custom properties of ``css`` onto the theme slots."""
    colors = dict(DEFAULT_COLORS)
    root = ROOT_BLOCK.search(css)
    if not root:
        return colors

    variables = {name: value.strip() for name, value in CUSTOM_PROPERTY.findall(root.group(1))}
    for variable, slot in VARIABLE_MAP.items():
        if variables.get(variable):
            colors[slot] = variables[variable]
    return colors


class ThemeLoader:
    """Caches stylesheet colors, reloading when the file's mtime changes.

    The file is stat'ed at most once per ``check_interval`` seconds. Read
    failures are logged and fall back to the last good colors (or the
    defaults); they never propagate to the request.
    """

    def __init__(
        self,
        stylesheet_path: Optional[str] = None,
        check_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stylesheet_path = stylesheet_path
        self.check_interval = check_interval
        self.clock = clock
        self.logger = get_logger("gateway.rendering.theme")

        self._colors: Dict[str, str] = dict(DEFAULT_COLORS)
        self._mtime: Optional[float] = None
        self._last_check: Optional[float] = None
        self._lock = threading.Lock()

    def colors(self) -> Dict[str, str]:
        if not self.stylesheet_path:
            return self._colors

        now = self.clock()
        if self._last_check is not None and now - self._last_check < self.check_interval:
            return self._colors

        with self._lock:
            self._last_check = now
            try:
                mtime = os.stat(self.stylesheet_path).st_mtime
                if mtime != self._mtime:
                    with open(self.stylesheet_path, "r", encoding="utf-8") as f:
                        css = f.read()
                    self._colors = parse_css_colors(css)
                    self._mtime = mtime
                    self.logger.info("Loaded theme colors", path=self.stylesheet_path)
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(
                    "Could not load stylesheet, keeping current colors",
                    path=self.stylesheet_path,
                    error=str(e)
                )
        return self._colors
