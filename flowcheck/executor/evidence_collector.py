"""Evidence collector — captures failure screenshots."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path

from playwright.async_api import Page

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.-]+")


class EvidenceCollector:
    """Writes screenshots under one directory with collision-free names."""

    def __init__(self, screenshots_dir: Path):
        self.screenshots_dir = Path(screenshots_dir)

    def screenshot_path(self, label: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", label).strip("_") or "screenshot"
        return self.screenshots_dir / f"fail-{safe}-{time.time_ns() // 1_000_000}.png"

    async def take_screenshot(self, page: Page, label: str) -> str:
        """Capture a screenshot and return the file path ("" if the capture failed)."""
        path = self.screenshot_path(label)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            await page.screenshot(path=str(path))
            return str(path)
        except Exception as e:
            logger.warning("Screenshot failed: %s", e)
            return ""
