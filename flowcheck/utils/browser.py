"""Browser utilities — browser launch and per-session context creation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

from flowcheck.models.config import TestConfig

logger = logging.getLogger(__name__)


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch the single Chromium instance shared by every session of a run."""
    return await playwright.chromium.launch(headless=headless)


def build_context_options(
    config: TestConfig,
    devices: Optional[Mapping[str, dict]] = None,
) -> dict:
    """Context kwargs for a config: device descriptor first, explicit viewport on top."""
    options: dict = {}
    if config.device:
        descriptor = (devices or {}).get(config.device)
        if descriptor is None:
            logger.warning('Device "%s" not found. Using default.', config.device)
        else:
            logger.debug("Emulating device: %s", config.device)
            options.update(descriptor)
    if config.viewport:
        logger.debug("Setting viewport: %dx%d", config.viewport.width, config.viewport.height)
        options["viewport"] = {"width": config.viewport.width, "height": config.viewport.height}
    return options


async def create_context(browser: Browser, options: Optional[dict] = None) -> BrowserContext:
    """Create a fresh, isolated browser context."""
    return await browser.new_context(**(options or {}))


async def close_context(context: BrowserContext | None) -> None:
    """Close a context, logging rather than raising if the browser already went away."""
    if context is None:
        return
    try:
        await context.close()
    except Exception as e:
        logger.debug("Context close failed: %s", e)
