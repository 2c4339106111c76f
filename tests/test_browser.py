"""Tests for browser utilities and failure evidence capture."""

from unittest.mock import AsyncMock

import pytest

from flowcheck.executor.evidence_collector import EvidenceCollector
from flowcheck.models.config import TestConfig, ViewportConfig
from flowcheck.utils.browser import (
    build_context_options,
    close_context,
    create_context,
    launch_browser,
)

DEVICES = {
    "iPhone 12": {
        "user_agent": "Mozilla/5.0 (iPhone)",
        "viewport": {"width": 390, "height": 664},
        "is_mobile": True,
    },
}


def _config(**kwargs) -> TestConfig:
    return TestConfig(id="c", name="C", template_id="t", parameters={}, **kwargs)


class TestBuildContextOptions:
    def test_plain_config_has_no_options(self):
        assert build_context_options(_config()) == {}

    def test_device_descriptor(self):
        options = build_context_options(_config(device="iPhone 12"), DEVICES)
        assert options["is_mobile"] is True
        assert options["viewport"] == {"width": 390, "height": 664}

    def test_viewport_overrides_device(self):
        config = _config(device="iPhone 12", viewport=ViewportConfig(width=800, height=600))
        options = build_context_options(config, DEVICES)
        assert options["user_agent"] == "Mozilla/5.0 (iPhone)"
        assert options["viewport"] == {"width": 800, "height": 600}

    def test_unknown_device_falls_back_to_defaults(self, caplog):
        options = build_context_options(_config(device="Nokia 3310"), DEVICES)
        assert options == {}
        assert "Nokia 3310" in caplog.text


class TestContextLifecycle:
    @pytest.mark.asyncio
    async def test_launch_browser(self):
        playwright = AsyncMock()
        await launch_browser(playwright, headless=False)
        playwright.chromium.launch.assert_awaited_once_with(headless=False)

    @pytest.mark.asyncio
    async def test_create_context_passes_options(self, mock_browser):
        await create_context(mock_browser, {"viewport": {"width": 1, "height": 1}})
        mock_browser.new_context.assert_awaited_once_with(viewport={"width": 1, "height": 1})

    @pytest.mark.asyncio
    async def test_close_context_tolerates_errors(self, mock_context):
        mock_context.close = AsyncMock(side_effect=RuntimeError("Browser has been closed"))
        await close_context(mock_context)
        await close_context(None)
        mock_context.close.assert_awaited_once()


class TestEvidenceCollector:
    def test_screenshot_path(self, tmp_path):
        collector = EvidenceCollector(tmp_path)
        path = collector.screenshot_path("checkout_row_2")
        assert path.parent == tmp_path
        assert path.name.startswith("fail-checkout_row_2-")
        assert path.suffix == ".png"

    def test_unsafe_characters_are_replaced(self, tmp_path):
        path = EvidenceCollector(tmp_path).screenshot_path("a/b c")
        assert path.parent == tmp_path
        assert path.name.startswith("fail-a_b_c-")

    @pytest.mark.asyncio
    async def test_take_screenshot(self, tmp_path, mock_page):
        collector = EvidenceCollector(tmp_path / "shots")
        path = await collector.take_screenshot(mock_page, "login")

        assert path.startswith(str(tmp_path / "shots"))
        mock_page.screenshot.assert_awaited_once_with(path=path)

    @pytest.mark.asyncio
    async def test_take_screenshot_failure_returns_empty(self, tmp_path, mock_page):
        mock_page.screenshot = AsyncMock(side_effect=RuntimeError("Target closed"))
        assert await EvidenceCollector(tmp_path).take_screenshot(mock_page, "login") == ""
