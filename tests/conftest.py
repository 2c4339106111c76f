"""Pytest configuration and shared fixtures."""

import io
import json
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from flowcheck.models.config import FrameworkConfig, TestConfig
from flowcheck.models.template import Template, TemplateParameter, TemplateStep
from flowcheck.models.test_result import PASS, FAIL, PerfStats, RunSummary, TestResult


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def framework_config(tmp_path: Path) -> FrameworkConfig:
    """Framework config with every directory under tmp_path."""
    return FrameworkConfig(
        templates_dir=str(tmp_path / "templates"),
        configs_dir=str(tmp_path / "configs"),
        data_dir=str(tmp_path / "data"),
        plugins_dir=str(tmp_path / "plugins"),
        screenshots_dir=str(tmp_path / "screenshots"),
        report_output_dir=str(tmp_path / "reports"),
        action_timeout_ms=5000,
    )


@pytest.fixture
def login_template() -> Template:
    """A small login template using parameter and env placeholders."""
    return Template(
        id="login",
        name="Login",
        description="Log in with a username and password",
        required_parameters=[
            TemplateParameter(name="url", description="Login page URL"),
            TemplateParameter(name="username", description="Account name"),
            TemplateParameter(name="password", description="Account password"),
            TemplateParameter(name="snapshotName", description="Snapshot name (optional)"),
        ],
        steps=[
            TemplateStep(action="goto", params=["{{url}}"]),
            TemplateStep(action="type", params=["#user", "{{username}}"]),
            TemplateStep(action="type", params=["#pass", "{{password}}"]),
            TemplateStep(action="click", params=["#submit"]),
        ],
    )


@pytest.fixture
def login_config() -> TestConfig:
    return TestConfig(
        id="login-smoke",
        name="Login smoke",
        template_id="login",
        parameters={
            "url": "https://example.com/login",
            "username": "alice",
            "password": "{{env.LOGIN_PASSWORD}}",
        },
        tags=["smoke"],
    )


@pytest.fixture
def templates_dir(tmp_path: Path, login_template: Template) -> Path:
    """Templates directory holding the login template."""
    directory = tmp_path / "templates"
    directory.mkdir(exist_ok=True)
    _write_json(directory / "login.json", login_template.model_dump())
    return directory


# ============================================================================
# Result Fixtures
# ============================================================================


@pytest.fixture
def passing_result() -> TestResult:
    return TestResult(
        id="login-smoke",
        name="Login smoke",
        config_id="login-smoke",
        config_file="login-smoke.json",
        template_id="login",
        status=PASS,
        duration_ms=1200,
        timestamp="2025-01-01T00:00:00Z",
        perf_data=PerfStats.from_samples([10.0, 20.0, 30.0]),
    )


@pytest.fixture
def failing_result() -> TestResult:
    return TestResult(
        id="checkout_row_2",
        name="Checkout (Row 2)",
        config_id="checkout",
        config_file="checkout.json",
        template_id="login+checkout",
        row_index=2,
        status=FAIL,
        attempts=3,
        duration_ms=4000,
        timestamp="2025-01-01T00:00:05Z",
        error="Step failed: click - <button> not found",
        warnings=["New baseline created for 'cart'"],
    )


@pytest.fixture
def run_summary(passing_result: TestResult, failing_result: TestResult) -> RunSummary:
    return RunSummary.from_results(
        [passing_result, failing_result],
        started_at="2025-01-01T00:00:00Z",
        completed_at="2025-01-01T00:00:10Z",
        duration=10.0,
    )


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.screenshot = AsyncMock(return_value=_make_png())
    page.goto = AsyncMock()
    page.click = AsyncMock()
    page.fill = AsyncMock()
    page.locator = Mock(return_value=AsyncMock())
    page.wait_for_timeout = AsyncMock()
    page.request = Mock()
    page.request.fetch = AsyncMock()
    return page


@pytest.fixture
def mock_context() -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock()
    return context


@pytest.fixture
def mock_browser() -> AsyncMock:
    """Create a mock Playwright browser."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock()
    return browser


# ============================================================================
# Helper Fixtures
# ============================================================================


def _write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


def _make_image(width: int = 20, height: int = 10, color=(255, 255, 255, 255)) -> Image.Image:
    return Image.new("RGBA", (width, height), color)


def _make_png(width: int = 20, height: int = 10, color=(255, 255, 255, 255), changed: int = 0) -> bytes:
    """PNG bytes of a solid image with the first ``changed`` pixels painted black."""
    image = _make_image(width, height, color)
    for i in range(changed):
        image.putpixel((i % width, i // width), (0, 0, 0, 255))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def write_json():
    """Write JSON data to a path, creating parent directories."""
    return _write_json


@pytest.fixture
def make_image():
    return _make_image


@pytest.fixture
def make_png():
    """Factory for solid-colour PNG bytes, optionally with some pixels changed."""
    return _make_png
