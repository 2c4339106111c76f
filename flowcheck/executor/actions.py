"""Built-in actions — translate template steps into Playwright calls.

Every action receives the session's ActionContext and its resolved
positional parameters, and raises on failure.
"""

from __future__ import annotations

import json
import logging
import re
import time

from playwright.async_api import expect

from flowcheck.errors import StepError, VisualMismatchError
from flowcheck.models.test_result import PerfStats
from flowcheck.visual.baseline_store import SnapshotStatus

from .context import ActionContext

logger = logging.getLogger(__name__)


def _param(params: list[str], index: int) -> str:
    return params[index] if index < len(params) else ""


def _int_param(params: list[str], index: int, name: str) -> int:
    raw = _param(params, index).strip()
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


async def goto(ctx: ActionContext, params: list[str]) -> None:
    url = _param(params, 0)
    logger.debug("Navigating to %s...", url)
    await ctx.page.goto(url, timeout=ctx.timeout_ms)


async def type_text(ctx: ActionContext, params: list[str]) -> None:
    selector = _param(params, 0)
    if not selector:
        logger.debug("Skipping type: empty selector")
        return
    await ctx.page.fill(selector, _param(params, 1), timeout=ctx.timeout_ms)


async def click(ctx: ActionContext, params: list[str]) -> None:
    selector = _param(params, 0)
    if not selector:
        logger.debug("Skipping click: empty selector")
        return
    await ctx.page.click(selector, timeout=ctx.timeout_ms)


async def expect_text(ctx: ActionContext, params: list[str]) -> None:
    """Element is visible, or contains the text when one is given."""
    locator = ctx.page.locator(_param(params, 0))
    text = _param(params, 1)
    if text == "":
        await expect(locator).to_be_visible(timeout=ctx.timeout_ms)
    else:
        await expect(locator).to_contain_text(text, timeout=ctx.timeout_ms)


async def expect_url(ctx: ActionContext, params: list[str]) -> None:
    await expect(ctx.page).to_have_url(re.compile(_param(params, 0)), timeout=ctx.timeout_ms)


async def wait(ctx: ActionContext, params: list[str]) -> None:
    await ctx.page.wait_for_timeout(_int_param(params, 0, "wait duration"))


async def request(ctx: ActionContext, params: list[str]) -> None:
    method = _param(params, 0) or "GET"
    url = _param(params, 1)
    body = _param(params, 2)

    kwargs: dict = {"method": method}
    if body.strip():
        try:
            kwargs["data"] = json.loads(body)
        except json.JSONDecodeError:
            kwargs["data"] = body

    response = await ctx.page.request.fetch(url, **kwargs)
    ctx.state.last_response = response
    logger.info("    Response status: %d", response.status)


def _last_response(ctx: ActionContext):
    if ctx.state.last_response is None:
        raise StepError('No API response to check. Run "request" first.')
    return ctx.state.last_response


async def expect_status(ctx: ActionContext, params: list[str]) -> None:
    response = _last_response(ctx)
    expected = _int_param(params, 0, "expected status")
    if response.status != expected:
        raise StepError(f"Expected status {expected} but got {response.status}")


async def expect_response_body(ctx: ActionContext, params: list[str]) -> None:
    response = _last_response(ctx)
    needle = _param(params, 0)
    body = await response.text()
    if needle not in body:
        raise StepError(f'Response body does not contain "{needle}"')


async def measure_performance(ctx: ActionContext, params: list[str]) -> None:
    method = _param(params, 0) or "GET"
    url = _param(params, 1)
    iterations = _int_param(params, 2, "iterations")
    if iterations < 1:
        raise ValueError(f"iterations must be at least 1, got {iterations}")

    logger.info("    Starting performance test: %d iterations...", iterations)
    latencies = []
    for _ in range(iterations):
        start = time.perf_counter()
        await ctx.page.request.fetch(url, method=method)
        latencies.append(round((time.perf_counter() - start) * 1000, 2))

    stats = PerfStats.from_samples(latencies)
    ctx.state.perf = stats
    logger.info("    Results: Avg=%.2fms, Min=%.2fms, Max=%.2fms", stats.avg, stats.min, stats.max)


async def compare_screenshot(ctx: ActionContext, params: list[str]) -> None:
    snapshot_name = _param(params, 0)
    if not snapshot_name:
        logger.info("    Skipping visual check (no snapshot name provided)")
        return

    screenshot = await ctx.page.screenshot()
    check = ctx.baselines.check_snapshot(snapshot_name, screenshot)

    match check.status:
        case SnapshotStatus.NEW_BASELINE | SnapshotStatus.INDETERMINATE:
            ctx.state.warnings.append(check.message)
        case SnapshotStatus.MISMATCH:
            ctx.state.visual_diff = str(check.diff_path)
            ctx.state.baseline_image = str(check.baseline_path)
            raise VisualMismatchError(snapshot_name, check.diff_pixels)
        case _:
            logger.info("    Visual check passed.")


BUILTIN_ACTIONS = {
    "goto": goto,
    "type": type_text,
    "click": click,
    "expect_text": expect_text,
    "expect_url": expect_url,
    "wait": wait,
    "request": request,
    "expect_status": expect_status,
    "expect_response_body": expect_response_body,
    "measure_performance": measure_performance,
    "compare_screenshot": compare_screenshot,
}
