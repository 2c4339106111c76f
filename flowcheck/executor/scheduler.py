"""Run scheduler — fans test configs out into run units and executes them in batches."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from playwright.async_api import Browser, Page, async_playwright

from flowcheck.env_utils import snapshot_environment
from flowcheck.errors import ConfigurationError, DataLoadError
from flowcheck.models.config import FrameworkConfig, TestConfig
from flowcheck.models.test_result import FAIL, PASS, TestResult
from flowcheck.storage.data_loader import load_rows
from flowcheck.storage.template_store import TemplateStore
from flowcheck.utils.browser import (
    build_context_options,
    close_context,
    create_context,
    launch_browser,
)
from flowcheck.visual.baseline_store import BaselineStore, SnapshotCheck

from .context import ActionContext, SessionState
from .evidence_collector import EvidenceCollector
from .interpreter import StepInterpreter, StepOutcome
from .registry import ActionRegistry

logger = logging.getLogger(__name__)

AUTO_CONCURRENCY = "auto"
# Parameter that names the snapshot used to enrich failures with a visual diff
SNAPSHOT_PARAM = "snapshotName"

DataLoader = Callable[[str, Path], list[dict[str, str]]]


def _utc_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def resolve_concurrency(value: int | str | None) -> int:
    """Turn a CLI concurrency value into a session limit; "auto" means one per CPU."""
    if value is None:
        return 1
    if isinstance(value, str):
        if value.strip().lower() == AUTO_CONCURRENCY:
            return os.cpu_count() or 1
        value = int(value)
    if value < 1:
        raise ValueError(f"Concurrency must be at least 1, got {value}")
    return value


def filter_by_tags(configs: Iterable[TestConfig], tags: Iterable[str] | None) -> list[TestConfig]:
    """Keep configs carrying any of ``tags``; no tags keeps everything."""
    wanted = set(tags or [])
    if not wanted:
        return list(configs)
    return [c for c in configs if wanted.intersection(c.tags)]


def chunk(items: list, size: int) -> list[list]:
    return [items[i:i + size] for i in range(0, len(items), size)]


@dataclass(frozen=True)
class RunUnit:
    """One (config, parameter row) pair; scheduled and retried on its own."""
    config: TestConfig
    params: Mapping[str, str] = field(default_factory=dict)
    row_index: int = 0
    row_count: int = 1

    @property
    def unit_id(self) -> str:
        if self.row_count > 1:
            return f"{self.config.id}_row_{self.row_index + 1}"
        return self.config.id

    @property
    def name(self) -> str:
        if self.row_count > 1:
            return f"{self.config.name} (Row {self.row_index + 1})"
        return self.config.name


def fan_out(config: TestConfig, rows: list[dict[str, str]] | None = None) -> list[RunUnit]:
    """One unit per data row, row values layered over the config defaults."""
    if not rows:
        return [RunUnit(config, dict(config.parameters))]
    return [
        RunUnit(config, {**config.parameters, **row}, index, len(rows))
        for index, row in enumerate(rows)
    ]


class ResultCollector:
    """Thread-safe, write-once store of results keyed by run unit id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: dict[str, TestResult] = {}

    def add(self, result: TestResult) -> bool:
        """Record a result; a second result under the same id is logged and dropped."""
        with self._lock:
            if result.id in self._results:
                logger.error(
                    "Result id '%s' already recorded (config %s), dropping result from config %s",
                    result.id, self._results[result.id].config_id, result.config_id,
                )
                return False
            self._results[result.id] = result
            return True

    def results(self) -> list[TestResult]:
        with self._lock:
            return list(self._results.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


class RunScheduler:
    """Executes test configs against a shared browser.

    Configs run in fixed batches of ``concurrency``; a batch must finish
    before the next one starts. The data rows of one config run one after
    another, so at most ``concurrency`` sessions are ever open. Every attempt
    gets a fresh browser context that is closed before the next attempt.
    """

    def __init__(
        self,
        settings: FrameworkConfig,
        templates: TemplateStore,
        registry: ActionRegistry,
        baselines: BaselineStore,
        env: Optional[Mapping[str, str]] = None,
        data_loader: DataLoader = load_rows,
    ):
        self.settings = settings
        self.templates = templates
        self.registry = registry
        self.baselines = baselines
        self.env = snapshot_environment() if env is None else env
        self.data_loader = data_loader
        self.evidence = EvidenceCollector(Path(settings.screenshots_dir))

    async def run_all(
        self,
        configs: list[TestConfig],
        concurrency: int | str = 1,
        max_retries: int = 0,
    ) -> list[TestResult]:
        """Run every config (x data rows) and return one result per run unit."""
        limit = resolve_concurrency(concurrency)
        if max_retries < 0:
            raise ValueError(f"Retries must be >= 0, got {max_retries}")

        configs = self._unique_configs(configs)
        if not configs:
            logger.warning("No tests found to run.")
            return []

        mode = "sequential" if limit == 1 else f"concurrency: {limit}"
        retries = f", retries: {max_retries}" if max_retries else ""
        logger.info("Found %d tests to execute (%s%s).", len(configs), mode, retries)

        collector = ResultCollector()
        total = len(configs)
        async with async_playwright() as p:
            browser = await launch_browser(p, headless=self.settings.headless)
            try:
                completed = 0
                for batch in chunk(configs, limit):
                    await asyncio.gather(*(
                        self._run_config(
                            browser, p, config, completed + i + 1, total, max_retries, collector,
                        )
                        for i, config in enumerate(batch)
                    ))
                    completed += len(batch)
            finally:
                await browser.close()

        return collector.results()

    @staticmethod
    def _unique_configs(configs: list[TestConfig]) -> list[TestConfig]:
        seen = set()
        unique = []
        for config in configs:
            if config.id in seen:
                logger.warning("Duplicate config id '%s' skipped", config.id)
                continue
            seen.add(config.id)
            unique.append(config)
        return unique

    async def _run_config(
        self,
        browser: Browser,
        playwright,
        config: TestConfig,
        number: int,
        total: int,
        max_retries: int,
        collector: ResultCollector,
    ) -> None:
        prefix = f"[{number}/{total}]"
        logger.info("%s Running: %s", prefix, config.name)

        rows = None
        if config.data:
            logger.debug("%s   Loading data from: %s", prefix, config.data)
            try:
                rows = self.data_loader(config.data, Path(self.settings.data_dir))
                if not rows:
                    raise DataLoadError(f"Data file {config.data} contains no rows")
            except Exception as e:
                logger.error("%s Failed to load data: %s", prefix, e)
                collector.add(self._data_failure_result(config, e))
                return
            logger.info("%s   Found %d data rows", prefix, len(rows))

        devices = playwright.devices if config.device else None
        options = build_context_options(config, devices)

        for unit in fan_out(config, rows):
            if unit.row_count > 1:
                logger.info("%s   Executing Row %d/%d", prefix, unit.row_index + 1, unit.row_count)
            result = await self._run_unit(browser, options, unit, prefix, max_retries)
            collector.add(result)

    async def _run_unit(
        self,
        browser: Browser,
        options: dict,
        unit: RunUnit,
        prefix: str,
        max_retries: int,
    ) -> TestResult:
        """Attempt a unit up to ``max_retries + 1`` times; only the last outcome is kept."""
        max_attempts = max_retries + 1
        attempt = 0
        while True:
            attempt += 1
            if attempt > 1:
                logger.warning("%s Retry attempt %d/%d...", prefix, attempt - 1, max_retries)

            start = time.time()
            state = SessionState()
            context = None
            try:
                context = await create_context(browser, options)
                page = await context.new_page()
                outcome = await self._execute_unit(page, state, unit)

                if outcome.ok:
                    logger.info("%s   PASS %s", prefix, unit.name)
                    return self._build_result(unit, PASS, attempt, start, state)

                if attempt < max_attempts and outcome.retryable:
                    logger.warning("%s     Test failed: %s", prefix, outcome.message)
                    continue

                logger.error("%s   FAIL %s: %s", prefix, unit.name, outcome.message)
                return await self._failure_result(page, unit, outcome.message, attempt, start, state, prefix)

            except Exception as e:
                # The session itself broke (context/page creation, browser crash)
                message = f"Browser session error: {e}"
                if attempt < max_attempts:
                    logger.warning("%s     %s", prefix, message)
                    continue
                logger.error("%s   FAIL %s: %s", prefix, unit.name, message)
                return self._build_result(unit, FAIL, attempt, start, state, error=message)
            finally:
                await close_context(context)

    async def _execute_unit(self, page: Page, state: SessionState, unit: RunUnit) -> StepOutcome:
        """Run the unit's templates in workflow order, stopping at the first failure."""
        context = ActionContext(page, state, self.baselines, self.settings.action_timeout_ms)
        interpreter = StepInterpreter(context, self.registry, self.env)

        for template_id in unit.config.template_ids:
            logger.info("     Executing template: %s", template_id)
            template = self.templates.get_template(template_id)
            if template is None:
                return StepOutcome.failure("", ConfigurationError(f"Template {template_id} not found"))
            for step in template.steps:
                outcome = await interpreter.execute(step, unit.params)
                if not outcome.ok:
                    return outcome
        return StepOutcome.success()

    async def _failure_result(
        self,
        page: Page,
        unit: RunUnit,
        message: str,
        attempts: int,
        start: float,
        state: SessionState,
        prefix: str,
    ) -> TestResult:
        screenshot = await self.evidence.take_screenshot(page, unit.unit_id)
        visual_diff = state.visual_diff
        baseline_image = state.baseline_image

        snapshot_name = unit.params.get(SNAPSHOT_PARAM)
        if not visual_diff and snapshot_name and screenshot:
            check = self._diff_failure_screenshot(snapshot_name, screenshot, prefix)
            if check is not None:
                visual_diff = str(check.diff_path)
                baseline_image = str(check.baseline_path)

        return self._build_result(
            unit, FAIL, attempts, start, state,
            error=message, screenshot=screenshot,
            visual_diff=visual_diff, baseline_image=baseline_image,
        )

    def _diff_failure_screenshot(self, snapshot_name: str, screenshot: str, prefix: str) -> SnapshotCheck | None:
        """Best effort: a diff against the baseline makes non-visual failures easier to read."""
        try:
            return self.baselines.diff_against_baseline(snapshot_name, Path(screenshot))
        except Exception as e:
            logger.warning("%s   Failed to generate visual diff on failure: %s", prefix, e)
            return None

    @staticmethod
    def _build_result(
        unit: RunUnit,
        status: str,
        attempts: int,
        start: float,
        state: SessionState,
        error: str | None = None,
        screenshot: str | None = None,
        visual_diff: str | None = None,
        baseline_image: str | None = None,
    ) -> TestResult:
        return TestResult(
            id=unit.unit_id,
            name=unit.name,
            config_id=unit.config.id,
            config_file=unit.config.config_file,
            template_id=unit.config.template_label,
            row_index=unit.row_index + 1 if unit.row_count > 1 else None,
            status=status,
            attempts=attempts,
            duration_ms=int((time.time() - start) * 1000),
            timestamp=_utc_now(),
            error=error,
            screenshot=screenshot or None,
            visual_diff=visual_diff,
            baseline_image=baseline_image,
            perf_data=state.perf,
            warnings=list(state.warnings),
        )

    @staticmethod
    def _data_failure_result(config: TestConfig, error: Exception) -> TestResult:
        return TestResult(
            id=config.id,
            name=config.name,
            config_id=config.id,
            config_file=config.config_file,
            template_id=config.template_label,
            status=FAIL,
            attempts=0,
            duration_ms=0,
            timestamp=_utc_now(),
            error=f"Failed to load data: {error}",
        )
