"""Run orchestrator — wires the stores, registry, scheduler and reporter together."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Callable, Iterable, Optional

from flowcheck.env_utils import snapshot_environment
from flowcheck.executor.registry import ActionRegistry, build_registry
from flowcheck.executor.scheduler import RunScheduler, filter_by_tags
from flowcheck.models.config import FrameworkConfig, TestConfig
from flowcheck.models.template import Template
from flowcheck.models.test_result import RunSummary
from flowcheck.reporter.reporter import Reporter
from flowcheck.storage.config_store import ConfigStore
from flowcheck.storage.template_store import TemplateStore
from flowcheck.validation.config_validator import ConfigValidator, ValidationResult
from flowcheck.visual.approval import ApprovalOutcome, Decision, run_approval
from flowcheck.visual.baseline_store import BaselineStore, PendingSnapshot

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class Orchestrator:
    """Entry point for every CLI command."""

    def __init__(self, config: FrameworkConfig, env: Optional[Mapping[str, str]] = None):
        self.config = config
        self.env = snapshot_environment() if env is None else env
        self.templates = TemplateStore(Path(config.templates_dir))
        self.configs = ConfigStore(Path(config.configs_dir))
        self.baselines = BaselineStore(Path(config.screenshots_dir))
        self._registry: ActionRegistry | None = None

    @property
    def registry(self) -> ActionRegistry:
        if self._registry is None:
            self._registry = build_registry(Path(self.config.plugins_dir))
        return self._registry

    def run_tests(
        self,
        tags: Iterable[str] | None = None,
        concurrency: int | str | None = None,
        retries: int | None = None,
    ) -> dict:
        """Run the selected configs and write reports. Returns the summary and report paths."""
        return asyncio.run(self._run_tests(tags, concurrency, retries))

    async def _run_tests(self, tags, concurrency, retries) -> dict:
        configs = filter_by_tags(self.configs.load_configs(), tags)
        if tags:
            logger.info("Filtering by tags: %s", ", ".join(tags))

        started_at = _utc_now()
        start = time.time()
        if not configs:
            logger.warning("No tests found to run.")
            summary = RunSummary.from_results([], started_at, _utc_now(), 0.0)
            return {"summary": summary, "reports": {}}

        scheduler = RunScheduler(self.config, self.templates, self.registry, self.baselines, env=self.env)
        results = await scheduler.run_all(
            configs,
            concurrency=self.config.default_concurrency if concurrency is None else concurrency,
            max_retries=self.config.default_retries if retries is None else retries,
        )

        summary = RunSummary.from_results(results, started_at, _utc_now(), time.time() - start)
        reports = Reporter(self.config).generate_reports(summary)
        return {"summary": summary, "reports": reports}

    def validate_configs(self) -> dict[str, ValidationResult]:
        configs = self.configs.load_configs()
        validator = ConfigValidator(self.templates, self.env, self.registry)
        return validator.validate_many(configs)

    def list_configs(self) -> list[TestConfig]:
        return self.configs.load_configs()

    def delete_config(self, config_id: str) -> bool:
        return self.configs.delete_config(config_id)

    def list_templates(self) -> list[Template]:
        return self.templates.list_templates()

    def pending_snapshots(self) -> list[PendingSnapshot]:
        return self.baselines.pending()

    def approve_snapshots(self, decide: Callable[[PendingSnapshot], Decision]) -> list[ApprovalOutcome]:
        return run_approval(self.baselines, decide)
