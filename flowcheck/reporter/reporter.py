"""Report generation orchestration."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from flowcheck.models.config import FrameworkConfig
from flowcheck.models.test_result import RunSummary

from .html_report import generate_html_report
from .json_report import generate_json_report

logger = logging.getLogger(__name__)


class Reporter:
    """Generates reports from a run summary."""

    def __init__(self, config: FrameworkConfig):
        self.config = config

    def generate_reports(
        self,
        summary: RunSummary,
        output_dir: Path | None = None,
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = Path(output_dir or self.config.report_output_dir)
        stamp = time.time_ns() // 1_000_000
        generated = {}
        logger.debug("Report output directory: %s", out_dir)

        if "json" in self.config.report_formats:
            path = out_dir / "json" / f"report-{stamp}.json"
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Generating JSON report...")
            generate_json_report(summary, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        if "html" in self.config.report_formats:
            path = out_dir / "html" / f"report-{stamp}.html"
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Generating HTML report...")
            generate_html_report(summary, path)
            generated["html"] = str(path)
            logger.info("HTML report: %s", path)

        return generated
