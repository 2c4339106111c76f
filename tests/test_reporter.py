"""Tests for reporter module — JSON report, HTML report, reporter orchestration."""

import json
from pathlib import Path

from flowcheck.models.config import FrameworkConfig
from flowcheck.models.test_result import RunSummary
from flowcheck.reporter.html_report import _build_test_card, _embed_image, generate_html_report
from flowcheck.reporter.json_report import generate_json_report
from flowcheck.reporter.reporter import Reporter


class TestEmbedImage:
    def test_png_data_uri(self, tmp_path, make_png):
        path = tmp_path / "shot.png"
        path.write_bytes(make_png())
        assert _embed_image(str(path)).startswith("data:image/png;base64,")

    def test_missing_or_empty(self, tmp_path):
        empty = tmp_path / "empty.png"
        empty.write_bytes(b"")
        assert _embed_image(str(tmp_path / "nope.png")) == ""
        assert _embed_image(str(empty)) == ""
        assert _embed_image(None) == ""


class TestHtmlReport:
    def test_card_escapes_error_text(self, failing_result):
        failing_result.error = "Step failed: click - <button> not found"
        card = _build_test_card(failing_result)
        assert "&lt;button&gt;" in card
        assert "<button>" not in card

    def test_card_shows_attempts_and_warnings(self, failing_result):
        card = _build_test_card(failing_result)
        assert "3 attempts" in card
        assert "New baseline created" in card
        assert 'class="badge fail"' in card

    def test_failed_cards_start_open(self, passing_result, failing_result):
        assert 'data-status="fail" open>' in _build_test_card(failing_result)
        passing = _build_test_card(passing_result)
        assert 'data-status="pass">' in passing
        assert " open>" not in passing

    def test_card_shows_perf_stats(self, passing_result):
        card = _build_test_card(passing_result)
        assert "3 requests" in card
        assert "avg 20.0ms" in card

    def test_card_embeds_visual_evidence(self, failing_result, tmp_path, make_png):
        for name in ("fail.png", "baseline.png", "diff.png"):
            (tmp_path / name).write_bytes(make_png())
        failing_result.screenshot = str(tmp_path / "fail.png")
        failing_result.baseline_image = str(tmp_path / "baseline.png")
        failing_result.visual_diff = str(tmp_path / "diff.png")

        card = _build_test_card(failing_result)

        assert card.count("data:image/png;base64,") == 3
        assert "Visual diff" in card

    def test_full_report(self, run_summary, tmp_path):
        path = tmp_path / "report.html"
        generate_html_report(run_summary, path)
        content = path.read_text()
        assert content.startswith("<!DOCTYPE html>")
        assert "Login smoke" in content
        assert "Checkout (Row 2)" in content


class TestJsonReport:
    def test_round_trips_summary(self, run_summary, tmp_path):
        path = tmp_path / "report.json"
        generate_json_report(run_summary, path)

        data = json.loads(path.read_text())
        assert data["total"] == 2
        assert data["failed"] == 1
        assert RunSummary(**data) == run_summary


class TestReporter:
    def test_writes_both_formats(self, run_summary, tmp_path):
        reporter = Reporter(FrameworkConfig(report_output_dir=str(tmp_path / "reports")))
        generated = reporter.generate_reports(run_summary)

        assert set(generated) == {"html", "json"}
        json_path = Path(generated["json"])
        html_path = Path(generated["html"])
        assert json_path.parent == tmp_path / "reports" / "json"
        assert html_path.parent == tmp_path / "reports" / "html"
        assert json_path.name.startswith("report-") and json_path.suffix == ".json"
        assert json_path.stem == html_path.stem
        assert json_path.exists() and html_path.exists()

    def test_respects_configured_formats(self, run_summary, tmp_path):
        reporter = Reporter(FrameworkConfig(report_formats=["json"]))
        generated = reporter.generate_reports(run_summary, output_dir=tmp_path)

        assert list(generated) == ["json"]
        assert not (tmp_path / "html").exists()
