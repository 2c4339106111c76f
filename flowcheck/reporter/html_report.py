"""HTML report generator — produces a self-contained HTML report with every result."""

from __future__ import annotations

import base64
import html
import logging
from pathlib import Path

from flowcheck.models.test_result import PASS, RunSummary, TestResult

logger = logging.getLogger(__name__)


def _embed_image(path: str | None) -> str:
    """Read an image file and return a base64 data URI, or empty string on failure."""
    if not path:
        return ""
    try:
        p = Path(path)
        if not p.exists() or p.stat().st_size == 0:
            return ""
        with open(p, "rb") as f:
            data = base64.b64encode(f.read()).decode()
        suffix = p.suffix.lower()
        mime = "image/png" if suffix == ".png" else "image/jpeg" if suffix in (".jpg", ".jpeg") else "image/webp"
        return f"data:{mime};base64,{data}"
    except OSError as e:
        logger.debug("Could not embed %s: %s", path, e)
        return ""


def _image_item(path: str | None, label: str) -> str:
    data_uri = _embed_image(path)
    if not data_uri:
        return ""
    return (
        f'<figure><img src="{data_uri}" alt="{html.escape(label)}" loading="lazy" '
        'onclick="this.classList.toggle(\'zoomed\')"/>'
        f'<figcaption>{html.escape(label)}</figcaption></figure>'
    )


def _build_test_card(r: TestResult) -> str:
    """Build an HTML card for a single test result; failed cards start open."""
    status = r.status.lower()
    opened = "" if r.status == PASS else " open"
    attempts = f" &middot; {r.attempts} attempts" if r.attempts > 1 else ""

    parts = [
        f'<details class="result" id="test-{html.escape(r.id)}" data-status="{status}"{opened}>',
        f'<summary><span class="badge {status}">{r.status}</span> '
        f'<strong>{html.escape(r.name)}</strong> '
        f'<span class="muted">{html.escape(r.template_id)} &middot; {r.duration_ms}ms{attempts}</span></summary>',
        f'<p class="muted">Config: {html.escape(r.config_file)} &middot; {html.escape(r.timestamp)}</p>',
    ]

    if r.error:
        parts.append(f'<pre class="error">{html.escape(r.error)}</pre>')

    if r.warnings:
        items = "".join(f"<li>{html.escape(w)}</li>" for w in r.warnings)
        parts.append(f'<h4>Warnings</h4><ul class="warnings">{items}</ul>')

    if r.perf_data and r.perf_data.count:
        p = r.perf_data
        parts.append(
            f'<h4>Performance</h4><p>{p.count} requests &middot; avg {p.avg:.1f}ms &middot; '
            f'min {p.min:.1f}ms &middot; max {p.max:.1f}ms</p>'
        )

    images = (
        _image_item(r.screenshot, "Failure screenshot")
        + _image_item(r.baseline_image, "Baseline")
        + _image_item(r.visual_diff, "Visual diff")
    )
    if images:
        parts.append(f'<h4>Screenshots</h4><div class="images">{images}</div>')

    parts.append("</details>")
    return "\n".join(parts)


_STYLE = """
body { font-family: system-ui, sans-serif; background: #f8fafc; color: #1e293b; margin: 0; padding: 1.5rem; }
main { max-width: 1200px; margin: 0 auto; }
.muted { color: #64748b; font-size: 0.85rem; }
.totals { display: flex; gap: 1.5rem; list-style: none; padding: 0; font-size: 1.1rem; }
.totals .pass { color: #16a34a; }
.totals .fail { color: #dc2626; }
.badge { padding: 0.1rem 0.5rem; border-radius: 999px; font-size: 0.7rem; font-weight: 600; }
.badge.pass { background: #dcfce7; color: #166534; }
.badge.fail { background: #fecaca; color: #991b1b; }
.result { background: white; border-radius: 6px; margin-bottom: 0.5rem; padding: 0.6rem 1rem; box-shadow: 0 1px 2px rgba(0,0,0,0.08); }
.result summary { cursor: pointer; }
.error { background: #fef2f2; color: #991b1b; padding: 0.5rem; border-radius: 4px; white-space: pre-wrap; }
.warnings { color: #92400e; }
h4 { margin: 0.8rem 0 0.3rem; font-size: 0.8rem; text-transform: uppercase; color: #64748b; }
.images { display: grid; grid-template-columns: repeat(auto-fill, minmax(220px, 1fr)); gap: 0.5rem; }
figure { margin: 0; text-align: center; }
figure img { width: 100%; border: 1px solid #e2e8f0; cursor: zoom-in; }
figure img.zoomed { position: fixed; inset: 5%; width: 90%; height: 90%; object-fit: contain; background: rgba(0,0,0,0.85); z-index: 10; cursor: zoom-out; }
figcaption { font-size: 0.75rem; color: #64748b; }
body.failures-only .result[data-status="pass"] { display: none; }
"""


def generate_html_report(summary: RunSummary, output_path: Path) -> None:
    """Generate a self-contained HTML report."""
    cards = "\n".join(_build_test_card(r) for r in summary.results)
    started = html.escape(summary.started_at)

    report_html = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>flowcheck report &mdash; {started}</title>
<style>{_STYLE}</style>
</head>
<body>
<main>
<h1>flowcheck report</h1>
<p class="muted">{started} &rarr; {html.escape(summary.completed_at)} &middot; {summary.duration_seconds}s</p>
<ul class="totals">
  <li>{summary.total} total</li>
  <li class="pass">{summary.passed} passed</li>
  <li class="fail">{summary.failed} failed</li>
</ul>
<label><input type="checkbox" onchange="document.body.classList.toggle('failures-only', this.checked)"> Failures only</label>
{cards}
</main>
</body>
</html>
"""

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
