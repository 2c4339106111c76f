"""Per-session state handed to every action."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from playwright.async_api import Page

from flowcheck.models.test_result import PerfStats
from flowcheck.visual.baseline_store import BaselineStore


@dataclass
class SessionState:
    """Mutable state for one attempt of one run unit; discarded with the session."""
    last_response: Optional[Any] = None  # playwright APIResponse
    perf: Optional[PerfStats] = None
    visual_diff: Optional[str] = None
    baseline_image: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class ActionContext:
    page: Page
    state: SessionState
    baselines: BaselineStore
    timeout_ms: int = 30000
