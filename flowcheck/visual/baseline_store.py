"""Baseline store — manages baseline, actual and diff screenshots per snapshot name."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .comparator import ImageSource, Verdict, compare, load_image

logger = logging.getLogger(__name__)


class SnapshotStatus(str, Enum):
    NEW_BASELINE = "new_baseline"
    MATCH = "match"
    MISMATCH = "mismatch"
    INDETERMINATE = "indeterminate"


@dataclass
class SnapshotCheck:
    snapshot_name: str
    status: SnapshotStatus
    diff_pixels: int = 0
    baseline_path: Path | None = None
    actual_path: Path | None = None
    diff_path: Path | None = None
    message: str = ""

    @property
    def passed(self) -> bool:
        return self.status != SnapshotStatus.MISMATCH


@dataclass
class PendingSnapshot:
    snapshot_name: str
    actual_path: Path
    baseline_path: Path


def _timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


class BaselineStore:
    """Screenshots laid out as ``baseline/<name>.png``, ``actual/<name>.png``
    and ``diff-<name>-<ms>.png`` under one screenshots directory.
    """

    def __init__(self, screenshots_dir: Path):
        self.screenshots_dir = Path(screenshots_dir)
        self.baseline_dir = self.screenshots_dir / "baseline"
        self.actual_dir = self.screenshots_dir / "actual"

    def baseline_path(self, snapshot_name: str) -> Path:
        return self.baseline_dir / f"{snapshot_name}.png"

    def actual_path(self, snapshot_name: str) -> Path:
        return self.actual_dir / f"{snapshot_name}.png"

    def new_diff_path(self, snapshot_name: str) -> Path:
        return self.screenshots_dir / f"diff-{snapshot_name}-{_timestamp_ms()}.png"

    def has_baseline(self, snapshot_name: str) -> bool:
        return self.baseline_path(snapshot_name).exists()

    def check_snapshot(self, snapshot_name: str, candidate: bytes) -> SnapshotCheck:
        """Compare a fresh capture against the stored baseline.

        - No baseline yet: the capture becomes the baseline (passes).
        - Mismatch: the capture is kept as the pending "actual" and a diff is written.
        - Match: any stale "actual" for this snapshot is removed.
        - Size change: no verdict; nothing is written.
        """
        baseline = self.baseline_path(snapshot_name)
        actual = self.actual_path(snapshot_name)

        if not baseline.exists():
            baseline.parent.mkdir(parents=True, exist_ok=True)
            baseline.write_bytes(candidate)
            logger.warning("Baseline not found. Saved new baseline: %s", snapshot_name)
            return SnapshotCheck(
                snapshot_name, SnapshotStatus.NEW_BASELINE,
                baseline_path=baseline,
                message=f"New baseline created for '{snapshot_name}'",
            )

        result = compare(baseline, candidate)

        if result.verdict == Verdict.INDETERMINATE:
            return SnapshotCheck(
                snapshot_name, SnapshotStatus.INDETERMINATE,
                baseline_path=baseline,
                message=f"Visual check for '{snapshot_name}' skipped: {result.message}",
            )

        if result.verdict == Verdict.MISMATCH:
            diff_path = self.new_diff_path(snapshot_name)
            diff_path.parent.mkdir(parents=True, exist_ok=True)
            result.diff_image.save(diff_path)
            actual.parent.mkdir(parents=True, exist_ok=True)
            actual.write_bytes(candidate)
            logger.info("Visual regression detected for %s: %d pixels different",
                        snapshot_name, result.diff_pixels)
            return SnapshotCheck(
                snapshot_name, SnapshotStatus.MISMATCH,
                diff_pixels=result.diff_pixels,
                baseline_path=baseline, actual_path=actual, diff_path=diff_path,
                message=result.message,
            )

        if actual.exists():
            actual.unlink()
            logger.debug("Removed stale actual image for %s", snapshot_name)
        return SnapshotCheck(
            snapshot_name, SnapshotStatus.MATCH,
            baseline_path=baseline, message="Visual check passed",
        )

    def diff_against_baseline(self, snapshot_name: str, screenshot: ImageSource) -> SnapshotCheck | None:
        """Diff an arbitrary screenshot against the baseline without touching "actual".

        Returns None when there is no baseline or no pixel-level difference.
        """
        baseline = self.baseline_path(snapshot_name)
        if not baseline.exists():
            return None

        result = compare(baseline, load_image(screenshot))
        if not result.is_mismatch:
            return None

        diff_path = self.new_diff_path(snapshot_name)
        diff_path.parent.mkdir(parents=True, exist_ok=True)
        result.diff_image.save(diff_path)
        return SnapshotCheck(
            snapshot_name, SnapshotStatus.MISMATCH,
            diff_pixels=result.diff_pixels,
            baseline_path=baseline, diff_path=diff_path,
            message=result.message,
        )

    def pending(self) -> list[PendingSnapshot]:
        """All unresolved "actual" images, sorted by snapshot name."""
        if not self.actual_dir.exists():
            return []
        return [
            PendingSnapshot(p.stem, p, self.baseline_path(p.stem))
            for p in sorted(self.actual_dir.glob("*.png"))
        ]

    def approve(self, snapshot_name: str) -> Path:
        """Promote the pending actual image to baseline, replacing the old one."""
        actual = self.actual_path(snapshot_name)
        if not actual.exists():
            raise FileNotFoundError(f"No pending image for snapshot '{snapshot_name}'")
        baseline = self.baseline_path(snapshot_name)
        baseline.parent.mkdir(parents=True, exist_ok=True)
        actual.replace(baseline)
        logger.info("Baseline updated for %s", snapshot_name)
        return baseline

    def reject(self, snapshot_name: str) -> None:
        """Discard the pending actual image; the baseline is left as is."""
        actual = self.actual_path(snapshot_name)
        if actual.exists():
            actual.unlink()
        logger.info("Rejected pending image for %s", snapshot_name)
