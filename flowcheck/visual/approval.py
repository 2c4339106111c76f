"""Baseline approval workflow — resolve pending visual changes one at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .baseline_store import BaselineStore, PendingSnapshot

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    APPROVE = "approve"  # overwrite baseline with actual
    REJECT = "reject"  # delete actual
    SKIP = "skip"  # leave pending


@dataclass
class ApprovalOutcome:
    snapshot_name: str
    decision: Decision


def run_approval(
    store: BaselineStore,
    decide: Callable[[PendingSnapshot], Decision],
) -> list[ApprovalOutcome]:
    """Ask ``decide`` about each pending snapshot and apply the answer immediately.

    Every decision is persisted before the next item is presented, so an
    interrupted session keeps the decisions already made.
    """
    outcomes = []
    for item in store.pending():
        decision = Decision(decide(item))
        if decision == Decision.APPROVE:
            store.approve(item.snapshot_name)
        elif decision == Decision.REJECT:
            store.reject(item.snapshot_name)
        else:
            logger.info("Skipped %s", item.snapshot_name)
        outcomes.append(ApprovalOutcome(item.snapshot_name, decision))
    return outcomes
