"""
QuickGen Backend: Per-Request Operation Lifecycle
=================================================

What:  Tracks where a gated operation is in its lifecycle.
How:   OperationRun holds the current stage and only allows the transitions
       below; anything else is a programming error and raises RuntimeError.

    Received ──▶ Authorized ──▶ Executing ──▶ Persisted ──▶ QuotaUpdated ──▶ Responded
       │                            │             │                            ▲
       ▼                            ▼             └────────────────────────────┘
    Rejected                      Failed            (no quota to update)

Rejected and Failed are terminal: no Creation Record, no quota change.
"""

import enum
import logging
import time
from typing import Dict, FrozenSet, List, Tuple

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    RECEIVED = "received"
    AUTHORIZED = "authorized"
    EXECUTING = "executing"
    PERSISTED = "persisted"
    QUOTA_UPDATED = "quota_updated"
    RESPONDED = "responded"
    REJECTED = "rejected"
    FAILED = "failed"


_TRANSITIONS: Dict[Stage, FrozenSet[Stage]] = {
    Stage.RECEIVED: frozenset({Stage.AUTHORIZED, Stage.REJECTED}),
    # file preconditions run after authorization and may still reject
    Stage.AUTHORIZED: frozenset({Stage.EXECUTING, Stage.REJECTED}),
    Stage.EXECUTING: frozenset({Stage.PERSISTED, Stage.FAILED}),
    Stage.PERSISTED: frozenset({Stage.QUOTA_UPDATED, Stage.RESPONDED, Stage.FAILED}),
    Stage.QUOTA_UPDATED: frozenset({Stage.RESPONDED}),
    Stage.RESPONDED: frozenset(),
    Stage.REJECTED: frozenset(),
    Stage.FAILED: frozenset(),
}


class OperationRun:
    """Stage tracker for one request; history is kept for logging and tests."""

    def __init__(self, operation: str, user_id: str):
        self.operation = operation
        self.user_id = user_id
        self.stage = Stage.RECEIVED
        self.history: List[Tuple[Stage, float]] = [(Stage.RECEIVED, time.perf_counter())]

    @property
    def stages(self) -> List[Stage]:
        return [stage for stage, _ in self.history]

    @property
    def finished(self) -> bool:
        return not _TRANSITIONS[self.stage]

    def advance(self, stage: Stage) -> None:
        if stage not in _TRANSITIONS[self.stage]:
            raise RuntimeError(
                f"Illegal transition {self.stage.value} -> {stage.value} for {self.operation}"
            )
        self.stage = stage
        self.history.append((stage, time.perf_counter()))
        logger.debug("%s for %s: %s", self.operation, self.user_id, stage.value)

    def elapsed_ms(self) -> float:
        return (self.history[-1][1] - self.history[0][1]) * 1000
