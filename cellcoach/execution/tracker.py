#!/usr/bin/env python3
"""
Cell state tracking.

Keeps, per stage, each cell's status and the Successful Set: the cells whose
source is replayed in front of later cells. Owned by the orchestrator and
keyed by stage id; nothing here is module-global.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Union

from ..errors import InvalidTransitionError
from .state import CellStatus, Stage

logger = logging.getLogger(__name__)


StageId = Union[int, str]

ALLOWED_TRANSITIONS = {
    CellStatus.PENDING: {CellStatus.RUNNING},
    CellStatus.RUNNING: {CellStatus.COMPLETED, CellStatus.ERROR},
    CellStatus.COMPLETED: {CellStatus.RUNNING},
    CellStatus.ERROR: {CellStatus.RUNNING},
}


@dataclass
class StageProgress:
    """Run state of one stage"""
    statuses: List[CellStatus] = field(default_factory=list)
    successful: Set[int] = field(default_factory=set)
    epoch: int = 0               # Advanced on reset/switch to mark in-flight runs stale

    @classmethod
    def fresh(cls, cell_count: int, epoch: int = 0) -> 'StageProgress':
        return cls(statuses=[CellStatus.PENDING] * cell_count, epoch=epoch)


class CellStateTracker:
    """Per-stage cell statuses and Successful Sets"""

    def __init__(self):
        self._stages: Dict[StageId, StageProgress] = {}
        self.active_stage_id: Optional[StageId] = None
        self.completed_stages: List[StageId] = []

    def _progress(self, stage: Stage) -> StageProgress:
        progress = self._stages.get(stage.id)
        if progress is None:
            progress = StageProgress.fresh(len(stage.cells))
            self._stages[stage.id] = progress
        return progress

    def _transition(self, stage: Stage, idx: int, target: CellStatus):
        stage.get_cell(idx)
        progress = self._progress(stage)
        current = progress.statuses[idx]
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(idx, current, target)
        progress.statuses[idx] = target

    # === State machine ===

    def mark_running(self, stage: Stage, idx: int):
        """A re-run cell leaves the Successful Set until it completes again"""
        self._transition(stage, idx, CellStatus.RUNNING)
        self._progress(stage).successful.discard(idx)

    def mark_completed(self, stage: Stage, idx: int):
        self._transition(stage, idx, CellStatus.COMPLETED)
        self._progress(stage).successful.add(idx)

    def mark_error(self, stage: Stage, idx: int):
        """Record a failed run; a previously successful cell drops out of the set"""
        self._transition(stage, idx, CellStatus.ERROR)
        self._progress(stage).successful.discard(idx)

    # === Queries ===

    def status(self, stage: Stage, idx: int) -> CellStatus:
        stage.get_cell(idx)
        return self._progress(stage).statuses[idx]

    def statuses(self, stage: Stage) -> List[CellStatus]:
        return list(self._progress(stage).statuses)

    def is_successful(self, stage: Stage, idx: int) -> bool:
        return idx in self._progress(stage).successful

    def successful_indices(self, stage: Stage) -> List[int]:
        """Successful cell indices in ascending order"""
        return sorted(self._progress(stage).successful)

    def is_stage_complete(self, stage: Stage) -> bool:
        statuses = self._progress(stage).statuses
        return bool(statuses) and all(s == CellStatus.COMPLETED for s in statuses)

    def record_stage_completion(self, stage: Stage) -> bool:
        """Remember the stage as completed; returns True the first time"""
        if stage.id in self.completed_stages:
            return False
        self.completed_stages.append(stage.id)
        return True

    # === Epochs and resets ===

    def epoch(self, stage: Stage) -> int:
        return self._progress(stage).epoch

    def reset_stage(self, stage: Stage):
        """Every cell back to Pending and the Successful Set emptied"""
        previous = self._progress(stage)
        self._stages[stage.id] = StageProgress.fresh(len(stage.cells), epoch=previous.epoch + 1)
        logger.info("Stage %s reset: %d cell(s) pending", stage.id, len(stage.cells))

    def activate_stage(self, stage: Stage):
        """
        Make stage the active one. Runs still in flight for the stage being
        left become stale.
        """
        if self.active_stage_id is not None and self.active_stage_id != stage.id:
            leaving = self._stages.get(self.active_stage_id)
            if leaving is not None:
                leaving.epoch += 1
        self.active_stage_id = stage.id
        self._progress(stage)
