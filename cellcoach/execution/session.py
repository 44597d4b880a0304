#!/usr/bin/env python3
"""
CourseSession - one learner working through one course.
Owns the tracker and orchestrator, knows which stage is active and hands
out hints progressively.
"""

from typing import Callable, Dict, List, Optional, Tuple, Union

from ..config import get_settings
from ..errors import CellCoachError
from .feedback import FeedbackSynthesizer
from .interpreter import DEFAULT_STEP_LIMIT, InputCallback, InterpreterAdapter, PythonInterpreter
from .loader import Course
from .orchestrator import ExecutionOrchestrator
from .state import CellStatus, ExecutionResult, Stage
from .tracker import CellStateTracker


class CourseSession:
    """Course content plus the learner's run state"""

    def __init__(
        self,
        course: Course,
        interpreter: Optional[InterpreterAdapter] = None,
        step_limit: int = DEFAULT_STEP_LIMIT,
        max_hints: int = 2,
        preview_chars: int = 200,
        on_output: Optional[Callable[[str], None]] = None,
        on_input_request: Optional[InputCallback] = None,
    ):
        self.course = course
        self.tracker = CellStateTracker()
        self.orchestrator = ExecutionOrchestrator(
            interpreter or PythonInterpreter(),
            tracker=self.tracker,
            synthesizer=FeedbackSynthesizer(max_hints=max_hints, preview_chars=preview_chars),
            step_limit=step_limit,
            on_input_request=on_input_request,
            on_output=on_output,
        )
        self.active_stage: Optional[Stage] = None
        self._hints_given: Dict[Tuple[str, int], int] = {}

    @classmethod
    def from_config(cls, course: Course, **kwargs) -> 'CourseSession':
        """Session using the resolved user settings"""
        settings = get_settings()
        kwargs.setdefault('step_limit', settings['step_limit'])
        kwargs.setdefault('max_hints', settings['max_suggested_hints'])
        kwargs.setdefault('preview_chars', settings['output_preview_chars'])
        return cls(course, **kwargs)

    @property
    def completed_stages(self) -> List[Union[int, str]]:
        return list(self.tracker.completed_stages)

    def require_stage(self) -> Stage:
        if self.active_stage is None:
            raise CellCoachError("No stage loaded. Use 'load <stage_id>' first.")
        return self.active_stage

    # =========================================================================
    # Stage lifecycle
    # =========================================================================

    def load_stage(self, stage_id: Union[int, str], restore_sources: bool = True) -> Stage:
        """Make a stage active; its cells start over as Pending"""
        stage = self.course.get_stage(stage_id)
        self.orchestrator.activate_stage(stage)
        self.orchestrator.reset_stage(stage, restore_sources=restore_sources)
        self.active_stage = stage
        self._hints_given = {k: v for k, v in self._hints_given.items() if k[0] != str(stage.id)}
        return stage

    def reset(self, restore_sources: bool = False):
        """Reset the active stage"""
        self.orchestrator.reset_stage(self.require_stage(), restore_sources=restore_sources)

    def next_stage(self) -> Optional[Stage]:
        stage = self.require_stage()
        following = self.course.next_stage(stage)
        if following is not None:
            return self.load_stage(following.id)
        return None

    # =========================================================================
    # Cells
    # =========================================================================

    def set_source(self, index: int, source: str):
        """Replace a cell's live source; status is left alone"""
        self.require_stage().get_cell(index).source = source

    def run_cell(self, index: int) -> ExecutionResult:
        return self.orchestrator.run_cell(self.require_stage(), index)

    def run_all(self) -> List[ExecutionResult]:
        return self.orchestrator.run_all(self.require_stage())

    def statuses(self) -> List[CellStatus]:
        return self.tracker.statuses(self.require_stage())

    def is_stage_complete(self) -> bool:
        return self.orchestrator.is_stage_complete(self.require_stage())

    def next_hint(self, index: int = 0) -> Optional[str]:
        """
        Next hint from the stage pool, one more per request. Returns None
        when the stage has no hints; keeps returning the last one once they
        run out.
        """
        stage = self.require_stage()
        if not stage.hints:
            return None
        key = (str(stage.id), index)
        given = self._hints_given.get(key, 0)
        self._hints_given[key] = given + 1
        return stage.hints[min(given, len(stage.hints) - 1)]
