#!/usr/bin/env python3
"""
ExecutionOrchestrator - runs one cell of a stage.

The interpreter keeps nothing between calls, so every run replays the live
source of the stage's successful earlier cells in front of the target cell
and submits the result as one program. The outcome is recorded in the
CellStateTracker and, on failure, explained by the FeedbackSynthesizer.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from ..errors import CellCoachError, InterpreterError, RunInProgressError
from .feedback import FeedbackSynthesizer
from .interpreter import DEFAULT_STEP_LIMIT, InputCallback, InterpreterAdapter
from .state import (
    ExecutionResult,
    FeedbackReport,
    LiteralMatch,
    NoExpectation,
    RunStatus,
    Stage,
)
from .tracker import CellStateTracker
from .validation import first_failing_pattern, outputs_equivalent, validate

logger = logging.getLogger(__name__)


class ExecutionOrchestrator:
    """Builds accumulated programs, runs them and records the outcome"""

    def __init__(
        self,
        interpreter: InterpreterAdapter,
        tracker: Optional[CellStateTracker] = None,
        synthesizer: Optional[FeedbackSynthesizer] = None,
        step_limit: int = DEFAULT_STEP_LIMIT,
        on_input_request: Optional[InputCallback] = None,
        on_output: Optional[Callable[[str], None]] = None,
    ):
        self.interpreter = interpreter
        self.tracker = tracker or CellStateTracker()
        self.synthesizer = synthesizer or FeedbackSynthesizer()
        self.step_limit = step_limit
        self.on_input_request = on_input_request
        self.on_output = on_output          # Optional live echo of program output

        self._locks: Dict[object, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _stage_lock(self, stage: Stage) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(stage.id)
            if lock is None:
                lock = threading.Lock()
                self._locks[stage.id] = lock
            return lock

    # =========================================================================
    # Source accumulation
    # =========================================================================

    def build_accumulated_source(self, stage: Stage, target_index: int) -> str:
        """
        Live source of every successful cell before target_index, in order,
        followed by the target cell's own source. Blank sources are skipped.
        """
        target = stage.get_cell(target_index)
        indices = [i for i in self.tracker.successful_indices(stage) if i < target_index]

        parts = []
        for cell in [stage.cells[i] for i in indices] + [target]:
            if cell.source.strip():
                parts.append(cell.source if cell.source.endswith('\n') else cell.source + '\n')
        return ''.join(parts)

    def _execute(self, source: str, chunks: List[str], echo: bool = True) -> str:
        """Run source on the adapter; printed text is appended to chunks as it arrives"""

        def collect(text: str):
            chunks.append(text)
            if echo and self.on_output is not None:
                self.on_output(text)

        self.interpreter.configure(
            on_output=collect,
            on_input_request=self.on_input_request,
            step_limit=self.step_limit,
        )
        self.interpreter.execute(source)
        return ''.join(chunks)

    # =========================================================================
    # Running cells
    # =========================================================================

    def run_cell(self, stage: Stage, target_index: int) -> ExecutionResult:
        """
        Run one cell with its accumulated context.

        Raises RunInProgressError if another run of the same stage has not
        finished yet. Returns a STALE result, leaving the tracker untouched,
        when the stage was reset or switched away from during the run.
        """
        stage.get_cell(target_index)
        lock = self._stage_lock(stage)
        if not lock.acquire(blocking=False):
            raise RunInProgressError(stage.id)

        try:
            epoch = self.tracker.epoch(stage)
            source = self.build_accumulated_source(stage, target_index)
            logger.debug(
                "Running stage %s cell %d; successful cells %s; accumulated source:\n%s",
                stage.id, target_index, self.tracker.successful_indices(stage), source,
            )

            self.tracker.mark_running(stage, target_index)
            chunks: List[str] = []
            try:
                output = self._execute(source, chunks)
                feedback = self._check_output(stage, target_index, source, output)
            except InterpreterError as e:
                if self.tracker.epoch(stage) != epoch:
                    return self._stale(stage, target_index)
                self.tracker.mark_error(stage, target_index)
                logger.debug("Stage %s cell %d failed: %s", stage.id, target_index, e.message)
                return ExecutionResult(
                    stage_id=stage.id,
                    cell_index=target_index,
                    status=RunStatus.INTERPRETER_ERROR,
                    output=''.join(chunks),
                    error_text=e.message,
                    error=e,
                    feedback=self.synthesizer.synthesize_error(e, stage.hints),
                    accumulated_source=source,
                )
            except BaseException:
                # Interrupted (e.g. Ctrl-C at an input() prompt): don't leave the cell Running
                if self.tracker.epoch(stage) == epoch:
                    self.tracker.mark_error(stage, target_index)
                raise

            if self.tracker.epoch(stage) != epoch:
                return self._stale(stage, target_index)

            if feedback is not None:
                self.tracker.mark_error(stage, target_index)
                logger.debug(
                    "Stage %s cell %d failed validation: %s",
                    stage.id, target_index, feedback.category.value,
                )
                return ExecutionResult(
                    stage_id=stage.id,
                    cell_index=target_index,
                    status=RunStatus.VALIDATION_FAILURE,
                    output=output,
                    feedback=feedback,
                    accumulated_source=source,
                )

            self.tracker.mark_completed(stage, target_index)
            if self.tracker.is_stage_complete(stage) and self.tracker.record_stage_completion(stage):
                logger.info("Stage %s completed", stage.id)
            return ExecutionResult(
                stage_id=stage.id,
                cell_index=target_index,
                status=RunStatus.OK,
                output=output,
                accumulated_source=source,
            )
        finally:
            lock.release()

    def run_all(self, stage: Stage) -> List[ExecutionResult]:
        """Run every cell of stage in order, continuing past failures"""
        return [self.run_cell(stage, cell.index) for cell in stage.cells]

    def run_stage(self, stage: Stage) -> ExecutionResult:
        """Run a single-cell stage: code patterns, output patterns, then its expectation"""
        if not stage.is_single_cell:
            raise CellCoachError(f"Stage {stage.id} has {len(stage.cells)} cells; run them one at a time")
        return self.run_cell(stage, 0)

    def _stale(self, stage: Stage, target_index: int) -> ExecutionResult:
        logger.info("Discarding result for stage %s cell %d: stage changed during the run",
                    stage.id, target_index)
        return ExecutionResult.stale(stage.id, target_index)

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_output(
        self, stage: Stage, target_index: int, source: str, output: str
    ) -> Optional[FeedbackReport]:
        """None when the run passes, otherwise the feedback explaining why not"""
        cell = stage.cells[target_index]

        if stage.is_single_cell and stage.rules is not None:
            failed = first_failing_pattern(source, stage.rules.code_patterns)
            if failed is not None:
                return self.synthesizer.code_pattern_missing(failed[1], stage.hints)

            failed = first_failing_pattern(output, stage.rules.output_patterns)
            if failed is not None:
                return self.synthesizer.output_pattern_missing(failed[1], output, stage.hints)

        if not validate(output, cell.expected):
            return self.synthesizer.synthesize(output, cell.expected, stage.hints)

        if self._compares_with_solution(stage, cell.expected):
            return self._check_against_solution(stage, target_index, output)
        return None

    @staticmethod
    def _compares_with_solution(stage: Stage, expected) -> bool:
        has_rules = stage.rules is not None and (
            stage.rules.code_patterns or stage.rules.output_patterns
        )
        return (
            stage.is_single_cell
            and not has_rules
            and isinstance(expected, NoExpectation)
            and stage.solution_for(0) is not None
        )

    def _check_against_solution(
        self, stage: Stage, target_index: int, output: str
    ) -> Optional[FeedbackReport]:
        try:
            solution_output = self._execute(stage.solution_for(target_index), [], echo=False)
        except InterpreterError as e:
            logger.warning("Reference solution for stage %s does not run: %s", stage.id, e.message)
            return None

        if outputs_equivalent(output, solution_output):
            return None
        return self.synthesizer.synthesize(output, LiteralMatch(solution_output.strip()), stage.hints)

    # =========================================================================
    # Stage lifecycle
    # =========================================================================

    def reset_stage(self, stage: Stage, restore_sources: bool = False):
        """
        Every cell back to Pending with an empty Successful Set. Runs still
        in flight for the stage will come back STALE.
        """
        if restore_sources:
            for cell in stage.cells:
                cell.reset_source()
        self.tracker.reset_stage(stage)

    def activate_stage(self, stage: Stage):
        self.tracker.activate_stage(stage)

    def is_stage_complete(self, stage: Stage) -> bool:
        return self.tracker.is_stage_complete(stage)
