#!/usr/bin/env python3
"""
Exception hierarchy for cellcoach.

Interpreter failures are exceptions raised by the adapter and converted into
results by the orchestrator. Validation failures are never exceptions.
"""

from typing import Optional


class CellCoachError(Exception):
    """Base class for all cellcoach errors"""


class StageLoadError(CellCoachError):
    """Course content could not be loaded (bad file, JSON, regex or ids)"""


class UnknownStageError(CellCoachError):
    """A stage id that is not part of the loaded course"""

    def __init__(self, stage_id):
        super().__init__(f"Unknown stage: {stage_id}")
        self.stage_id = stage_id


class CellIndexError(CellCoachError):
    """A cell index outside the stage"""

    def __init__(self, stage_id, index: int, total: int):
        super().__init__(
            f"Stage {stage_id} has {total} cell(s); index {index} is out of range"
        )
        self.stage_id = stage_id
        self.index = index


class RunInProgressError(CellCoachError):
    """Another run for the same stage has not finished yet"""

    def __init__(self, stage_id):
        super().__init__(f"A cell in stage {stage_id} is already running")
        self.stage_id = stage_id


class InvalidTransitionError(CellCoachError):
    """Illegal cell status change"""

    def __init__(self, index: int, current, target):
        super().__init__(
            f"Cell {index}: cannot move from {current.value} to {target.value}"
        )
        self.index = index
        self.current = current
        self.target = target


class InterpreterError(CellCoachError):
    """
    Learner program failed inside the interpreter.

    Attributes:
        message: human-readable text, e.g. "NameError: name 'x' is not defined on line 1"
        category: coarse kind (SyntaxError, NameError, ResourceExhausted, ...)
        lineno: line in the submitted program, when known
    """

    default_category = 'RuntimeError'

    def __init__(self, message: str, category: str = None, lineno: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.lineno = lineno

    def __str__(self) -> str:
        return self.message


class InterpreterSyntaxError(InterpreterError):
    """Malformed source (includes indentation errors)"""

    default_category = 'SyntaxError'


class InterpreterRuntimeError(InterpreterError):
    """Exception raised while the learner program was running"""

    default_category = 'RuntimeError'


class ResourceExhaustedError(InterpreterError):
    """The program used up its step budget"""

    default_category = 'ResourceExhausted'

    def __init__(self, step_limit: int, lineno: Optional[int] = None):
        where = f" on line {lineno}" if lineno else ""
        super().__init__(
            f"ResourceExhausted: program exceeded the limit of {step_limit} steps{where}. "
            f"Check for loops that never end or very large ranges.",
            lineno=lineno,
        )
        self.step_limit = step_limit
