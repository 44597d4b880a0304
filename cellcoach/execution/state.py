#!/usr/bin/env python3
"""
Data types shared by the execution engine.
Stages, cells, expectations, run results and feedback reports.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Pattern, Sequence, Union

from ..errors import CellIndexError, InterpreterError


class CellStatus(Enum):
    """Lifecycle of a single cell"""
    PENDING = 'pending'        # Never run since the stage loaded or reset
    RUNNING = 'running'        # Submitted to the interpreter
    COMPLETED = 'completed'    # Ran cleanly and passed validation
    ERROR = 'error'            # Interpreter error or failed validation


class RunStatus(Enum):
    """Outcome of one run_cell call"""
    OK = 'ok'
    INTERPRETER_ERROR = 'interpreter-error'
    VALIDATION_FAILURE = 'validation-failure'
    STALE = 'stale'            # Stage changed while the run was in flight


class FailureCategory(Enum):
    """Why a run did not pass"""
    # Validation failures
    NO_OUTPUT = 'NoOutput'
    WRONG_NUMBERS = 'WrongNumbers'
    MISSING_TEXT = 'MissingText'
    PATTERN_MISMATCH = 'PatternMismatch'
    INCOMPLETE_OUTPUT = 'IncompleteOutput'
    OUTPUT_MISMATCH = 'OutputMismatch'
    CODE_PATTERN_MISSING = 'CodePatternMissing'

    # Interpreter failures
    SYNTAX_ERROR = 'SyntaxError'
    INDENTATION_ERROR = 'IndentationError'
    NAME_ERROR = 'NameError'
    TYPE_ERROR = 'TypeError'
    ZERO_DIVISION_ERROR = 'ZeroDivisionError'
    INDEX_ERROR = 'IndexError'
    KEY_ERROR = 'KeyError'
    RESOURCE_EXHAUSTED = 'ResourceExhausted'
    RUNTIME_ERROR = 'RuntimeError'

    @property
    def status_text(self) -> str:
        """Short label shown next to the cell"""
        labels = {
            FailureCategory.NO_OUTPUT: 'No Output',
            FailureCategory.WRONG_NUMBERS: 'Wrong Numbers',
            FailureCategory.MISSING_TEXT: 'Missing Text',
            FailureCategory.PATTERN_MISMATCH: 'Pattern Mismatch',
            FailureCategory.INCOMPLETE_OUTPUT: 'Incomplete Output',
            FailureCategory.OUTPUT_MISMATCH: 'Output Mismatch',
            FailureCategory.CODE_PATTERN_MISSING: 'In Progress',
            FailureCategory.RESOURCE_EXHAUSTED: 'Too Many Steps',
        }
        return labels.get(self, 'Error')

    @classmethod
    def from_interpreter_category(cls, category: str) -> 'FailureCategory':
        """Map an adapter category string onto a failure category"""
        for member in cls:
            if member.value == category:
                return member
        return cls.RUNTIME_ERROR


@dataclass
class ValidationSpec:
    """
    Author-provided AND-combination of output rules.
    A field left as None is vacuously satisfied.
    """
    output_patterns: Optional[List[Pattern]] = None
    required_numbers: Optional[List[float]] = None
    required_text: Optional[List[str]] = None

    def is_empty(self) -> bool:
        return (
            self.output_patterns is None
            and self.required_numbers is None
            and self.required_text is None
        )


# Expected output variants -------------------------------------------------

@dataclass(frozen=True)
class NoExpectation:
    """Cell with nothing to check; any clean run passes"""


@dataclass(frozen=True)
class LiteralMatch:
    """One expected string, compared with flexible matching"""
    text: str


@dataclass(frozen=True)
class LiteralMatchAll:
    """Several expected strings; each must match the same full output"""
    texts: Sequence[str]


@dataclass(frozen=True)
class StructuredSpec:
    """Explicit rule set"""
    spec: ValidationSpec


Expectation = Union[NoExpectation, LiteralMatch, LiteralMatchAll, StructuredSpec]


def make_expectation(
    expected_output: Union[str, Sequence[str], None] = None,
    validation: Optional[ValidationSpec] = None,
) -> Expectation:
    """
    Build the expectation for a cell.

    A validation spec takes precedence over the literal expected output,
    matching how authored cells are graded.
    """
    if validation is not None:
        return StructuredSpec(validation)
    if not expected_output:
        return NoExpectation()
    if isinstance(expected_output, str):
        return LiteralMatch(expected_output)
    return LiteralMatchAll(tuple(expected_output))


@dataclass
class StageRules:
    """Stage-level rules for single-cell stages"""
    code_patterns: List[Pattern] = field(default_factory=list)
    output_patterns: List[Pattern] = field(default_factory=list)


@dataclass
class Cell:
    """One runnable unit of source inside a stage"""
    index: int
    source: str = ''                     # Live text, owned by the editing surface
    expected: Expectation = field(default_factory=NoExpectation)
    title: str = ''
    instruction: str = ''
    starter_code: str = ''

    def reset_source(self):
        """Put the starter code back"""
        self.source = self.starter_code


@dataclass
class Stage:
    """An ordered group of cells plus the author's hints"""
    id: Union[int, str]
    cells: List[Cell] = field(default_factory=list)
    rules: Optional[StageRules] = None   # Only meaningful for single-cell stages
    hints: List[str] = field(default_factory=list)
    title: str = ''
    challenge: str = ''
    solution: Union[str, List[str], None] = None

    @property
    def is_single_cell(self) -> bool:
        return len(self.cells) == 1

    def get_cell(self, index: int) -> Cell:
        """Get the cell at index, raising CellIndexError when out of range"""
        if 0 <= index < len(self.cells):
            return self.cells[index]
        raise CellIndexError(self.id, index, len(self.cells))

    def solution_for(self, index: int) -> Optional[str]:
        """Reference solution for one cell, if the author supplied one"""
        if self.solution is None:
            return None
        if isinstance(self.solution, str):
            return self.solution if index == 0 else None
        if 0 <= index < len(self.solution):
            return self.solution[index]
        return None


@dataclass
class FeedbackReport:
    """Categorized explanation plus suggested hints"""
    category: FailureCategory
    message: str
    hints: List[str] = field(default_factory=list)

    @property
    def status_text(self) -> str:
        return self.category.status_text


@dataclass
class ExecutionResult:
    """What one run of a cell produced"""
    stage_id: Union[int, str]
    cell_index: int
    status: RunStatus
    output: str = ''
    error_text: str = ''                     # Verbatim interpreter message
    error: Optional[InterpreterError] = None
    feedback: Optional[FeedbackReport] = None
    accumulated_source: str = ''

    @property
    def passed(self) -> bool:
        return self.status == RunStatus.OK

    @classmethod
    def stale(cls, stage_id, cell_index: int) -> 'ExecutionResult':
        """A result that arrived after its stage was reset or switched"""
        return cls(stage_id=stage_id, cell_index=cell_index, status=RunStatus.STALE)
