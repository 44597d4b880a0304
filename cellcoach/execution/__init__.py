#!/usr/bin/env python3
"""
Incremental cell execution and output validation.

Running a cell replays the successful cells before it, so a stateless
interpreter behaves like a notebook kernel. Output is graded against the
author's expectation and failures come back with categorized feedback.
"""

from .state import (
    CellStatus,
    RunStatus,
    FailureCategory,
    ValidationSpec,
    NoExpectation,
    LiteralMatch,
    LiteralMatchAll,
    StructuredSpec,
    make_expectation,
    StageRules,
    Cell,
    Stage,
    FeedbackReport,
    ExecutionResult,
)
from .interpreter import InterpreterAdapter, PythonInterpreter
from .tracker import CellStateTracker
from .validation import flexible_match, validate
from .feedback import FeedbackSynthesizer
from .orchestrator import ExecutionOrchestrator
from .loader import Course, load_course, load_stages
from .session import CourseSession

__all__ = [
    'CellStatus',
    'RunStatus',
    'FailureCategory',
    'ValidationSpec',
    'NoExpectation',
    'LiteralMatch',
    'LiteralMatchAll',
    'StructuredSpec',
    'make_expectation',
    'StageRules',
    'Cell',
    'Stage',
    'FeedbackReport',
    'ExecutionResult',
    'InterpreterAdapter',
    'PythonInterpreter',
    'CellStateTracker',
    'flexible_match',
    'validate',
    'FeedbackSynthesizer',
    'ExecutionOrchestrator',
    'Course',
    'load_course',
    'load_stages',
    'CourseSession',
]
