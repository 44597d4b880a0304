#!/usr/bin/env python3
"""
Shared fixtures for the cellcoach test suite.
"""

import io
import threading

import pytest
from rich.console import Console

from cellcoach.execution import (
    Cell,
    Stage,
    NoExpectation,
    InterpreterAdapter,
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep ~/.cellcoach inside the test's temp directory"""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.delenv('CELLCOACH_STEP_LIMIT', raising=False)
    monkeypatch.delenv('CELLCOACH_LOG_LEVEL', raising=False)
    return home


@pytest.fixture
def console():
    """Console that records into a string buffer"""
    return Console(file=io.StringIO(), width=120, force_terminal=False)


@pytest.fixture
def make_stage():
    """Build a Stage from a list of sources and optional expectations"""

    def _make_stage(sources, expectations=None, stage_id=1, hints=None, rules=None, solution=None):
        expectations = expectations or [None] * len(sources)
        cells = [
            Cell(
                index=i,
                source=source,
                expected=expected if expected is not None else NoExpectation(),
                starter_code=source,
            )
            for i, (source, expected) in enumerate(zip(sources, expectations))
        ]
        return Stage(
            id=stage_id,
            cells=cells,
            rules=rules,
            hints=list(hints or []),
            solution=solution,
        )

    return _make_stage


class BlockingInterpreter(InterpreterAdapter):
    """Adapter that waits for release before finishing, to hold a run in flight"""

    def __init__(self, output: str = 'done\n'):
        super().__init__()
        self.output = output
        self.started = threading.Event()
        self.release = threading.Event()
        self.sources = []

    def execute(self, source: str) -> None:
        self.sources.append(source)
        self.started.set()
        self.release.wait(5)
        self.on_output(self.output)


@pytest.fixture
def blocking_interpreter():
    interpreter = BlockingInterpreter()
    yield interpreter
    interpreter.release.set()
