#!/usr/bin/env python3
"""
Interpreter adapters.

The orchestrator only needs an object that can run a whole program string,
stream its printed output through a callback and fail with a classified
InterpreterError. PythonInterpreter does that on the host interpreter with a
step budget enforced through sys.settrace.
"""

import builtins
import sys
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..errors import (
    InterpreterRuntimeError,
    InterpreterSyntaxError,
    ResourceExhaustedError,
)


DEFAULT_STEP_LIMIT = 10000
SOURCE_FILENAME = '<stdin>'

# Checked in order; first isinstance match wins
RUNTIME_CATEGORIES = (
    (NameError, 'NameError'),
    (ZeroDivisionError, 'ZeroDivisionError'),
    (IndexError, 'IndexError'),
    (KeyError, 'KeyError'),
    (TypeError, 'TypeError'),
)


OutputCallback = Callable[[str], None]
InputCallback = Callable[[str], str]


class InterpreterAdapter(ABC):
    """Contract the execution engine requires from an interpreter"""

    def __init__(self):
        self.on_output: OutputCallback = lambda text: None
        self.on_input_request: Optional[InputCallback] = None
        self.step_limit = DEFAULT_STEP_LIMIT

    def configure(
        self,
        on_output: OutputCallback,
        on_input_request: Optional[InputCallback] = None,
        step_limit: int = DEFAULT_STEP_LIMIT,
    ):
        """Set the output sink, input source and step budget for the next run"""
        self.on_output = on_output
        self.on_input_request = on_input_request
        self.step_limit = step_limit

    @abstractmethod
    def execute(self, source: str) -> None:
        """
        Run source as one complete program.

        Returns once the program finishes, with all output already delivered
        through on_output. Raises an InterpreterError subclass on failure.
        """
        pass


class _StepLimitExceeded(BaseException):
    """Raised from the trace hook; BaseException so learner code can't catch it with except Exception"""


class _StepCounter:
    """Counts executed lines of the learner program"""

    def __init__(self, limit: int):
        self.limit = limit
        self.steps = 0
        self.last_line: Optional[int] = None

    @property
    def exceeded(self) -> bool:
        return self.steps > self.limit

    def trace(self, frame, event, arg):
        if frame.f_code.co_filename != SOURCE_FILENAME:
            return None
        return self._trace_lines

    def _trace_lines(self, frame, event, arg):
        if event == 'line':
            self.steps += 1
            self.last_line = frame.f_lineno
            if self.steps > self.limit:
                raise _StepLimitExceeded()
        return self._trace_lines


class PythonInterpreter(InterpreterAdapter):
    """
    Runs learner programs on the host Python.

    Every execute() starts from a fresh __main__ namespace, so nothing
    carries over between calls. print() and input() are routed to the
    configured callbacks instead of the process streams.

    The step budget counts executed lines of the learner program, including
    lines of its own functions and lambdas called back from builtins such as
    map() or sorted(). Work done entirely inside one builtin call, like
    sum(range(10**12)) or 2**10**10, produces no line events and is not
    bounded by the budget.
    """

    def execute(self, source: str) -> None:
        try:
            code = compile(source, SOURCE_FILENAME, 'exec')
        except SyntaxError as e:
            category = 'IndentationError' if isinstance(e, IndentationError) else 'SyntaxError'
            raise InterpreterSyntaxError(
                self._format_syntax_error(e), category=category, lineno=e.lineno
            ) from None

        namespace = {'__name__': '__main__', '__builtins__': self._make_builtins()}
        counter = _StepCounter(self.step_limit)

        previous_trace = sys.gettrace()
        sys.settrace(counter.trace)
        try:
            exec(code, namespace)
        except _StepLimitExceeded:
            raise ResourceExhaustedError(self.step_limit, lineno=counter.last_line) from None
        except SystemExit:
            # exit()/quit() end the program normally
            pass
        except Exception as exc:
            lineno = _error_line(exc)
            raise InterpreterRuntimeError(
                _format_exception(exc, lineno),
                category=_runtime_category(exc),
                lineno=lineno,
            ) from exc
        finally:
            sys.settrace(previous_trace)

        if counter.exceeded:
            # Learner code swallowed the limit signal with a bare except
            raise ResourceExhaustedError(self.step_limit, lineno=counter.last_line)

    def _make_builtins(self) -> Dict:
        names = dict(vars(builtins))
        names['print'] = self._print
        names['input'] = self._input
        return names

    def _print(self, *args, sep=' ', end='\n', file=None, flush=False):
        if file is not None:
            builtins.print(*args, sep=sep, end=end, file=file, flush=flush)
            return
        sep = ' ' if sep is None else sep
        end = '\n' if end is None else end
        self.on_output(sep.join(str(arg) for arg in args) + end)

    def _input(self, prompt=''):
        prompt = str(prompt)
        if prompt:
            self.on_output(prompt)
        if self.on_input_request is None:
            raise EOFError('EOF when reading a line')
        return self.on_input_request(prompt)

    @staticmethod
    def _format_syntax_error(error: SyntaxError) -> str:
        name = type(error).__name__
        where = f" on line {error.lineno}" if error.lineno else ""
        return f"{name}: {error.msg}{where}"


def _runtime_category(exc: BaseException) -> str:
    for exc_type, category in RUNTIME_CATEGORIES:
        if isinstance(exc, exc_type):
            return category
    return 'RuntimeError'


def _error_line(exc: BaseException) -> Optional[int]:
    """Innermost line of the learner program in the traceback"""
    lineno = None
    tb = exc.__traceback__
    while tb is not None:
        if tb.tb_frame.f_code.co_filename == SOURCE_FILENAME:
            lineno = tb.tb_lineno
        tb = tb.tb_next
    return lineno


def _format_exception(exc: BaseException, lineno: Optional[int]) -> str:
    name = type(exc).__name__
    detail = str(exc)
    text = f"{name}: {detail}" if detail else name
    if lineno:
        text += f" on line {lineno}"
    return text
