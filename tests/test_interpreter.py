#!/usr/bin/env python3
"""
Tests for PythonInterpreter: output capture, error categories and the step budget.
"""

import sys

import pytest

from cellcoach.errors import (
    InterpreterRuntimeError,
    InterpreterSyntaxError,
    ResourceExhaustedError,
)
from cellcoach.execution import PythonInterpreter


class TestExecution:
    """Tests for running programs and capturing output"""

    def setup_method(self):
        self.outputs = []
        self.interpreter = PythonInterpreter()
        self.interpreter.configure(on_output=self.outputs.append)

    def output(self) -> str:
        return ''.join(self.outputs)

    def test_print_captured(self):
        """Test print output goes to the callback, not stdout"""
        self.interpreter.execute("print('hello', 42)\n")
        assert self.output() == "hello 42\n"

    def test_print_sep_and_end(self):
        """Test print honours sep and end"""
        self.interpreter.execute("print(1, 2, 3, sep='-', end='!')\n")
        assert self.output() == "1-2-3!"

    def test_fresh_namespace_per_call(self):
        """Test variables do not survive between executions"""
        self.interpreter.execute("x = 1\n")
        with pytest.raises(InterpreterRuntimeError) as exc_info:
            self.interpreter.execute("print(x)\n")
        assert exc_info.value.category == 'NameError'
        assert str(exc_info.value) == "NameError: name 'x' is not defined on line 1"

    def test_input_uses_callback(self):
        """Test input() asks the configured callback and echoes the prompt"""
        self.interpreter.configure(on_output=self.outputs.append, on_input_request=lambda prompt: "Ada")
        self.interpreter.execute("name = input('Name? ')\nprint('Hi', name)\n")
        assert self.output() == "Name? Hi Ada\n"

    def test_input_without_callback(self):
        """Test input() without a source fails like end of input"""
        with pytest.raises(InterpreterRuntimeError) as exc_info:
            self.interpreter.execute("input()\n")
        assert exc_info.value.category == 'RuntimeError'
        assert exc_info.value.message.startswith('EOFError')

    def test_system_exit_ends_normally(self):
        """Test raising SystemExit finishes the program without an error"""
        self.interpreter.execute("print(1)\nraise SystemExit\nprint(2)\n")
        assert self.output() == "1\n"

    def test_trace_function_restored(self):
        """Test the previous trace function is put back after a run"""
        before = sys.gettrace()
        self.interpreter.execute("for i in range(3):\n    pass\n")
        assert sys.gettrace() is before


class TestErrorCategories:
    """Tests for mapping exceptions to categories and messages"""

    def setup_method(self):
        self.interpreter = PythonInterpreter()
        self.interpreter.configure(on_output=lambda text: None)

    def _runtime_error(self, source: str) -> InterpreterRuntimeError:
        with pytest.raises(InterpreterRuntimeError) as exc_info:
            self.interpreter.execute(source)
        return exc_info.value

    def test_syntax_error(self):
        """Test unparsable code is a SyntaxError with its line"""
        with pytest.raises(InterpreterSyntaxError) as exc_info:
            self.interpreter.execute("x = 1\nprint(\n")
        assert exc_info.value.category == 'SyntaxError'
        assert exc_info.value.message.startswith('SyntaxError:')
        assert exc_info.value.lineno is not None

    def test_indentation_error(self):
        """Test a missing indent is reported as IndentationError"""
        with pytest.raises(InterpreterSyntaxError) as exc_info:
            self.interpreter.execute("if True:\nprint(1)\n")
        assert exc_info.value.category == 'IndentationError'
        assert exc_info.value.message.startswith('IndentationError:')

    def test_zero_division(self):
        """Test division by zero"""
        error = self._runtime_error("a = 1\nb = a / 0\n")
        assert error.category == 'ZeroDivisionError'
        assert error.lineno == 2
        assert error.message.endswith("on line 2")

    def test_index_error(self):
        """Test list index out of range"""
        assert self._runtime_error("[][1]\n").category == 'IndexError'

    def test_key_error(self):
        """Test missing dictionary key"""
        assert self._runtime_error("{}['a']\n").category == 'KeyError'

    def test_type_error(self):
        """Test mixing str and int"""
        assert self._runtime_error("'a' + 1\n").category == 'TypeError'

    def test_other_exceptions_are_runtime_errors(self):
        """Test exceptions without their own category map to RuntimeError"""
        error = self._runtime_error("int('x')\n")
        assert error.category == 'RuntimeError'
        assert error.message.startswith('ValueError:')

    def test_error_inside_function_reports_learner_line(self):
        """Test the reported line is inside the learner program"""
        error = self._runtime_error("def f():\n    return missing\n\nf()\n")
        assert error.category == 'NameError'
        assert error.lineno == 2


class TestStepLimit:
    """Tests for the step budget"""

    def setup_method(self):
        self.interpreter = PythonInterpreter()
        self.interpreter.configure(on_output=lambda text: None, step_limit=100)

    def test_infinite_loop_exhausts_budget(self):
        """Test a loop that never ends raises ResourceExhaustedError"""
        with pytest.raises(ResourceExhaustedError) as exc_info:
            self.interpreter.execute("while True:\n    pass\n")
        assert exc_info.value.category == 'ResourceExhausted'
        assert "100 steps" in exc_info.value.message

    def test_small_program_within_budget(self):
        """Test a short loop finishes normally"""
        self.interpreter.execute("total = 0\nfor i in range(10):\n    total += i\n")

    def test_bare_except_cannot_hide_the_limit(self):
        """Test learner code catching everything still ends in ResourceExhaustedError"""
        source = (
            "try:\n"
            "    while True:\n"
            "        pass\n"
            "except:\n"
            "    pass\n"
        )
        with pytest.raises(ResourceExhaustedError):
            self.interpreter.execute(source)

    def test_callbacks_from_builtins_are_counted(self):
        """Test lambda calls driven by a builtin loop still use up the budget"""
        with pytest.raises(ResourceExhaustedError):
            self.interpreter.execute("squares = list(map(lambda v: v * v, range(100000)))\n")
