#!/usr/bin/env python3
"""
Feedback synthesizer.

Turns a failed run into a FeedbackReport: a failure category, an
explanation written for a beginner, and a few of the stage's hints picked
by keyword.
"""

import re
from typing import List, Optional, Pattern, Sequence

from ..errors import InterpreterError
from .state import (
    Expectation,
    FailureCategory,
    FeedbackReport,
    LiteralMatch,
    LiteralMatchAll,
    StructuredSpec,
)
from .validation import check_spec, extract_numbers, flexible_match


DEFAULT_MAX_HINTS = 2
DEFAULT_PREVIEW_CHARS = 200

# Hints whose text mentions one of these are preferred for the category
HINT_KEYWORDS = {
    FailureCategory.WRONG_NUMBERS: ('calculat', 'math', 'number'),
    FailureCategory.MISSING_TEXT: ('format', 'print', 'output'),
    FailureCategory.PATTERN_MISMATCH: ('format', 'structure'),
    FailureCategory.CODE_PATTERN_MISSING: ('code', 'syntax', 'structure'),
    FailureCategory.SYNTAX_ERROR: ('syntax', 'colon', 'bracket', 'quote'),
    FailureCategory.INDENTATION_ERROR: ('indent', 'space'),
    FailureCategory.NAME_ERROR: ('variable', 'name', 'define'),
    FailureCategory.TYPE_ERROR: ('str(', 'int(', 'convert', 'type'),
    FailureCategory.RESOURCE_EXHAUSTED: ('loop', 'range'),
}

ERROR_EXPLANATIONS = {
    FailureCategory.SYNTAX_ERROR: (
        "**Syntax error**\n"
        "Python couldn't read part of your code. Look for a missing colon, "
        "an unclosed bracket or an unclosed quote near the reported line."
    ),
    FailureCategory.INDENTATION_ERROR: (
        "**Indentation error**\n"
        "Lines inside an `if`, `for`, `while` or `def` block must be indented, "
        "and every line in the same block needs the same indentation."
    ),
    FailureCategory.NAME_ERROR: (
        "**Undefined name**\n"
        "Your code uses a name before it has a value. Check the spelling, and "
        "if the variable is created in an earlier cell, run that cell first."
    ),
    FailureCategory.TYPE_ERROR: (
        "**Type mismatch**\n"
        "Two values of incompatible types were combined, or something that is "
        "not a function was called. Convert with `str()`, `int()` or `float()` "
        "where needed."
    ),
    FailureCategory.ZERO_DIVISION_ERROR: (
        "**Division by zero**\n"
        "A value was divided by zero. Check the divisor before dividing."
    ),
    FailureCategory.INDEX_ERROR: (
        "**Index out of range**\n"
        "A list or string was indexed past its end. Remember indexes start at 0 "
        "and the last valid index is `len(items) - 1`."
    ),
    FailureCategory.KEY_ERROR: (
        "**Missing key**\n"
        "A dictionary was asked for a key it doesn't contain. Check the key's "
        "spelling or use `.get()`."
    ),
    FailureCategory.RESOURCE_EXHAUSTED: (
        "**Program ran too long**\n"
        "Your program used up its step budget. Reduce loop bounds and make sure "
        "every `while` loop has a condition that eventually becomes false."
    ),
    FailureCategory.RUNTIME_ERROR: (
        "**Runtime error**\n"
        "Your code stopped with an error while running. Read the message below "
        "and check the reported line."
    ),
}


def format_number(value: float) -> str:
    """42.0 -> '42', 3.5 -> '3.5'"""
    return str(int(value)) if float(value).is_integer() else str(value)


def _join_numbers(values: Sequence[float]) -> str:
    return ', '.join(format_number(v) for v in values)


def fenced(text: str) -> str:
    """Markdown code block showing text verbatim, backticks and newlines included"""
    fence = '```'
    while fence in text:
        fence += '`'
    return f"{fence}\n{text}\n{fence}"


def readable_output_pattern(pattern: str) -> str:
    """Rough plain-language rendering of an output regex"""
    readable = pattern.replace('.*', ' (any text) ')
    readable = readable.replace('\\s*', ' ')
    for token in ('(', ')', '[', ']', '\\'):
        readable = readable.replace(token, '')
    readable = readable.replace('|', ' OR ')
    return re.sub(r'\s+', ' ', readable).strip()


def explain_code_pattern(pattern: str) -> str:
    """Describe in words the code structure a regex is looking for"""
    if re.search(r'for\\s\+\\w\+\\s\+in', pattern):
        return 'Your code needs a for loop to iterate through the data (e.g., for item in items:)'

    func_match = re.search(r'def\\s\+(\w+)', pattern)
    if func_match:
        name = func_match.group(1)
        return f'Define a function named "{name}" (e.g., def {name}(...):)'

    var_match = re.match(r'(\w+)\\s\*=', pattern)
    if var_match:
        return f'Create or use a variable named "{var_match.group(1)}"'

    method_match = re.search(r'\\\.(\w+)\\s\*\\\(', pattern)
    if method_match:
        return f'Use the .{method_match.group(1)}() method'

    readable = pattern
    for old, new in (
        ('\\s+', ' '), ('\\s*', ''), ('\\w+', 'word'), ('\\(', '('), ('\\)', ')'),
        ('\\', ''), ('[^', 'not '), ('[', ''), (']', ''), ('|', ' or '),
        ('.*', '...'), ('.+', '...'),
    ):
        readable = readable.replace(old, new)
    return f'Your code structure needs: {readable.strip()}'


class FeedbackSynthesizer:
    """Classifies failed runs and selects relevant hints"""

    def __init__(self, max_hints: int = DEFAULT_MAX_HINTS, preview_chars: int = DEFAULT_PREVIEW_CHARS):
        self.max_hints = max_hints
        self.preview_chars = preview_chars

    # =========================================================================
    # Hint selection
    # =========================================================================

    def select_hints(self, category: FailureCategory, hints: Sequence[str]) -> List[str]:
        """Pick hints for a category, falling back to the first hint"""
        hints = list(hints or [])
        if category == FailureCategory.NO_OUTPUT:
            return hints[:1]
        if category in (FailureCategory.INCOMPLETE_OUTPUT, FailureCategory.OUTPUT_MISMATCH):
            return hints[:self.max_hints]

        keywords = HINT_KEYWORDS.get(category, ())
        selected = [
            hint for hint in hints
            if any(keyword in hint.lower() for keyword in keywords)
        ][:self.max_hints]
        return selected or hints[:1]

    def _report(self, category: FailureCategory, message: str, hints: Sequence[str]) -> FeedbackReport:
        return FeedbackReport(
            category=category,
            message=message,
            hints=self.select_hints(category, hints),
        )

    def _preview(self, output: str) -> str:
        if len(output) > self.preview_chars:
            return output[:self.preview_chars] + '...'
        return output

    # =========================================================================
    # Validation failures
    # =========================================================================

    def synthesize(
        self,
        output: str,
        expected: Expectation,
        hints: Sequence[str] = (),
    ) -> FeedbackReport:
        """Explain why output did not satisfy expected"""
        if not output or not output.strip():
            return self._report(
                FailureCategory.NO_OUTPUT,
                "**No output detected**\n"
                "Your code ran but didn't produce any output. Make sure to:\n"
                "- Use `print()` statements to display results\n"
                "- Check that your code is properly indented\n"
                "- Verify your code actually executes the calculation",
                hints,
            )

        if isinstance(expected, StructuredSpec):
            report = self._structured_report(output, expected, hints)
            if report is not None:
                return report

        if isinstance(expected, LiteralMatchAll):
            missing = [text for text in expected.texts if not flexible_match(output, text)]
            if missing:
                lines = '\n'.join(f"- `{text}`" for text in missing)
                return self._report(
                    FailureCategory.INCOMPLETE_OUTPUT,
                    "**Incomplete results**\n"
                    f"Missing expected outputs:\n{lines}\n"
                    "*Make sure your code produces all the required output lines.*",
                    hints,
                )

        expected_text = expected.text if isinstance(expected, LiteralMatch) else None
        if expected_text is not None:
            message = (
                "**Output doesn't match expected result**\n"
                f"Expected:\n{fenced(expected_text)}\n"
                f"Your output:\n{fenced(self._preview(output))}\n"
                "*Compare your output carefully with what's expected.*"
            )
        else:
            message = (
                "**Output doesn't match expected result**\n"
                f"Your output:\n{fenced(self._preview(output))}\n"
                "*Review your code logic and expected output format.*"
            )
        return self._report(FailureCategory.OUTPUT_MISMATCH, message, hints)

    def _structured_report(
        self,
        output: str,
        expected: StructuredSpec,
        hints: Sequence[str],
    ) -> Optional[FeedbackReport]:
        spec = expected.spec
        check = check_spec(output, spec)

        if check.missing_numbers:
            return self._report(
                FailureCategory.WRONG_NUMBERS,
                "**Calculation error detected**\n"
                f"Expected numbers: `{_join_numbers(spec.required_numbers)}`\n"
                f"Your output contains: `{_join_numbers(extract_numbers(output))}`\n"
                f"Missing: `{_join_numbers(check.missing_numbers)}`\n"
                "*Double-check your mathematical calculations and variable assignments.*",
                hints,
            )

        if check.missing_text:
            return self._report(
                FailureCategory.MISSING_TEXT,
                "**Output format issue**\n"
                f"Missing required text: `{', '.join(check.missing_text)}`\n"
                "*Check that your print statements include all the required labels and formatting.*",
                hints,
            )

        if check.failed_patterns:
            return self._report(
                FailureCategory.PATTERN_MISMATCH,
                "**Output pattern doesn't match**\n"
                "Your output format doesn't match the expected pattern.\n"
                "*Review the instruction carefully and check your output format.*",
                hints,
            )
        return None

    # =========================================================================
    # Stage rule failures (single-cell stages)
    # =========================================================================

    def code_pattern_missing(self, pattern: Pattern, hints: Sequence[str] = ()) -> FeedbackReport:
        return self._report(
            FailureCategory.CODE_PATTERN_MISSING,
            f"**Next step:** {explain_code_pattern(pattern.pattern)}\n"
            "*Check the TODO comments in the code for guidance.*",
            hints,
        )

    def output_pattern_missing(
        self, pattern: Pattern, output: str, hints: Sequence[str] = ()
    ) -> FeedbackReport:
        if not output.strip():
            return self.synthesize(output, LiteralMatch(''), hints)
        return self._report(
            FailureCategory.PATTERN_MISMATCH,
            "**Output format doesn't match expected pattern**\n"
            f"What you printed:\n{fenced(self._preview(output))}\n"
            f"Expected pattern: {readable_output_pattern(pattern.pattern)}\n"
            "*Pay close attention to the exact wording in your print statements.*",
            hints,
        )

    # =========================================================================
    # Interpreter failures
    # =========================================================================

    def synthesize_error(self, error: InterpreterError, hints: Sequence[str] = ()) -> FeedbackReport:
        """Explain an interpreter error; the verbatim message is included"""
        category = FailureCategory.from_interpreter_category(error.category)
        explanation = ERROR_EXPLANATIONS.get(category, ERROR_EXPLANATIONS[FailureCategory.RUNTIME_ERROR])
        return self._report(
            category,
            f"{explanation}\n\n{fenced(error.message)}",
            hints,
        )
