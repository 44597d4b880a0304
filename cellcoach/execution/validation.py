#!/usr/bin/env python3
"""
Validation engine.

Decides whether captured output satisfies a cell's expectation. Literal
expectations use a three-tier flexible match (substring, numbers with
context, label pattern); structured specs are a plain conjunction of rules.
"""

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Sequence, Tuple

from .state import (
    Expectation,
    LiteralMatch,
    LiteralMatchAll,
    NoExpectation,
    StructuredSpec,
    ValidationSpec,
)


NUMBER_PATTERN = re.compile(r'-?\d+(?:\.\d*)?')
NUMERIC_TOLERANCE = 0.001
CONTEXT_WORD_MIN_LENGTH = 4


def normalize(text: str) -> str:
    """Lower-case and collapse whitespace"""
    return re.sub(r'\s+', ' ', text.lower()).strip()


def extract_numbers(text: str) -> List[float]:
    """All numeric literals in text, in order of appearance"""
    return [float(match) for match in NUMBER_PATTERN.findall(text)]


def is_number(token: str) -> bool:
    try:
        return math.isfinite(float(token))
    except ValueError:
        return False


def contains_number(numbers: Sequence[float], target: float) -> bool:
    """True if target is within tolerance of any of numbers"""
    return any(abs(num - target) < NUMERIC_TOLERANCE for num in numbers)


def missing_numbers(output: str, required: Sequence[float]) -> List[float]:
    found = extract_numbers(output)
    return [num for num in required if not contains_number(found, num)]


def missing_text(output: str, required: Sequence[str]) -> List[str]:
    normalized = normalize(output)
    return [text for text in required if text.lower() not in normalized]


def failed_patterns(text: str, patterns: Sequence[Pattern]) -> List[Pattern]:
    return [pattern for pattern in patterns if not pattern.search(text)]


def first_failing_pattern(
    text: str, patterns: Sequence[Pattern]
) -> Optional[Tuple[int, Pattern]]:
    """Index and pattern of the first pattern that does not match text"""
    for i, pattern in enumerate(patterns):
        if not pattern.search(text):
            return i, pattern
    return None


def outputs_equivalent(actual: str, expected: str) -> bool:
    """Exact comparison after normalization"""
    return normalize(actual) == normalize(expected)


# =========================================================================
# Flexible matching
# =========================================================================

def flexible_match(output: str, expected: str) -> bool:
    """
    Check whether output satisfies one expected string.

    Tries, in order:
    1. Normalized substring containment
    2. Every number in expected present in output (within tolerance), plus
       one context word from expected when it has any
    3. A pattern built from expected, with digit runs as wildcards and
       whitespace-tolerant colons

    Tolerance only runs one way: expected "3.14" accepts output "3.14159",
    expected "3.14159" rejects output "3.14".
    """
    normalized_output = normalize(output)
    normalized_expected = normalize(expected)

    if normalized_expected in normalized_output:
        return True

    if _numbers_with_context_match(output, expected, normalized_output, normalized_expected):
        return True

    return _label_pattern_match(normalized_output, normalized_expected)


def _numbers_with_context_match(
    output: str,
    expected: str,
    normalized_output: str,
    normalized_expected: str,
) -> bool:
    expected_numbers = extract_numbers(expected)
    output_numbers = extract_numbers(output)
    if not expected_numbers or not output_numbers:
        return False

    if not all(contains_number(output_numbers, num) for num in expected_numbers):
        return False

    context_words = [
        word for word in normalized_expected.split()
        if len(word) >= CONTEXT_WORD_MIN_LENGTH and not is_number(word)
    ]
    if not context_words:
        return True
    return any(word in normalized_output for word in context_words)


def label_pattern(normalized_expected: str) -> Pattern:
    """Regex for 'Label: value' style lines; numbers become \\d+"""
    parts = []
    for piece in re.split(r'(\d+|:)', normalized_expected):
        if not piece:
            continue
        if piece.isdigit():
            parts.append(r'\d+')
        elif piece == ':':
            parts.append(r'\s*:\s*')
        else:
            parts.append(re.escape(piece))
    return re.compile(''.join(parts), re.IGNORECASE)


def _label_pattern_match(normalized_output: str, normalized_expected: str) -> bool:
    # Bare numbers are governed by the numeric tier alone
    if not any(ch.isalpha() for ch in normalized_expected):
        return False
    return bool(label_pattern(normalized_expected).search(normalized_output))


# =========================================================================
# Structured validation
# =========================================================================

@dataclass
class SpecCheck:
    """Per-rule outcome of a ValidationSpec against one output"""
    missing_numbers: List[float] = field(default_factory=list)
    missing_text: List[str] = field(default_factory=list)
    failed_patterns: List[Pattern] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not (self.missing_numbers or self.missing_text or self.failed_patterns)


def check_spec(output: str, spec: ValidationSpec) -> SpecCheck:
    """Evaluate every present rule of spec; absent rules are skipped"""
    result = SpecCheck()
    normalized = normalize(output)

    if spec.output_patterns is not None:
        result.failed_patterns = failed_patterns(normalized, spec.output_patterns)

    if spec.required_numbers is not None:
        result.missing_numbers = missing_numbers(output, spec.required_numbers)

    if spec.required_text is not None:
        result.missing_text = missing_text(output, spec.required_text)

    return result


def validate(output: str, expected: Expectation) -> bool:
    """Return True when output satisfies expected"""
    if isinstance(expected, NoExpectation):
        return True
    if isinstance(expected, StructuredSpec):
        return check_spec(output, expected.spec).passed
    if isinstance(expected, LiteralMatchAll):
        return all(flexible_match(output, text) for text in expected.texts)
    if isinstance(expected, LiteralMatch):
        return flexible_match(output, expected.text)
    raise TypeError(f"Unsupported expectation: {expected!r}")
