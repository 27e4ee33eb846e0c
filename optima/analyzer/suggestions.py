"""Suggestion synthesis and the optimizability confidence score."""

import re

from optima.analyzer.structure import is_quadratic_or_worse
from optima.analyzer.types import (
    SEVERITY_HIGH,
    SEVERITY_MEDIUM,
    DetectedPattern,
    OptimizationSuggestion,
)

# One suggestion per pattern type. Types without a row produce none.
SUGGESTION_TABLE: dict[str, OptimizationSuggestion] = {
    "nested_loops": OptimizationSuggestion(
        action="Flatten or eliminate inner loop using a hash map / precomputed lookup",
        rationale="Replaces O(n²) nested iteration with O(n) traversal",
        expected_impact="high",
    ),
    "repeated_computation": OptimizationSuggestion(
        action="Cache repeated computation in a local variable before the loop",
        rationale="Avoids redundant evaluation of the same expression on each iteration",
        expected_impact="medium",
    ),
    "inefficient_data_structure": OptimizationSuggestion(
        action="Replace Array.includes/indexOf membership test with a Set",
        rationale="Set.has() is O(1) vs Array.includes() which is O(n)",
        expected_impact="high",
    ),
    "redundant_condition": OptimizationSuggestion(
        action="Simplify redundant conditional logic or use early return pattern",
        rationale="Reduces cognitive load and may eliminate dead branches",
        expected_impact="low",
    ),
    "string_concat_in_loop": OptimizationSuggestion(
        action="Collect into an array and join once after the loop",
        rationale="Avoids O(n²) string copying from repeated concatenation",
        expected_impact="high",
    ),
    "excessive_nesting": OptimizationSuggestion(
        action="Extract inner blocks into named helper functions, use guard clauses",
        rationale="Reduces cognitive overhead and makes control flow testable in isolation",
        expected_impact="medium",
    ),
    "large_function": OptimizationSuggestion(
        action="Decompose into smaller functions with single responsibilities",
        rationale="Improves readability, testability, and reusability",
        expected_impact="low",
    ),
}

SEVERITY_WEIGHTS = {SEVERITY_HIGH: 0.25, SEVERITY_MEDIUM: 0.15}
LOW_SEVERITY_WEIGHT = 0.05

HIGH_IMPACT_WEIGHT = 0.15
HIGH_IMPACT_CAP = 0.30

# Inputs this short have little to optimize; scale the score down.
TINY_INPUT_LINES = 5
SMALL_INPUT_LINES = 10
TINY_INPUT_FACTOR = 0.3
SMALL_INPUT_FACTOR = 0.6

_SEVERE_COMPLEXITY = re.compile(r"O\(n[²³]|worse|O\(2")
_CARET_QUADRATIC = re.compile(r"O\(n\^?2\)")
_LINEAR = re.compile(r"O\(n\)")


def build_suggestions(
    patterns: list[DetectedPattern],
    complexity: str,
) -> list[OptimizationSuggestion]:
    suggestions: list[OptimizationSuggestion] = []
    seen: set[str] = set()

    for pattern in patterns:
        suggestion = SUGGESTION_TABLE.get(pattern.type)
        if suggestion is not None and pattern.type not in seen:
            suggestions.append(suggestion)
            seen.add(pattern.type)

    if is_quadratic_or_worse(complexity) and not any("hash" in s.action for s in suggestions):
        suggestions.append(OptimizationSuggestion(
            action="Look for opportunities to use hash-based lookups (Map/Set) to reduce complexity",
            rationale=f"Current complexity is {complexity}; hash structures may bring it to O(n)",
            expected_impact="high",
        ))

    return suggestions


def compute_confidence(
    patterns: list[DetectedPattern],
    suggestions: list[OptimizationSuggestion],
    complexity: str,
    line_count: int,
) -> float:
    """Return the 0..1 optimizability score, rounded to 2 decimals."""
    score = 0.0

    for pattern in patterns:
        score += SEVERITY_WEIGHTS.get(pattern.severity, LOW_SEVERITY_WEIGHT)

    if _SEVERE_COMPLEXITY.search(complexity):
        score += 0.25
    elif _CARET_QUADRATIC.search(complexity):
        score += 0.20
    elif _LINEAR.search(complexity):
        score += 0.05

    high_impact = sum(1 for s in suggestions if s.expected_impact == "high")
    score += min(high_impact * HIGH_IMPACT_WEIGHT, HIGH_IMPACT_CAP)

    if line_count < TINY_INPUT_LINES:
        score *= TINY_INPUT_FACTOR
    elif line_count < SMALL_INPUT_LINES:
        score *= SMALL_INPUT_FACTOR

    return max(0.0, min(round(score, 2), 1.0))
