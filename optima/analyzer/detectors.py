"""Anti-pattern detectors.

Each detector inspects the whole snippet and returns at most one
DetectedPattern (or None). Severities are fixed per detector; numeric
evidence such as a nesting depth is interpolated into the description.

Detectors are independent: the analyzer runs all of them
and keeps every non-None finding, in DETECTORS order.
"""

import re
from typing import Callable, Optional

from optima.analyzer.structure import StructuralMetrics
from optima.analyzer.types import (
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    DetectedPattern,
)

EXCESSIVE_NESTING_DEPTH = 5
SEVERE_NESTING_DEPTH = 7
LARGE_FUNCTION_LINES = 80
LARGE_FILE_LINES = 200
REPEATED_CALL_MIN = 3


def _line_of(code: str, index: int) -> str:
    return f"line {code.count(chr(10), 0, index) + 1}"


def detect_nested_loops(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    depth = metrics.loop_nesting_depth
    if depth >= 2:
        order = "³" if depth > 2 else "²"
        return DetectedPattern(
            type="nested_loops",
            description=f"Nested loops detected (depth {depth}); likely O(n{order}) behaviour",
            severity=SEVERITY_HIGH if depth >= 3 else SEVERITY_MEDIUM,
        )
    return None


_LENGTH_IN_LOOP_BODY = re.compile(
    r"\b(for|while)\b[^{]*\{[^}]*(\.length|\.size\(\)|\.count\(\))[^}]*}", re.DOTALL
)
_METHOD_CALL = re.compile(r"\b\w+\.\w+\([^)]*\)")


def detect_repeated_computation(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    """Flag .length/.size() re-read in a loop body, or one call made 3+ times."""
    length_match = _LENGTH_IN_LOOP_BODY.search(code)
    if length_match:
        return DetectedPattern(
            type="repeated_computation",
            description="Array .length / .size() called inside loop body; cache before loop",
            severity=SEVERITY_MEDIUM,
            line_hint=_line_of(code, length_match.start()),
        )

    counts: dict[str, int] = {}
    for call in _METHOD_CALL.findall(code):
        counts[call] = counts.get(call, 0) + 1
    if any(count >= REPEATED_CALL_MIN for count in counts.values()):
        return DetectedPattern(
            type="repeated_computation",
            description="Same expression computed 3+ times; consider caching result",
            severity=SEVERITY_MEDIUM,
        )
    return None


_MEMBERSHIP_CALL = re.compile(r"\.includes\s*\(|\.indexOf\s*\(")
_LINEAR_SEARCH = re.compile(r"for\s*\([^)]+\)\s*\{[^}]*===?\s*\w+", re.DOTALL)


def detect_inefficient_data_structure(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    membership = _MEMBERSHIP_CALL.search(code)
    if not membership:
        return None

    if _LINEAR_SEARCH.search(code):
        return DetectedPattern(
            type="inefficient_data_structure",
            description="Array.includes/indexOf used for membership test; a Set would give O(1) lookup",
            severity=SEVERITY_HIGH,
            line_hint=_line_of(code, membership.start()),
        )
    return DetectedPattern(
        type="inefficient_data_structure",
        description="Array.includes() for lookup; consider Set for O(1) membership checks",
        severity=SEVERITY_MEDIUM,
        line_hint=_line_of(code, membership.start()),
    )


_DOUBLE_NEGATION = re.compile(r"!\s*!\s*\w+")
_TRIVIAL_CONDITION = re.compile(r"if\s*\(\s*(true|false)\s*\)")
_ELSE_AFTER_RETURN = re.compile(r"return\s+[^;]+;\s*\}\s*else\s*\{")


def detect_redundant_conditions(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    checks = (
        (_DOUBLE_NEGATION, "Double negation (!!) detected; simplify condition"),
        (_TRIVIAL_CONDITION, "Trivial always-true/false condition found"),
        (_ELSE_AFTER_RETURN, "Redundant else after return; early exit already handled"),
    )
    for pattern, description in checks:
        match = pattern.search(code)
        if match:
            return DetectedPattern(
                type="redundant_condition",
                description=description,
                severity=SEVERITY_LOW,
                line_hint=_line_of(code, match.start()),
            )
    return None


_BRACE_LOOP_CONCAT = re.compile(r"\b(for|while)\b[^{]*\{[^}]*\+=\s*[\"'`]", re.DOTALL)
_INDENTED_LOOP_CONCAT = re.compile(
    r"^[ \t]*(for|while)\b[^\n]*:[ \t]*\n(?:[ \t]+[^\n]*\n)*?[ \t]+[\w.\[\]]+\s*\+=\s*[fFrRbB]?[\"']",
    re.MULTILINE,
)


def detect_string_concat_in_loop(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    match = _BRACE_LOOP_CONCAT.search(code) or _INDENTED_LOOP_CONCAT.search(code)
    if match:
        return DetectedPattern(
            type="string_concat_in_loop",
            description="String concatenation inside loop; use array.join() or StringBuilder equivalent",
            severity=SEVERITY_HIGH,
            line_hint=_line_of(code, match.start()),
        )
    return None


def detect_excessive_nesting(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    depth = metrics.max_depth
    if depth >= EXCESSIVE_NESTING_DEPTH:
        return DetectedPattern(
            type="excessive_nesting",
            description=f"Nesting depth of {depth} detected; extract helpers or use early returns",
            severity=SEVERITY_HIGH if depth >= SEVERE_NESTING_DEPTH else SEVERITY_MEDIUM,
        )
    return None


_FIRST_FUNCTION_BODY = re.compile(r"\bfunction\s+\w+[^{]*\{([\s\S]*?)\}")


def detect_large_function(code: str, metrics: StructuralMetrics) -> Optional[DetectedPattern]:
    body = _FIRST_FUNCTION_BODY.search(code)
    if body:
        body_lines = len(body.group(1).split("\n"))
        if body_lines > LARGE_FUNCTION_LINES:
            return DetectedPattern(
                type="large_function",
                description=(
                    f"Function body of ~{body_lines} lines; consider splitting "
                    "into smaller, focused functions"
                ),
                severity=SEVERITY_MEDIUM,
                line_hint=_line_of(code, body.start()),
            )

    if metrics.line_count > LARGE_FILE_LINES:
        return DetectedPattern(
            type="large_function",
            description=(
                f"Large code block ({metrics.line_count} lines); "
                "modularization may improve maintainability"
            ),
            severity=SEVERITY_LOW,
        )
    return None


Detector = Callable[[str, StructuralMetrics], Optional[DetectedPattern]]

DETECTORS: list[Detector] = [
    detect_nested_loops,
    detect_repeated_computation,
    detect_inefficient_data_structure,
    detect_redundant_conditions,
    detect_string_concat_in_loop,
    detect_excessive_nesting,
    detect_large_function,
]


def run_detectors(code: str, metrics: StructuralMetrics) -> list[DetectedPattern]:
    """Run every detector and keep the non-None findings in order."""
    findings: list[DetectedPattern] = []
    for detector in DETECTORS:
        finding = detector(code, metrics)
        if finding is not None:
            findings.append(finding)
    return findings
