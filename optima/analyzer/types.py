"""Types for the static analyzer.

A DetectedPattern is one piece of anti-pattern evidence; an
OptimizationSuggestion is the action derived from it. StaticAnalysis
aggregates both with structural counts and the chunked input.

All three are frozen: one analysis is built per request (or per chunk)
and handed to the prompt builder and validator unchanged.
"""

from dataclasses import dataclass, field
from typing import Optional

# Pattern types; each maps to one suggestion in suggestions.py.
PATTERN_TYPES = {
    "nested_loops",                 # Loop opened inside another loop's scope
    "repeated_computation",         # Same call 3+ times / .length in loop body
    "inefficient_data_structure",   # Array membership test instead of Set
    "redundant_condition",          # !!x, if (true), else after return
    "string_concat_in_loop",        # str += "..." inside a loop
    "n_plus_one_query",             # Query issued per loop iteration
    "unnecessary_recomputation",    # Pure value recomputed each iteration
    "missing_early_exit",           # Loop keeps scanning after the answer
    "excessive_nesting",            # Block depth >= 5
    "large_function",               # Oversized function body or file
}

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"


@dataclass(frozen=True)
class DetectedPattern:
    """A single detected anti-pattern or structural issue.

    type: One of the PATTERN_TYPES identifiers.
    severity: "high" | "medium" | "low", used for ranking and confidence.
    line_hint: Approximate line range, when the detector can tell.
    """

    type: str
    description: str
    severity: str
    line_hint: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type,
            "description": self.description,
            "severity": self.severity,
        }
        if self.line_hint is not None:
            data["lineHint"] = self.line_hint
        return data


@dataclass(frozen=True)
class OptimizationSuggestion:
    """A concrete optimization suggestion tied to detected patterns."""

    action: str
    rationale: str
    expected_impact: str  # "high" | "medium" | "low"

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "rationale": self.rationale,
            "expectedImpact": self.expected_impact,
        }


@dataclass(frozen=True)
class StaticAnalysis:
    """Full static analysis report for one piece of code.

    Drives prompt construction, validator enrichment, and the
    informational `is_optimizable` gate.
    """

    line_count: int
    char_count: int
    function_count: int
    loop_count: int
    nesting_depth: int
    language: str
    estimated_complexity: str
    detected_algorithm: str
    confidence_score: float
    is_optimizable: bool
    detected_patterns: tuple[DetectedPattern, ...] = field(default_factory=tuple)
    possible_optimizations: tuple[OptimizationSuggestion, ...] = field(default_factory=tuple)
    chunks: tuple[str, ...] = field(default_factory=tuple)
    is_truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "lineCount": self.line_count,
            "charCount": self.char_count,
            "functionCount": self.function_count,
            "loopCount": self.loop_count,
            "nestingDepth": self.nesting_depth,
            "language": self.language,
            "detected_patterns": [p.to_dict() for p in self.detected_patterns],
            "estimated_complexity": self.estimated_complexity,
            "detected_algorithm": self.detected_algorithm,
            "possible_optimizations": [s.to_dict() for s in self.possible_optimizations],
            "confidence_score": self.confidence_score,
            "is_optimizable": self.is_optimizable,
            "chunks": list(self.chunks),
            "isTruncated": self.is_truncated,
        }
