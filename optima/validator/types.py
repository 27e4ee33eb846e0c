"""Types for the output-validation pipeline.

OptimizationResult is the externally visible outcome of one request.
ValidationThresholds holds the empirically tuned limits used by the size
and similarity stages.
"""

from dataclasses import dataclass, field
from typing import Optional

from optima.analyzer.types import DetectedPattern, OptimizationSuggestion

FALLBACK_STRATEGY = "Fallback - original preserved"
NO_CHANGE_STRATEGY = "No change needed"
DEFAULT_STRATEGY = "Conservative optimization applied"
NO_IMPROVEMENT = "No measurable improvement"
NO_BOTTLENECK = "None detected"

# Similarity stage: algorithm families that are expected to be restructured.
RESTRUCTURED_ALGORITHM_PATTERN = r"sort|search|merge|partition|heap|bfs|dfs|binary"

# Assembly stage confidence caps (0..100).
C_LANGUAGE_CONFIDENCE_CAP = 70
LOW_SIMILARITY_CONFIDENCE_CAP = 60
LOW_SIMILARITY_PERCENT = 80
REPAIRED_CONFIDENCE_CAP = 50


@dataclass(frozen=True)
class ValidationThresholds:
    """Tunable limits for the size and similarity stages.

    Size sanity keeps at least `*_min_ratio` of the original's meaningful
    lines, tiered by the original's size. Similarity is a 0..100 score.
    """

    small_max_lines: int = 10
    small_min_ratio: float = 0.10
    medium_max_lines: int = 40
    medium_min_ratio: float = 0.30
    large_min_ratio: float = 0.40
    similarity_min: int = 35
    restructured_similarity_min: int = 25

    def min_size_ratio(self, meaningful_lines: int) -> float:
        if meaningful_lines <= self.small_max_lines:
            return self.small_min_ratio
        if meaningful_lines <= self.medium_max_lines:
            return self.medium_min_ratio
        return self.large_min_ratio


DEFAULT_THRESHOLDS = ValidationThresholds()


@dataclass(frozen=True)
class OptimizationResult:
    """Validated outcome of one optimization request.

    If `parsed` is False the result is a fallback: `optimized_code` is the
    original input byte for byte and `no_change` is True.
    """

    algorithm: str
    complexity_before: str
    complexity_after: str
    bottleneck: str
    strategy: str
    tradeoffs: str
    estimated_improvement: str
    confidence: int
    explanation: str
    optimized_code: str
    parsed: bool
    no_change: bool
    detected_patterns: tuple[DetectedPattern, ...] = field(default_factory=tuple)
    possible_optimizations: tuple[OptimizationSuggestion, ...] = field(default_factory=tuple)
    static_confidence_score: Optional[float] = None
    c_language: bool = False
    parse_warning: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "algorithm": self.algorithm,
            "complexity_before": self.complexity_before,
            "complexity_after": self.complexity_after,
            "bottleneck": self.bottleneck,
            "strategy": self.strategy,
            "optimization_strategy": self.strategy,
            "tradeoffs": self.tradeoffs,
            "estimated_improvement": self.estimated_improvement,
            "confidence": self.confidence,
            "explanation": self.explanation,
            "optimized_code": self.optimized_code,
            "detected_patterns": [p.to_dict() for p in self.detected_patterns],
            "possible_optimizations": [s.to_dict() for s in self.possible_optimizations],
            "static_confidence_score": self.static_confidence_score,
            "_parsed": self.parsed,
            "_no_change": self.no_change,
        }
        if self.c_language:
            data["_c_language"] = True
        if self.parse_warning:
            data["_parse_warning"] = self.parse_warning
        return data
