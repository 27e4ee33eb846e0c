"""Static analyzer entry point.

Deterministic pre-analysis that runs before any model call:

1. Structural pass (depths, loop nesting, function count)
2. Algorithm detection from the ordered strategy table
3. Recursion heuristics and complexity estimation
4. Pattern detectors and derived suggestions
5. Confidence score and the informational `is_optimizable` gate
6. Boundary-aware chunking for long inputs

No model, no network, no I/O. Calling it twice on the same input returns
equal results.
"""

import logging

from optima.analyzer.chunking import CHUNK_SIZE, chunk_code
from optima.analyzer.detectors import run_detectors
from optima.analyzer.structure import (
    detect_recursion,
    estimate_complexity,
    is_polynomial_or_exponential,
    measure_structure,
)
from optima.analyzer.suggestions import build_suggestions, compute_confidence
from optima.analyzer.tables import AUTO_LANGUAGE_VALUES, detect_algorithm, detect_language
from optima.analyzer.types import StaticAnalysis

logger = logging.getLogger(__name__)

OPTIMIZABLE_MIN_CONFIDENCE = 0.5


def resolve_language(code: str, requested_language: str) -> str:
    """Keep the caller's language unless it asked for detection."""
    requested = (requested_language or "").strip()
    if requested.lower() in AUTO_LANGUAGE_VALUES:
        return detect_language(code)
    return requested


def analyze_code(
    code: str,
    requested_language: str,
    chunk_size: int = CHUNK_SIZE,
) -> StaticAnalysis:
    """Run the full static analysis for one piece of code."""
    metrics = measure_structure(code)
    algorithm, algorithm_complexity = detect_algorithm(code)
    recursion = detect_recursion(code)
    complexity = estimate_complexity(metrics, algorithm_complexity, recursion)
    language = resolve_language(code, requested_language)

    patterns = run_detectors(code, metrics)
    suggestions = build_suggestions(patterns, complexity)
    confidence = compute_confidence(patterns, suggestions, complexity, metrics.line_count)

    is_optimizable = confidence >= OPTIMIZABLE_MIN_CONFIDENCE and (
        bool(patterns) or is_polynomial_or_exponential(complexity)
    )

    chunks = chunk_code(code, chunk_size)

    logger.debug(
        "Analyzed %d lines (%s): algorithm=%s complexity=%s patterns=%d confidence=%.2f chunks=%d",
        metrics.line_count, language, algorithm, complexity,
        len(patterns), confidence, len(chunks),
    )

    return StaticAnalysis(
        line_count=metrics.line_count,
        char_count=len(code),
        function_count=metrics.function_count,
        loop_count=metrics.loop_count,
        nesting_depth=metrics.max_depth,
        language=language,
        estimated_complexity=complexity,
        detected_algorithm=algorithm,
        confidence_score=confidence,
        is_optimizable=is_optimizable,
        detected_patterns=tuple(patterns),
        possible_optimizations=tuple(suggestions),
        chunks=tuple(chunks),
        is_truncated=len(chunks) > 1,
    )
