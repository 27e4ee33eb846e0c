"""Turn raw model text into a validated OptimizationResult.

Stages (in order, each failure short-circuits to a fallback):
  1. extraction      pull code out of fences / inline spans / raw text
  2. repair          close unbalanced brackets; reject dangling output
  3. size sanity     output must keep a tiered share of meaningful lines
  4. preservation    no function, class, import or non-trivial variable lost
  5. similarity      aligned-line similarity above an algorithm-aware floor
  6. assembly        confidence caps, complexity downgrade, explanation

A fallback always returns the original code with parsed=False and
no_change=True; the reason travels in parse_warning. Content problems
never raise.
"""

import logging
import re
from typing import Optional

from optima.analyzer.types import SEVERITY_HIGH, SEVERITY_MEDIUM, StaticAnalysis
from optima.validator.elements import find_missing_elements
from optima.validator.extraction import extract_code
from optima.validator.repair import is_code_truncated, repair_truncated_code
from optima.validator.similarity import (
    code_similarity,
    count_meaningful_lines,
    is_unchanged,
    round_half_up,
)
from optima.validator.types import (
    C_LANGUAGE_CONFIDENCE_CAP,
    DEFAULT_STRATEGY,
    DEFAULT_THRESHOLDS,
    FALLBACK_STRATEGY,
    LOW_SIMILARITY_CONFIDENCE_CAP,
    LOW_SIMILARITY_PERCENT,
    NO_BOTTLENECK,
    NO_CHANGE_STRATEGY,
    NO_IMPROVEMENT,
    REPAIRED_CONFIDENCE_CAP,
    RESTRUCTURED_ALGORITHM_PATTERN,
    OptimizationResult,
    ValidationThresholds,
)

logger = logging.getLogger(__name__)

_RESTRUCTURED_ALGORITHM = re.compile(RESTRUCTURED_ALGORITHM_PATTERN, re.IGNORECASE)

NO_CHANGE_EXPLANATION = "Code is already well-optimized. No meaningful changes found."
REPAIRED_WARNING = (
    "Model output was truncated; missing closing brackets were appended automatically."
)


# ---------------------------------------------------------------------------
# Result helpers
# ---------------------------------------------------------------------------

def _bottleneck(analysis: StaticAnalysis) -> str:
    if analysis.detected_patterns:
        return analysis.detected_patterns[0].description
    return NO_BOTTLENECK


def build_explanation(analysis: StaticAnalysis) -> str:
    parts: list[str] = []

    if analysis.detected_patterns:
        high = [p for p in analysis.detected_patterns if p.severity == SEVERITY_HIGH]
        if high:
            descriptions = ", ".join(p.description for p in high)
            parts.append(f"Fixed {len(high)} high-severity issue(s): {descriptions}.")
        else:
            parts.append(f"Improved {len(analysis.detected_patterns)} detected pattern(s).")

    if analysis.possible_optimizations:
        parts.append(f"Applied: {analysis.possible_optimizations[0].action}.")

    return " ".join(parts) or "Performance optimization applied."


def estimate_improved_complexity(complexity: str) -> str:
    """Downgrade table applied when the output actually changed."""
    if "n²" in complexity or "n^2" in complexity:
        return "O(n)"
    if "n³" in complexity or "n^3" in complexity:
        return "O(n²)"
    if "n log n" in complexity:
        return "O(n)"
    return complexity


def estimate_improvement(analysis: StaticAnalysis) -> str:
    severities = {p.severity for p in analysis.detected_patterns}
    if SEVERITY_HIGH in severities:
        return "Significant - reduced time complexity"
    if SEVERITY_MEDIUM in severities:
        return "Moderate - improved efficiency"
    return "Minor optimization applied"


def make_fallback(
    original_code: str,
    analysis: StaticAnalysis,
    warning: str,
    language: Optional[str] = None,
) -> OptimizationResult:
    """Result that preserves the original code and explains why."""
    lang = language or analysis.language
    complexity = analysis.estimated_complexity or "Unknown"
    logger.info("Validation fallback: %s", warning)
    return OptimizationResult(
        algorithm=analysis.detected_algorithm or "Custom Logic",
        complexity_before=complexity,
        complexity_after=complexity,
        bottleneck=_bottleneck(analysis),
        strategy=FALLBACK_STRATEGY,
        tradeoffs="None",
        estimated_improvement=NO_IMPROVEMENT,
        confidence=0,
        explanation=warning,
        optimized_code=original_code,
        parsed=False,
        no_change=True,
        detected_patterns=analysis.detected_patterns,
        possible_optimizations=analysis.possible_optimizations,
        static_confidence_score=analysis.confidence_score,
        c_language=lang == "C",
        parse_warning=warning,
    )


def similarity_threshold(analysis: StaticAnalysis, thresholds: ValidationThresholds) -> int:
    if _RESTRUCTURED_ALGORITHM.search(analysis.detected_algorithm or ""):
        return thresholds.restructured_similarity_min
    return thresholds.similarity_min


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def normalize_llm_output(
    raw_text: str,
    original_code: str,
    analysis: StaticAnalysis,
    language: Optional[str] = None,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
) -> OptimizationResult:
    """Validate raw model text against the original code.

    Args:
        raw_text: Everything the model produced for this attempt.
        original_code: The code (or chunk) that was sent to the model.
        analysis: Static analysis of `original_code`; used for enrichment
            and the algorithm-aware similarity floor.
        language: Overrides `analysis.language` when given.
        thresholds: Size and similarity limits.

    Returns:
        A successful result, or a fallback carrying the original code.
    """
    lang = language or analysis.language
    is_c = lang == "C"

    # Stage 1: extraction
    extracted = extract_code(raw_text)
    if not extracted:
        return make_fallback(
            original_code, analysis, "Could not extract any code from model output.", lang,
        )

    # Stage 2: repair
    parse_warning: Optional[str] = None
    repaired = repair_truncated_code(extracted)
    if repaired.was_repaired:
        extracted = repaired.code
        parse_warning = REPAIRED_WARNING
    elif is_code_truncated(extracted):
        return make_fallback(
            original_code, analysis,
            "Model output was truncated and could not be repaired; original code preserved.",
            lang,
        )

    # Stage 3: size sanity
    original_lines = count_meaningful_lines(original_code)
    optimized_lines = count_meaningful_lines(extracted)
    ratio = optimized_lines / original_lines if original_lines > 0 else 1.0
    if ratio < thresholds.min_size_ratio(original_lines):
        return make_fallback(
            original_code, analysis,
            f"Model output appears severely truncated ({optimized_lines} meaningful lines "
            f"vs {original_lines}); original preserved.",
            lang,
        )

    # Stage 4: element preservation
    missing = find_missing_elements(original_code, extracted)
    if missing:
        return make_fallback(
            original_code, analysis,
            f"Model dropped critical elements ({missing.describe()}); "
            "original code preserved to prevent data loss.",
            lang,
        )

    # Stage 5: similarity
    no_change = is_unchanged(original_code, extracted)
    similarity = 100 if no_change else code_similarity(original_code, extracted)
    floor = similarity_threshold(analysis, thresholds)
    if not no_change and similarity < floor:
        return make_fallback(
            original_code, analysis,
            f"Optimized code similarity too low ({similarity}%); likely hallucination; "
            "original preserved.",
            lang,
        )

    # Stage 6: assembly
    if no_change:
        confidence = 100
        explanation = NO_CHANGE_EXPLANATION
    else:
        confidence = round_half_up(analysis.confidence_score * 100)
        explanation = (
            f"Applied conservative optimization ({similarity}% similarity preserved). "
            f"{build_explanation(analysis)}"
        )
        if is_c:
            confidence = min(confidence, C_LANGUAGE_CONFIDENCE_CAP)
    if similarity < LOW_SIMILARITY_PERCENT:
        confidence = min(confidence, LOW_SIMILARITY_CONFIDENCE_CAP)
    if parse_warning:
        confidence = min(confidence, REPAIRED_CONFIDENCE_CAP)

    if no_change:
        strategy = NO_CHANGE_STRATEGY
    elif analysis.possible_optimizations:
        strategy = analysis.possible_optimizations[0].action
    else:
        strategy = DEFAULT_STRATEGY

    complexity = analysis.estimated_complexity or "Unknown"

    logger.debug(
        "Validated output: similarity=%d no_change=%s confidence=%d repaired=%s",
        similarity, no_change, confidence, parse_warning is not None,
    )

    return OptimizationResult(
        algorithm=analysis.detected_algorithm or "Custom Logic",
        complexity_before=complexity,
        complexity_after=complexity if no_change else estimate_improved_complexity(complexity),
        bottleneck=_bottleneck(analysis),
        strategy=strategy,
        tradeoffs="None",
        estimated_improvement=NO_IMPROVEMENT if no_change else estimate_improvement(analysis),
        confidence=confidence,
        explanation=explanation,
        optimized_code=extracted,
        parsed=True,
        no_change=no_change,
        detected_patterns=analysis.detected_patterns,
        possible_optimizations=analysis.possible_optimizations,
        static_confidence_score=analysis.confidence_score,
        c_language=is_c,
        parse_warning=parse_warning,
    )
