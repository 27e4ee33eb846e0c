"""Output validation: raw model text in, trustworthy result or safe fallback out."""

from optima.validator.normalizer import make_fallback, normalize_llm_output
from optima.validator.types import DEFAULT_THRESHOLDS, OptimizationResult, ValidationThresholds

__all__ = [
    "DEFAULT_THRESHOLDS",
    "OptimizationResult",
    "ValidationThresholds",
    "make_fallback",
    "normalize_llm_output",
]
