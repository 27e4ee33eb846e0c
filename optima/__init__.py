"""Optima: local-model code optimization pipeline.

Public API:
    analyze_code(code, language) -> StaticAnalysis
    build_prompt(code, analysis, focus) -> str
    normalize_llm_output(raw, original, analysis, language) -> OptimizationResult
    PipelineOrchestrator: runs a full optimization request and emits events
"""

from optima.analyzer import StaticAnalysis, analyze_code
from optima.pipeline import OptimizeRequest, PipelineEvent, PipelineOrchestrator
from optima.prompts import build_prompt
from optima.validator import OptimizationResult, normalize_llm_output

__all__ = [
    "analyze_code",
    "build_prompt",
    "normalize_llm_output",
    "OptimizationResult",
    "OptimizeRequest",
    "PipelineEvent",
    "PipelineOrchestrator",
    "StaticAnalysis",
]
