"""Static analyzer for code snippets.

Public API:
    analyze_code(code, language) -> StaticAnalysis
    chunk_code(code, chunk_size) -> list[str]
    restore_chunk_layout(original, optimized) -> str
"""

from optima.analyzer.analyzer import analyze_code, resolve_language
from optima.analyzer.chunking import CHUNK_SIZE, chunk_code, restore_chunk_layout
from optima.analyzer.types import DetectedPattern, OptimizationSuggestion, StaticAnalysis

__all__ = [
    "analyze_code",
    "resolve_language",
    "chunk_code",
    "restore_chunk_layout",
    "CHUNK_SIZE",
    "DetectedPattern",
    "OptimizationSuggestion",
    "StaticAnalysis",
]
