from optima.inference.http_engine import HttpInferenceEngine
from optima.inference.provider import (
    GenerationHandle,
    GenerationOptions,
    InferenceEngine,
    InferenceError,
)

__all__ = [
    "GenerationHandle",
    "GenerationOptions",
    "HttpInferenceEngine",
    "InferenceEngine",
    "InferenceError",
]
