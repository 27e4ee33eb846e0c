from optima.pipeline.errors import (
    EmptyOutputError,
    InferenceTimeoutError,
    OptimizationCancelled,
    PipelineBusyError,
    PipelineError,
)
from optima.pipeline.events import EVENT_TYPES, PipelineEvent, is_valid_event
from optima.pipeline.orchestrator import PipelineOrchestrator
from optima.pipeline.types import Chunk, OptimizeRequest, PipelineState, max_tokens_for

__all__ = [
    "EVENT_TYPES",
    "Chunk",
    "EmptyOutputError",
    "InferenceTimeoutError",
    "OptimizationCancelled",
    "OptimizeRequest",
    "PipelineBusyError",
    "PipelineError",
    "PipelineEvent",
    "PipelineOrchestrator",
    "PipelineState",
    "is_valid_event",
    "max_tokens_for",
]
