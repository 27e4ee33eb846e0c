"""Pipeline exceptions.

Content-quality problems never raise; they become fallback results. These
exceptions cover the infrastructure failures and exhausted retry ladders
that end a request with a terminal error event.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for terminal pipeline failures."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)


class InferenceTimeoutError(PipelineError):
    """A single generation call exceeded its wall-clock limit."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Inference timed out after {timeout_seconds:g}s")


class EmptyOutputError(PipelineError):
    """The model returned nothing at every escalation level."""

    def __init__(self, message: str = "Model returned empty output after retries"):
        super().__init__(message)


class OptimizationCancelled(PipelineError):
    def __init__(self, message: str = "Optimization cancelled."):
        super().__init__(message)


class PipelineBusyError(PipelineError):
    """Another optimization is already running on this orchestrator."""

    def __init__(self, message: str = "Optimization already in progress."):
        super().__init__(message)
