"""InferenceEngine protocol and generation types.

The pipeline treats the model as an opaque streaming token source with a
cancel capability and a separate completion signal. Any object with a
matching `generate_stream` can be plugged into the orchestrator.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call sampling options."""

    max_tokens: int
    temperature: float
    top_p: Optional[float] = None


@dataclass
class GenerationHandle:
    """One in-flight generation.

    stream: Finite, non-restartable sequence of text fragments.
    result: Resolves once generation has finished.
    cancel: Stops the generation; safe to call more than once.
    """

    stream: AsyncIterator[str]
    result: Awaitable
    cancel: Callable[[], None]


@runtime_checkable
class InferenceEngine(Protocol):
    """Protocol for streaming text-generation backends."""

    async def generate_stream(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> GenerationHandle:
        """Start a generation and return its handle.

        Raises:
            InferenceError: If the generation cannot be started.
        """
        ...  # noqa: PLR6301


class InferenceError(Exception):
    """Raised by engine implementations on transport or backend failures.

    Carries the original error for upstream logging.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)
