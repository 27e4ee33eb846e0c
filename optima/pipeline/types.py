"""Request, state and per-request context types for the orchestrator."""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from optima.inference.provider import GenerationHandle
from optima.pipeline.errors import OptimizationCancelled

logger = logging.getLogger(__name__)

Focus = Literal["performance", "readability", "security", "best-practices", "all"]


class OptimizeRequest(BaseModel):
    """Payload for one optimization request."""

    model_config = {"populate_by_name": True}

    code: str = Field(..., description="Source code to optimize")
    language: str = Field(
        default="auto",
        description="Language name, e.g. 'Python'. 'auto' or '' detects it.",
    )
    focus: Focus = Field(default="performance")
    fast_mode: bool = Field(
        default=False,
        alias="fastMode",
        description="Smaller token budget and no truncation retries.",
    )

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("code must not be empty")
        return v


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    CHUNKING = "chunking"
    GENERATING = "generating"
    VALIDATING = "validating"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"


# (max lines, normal budget, fast-mode budget); first row that fits wins.
TOKEN_TIERS: list[tuple[int, int, int]] = [
    (15, 300, 150),
    (40, 600, 300),
    (80, 900, 500),
]
MAX_TOKENS = 1200
FAST_MAX_TOKENS = 600


def max_tokens_for(code: str, fast_mode: bool = False) -> int:
    """Completion budget scaled to the input's line count."""
    lines = code.count("\n") + 1
    for max_lines, normal, fast in TOKEN_TIERS:
        if lines <= max_lines:
            return fast if fast_mode else normal
    return FAST_MAX_TOKENS if fast_mode else MAX_TOKENS


# Lines of the following chunk shown to the model as read-only context.
CHUNK_CONTEXT_LINES = 3


@dataclass(frozen=True)
class Chunk:
    """One slice of the input.

    `text` is an exact substring of the original code and is the only part
    that is validated or used as a fallback. `context` is the start of the
    next chunk, shown to the model but never part of the output.
    """

    index: int
    text: str
    context: Optional[str] = None


def build_chunks(texts: Sequence[str]) -> list[Chunk]:
    chunks = []
    for index, text in enumerate(texts):
        context = None
        if index + 1 < len(texts):
            head = texts[index + 1].split("\n")[:CHUNK_CONTEXT_LINES]
            context = "\n".join(head).strip("\n") or None
        chunks.append(Chunk(index=index, text=text, context=context))
    return chunks


@dataclass
class RequestContext:
    """Mutable state for exactly one in-flight request.

    Holds the active generation's handle so `cancel()` can abort it, and
    the cancel event that generation calls race against.
    """

    request_id: str
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    handle: Optional[GenerationHandle] = None
    substage_index: int = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def attach(self, handle: GenerationHandle) -> None:
        self.handle = handle

    def detach(self) -> Optional[GenerationHandle]:
        handle, self.handle = self.handle, None
        return handle

    def cancel(self) -> None:
        self.cancel_event.set()
        handle = self.handle
        if handle is not None:
            try:
                handle.cancel()
            except Exception as exc:
                logger.warning("Generation cancel failed: %s", exc)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OptimizationCancelled()
