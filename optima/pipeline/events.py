"""Event contract between the orchestrator and its host.

Every request produces a sequence of events ending in exactly one `done`
or `error`. `retry_clear` tells consumers to discard any streamed preview
text; it may occur several times before the terminal event.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

STAGE = "stage"
SUBSTAGE = "substage"
CHUNK_PROGRESS = "chunk_progress"
STREAM_ACTIVE = "stream_active"
STREAM_IDLE = "stream_idle"
RETRY_CLEAR = "retry_clear"
CHUNK = "chunk"
DONE = "done"
ERROR = "error"

EVENT_TYPES = frozenset({
    STAGE, SUBSTAGE, CHUNK_PROGRESS, STREAM_ACTIVE, STREAM_IDLE,
    RETRY_CLEAR, CHUNK, DONE, ERROR,
})
TERMINAL_EVENT_TYPES = frozenset({DONE, ERROR})

_TEXT_EVENTS = {STAGE, SUBSTAGE, CHUNK, ERROR}
_SIGNAL_EVENTS = {STREAM_ACTIVE, STREAM_IDLE, RETRY_CLEAR}

# Pipeline phases reported through `stage` events.
STAGE_UNDERSTANDING = "Understanding Code"
STAGE_OPTIMIZING = "Optimizing"
STAGE_REFINING = "Refining Optimization"
STAGE_FINALIZING = "Finalizing Output"

# Rotated through `substage` events while the model is generating.
LLM_SUB_STAGES = [
    "Rewriting inefficient loops...",
    "Optimizing memory usage...",
    "Reducing algorithmic complexity...",
    "Applying compiler-like optimizations...",
    "Searching for hidden bottlenecks...",
    "Improving data structure access patterns...",
    "Eliminating redundant computations...",
    "Refactoring for zero-overhead abstractions...",
    "Analyzing branch prediction impact...",
    "Optimizing cache locality...",
    "Reducing time complexity...",
    "Simplifying control flow...",
    "Applying idiomatic patterns...",
    "Validating correctness of transforms...",
    "Checking edge cases...",
    "Minimizing allocations...",
    "Flattening nested iterations...",
    "Inlining hot functions...",
    "Streamlining I/O operations...",
    "Profiling critical paths...",
]

SUBSTAGE_RETRYING = "Retrying with stronger instructions..."
SUBSTAGE_CHUNK_FALLBACK = "Using original chunk (could not validate output)"


@dataclass(frozen=True)
class PipelineEvent:
    type: str
    value: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_dict(self) -> dict:
        data: dict = {"type": self.type}
        if self.value is not None:
            data["value"] = self.value
        return data


EventCallback = Callable[[PipelineEvent], None]


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def is_valid_event(data: Any) -> bool:
    """Check a serialized event against the contract vocabulary."""
    if not isinstance(data, dict):
        return False
    event_type = data.get("type")
    if event_type not in EVENT_TYPES:
        return False

    value: Optional[Any] = data.get("value")
    if event_type in _TEXT_EVENTS:
        return isinstance(value, str)
    if event_type == CHUNK_PROGRESS:
        return (
            isinstance(value, dict)
            and _is_count(value.get("current"))
            and _is_count(value.get("total"))
            and value["current"] <= value["total"]
        )
    if event_type == DONE:
        return (
            isinstance(value, dict)
            and isinstance(value.get("optimized_code"), str)
            and isinstance(value.get("_parsed"), bool)
            and isinstance(value.get("_no_change"), bool)
        )
    # Signal events carry no payload.
    return event_type in _SIGNAL_EVENTS and value is None
