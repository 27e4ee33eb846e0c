from optima.prompts.builder import (
    COMPLETION_DIRECTIVE,
    FOCUS_HINTS,
    OUTPUT_CURSOR,
    SYSTEM_PROMPT,
    StructuredPrompt,
    build_escalated_prompt,
    build_prompt,
    build_structured_prompt,
    with_completion_directive,
)
from optima.prompts.few_shot import fence_tag

__all__ = [
    "COMPLETION_DIRECTIVE",
    "FOCUS_HINTS",
    "OUTPUT_CURSOR",
    "SYSTEM_PROMPT",
    "StructuredPrompt",
    "build_escalated_prompt",
    "build_prompt",
    "build_structured_prompt",
    "fence_tag",
    "with_completion_directive",
]
