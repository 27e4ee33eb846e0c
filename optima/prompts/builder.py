"""Prompt construction for the optimization model.

Small models respond best to a short system instruction, one concrete
few-shot example in the input's language, and a prompt that ends exactly
where the model should start writing. Every prompt built here ends with
the ``Output:`` cursor and nothing after it.

Retry escalation trades context for compliance:

  level 0: system instruction + few-shot example + task block
  level 1: bare "optimize and return fenced code"
  level 2: level 1 plus "Do not explain. Do not cut off."
"""

from dataclasses import dataclass
from typing import Optional

from optima.analyzer.types import StaticAnalysis
from optima.prompts.few_shot import fence_tag, few_shot_example

SYSTEM_PROMPT = """You are an expert code optimizer specializing in conservative, performance-focused improvements.

Your core principles:
1. **Preserve functionality** - Never break existing logic
2. **Minimal changes** - Only modify what clearly improves performance
3. **Maintain readability** - Keep code clean and understandable
4. **Focus on bottlenecks** - Target actual performance issues
5. **Respect language idioms** - Use language-appropriate patterns

Optimization priorities (in order):
1. Algorithmic improvements (O(n²) → O(n), etc.)
2. Memory usage optimization
3. Loop efficiency
4. Redundant operation removal
5. Modern language features

Always return complete, valid code. If no meaningful optimization is possible, return the original code unchanged."""

FOCUS_HINTS: dict[str, str] = {
    "performance": "improve speed and reduce complexity",
    "readability": "improve clarity and naming",
    "security": "fix security issues",
    "best-practices": "apply cleaner patterns",
    "all": "improve overall quality",
}
DEFAULT_FOCUS = "all"

OUTPUT_CURSOR = "Output:"

COMPLETION_DIRECTIVE = "IMPORTANT: Return the COMPLETE optimized code, do not cut off mid-sentence."

MAX_ESCALATION_LEVEL = 2


@dataclass(frozen=True)
class StructuredPrompt:
    """A level-0 prompt split into its parts, plus the concatenation sent to the model."""

    system_prompt: str
    user_prompt: str

    @property
    def full_prompt(self) -> str:
        return f"{self.system_prompt}\n\n{self.user_prompt}"


def _strengthen_line(analysis: Optional[StaticAnalysis]) -> str:
    issues = ""
    if analysis is not None and analysis.detected_patterns:
        issues = " (" + "; ".join(p.description for p in analysis.detected_patterns) + ")"
    return (
        f"This code has known issues{issues}. You MUST change it; "
        "do not return it unchanged."
    )


def _context_block(context: str, fence: str) -> str:
    return (
        "Context (the code that follows this input; read-only, do not include it in the output):\n"
        f"```{fence}\n{context}\n```\n\n"
    )


def build_structured_prompt(
    code: str,
    analysis: StaticAnalysis,
    focus: str,
    strengthen: bool = False,
    context: Optional[str] = None,
) -> StructuredPrompt:
    """Build the full level-0 prompt.

    Args:
        code: The code (or chunk) to optimize.
        analysis: Static analysis of `code`; supplies the language.
        focus: One of FOCUS_HINTS; unknown values use "all".
        strengthen: Add a directive that the code must be changed.
        context: Optional read-only text that follows `code` in the file.
    """
    language = analysis.language or "JavaScript"
    fence = fence_tag(language)
    hint = FOCUS_HINTS.get(focus, FOCUS_HINTS[DEFAULT_FOCUS])

    task = (
        "### YOUR TASK\n"
        f"Optimize this {language} (focus: {hint}).\n"
        "Return COMPLETE code in a fenced code block. Do not cut it off.\n"
    )
    if strengthen:
        task += _strengthen_line(analysis) + "\n"
    task += "\n"
    if context:
        task += _context_block(context, fence)
    task += f"Input:\n```{fence}\n{code}\n```\n{OUTPUT_CURSOR}"

    user_prompt = f"{few_shot_example(language)}\n\n{task}"
    return StructuredPrompt(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)


def build_escalated_prompt(
    code: str,
    language: str,
    level: int,
    strengthen: bool = False,
    analysis: Optional[StaticAnalysis] = None,
) -> str:
    """Build a retry prompt for escalation level 1 or 2.

    Levels above 2 are clamped to 2.
    """
    language = language or "code"
    fence = fence_tag(language)

    if level >= MAX_ESCALATION_LEVEL:
        header = (
            f"Return ONLY the optimized {language} code below in a fenced code block. "
            "Do not explain. Do not cut off.\n"
        )
    else:
        header = f"Optimize this {language} code and return the complete result in a fenced code block:\n"

    if strengthen:
        header += _strengthen_line(analysis) + "\n"

    return f"{header}```{fence}\n{code}\n```\n{OUTPUT_CURSOR}"


def build_prompt(
    code: str,
    analysis: StaticAnalysis,
    focus: str,
    strengthen: bool = False,
    escalation_level: int = 0,
    context: Optional[str] = None,
) -> str:
    """Return the prompt text for one generation attempt.

    Level 0 is the full structured prompt. Levels 1 and 2 drop the system
    instruction, the few-shot example and any context block.
    """
    if escalation_level <= 0:
        return build_structured_prompt(code, analysis, focus, strengthen, context).full_prompt
    return build_escalated_prompt(
        code, analysis.language, escalation_level, strengthen=strengthen, analysis=analysis,
    )


def with_completion_directive(prompt: str) -> str:
    """Add the "return COMPLETE code" directive, keeping the cursor last.

    Applying it to a prompt that already carries the directive is a no-op.
    """
    if COMPLETION_DIRECTIVE in prompt:
        return prompt
    if prompt.endswith(OUTPUT_CURSOR):
        body = prompt[: -len(OUTPUT_CURSOR)].rstrip("\n")
        return f"{body}\n\n{COMPLETION_DIRECTIVE}\n{OUTPUT_CURSOR}"
    return f"{prompt}\n\n{COMPLETION_DIRECTIVE}\n{OUTPUT_CURSOR}"
