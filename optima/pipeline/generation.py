"""Single generation calls and the retry ladders around them.

run_generation() drives one streamed call: it relays tokens as `chunk`
events, races completion against the per-call timeout and the request's
cancel event, and returns the accumulated text.

generate_with_retries() wraps it in two independent bounded ladders:

  empty output     -> escalate the prompt level; past level 2 raise
  truncated output -> re-ask with the completion directive (not in fast mode)
"""

import asyncio
import logging
import re
from typing import Optional

from optima.analyzer.types import StaticAnalysis
from optima.core.config import Settings
from optima.inference.provider import GenerationOptions, InferenceEngine
from optima.pipeline.errors import EmptyOutputError, InferenceTimeoutError, OptimizationCancelled
from optima.pipeline.events import (
    CHUNK,
    LLM_SUB_STAGES,
    RETRY_CLEAR,
    STREAM_ACTIVE,
    SUBSTAGE,
    PipelineEvent,
)
from optima.pipeline.types import RequestContext
from optima.prompts.builder import MAX_ESCALATION_LEVEL, build_prompt, with_completion_directive

logger = logging.getLogger(__name__)

_DANGLING_KEYWORD = re.compile(r"\b(if|for|while|function|class|def)\s*$", re.IGNORECASE)
_DANGLING_OPENER = re.compile(r"(\{|\\|/\*)\s*$")


def looks_incomplete(output: str) -> bool:
    """Suffix heuristics for output the model stopped mid-construct.

    The arrow check needs a space on both sides so return-type hints such
    as `def f() -> int` do not trigger it.
    """
    return (
        output.endswith(("...", "..", " -> "))
        or (output.endswith("{") and "}" not in output)
        or (output.endswith("(") and ")" not in output)
        or _DANGLING_KEYWORD.search(output) is not None
        or _DANGLING_OPENER.search(output) is not None
    )


async def rotate_substages(ctx: RequestContext, emit, interval: float) -> None:
    """Emit the next LLM_SUB_STAGES message every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        ctx.substage_index = (ctx.substage_index + 1) % len(LLM_SUB_STAGES)
        emit(PipelineEvent(SUBSTAGE, LLM_SUB_STAGES[ctx.substage_index]))


async def run_generation(
    engine: InferenceEngine,
    prompt: str,
    options: GenerationOptions,
    ctx: RequestContext,
    emit,
    settings: Settings,
) -> str:
    """Run one streamed generation and return its full text.

    Raises:
        OptimizationCancelled: The request was cancelled mid-call.
        InferenceTimeoutError: The call exceeded `inference_timeout_seconds`.
        InferenceError: The engine failed.
    """
    ctx.raise_if_cancelled()
    parts: list[str] = []

    async def consume() -> None:
        handle = await engine.generate_stream(prompt, options)
        ctx.attach(handle)
        if ctx.cancelled:
            return

        preview: list[str] = []
        preview_chars = 0
        count = 0
        async for token in handle.stream:
            if ctx.cancelled:
                return
            parts.append(token)
            count += 1
            if count == 1:
                emit(PipelineEvent(STREAM_ACTIVE))

            preview.append(token)
            preview_chars += len(token)
            if preview_chars >= settings.stream_flush_chars:
                emit(PipelineEvent(CHUNK, "".join(preview)))
                preview.clear()
                preview_chars = 0

            if count % settings.stream_yield_every == 0:
                await asyncio.sleep(0)

        if preview:
            emit(PipelineEvent(CHUNK, "".join(preview)))
        await handle.result

    consume_task = asyncio.ensure_future(consume())
    cancel_task = asyncio.ensure_future(ctx.cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {consume_task, cancel_task},
            timeout=settings.inference_timeout_seconds,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if ctx.cancelled:
            raise OptimizationCancelled()
        if consume_task in done:
            consume_task.result()
            return "".join(parts)
        logger.warning(
            "Generation timed out after %.1fs (%d chars received)",
            settings.inference_timeout_seconds, sum(len(p) for p in parts),
        )
        raise InferenceTimeoutError(settings.inference_timeout_seconds)
    finally:
        handle = ctx.detach()
        if handle is not None:
            try:
                handle.cancel()
            except Exception as exc:
                logger.debug("Ignoring cancel failure on finished generation: %s", exc)
        for task in (consume_task, cancel_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(consume_task, cancel_task, return_exceptions=True)


async def generate_with_retries(
    engine: InferenceEngine,
    ctx: RequestContext,
    emit,
    settings: Settings,
    code: str,
    analysis: StaticAnalysis,
    focus: str,
    options: GenerationOptions,
    fast_mode: bool = False,
    start_level: int = 0,
    strengthen: bool = False,
    context: Optional[str] = None,
) -> str:
    """Generate output for `code`, retrying empty or cut-off responses.

    Every retry emits `retry_clear` first so consumers drop the preview
    text of the abandoned attempt.

    Raises:
        EmptyOutputError: Empty output at every escalation level.
    """
    level = start_level
    prompt = build_prompt(code, analysis, focus, strengthen, level, context)
    truncation_retries = 0

    while True:
        output = await run_generation(engine, prompt, options, ctx, emit, settings)

        if not output.strip():
            if level >= MAX_ESCALATION_LEVEL:
                raise EmptyOutputError()
            level += 1
            logger.info("Empty model output; retrying at escalation level %d", level)
            prompt = build_prompt(code, analysis, focus, strengthen, level, context)
            emit(PipelineEvent(RETRY_CLEAR))
            continue

        if (
            not fast_mode
            and truncation_retries < settings.max_truncation_retries
            and looks_incomplete(output)
        ):
            truncation_retries += 1
            logger.info(
                "Model output looks truncated; retry %d/%d with completion directive",
                truncation_retries, settings.max_truncation_retries,
            )
            prompt = with_completion_directive(prompt)
            emit(PipelineEvent(RETRY_CLEAR))
            continue

        return output
