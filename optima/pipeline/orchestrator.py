"""Pipeline orchestrator: sequences one optimization request end to end.

Pipeline:
  1. analyze_code() on the whole input ("Understanding Code")
  2a. Single chunk: one prompt, one generation (with retry ladders), one
      validation; an unchanged result with detected patterns gets exactly
      one strengthened retry at escalation level 1.
  2b. Multiple chunks: each chunk is analyzed, prompted, generated and
      validated in order; a chunk that fails validation keeps its original
      text, and a rewritten chunk is re-seated at its original indentation.
      The joined output is re-analyzed, not re-validated.
  3. Emit exactly one terminal event: `done` with the result, or `error`.

Concurrency:
  One request in flight per orchestrator. A second request while one is
  active gets the terminal error "Optimization already in progress.".
  `cancel()` aborts the active generation and ends the request with
  "Optimization cancelled.".
"""

import asyncio
import dataclasses
import logging
import uuid
from typing import Optional

from optima.analyzer import StaticAnalysis, analyze_code, restore_chunk_layout
from optima.core.config import Settings, get_settings
from optima.core.logging import reset_request_id, set_request_id
from optima.inference.provider import GenerationOptions, InferenceEngine
from optima.pipeline.errors import (
    EmptyOutputError,
    InferenceTimeoutError,
    OptimizationCancelled,
    PipelineBusyError,
)
from optima.pipeline.events import (
    CHUNK_PROGRESS,
    DONE,
    ERROR,
    LLM_SUB_STAGES,
    RETRY_CLEAR,
    STAGE,
    STAGE_FINALIZING,
    STAGE_OPTIMIZING,
    STAGE_REFINING,
    STAGE_UNDERSTANDING,
    STREAM_IDLE,
    SUBSTAGE,
    SUBSTAGE_CHUNK_FALLBACK,
    SUBSTAGE_RETRYING,
    EventCallback,
    PipelineEvent,
)
from optima.pipeline.generation import generate_with_retries, rotate_substages
from optima.pipeline.types import (
    OptimizeRequest,
    PipelineState,
    RequestContext,
    build_chunks,
    max_tokens_for,
)
from optima.validator import OptimizationResult, normalize_llm_output
from optima.validator.similarity import round_half_up

logger = logging.getLogger(__name__)

RETRY_WARNING = "Required retry — initial attempt returned unchanged code"
MULTI_CHUNK_STRATEGY = "Multi-chunk optimization applied"


def timeout_message(timeout_seconds: float) -> str:
    return f"Optimization timed out after {timeout_seconds:g}s. Try smaller input."


def failure_message(exc: BaseException) -> str:
    return f"Optimization failed: {str(exc) or type(exc).__name__}"


def build_multi_chunk_result(
    original_code: str,
    optimized_code: str,
    original: StaticAnalysis,
    final: StaticAnalysis,
    chunk_count: int,
    fallback_count: int,
) -> OptimizationResult:
    """Synthesize the result for a chunked run from the re-analyzed output."""
    warning = None
    if fallback_count:
        warning = (
            f"{fallback_count} of {chunk_count} chunk(s) kept their original code "
            "because the model output could not be validated."
        )

    return OptimizationResult(
        algorithm=final.detected_algorithm or "Custom Logic",
        complexity_before=original.estimated_complexity or "Unknown",
        complexity_after=final.estimated_complexity or "Unknown",
        bottleneck=(
            final.detected_patterns[0].description if final.detected_patterns else "None detected"
        ),
        strategy=MULTI_CHUNK_STRATEGY,
        tradeoffs="None",
        estimated_improvement=f"Optimized across {chunk_count} chunks",
        confidence=round_half_up(final.confidence_score * 100),
        explanation=(
            f"Code was split into {chunk_count} chunks and each was optimized independently."
        ),
        optimized_code=optimized_code,
        parsed=True,
        no_change=optimized_code == original_code,
        detected_patterns=final.detected_patterns,
        possible_optimizations=final.possible_optimizations,
        static_confidence_score=final.confidence_score,
        c_language=original.language == "C",
        parse_warning=warning,
    )


class PipelineOrchestrator:
    """Runs optimization requests against one inference engine.

    Usage:
        orchestrator = PipelineOrchestrator(engine, settings)
        result = await orchestrator.optimize(request, on_event=print)
    """

    def __init__(self, engine: InferenceEngine, settings: Optional[Settings] = None):
        self.engine = engine
        self.settings = settings or get_settings()
        self.state = PipelineState.IDLE
        self._active: Optional[RequestContext] = None

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    def cancel(self) -> bool:
        """Cancel the in-flight request. Returns False when nothing is running."""
        ctx = self._active
        if ctx is None:
            return False
        logger.info("Cancelling optimization %s", ctx.request_id)
        ctx.cancel()
        return True

    async def optimize(
        self,
        request: OptimizeRequest,
        on_event: Optional[EventCallback] = None,
    ) -> Optional[OptimizationResult]:
        """Run one request and report it through `on_event`.

        Never raises for pipeline failures: the outcome is always exactly
        one `done` or `error` event. Returns the result on `done`, else None.
        """
        def _emit(event: PipelineEvent) -> None:
            if on_event:
                try:
                    on_event(event)
                except Exception:
                    logger.exception("Event callback failed for %s", event.type)

        if self._active is not None:
            _emit(PipelineEvent(ERROR, str(PipelineBusyError())))
            return None

        ctx = RequestContext(request_id=uuid.uuid4().hex[:12])
        self._active = ctx
        token = set_request_id(ctx.request_id)
        logger.info(
            "Optimization %s started: language=%s focus=%s fast_mode=%s chars=%d",
            ctx.request_id, request.language, request.focus, request.fast_mode, len(request.code),
        )

        try:
            result = await self._run(request, ctx, _emit)
        except OptimizationCancelled as exc:
            self.state = PipelineState.IDLE
            logger.info("Optimization %s cancelled", ctx.request_id)
            _emit(PipelineEvent(ERROR, str(exc)))
            return None
        except InferenceTimeoutError as exc:
            self.state = PipelineState.FAILED
            logger.warning("Optimization %s timed out: %s", ctx.request_id, exc)
            _emit(PipelineEvent(ERROR, timeout_message(exc.timeout_seconds)))
            return None
        except Exception as exc:
            self.state = PipelineState.FAILED
            logger.exception("Optimization %s failed", ctx.request_id)
            _emit(PipelineEvent(ERROR, failure_message(exc)))
            return None
        else:
            self.state = PipelineState.DONE
            logger.info(
                "Optimization %s done: parsed=%s no_change=%s confidence=%d",
                ctx.request_id, result.parsed, result.no_change, result.confidence,
            )
        finally:
            if ctx.handle is not None:
                ctx.cancel()
            self._active = None
            reset_request_id(token)

        _emit(PipelineEvent(DONE, result.to_dict()))
        return result

    # -----------------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------------

    async def _run(self, request: OptimizeRequest, ctx: RequestContext, emit) -> OptimizationResult:
        self.state = PipelineState.ANALYZING
        emit(PipelineEvent(STAGE, STAGE_UNDERSTANDING))
        analysis = analyze_code(request.code, request.language, self.settings.chunk_size_chars)

        if len(analysis.chunks) > 1:
            result = await self._run_chunked(request, analysis, ctx, emit)
        else:
            result = await self._run_single(request, analysis, ctx, emit)
        ctx.raise_if_cancelled()
        return result

    async def _run_single(
        self,
        request: OptimizeRequest,
        analysis: StaticAnalysis,
        ctx: RequestContext,
        emit,
    ) -> OptimizationResult:
        code = request.code
        emit(PipelineEvent(STAGE, STAGE_OPTIMIZING))
        output = await self._generate(request, code, analysis, ctx, emit)

        self.state = PipelineState.VALIDATING
        emit(PipelineEvent(STAGE, STAGE_FINALIZING))
        result = normalize_llm_output(output, code, analysis, analysis.language)

        if result.no_change and analysis.detected_patterns:
            ctx.raise_if_cancelled()
            logger.info("Output unchanged with %d detected issue(s); retrying once", len(analysis.detected_patterns))
            self.state = PipelineState.RETRYING
            emit(PipelineEvent(STAGE, STAGE_OPTIMIZING))
            emit(PipelineEvent(SUBSTAGE, SUBSTAGE_RETRYING))
            emit(PipelineEvent(RETRY_CLEAR))

            try:
                retry_output = await self._generate(
                    request, code, analysis, ctx, emit, start_level=1, strengthen=True,
                )
            except EmptyOutputError:
                logger.info("Strengthened retry returned nothing; keeping the unchanged result")
                retry_output = None

            self.state = PipelineState.VALIDATING
            emit(PipelineEvent(STAGE, STAGE_FINALIZING))
            if retry_output is not None:
                retry = normalize_llm_output(retry_output, code, analysis, analysis.language)
                if not retry.no_change:
                    result = dataclasses.replace(retry, parse_warning=RETRY_WARNING)

        return result

    async def _run_chunked(
        self,
        request: OptimizeRequest,
        analysis: StaticAnalysis,
        ctx: RequestContext,
        emit,
    ) -> OptimizationResult:
        self.state = PipelineState.CHUNKING
        chunks = build_chunks(analysis.chunks)
        total = len(chunks)
        language = analysis.language
        logger.info("Input split into %d chunks", total)

        outputs: list[str] = []
        fallback_count = 0

        for chunk in chunks:
            if chunk.index == 0:
                emit(PipelineEvent(STAGE, STAGE_OPTIMIZING))
            else:
                emit(PipelineEvent(STAGE, STAGE_REFINING))
                await asyncio.sleep(0)
            ctx.raise_if_cancelled()

            emit(PipelineEvent(CHUNK_PROGRESS, {"current": chunk.index + 1, "total": total}))
            chunk_analysis = analyze_code(chunk.text, language)
            output = await self._generate(
                request, chunk.text, chunk_analysis, ctx, emit, context=chunk.context,
            )

            self.state = PipelineState.VALIDATING
            parsed = normalize_llm_output(output, chunk.text, chunk_analysis, language)
            if parsed.parsed and parsed.no_change:
                outputs.append(chunk.text)
            elif parsed.parsed:
                outputs.append(restore_chunk_layout(chunk.text, parsed.optimized_code))
            else:
                fallback_count += 1
                emit(PipelineEvent(SUBSTAGE, SUBSTAGE_CHUNK_FALLBACK))
                outputs.append(chunk.text)

        emit(PipelineEvent(STAGE, STAGE_FINALIZING))
        optimized_code = "\n".join(outputs)
        final = analyze_code(optimized_code, language)
        return build_multi_chunk_result(
            request.code, optimized_code, analysis, final, total, fallback_count,
        )

    # -----------------------------------------------------------------------
    # Generation
    # -----------------------------------------------------------------------

    async def _generate(
        self,
        request: OptimizeRequest,
        code: str,
        analysis: StaticAnalysis,
        ctx: RequestContext,
        emit,
        start_level: int = 0,
        strengthen: bool = False,
        context: Optional[str] = None,
    ) -> str:
        self.state = PipelineState.GENERATING
        options = GenerationOptions(
            max_tokens=max_tokens_for(code, request.fast_mode),
            temperature=self.settings.temperature,
            top_p=self.settings.top_p,
        )

        if not strengthen:
            emit(PipelineEvent(SUBSTAGE, LLM_SUB_STAGES[ctx.substage_index]))
        ticker = asyncio.ensure_future(
            rotate_substages(ctx, emit, self.settings.substage_interval_seconds)
        )
        try:
            return await generate_with_retries(
                self.engine, ctx, emit, self.settings,
                code=code,
                analysis=analysis,
                focus=request.focus,
                options=options,
                fast_mode=request.fast_mode,
                start_level=start_level,
                strengthen=strengthen,
                context=context,
            )
        finally:
            ticker.cancel()
            await asyncio.gather(ticker, return_exceptions=True)
            emit(PipelineEvent(STREAM_IDLE))
