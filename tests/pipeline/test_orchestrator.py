"""Tests for PipelineOrchestrator: paths, retries, events and concurrency.

All tests drive the orchestrator with scripted engines from conftest.py.
"""

import asyncio
import textwrap

from optima.analyzer import chunk_code
from optima.core.config import Settings
from optima.inference import InferenceError
from optima.pipeline import OptimizeRequest, PipelineOrchestrator, PipelineState, is_valid_event
from optima.pipeline.events import LLM_SUB_STAGES, SUBSTAGE_CHUNK_FALLBACK, SUBSTAGE_RETRYING
from optima.pipeline.orchestrator import MULTI_CHUNK_STRATEGY, RETRY_WARNING, timeout_message
from optima.prompts import COMPLETION_DIRECTIVE

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

FIND_DUPLICATES = """function findDuplicates(items) {
  const seen = [];
  const dups = [];
  for (let i = 0; i < items.length; i++) {
    if (seen.includes(items[i])) {
      dups.push(items[i]);
    }
    seen.push(items[i]);
  }
  return dups;
}"""

FIND_DUPLICATES_SET = """function findDuplicates(items) {
  const seen = new Set();
  const dups = [];
  for (let i = 0; i < items.length; i++) {
    if (seen.has(items[i])) {
      dups.push(items[i]);
    }
    seen.add(items[i]);
  }
  return dups;
}"""

ADD = "function add(a, b) {\n  return a + b;\n}"


def _fenced(code: str) -> str:
    return f"```javascript\n{code}\n```"


def _request(code: str = FIND_DUPLICATES, **kwargs) -> OptimizeRequest:
    return OptimizeRequest(code=code, language="JavaScript", **kwargs)


def _long_js(n_functions: int = 50) -> str:
    blocks = []
    for i in range(n_functions):
        blocks.append(
            f"function helper{i}(values) {{\n"
            f"  const total{i} = values.length + {i};\n"
            f"  return total{i};\n"
            "}"
        )
    return "\n".join(blocks)


def _echo(prompt: str) -> str:
    """Return the prompt's input code unchanged, fenced."""
    body = prompt[: -len("\n```\nOutput:")]
    return _fenced(body.rsplit("```javascript\n", 1)[1])


def _python_store(n_methods: int = 40) -> str:
    methods = []
    for i in range(n_methods):
        methods.append(
            f"    def method_{i}(self, values):\n"
            "        total = 0\n"
            "        for value in values:\n"
            f"            total += value * {i}\n"
            "        return total\n"
        )
    return "class Store:\n" + "\n".join(methods)


def _python_input(prompt: str) -> str:
    body = prompt[: -len("\n```\nOutput:")]
    return body.rsplit("```python\n", 1)[1]


def _echo_python(prompt: str) -> str:
    return f"```python\n{_python_input(prompt)}\n```"


def _echo_python_dedented(prompt: str) -> str:
    """Echo the input the way models often do: re-indented to column zero."""
    return f"```python\n{textwrap.dedent(_python_input(prompt))}\n```"


def _types(events):
    return [e.type for e in events]


def _values(events, event_type):
    return [e.value for e in events if e.type == event_type]


def _assert_one_terminal(events):
    terminal = [e for e in events if e.is_terminal]
    assert len(terminal) == 1
    assert events[-1] is terminal[0]


# ---------------------------------------------------------------------------
# Single-chunk path
# ---------------------------------------------------------------------------


class TestSingleChunk:
    async def test_successful_optimization(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(FIND_DUPLICATES_SET)])
        orchestrator = PipelineOrchestrator(engine, test_settings)
        events = []

        result = await orchestrator.optimize(_request(), on_event=events.append)

        assert result.parsed
        assert not result.no_change
        assert "new Set()" in result.optimized_code
        assert orchestrator.state == PipelineState.DONE
        assert not orchestrator.is_busy

        assert events[0].type == "stage"
        assert events[0].value == "Understanding Code"
        assert "Finalizing Output" in _values(events, "stage")
        assert "stream_active" in _types(events)
        assert "stream_idle" in _types(events)
        assert "".join(_values(events, "chunk")) == _fenced(FIND_DUPLICATES_SET)
        _assert_one_terminal(events)
        assert events[-1].type == "done"
        assert events[-1].value["optimized_code"] == result.optimized_code

    async def test_generation_options(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(FIND_DUPLICATES_SET)])
        await PipelineOrchestrator(engine, test_settings).optimize(_request(fast_mode=True))
        assert engine.options[0].max_tokens == 150
        assert engine.options[0].temperature == 0.05
        assert engine.prompts[0].endswith("Output:")

    async def test_events_match_contract(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(FIND_DUPLICATES), _fenced(FIND_DUPLICATES_SET)])
        events = []
        await PipelineOrchestrator(engine, test_settings).optimize(_request(), events.append)
        assert all(is_valid_event(e.to_dict()) for e in events)

    async def test_unchanged_output_gets_one_strengthened_retry(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(FIND_DUPLICATES), _fenced(FIND_DUPLICATES_SET)])
        events = []

        result = await PipelineOrchestrator(engine, test_settings).optimize(_request(), events.append)

        assert len(engine.prompts) == 2
        assert engine.prompts[1].startswith("Optimize this JavaScript code")
        assert "You MUST change it" in engine.prompts[1]
        assert not result.no_change
        assert result.parse_warning == RETRY_WARNING
        assert SUBSTAGE_RETRYING in _values(events, "substage")
        assert "retry_clear" in _types(events)
        _assert_one_terminal(events)

    async def test_retry_that_changes_nothing_keeps_first_result(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(FIND_DUPLICATES), _fenced(FIND_DUPLICATES)])
        result = await PipelineOrchestrator(engine, test_settings).optimize(_request())

        assert len(engine.prompts) == 2
        assert result.no_change
        assert result.parsed
        assert result.confidence == 100
        assert result.parse_warning is None

    async def test_empty_strengthened_retry_keeps_first_result(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(FIND_DUPLICATES), "", ""])
        events = []

        result = await PipelineOrchestrator(engine, test_settings).optimize(_request(), events.append)

        # First attempt, then the strengthened retry at levels 1 and 2.
        assert len(engine.prompts) == 3
        assert result.parsed
        assert result.no_change
        assert result.optimized_code == FIND_DUPLICATES
        assert events[-1].type == "done"
        _assert_one_terminal(events)

    async def test_no_retry_without_detected_patterns(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(ADD)])
        result = await PipelineOrchestrator(engine, test_settings).optimize(_request(ADD))
        assert len(engine.prompts) == 1
        assert result.no_change

    async def test_truncated_output_is_retried(self, fake_engine, test_settings):
        engine = fake_engine(["function findDuplicates(items) {", _fenced(FIND_DUPLICATES_SET)])
        result = await PipelineOrchestrator(engine, test_settings).optimize(_request())

        assert len(engine.prompts) == 2
        assert engine.prompts[1].endswith(f"{COMPLETION_DIRECTIVE}\nOutput:")
        assert result.parsed
        assert not result.no_change

    async def test_fast_mode_skips_truncation_retries(self, fake_engine, test_settings):
        engine = fake_engine(["function findDuplicates(items) {"] * 2)
        result = await PipelineOrchestrator(engine, test_settings).optimize(_request(fast_mode=True))

        # One attempt plus the no-change retry; neither gets the directive.
        assert len(engine.prompts) == 2
        assert all(COMPLETION_DIRECTIVE not in p for p in engine.prompts)
        assert not result.parsed
        assert result.optimized_code == FIND_DUPLICATES

    async def test_substages_rotate_while_generating(self, fake_engine):
        settings = Settings(_env_file=None, substage_interval_seconds=0.01)
        engine = fake_engine([_fenced(ADD)], delay=0.02)
        events = []
        await PipelineOrchestrator(engine, settings).optimize(_request(ADD), events.append)

        substages = [v for v in _values(events, "substage") if v in LLM_SUB_STAGES]
        assert substages[0] == LLM_SUB_STAGES[0]
        assert len(set(substages)) >= 2


# ---------------------------------------------------------------------------
# Multi-chunk path
# ---------------------------------------------------------------------------


class TestMultiChunk:
    async def test_chunks_are_processed_in_order(self, fake_engine, test_settings):
        code = _long_js()
        total = len(chunk_code(code, test_settings.chunk_size_chars))
        engine = fake_engine([_echo] * total)
        events = []

        result = await PipelineOrchestrator(engine, test_settings).optimize(
            _request(code), events.append,
        )

        assert total > 1
        progress = _values(events, "chunk_progress")
        assert progress == [{"current": i, "total": total} for i in range(1, total + 1)]
        assert "Refining Optimization" in _values(events, "stage")
        assert result.strategy == MULTI_CHUNK_STRATEGY
        assert result.optimized_code == code
        assert result.no_change
        assert result.parse_warning is None
        assert len(engine.prompts) == total
        _assert_one_terminal(events)

    async def test_next_chunk_is_context_only(self, fake_engine, test_settings):
        code = _long_js()
        total = len(chunk_code(code, test_settings.chunk_size_chars))
        engine = fake_engine([_echo] * total)
        await PipelineOrchestrator(engine, test_settings).optimize(_request(code))

        assert "Context (" in engine.prompts[0]
        assert "Context (" not in engine.prompts[-1]

    async def test_failed_chunk_keeps_original_text(self, fake_engine, test_settings):
        code = _long_js()
        total = len(chunk_code(code, test_settings.chunk_size_chars))
        script = [_echo] * total
        script[1] = "Sorry this cannot help."
        engine = fake_engine(script)
        events = []

        result = await PipelineOrchestrator(engine, test_settings).optimize(
            _request(code), events.append,
        )

        assert result.optimized_code == code
        assert SUBSTAGE_CHUNK_FALLBACK in _values(events, "substage")
        assert result.parse_warning.startswith(f"1 of {total} chunk(s)")
        assert events[-1].type == "done"

    async def test_python_methods_keep_class_indentation(self, fake_engine, test_settings):
        code = _python_store()
        chunks = chunk_code(code, test_settings.chunk_size_chars)
        engine = fake_engine([_echo_python] * len(chunks))

        result = await PipelineOrchestrator(engine, test_settings).optimize(
            OptimizeRequest(code=code, language="Python"),
        )

        assert len(chunks) > 1
        assert chunks[1].startswith("    def method_")
        assert result.optimized_code == code
        compile(result.optimized_code, "<store>", "exec")

    async def test_dedented_chunk_output_is_reindented(self, fake_engine, test_settings):
        code = _python_store()
        total = len(chunk_code(code, test_settings.chunk_size_chars))
        engine = fake_engine([_echo_python_dedented] * total)

        result = await PipelineOrchestrator(engine, test_settings).optimize(
            OptimizeRequest(code=code, language="Python"),
        )

        assert result.parse_warning is None
        assert result.optimized_code == code
        compile(result.optimized_code, "<store>", "exec")


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_empty_output_after_all_levels(self, fake_engine, test_settings):
        engine = fake_engine(["", "", ""])
        orchestrator = PipelineOrchestrator(engine, test_settings)
        events = []

        result = await orchestrator.optimize(_request(), events.append)

        assert result is None
        assert events[-1].value == "Optimization failed: Model returned empty output after retries"
        assert _types(events).count("retry_clear") == 2
        assert orchestrator.state == PipelineState.FAILED
        _assert_one_terminal(events)

    async def test_engine_error(self, failing_engine, test_settings):
        engine = failing_engine(InferenceError("connection refused"))
        events = []
        result = await PipelineOrchestrator(engine, test_settings).optimize(_request(), events.append)

        assert result is None
        assert events[-1].type == "error"
        assert events[-1].value == "Optimization failed: connection refused"

    async def test_timeout(self, hanging_engine):
        settings = Settings(_env_file=None, inference_timeout_seconds=0.05)
        orchestrator = PipelineOrchestrator(hanging_engine, settings)
        events = []

        result = await orchestrator.optimize(_request(), events.append)

        assert result is None
        assert events[-1].value == "Optimization timed out after 0.05s. Try smaller input."
        assert hanging_engine.cancel_calls >= 1
        assert orchestrator.state == PipelineState.FAILED
        _assert_one_terminal(events)

    def test_timeout_message_formats_seconds(self):
        assert timeout_message(90.0) == "Optimization timed out after 90s. Try smaller input."
        assert timeout_message(0.5) == "Optimization timed out after 0.5s. Try smaller input."

    async def test_callback_errors_do_not_break_the_run(self, fake_engine, test_settings):
        def on_event(event):
            raise RuntimeError("consumer gone")

        engine = fake_engine([_fenced(FIND_DUPLICATES_SET)])
        result = await PipelineOrchestrator(engine, test_settings).optimize(_request(), on_event)
        assert result.parsed


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    async def test_busy_then_cancel(self, hanging_engine, test_settings):
        orchestrator = PipelineOrchestrator(hanging_engine, test_settings)
        first_events, second_events = [], []

        first = asyncio.create_task(orchestrator.optimize(_request(), first_events.append))
        await asyncio.wait_for(hanging_engine.started.wait(), timeout=2)
        assert orchestrator.is_busy

        second = await orchestrator.optimize(_request(), second_events.append)
        assert second is None
        assert [e.to_dict() for e in second_events] == [
            {"type": "error", "value": "Optimization already in progress."}
        ]

        assert orchestrator.cancel() is True
        assert await asyncio.wait_for(first, timeout=2) is None

        assert first_events[-1].value == "Optimization cancelled."
        _assert_one_terminal(first_events)
        assert hanging_engine.cancel_calls >= 1
        assert orchestrator.state == PipelineState.IDLE
        assert not orchestrator.is_busy

    async def test_cancel_when_idle(self, fake_engine, test_settings):
        assert PipelineOrchestrator(fake_engine([]), test_settings).cancel() is False

    async def test_sequential_requests(self, fake_engine, test_settings):
        engine = fake_engine([_fenced(ADD), _fenced(ADD)])
        orchestrator = PipelineOrchestrator(engine, test_settings)
        assert (await orchestrator.optimize(_request(ADD))).parsed
        assert (await orchestrator.optimize(_request(ADD))).parsed
