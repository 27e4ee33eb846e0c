"""Tests for request validation, token budgets, chunks and request context."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from optima.pipeline import OptimizationCancelled
from optima.pipeline.types import (
    OptimizeRequest,
    RequestContext,
    build_chunks,
    max_tokens_for,
)


def _lines(n: int) -> str:
    return "\n".join(f"line{i}" for i in range(n))


class TestOptimizeRequest:
    def test_defaults(self):
        request = OptimizeRequest(code="x = 1")
        assert request.language == "auto"
        assert request.focus == "performance"
        assert request.fast_mode is False

    def test_fast_mode_alias_and_name(self):
        assert OptimizeRequest.model_validate({"code": "x", "fastMode": True}).fast_mode
        assert OptimizeRequest(code="x", fast_mode=True).fast_mode

    def test_blank_code_rejected(self):
        with pytest.raises(ValidationError, match="code must not be empty"):
            OptimizeRequest(code="  \n ")

    def test_unknown_focus_rejected(self):
        with pytest.raises(ValidationError):
            OptimizeRequest(code="x", focus="speed")


class TestMaxTokensFor:
    @pytest.mark.parametrize("lines, normal, fast", [
        (1, 300, 150),
        (15, 300, 150),
        (16, 600, 300),
        (40, 600, 300),
        (41, 900, 500),
        (80, 900, 500),
        (81, 1200, 600),
    ])
    def test_tiers(self, lines, normal, fast):
        code = _lines(lines)
        assert max_tokens_for(code) == normal
        assert max_tokens_for(code, fast_mode=True) == fast


class TestBuildChunks:
    def test_context_is_head_of_next_chunk(self):
        chunks = build_chunks(["a\nb", "c\nd\ne\nf", "g"])
        assert [c.index for c in chunks] == [0, 1, 2]
        assert chunks[0].context == "c\nd\ne"
        assert chunks[1].context == "g"
        assert chunks[2].context is None
        assert chunks[1].text == "c\nd\ne\nf"

    def test_single_chunk_has_no_context(self):
        assert build_chunks(["x"])[0].context is None


class TestRequestContext:
    async def test_cancel_sets_event_and_cancels_handle(self):
        ctx = RequestContext(request_id="abc")
        handle = MagicMock()
        ctx.attach(handle)
        ctx.cancel()
        assert ctx.cancelled
        handle.cancel.assert_called_once()

    async def test_cancel_survives_handle_failure(self):
        ctx = RequestContext(request_id="abc")
        handle = MagicMock()
        handle.cancel.side_effect = RuntimeError("already closed")
        ctx.attach(handle)
        ctx.cancel()
        assert ctx.cancelled

    async def test_detach(self):
        ctx = RequestContext(request_id="abc")
        handle = MagicMock()
        ctx.attach(handle)
        assert ctx.detach() is handle
        assert ctx.handle is None

    async def test_raise_if_cancelled(self):
        ctx = RequestContext(request_id="abc")
        ctx.raise_if_cancelled()
        ctx.cancel()
        with pytest.raises(OptimizationCancelled):
            ctx.raise_if_cancelled()
