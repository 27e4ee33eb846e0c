"""Shared test fixtures for the Optima test suite.

Provides scripted inference engines so pipeline and server tests never
touch a real model server, plus settings that ignore any local .env file.
"""

import asyncio
from typing import Callable, Union

import pytest

from optima.core.config import Settings
from optima.inference.provider import GenerationHandle, GenerationOptions


# ---------------------------------------------------------------------------
# Fake engines
# ---------------------------------------------------------------------------

Script = Union[str, Callable[[str], str]]


class FakeEngine:
    """Replays scripted outputs, one per generate_stream() call.

    A script entry is either the output text or a callable that builds it
    from the prompt. Once the script runs out every call returns "".
    """

    def __init__(self, outputs: list[Script], token_size: int = 8, delay: float = 0.0):
        self.outputs = list(outputs)
        self.token_size = token_size
        self.delay = delay
        self.prompts: list[str] = []
        self.options: list[GenerationOptions] = []
        self.cancel_calls = 0

    async def generate_stream(self, prompt: str, options: GenerationOptions) -> GenerationHandle:
        self.prompts.append(prompt)
        self.options.append(options)

        script = self.outputs.pop(0) if self.outputs else ""
        text = script(prompt) if callable(script) else script
        tokens = [text[i:i + self.token_size] for i in range(0, len(text), self.token_size)]
        result = asyncio.get_running_loop().create_future()

        async def stream():
            for token in tokens:
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield token
            if not result.done():
                result.set_result(text)

        def cancel() -> None:
            self.cancel_calls += 1
            if not result.done():
                result.set_result("")

        return GenerationHandle(stream=stream(), result=result, cancel=cancel)


class HangingEngine:
    """Starts a generation that never produces a token."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancel_calls = 0
        self.prompts: list[str] = []

    async def generate_stream(self, prompt: str, options: GenerationOptions) -> GenerationHandle:
        self.prompts.append(prompt)
        result = asyncio.get_running_loop().create_future()

        async def stream():
            self.started.set()
            await asyncio.sleep(3600)
            yield "never"

        def cancel() -> None:
            self.cancel_calls += 1
            if not result.done():
                result.set_result("")

        return GenerationHandle(stream=stream(), result=result, cancel=cancel)


class FailingEngine:
    """Raises the given exception from generate_stream()."""

    def __init__(self, exc: Exception):
        self.exc = exc

    async def generate_stream(self, prompt: str, options: GenerationOptions) -> GenerationHandle:
        raise self.exc


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_engine() -> type[FakeEngine]:
    """The FakeEngine class; call it with a list of scripted outputs."""
    return FakeEngine


@pytest.fixture
def hanging_engine() -> HangingEngine:
    return HangingEngine()


@pytest.fixture
def failing_engine() -> type[FailingEngine]:
    return FailingEngine


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a short timeout and a slow substage ticker."""
    return Settings(
        _env_file=None,
        inference_timeout_seconds=5.0,
        substage_interval_seconds=60.0,
        debug=False,
    )
