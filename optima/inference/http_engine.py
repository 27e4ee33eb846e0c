"""HTTP inference engine for OpenAI-compatible completion servers.

Talks to any server exposing a streaming ``POST /v1/completions`` endpoint
(llama.cpp ``server``, Ollama, LM Studio, vLLM). The response is a
server-sent event stream:

    data: {"choices": [{"text": "const"}]}
    data: {"choices": [{"text": " x"}]}
    data: [DONE]

Each ``text`` fragment is yielded as one token.
"""

import asyncio
import json
import logging
from typing import AsyncIterator, Optional

import httpx

from optima.core.config import Settings
from optima.inference.provider import GenerationHandle, GenerationOptions, InferenceError

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/v1/completions"
SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"

# Connect/read limits for the HTTP layer only. The per-call wall-clock
# limit is enforced by the orchestrator.
_DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=None)


def parse_sse_line(line: str) -> Optional[str]:
    """Return the text fragment carried by one SSE line.

    Returns None for blank lines, comments, non-data fields and events
    without text, and SSE_DONE for the end-of-stream marker.

    Raises:
        InferenceError: If the event reports a backend error.
    """
    line = line.strip()
    if not line.startswith(SSE_DATA_PREFIX):
        return None

    payload = line[len(SSE_DATA_PREFIX):].strip()
    if payload == SSE_DONE:
        return SSE_DONE

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed SSE payload: %.80s", payload)
        return None

    if not isinstance(data, dict):
        return None
    if data.get("error"):
        error = data["error"]
        message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        raise InferenceError(f"Inference backend error: {message}")

    choices = data.get("choices") or []
    if not choices:
        return None
    choice = choices[0]
    text = choice.get("text")
    if text is None:
        # Chat-style servers stream deltas instead of text.
        text = (choice.get("delta") or {}).get("content")
    return text or None


class _StreamingGeneration:
    """Adapts one streaming HTTP response to the GenerationHandle shape.

    `result` resolves to the full generated text when the stream ends, or
    to the partial text on cancel or error. Stream errors surface through
    iteration, not through `result`.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._parts: list[str] = []
        self._cancelled = False
        self._result: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def result(self) -> asyncio.Future:
        return self._result

    def _finish(self) -> None:
        if not self._result.done():
            self._result.set_result("".join(self._parts))

    async def stream(self) -> AsyncIterator[str]:
        try:
            async for line in self._response.aiter_lines():
                if self._cancelled:
                    break
                token = parse_sse_line(line)
                if token == SSE_DONE:
                    break
                if token:
                    self._parts.append(token)
                    yield token
        except httpx.HTTPError as exc:
            raise InferenceError(f"Inference stream interrupted: {exc}", cause=exc)
        finally:
            await self._response.aclose()
            self._finish()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._finish()
        if not self._response.is_closed:
            asyncio.get_running_loop().create_task(self._response.aclose())


class HttpInferenceEngine:
    """Streaming completion client built on httpx.

    Pass an existing `httpx.AsyncClient` to share connection pools (or a
    `MockTransport` in tests); otherwise one is created and owned here.
    """

    def __init__(
        self,
        base_url: str,
        model: str = "",
        api_key: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT)
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpInferenceEngine":
        return cls(
            base_url=settings.inference_base_url,
            model=settings.inference_model,
            api_key=settings.inference_api_key,
        )

    def _headers(self) -> dict:
        headers = {"Accept": "text/event-stream"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, prompt: str, options: GenerationOptions) -> dict:
        payload: dict = {
            "prompt": prompt,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "stream": True,
        }
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        if self.model:
            payload["model"] = self.model
        return payload

    async def generate_stream(
        self,
        prompt: str,
        options: GenerationOptions,
    ) -> GenerationHandle:
        """Open a streaming completion and return its handle."""
        request = self._client.build_request(
            "POST",
            f"{self.base_url}{COMPLETIONS_PATH}",
            json=self._payload(prompt, options),
            headers=self._headers(),
        )

        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise InferenceError(f"Inference request failed: {exc}", cause=exc)

        if response.status_code >= 400:
            body = (await response.aread()).decode("utf-8", errors="replace")
            await response.aclose()
            raise InferenceError(
                f"Inference server returned HTTP {response.status_code}: {body[:200]}"
            )

        logger.debug(
            "Generation started: max_tokens=%d temperature=%.2f prompt_chars=%d",
            options.max_tokens, options.temperature, len(prompt),
        )

        generation = _StreamingGeneration(response)
        return GenerationHandle(
            stream=generation.stream(),
            result=generation.result,
            cancel=generation.cancel,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
