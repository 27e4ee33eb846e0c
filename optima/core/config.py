from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables.

    Every field can be overridden with an ``OPTIMA_``-prefixed variable,
    e.g. ``OPTIMA_INFERENCE_TIMEOUT_SECONDS=120``.

    The inference endpoint is any OpenAI-compatible completion server
    (llama.cpp ``server``, Ollama, LM Studio) reachable from this process.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPTIMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Inference collaborator
    inference_base_url: str = "http://127.0.0.1:8080"
    inference_model: str = ""
    inference_api_key: str = ""

    # Per-call wall-clock limit. Applies to each generation, not the request.
    inference_timeout_seconds: float = 90.0

    # Sampling
    temperature: float = 0.05
    top_p: Optional[float] = None

    # Inputs longer than this (characters) are split into chunks.
    chunk_size_chars: int = 3200

    # Streaming preview
    stream_flush_chars: int = 60
    stream_yield_every: int = 15
    substage_interval_seconds: float = 1.5

    # Retries for output that looks cut off (disabled in fast mode).
    max_truncation_retries: int = 2

    # App
    debug: bool = True

    @field_validator("inference_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v


def get_settings() -> Settings:
    return Settings()
