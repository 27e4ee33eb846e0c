"""FastAPI host for one PipelineOrchestrator.

Run with any ASGI server, e.g.:

    uvicorn --factory optima.server.app:create_app
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from optima.core.config import Settings, get_settings
from optima.core.logging import configure_structlog
from optima.inference import HttpInferenceEngine, InferenceEngine
from optima.pipeline import PipelineOrchestrator
from optima.server.router import router as optimize_router


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[InferenceEngine] = None,
) -> FastAPI:
    settings = settings or get_settings()

    # ---------------------------------------------------------------------------
    # Logging: configure structlog before any routers log anything
    # ---------------------------------------------------------------------------
    configure_structlog(debug=settings.debug)

    # ---------------------------------------------------------------------------
    # Pipeline: one orchestrator per app; it admits one request at a time.
    # An engine built here is closed on shutdown; a passed-in one is not.
    # ---------------------------------------------------------------------------
    owned_engine = None
    if engine is None:
        engine = owned_engine = HttpInferenceEngine.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owned_engine is not None:
            await owned_engine.aclose()

    _app = FastAPI(
        title="Optima",
        description="Local-model code optimization pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )
    _app.state.settings = settings
    _app.state.orchestrator = PipelineOrchestrator(engine, settings)

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    @_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    _app.include_router(optimize_router)

    return _app
