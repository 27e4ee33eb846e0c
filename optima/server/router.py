"""Optimization endpoints.

POST /optimize streams the pipeline's events as NDJSON, one
`{"type": ..., "value": ...}` object per line, ending with exactly one
`done` or `error` line. POST /optimize/cancel aborts the request in flight.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from optima.pipeline import OptimizeRequest, PipelineEvent, PipelineOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["optimize"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class CancelResponse(BaseModel):
    cancelled: bool


class StatusResponse(BaseModel):
    busy: bool
    state: str


def _orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


@router.post("/optimize")
async def optimize(body: OptimizeRequest, request: Request) -> StreamingResponse:
    """Run one optimization and stream its events."""
    orchestrator = _orchestrator(request)

    async def _generate():
        queue: asyncio.Queue[PipelineEvent] = asyncio.Queue()
        task = asyncio.create_task(orchestrator.optimize(body, on_event=queue.put_nowait))
        try:
            while True:
                event = await queue.get()
                yield json.dumps(event.to_dict()) + "\n"
                if event.is_terminal:
                    break
        finally:
            if not task.done():
                # Client went away before the terminal event.
                logger.info("Client disconnected; cancelling optimization")
                orchestrator.cancel()
            await asyncio.gather(task, return_exceptions=True)

    return StreamingResponse(
        _generate(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/optimize/cancel", response_model=CancelResponse)
async def cancel_optimization(request: Request) -> CancelResponse:
    """Cancel the in-flight optimization, if any."""
    return CancelResponse(cancelled=_orchestrator(request).cancel())


@router.get("/optimize/status", response_model=StatusResponse)
async def optimization_status(request: Request) -> StatusResponse:
    orchestrator = _orchestrator(request)
    return StatusResponse(busy=orchestrator.is_busy, state=orchestrator.state.value)
