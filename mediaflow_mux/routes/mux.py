from fastapi import APIRouter, Depends, Request

from mediaflow_mux.handlers import handle_mux_request
from mediaflow_mux.mux_processor import MuxOrchestrator
from mediaflow_mux.schemas import ErrorResponse, MuxedUrlResponse

mux_router = APIRouter()

_orchestrator: MuxOrchestrator | None = None


def get_orchestrator() -> MuxOrchestrator:
    """Return the process-wide orchestrator, creating it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = MuxOrchestrator()
    return _orchestrator


MUX_RESPONSES = {
    200: {
        "content": {"video/mp4": {}, "application/json": {"model": MuxedUrlResponse}},
        "description": "The muxed MP4, raw or as a data URL depending on the configured response mode.",
    },
    400: {"model": ErrorResponse, "description": "Bad JSON, or videoUrl/audioUrl missing."},
    500: {"model": ErrorResponse, "description": "Download, mux or staging failure."},
}


@mux_router.post("/mux", summary="Mux a video and an audio URL into one MP4", responses=MUX_RESPONSES)
async def mux_endpoint(request: Request, orchestrator: MuxOrchestrator = Depends(get_orchestrator)):
    """
    Body: ``{"videoUrl": "...", "audioUrl": "..."}``.

    The video stream is copied, the audio stream re-encoded to AAC and the
    output is cut to the shorter of the two inputs.
    """
    return await handle_mux_request(request, orchestrator)


@mux_router.post("/", summary="Alias of POST /mux", responses=MUX_RESPONSES, include_in_schema=False)
async def mux_root_endpoint(request: Request, orchestrator: MuxOrchestrator = Depends(get_orchestrator)):
    return await handle_mux_request(request, orchestrator)
