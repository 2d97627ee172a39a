import json
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from mediaflow_mux.configs import settings
from mediaflow_mux.errors import MuxValidationError
from mediaflow_mux.mux_processor import ErrorOutcome, MuxOrchestrator, MuxResult
from mediaflow_mux.schemas import MuxRequest
from mediaflow_mux.utils.base64_utils import encode_data_url

logger = logging.getLogger(__name__)


def error_response(outcome: ErrorOutcome) -> JSONResponse:
    """
    Render an error outcome as a JSON response.

    Args:
        outcome (ErrorOutcome): The failure to report.

    Returns:
        JSONResponse: ``{"error": <message>}`` with the outcome's status code.
    """
    return JSONResponse(status_code=outcome.status_code, content={"error": outcome.message})


def build_success_response(payload: bytes) -> Response:
    """
    Render the muxed payload according to ``settings.response_mode``.

    Args:
        payload (bytes): The MP4 bytes.

    Returns:
        Response: Either the raw MP4 body or a JSON body carrying a data URL.
    """
    if settings.response_mode == "data_url":
        return JSONResponse(content={"muxedUrl": encode_data_url(payload, "video/mp4")})
    return Response(
        content=payload,
        media_type="video/mp4",
        headers={"content-disposition": 'inline; filename="muxed.mp4"'},
    )


def render_result(result: MuxResult) -> Response:
    if result.ok:
        return build_success_response(result.payload)
    return error_response(result.error)


async def parse_mux_request(request: Request) -> MuxRequest:
    """
    Decode the JSON body of a mux call. An empty body counts as ``{}``.

    Raises:
        MuxValidationError: On malformed JSON or missing URLs.
    """
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body or b"{}")
    except (ValueError, UnicodeDecodeError):
        raise MuxValidationError("Bad JSON")
    return MuxRequest.from_payload(payload)


async def handle_mux_request(request: Request, orchestrator: MuxOrchestrator) -> Response:
    """
    Validate the incoming body, run the pipeline and relay its outcome.

    Args:
        request (Request): The incoming HTTP request.
        orchestrator (MuxOrchestrator): The pipeline to run.

    Returns:
        Response: The muxed payload, or a JSON error body.
    """
    try:
        mux_request = await parse_mux_request(request)
    except MuxValidationError as e:
        logger.info(f"Rejected mux request: {e.message}")
        return error_response(ErrorOutcome.from_exception(e))

    return render_result(await orchestrator.run(mux_request))
