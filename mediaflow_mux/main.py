import logging

from fastapi import FastAPI, Depends, Security, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from fastapi.security import APIKeyQuery, APIKeyHeader
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from mediaflow_mux.configs import settings
from mediaflow_mux.middleware import RequestLoggingMiddleware
from mediaflow_mux.mux_processor import MuxOrchestrator
from mediaflow_mux.routes import mux_router, get_orchestrator
from mediaflow_mux.schemas import HealthResponse

logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="MediaFlow Mux", description="Mux a remote video and audio stream into one MP4.")
api_password_query = APIKeyQuery(name="api_password", auto_error=False)
api_password_header = APIKeyHeader(name="api_password", auto_error=False)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


async def verify_api_key(api_key: str = Security(api_password_query), api_key_alt: str = Security(api_password_header)):
    """
    Verifies the API key for the request.

    Args:
        api_key (str): The API key to validate.
        api_key_alt (str): The alternative API key to validate.

    Raises:
        HTTPException: If the API key is invalid.
    """
    if not settings.api_password:
        return

    if api_key == settings.api_password or api_key_alt == settings.api_password:
        return

    raise HTTPException(status_code=403, detail="Could not validate credentials")


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return PlainTextResponse("Not found", status_code=404)
    return await http_exception_handler(request, exc)


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root_health_check():
    return "ok"


@app.get("/health", response_model=HealthResponse)
async def health_check(orchestrator: MuxOrchestrator = Depends(get_orchestrator)):
    return HealthResponse(status="healthy", active_muxes=orchestrator.active_muxes)


app.include_router(mux_router, tags=["mux"], dependencies=[Depends(verify_api_key)])


def run():
    import uvicorn

    logger.info(f"Listening on port {settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
