import logging
import time

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from mediaflow_mux.configs import settings

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request and hides the API docs when they are disabled."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if settings.disable_docs and (path == "/docs" or path == "/redoc" or path.startswith("/openapi")):
            return PlainTextResponse("Not found", status_code=404)

        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(f"{request.method} {path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
        return response
