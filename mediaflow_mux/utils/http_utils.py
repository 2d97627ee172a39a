import logging
import ssl
import typing

import httpx
from tqdm.asyncio import tqdm as tqdm_asyncio

from mediaflow_mux.configs import settings
from mediaflow_mux.errors import MuxPipelineError

logger = logging.getLogger(__name__)


class FetchError(MuxPipelineError):
    """A source resource could not be downloaded."""

    kind = "fetch"

    def __init__(self, status_code: int, message: str, body: str = ""):
        self.upstream_status = status_code
        self.body = body
        super().__init__(message)


DEFAULT_SSL_CONTEXT = ssl.create_default_context()


def create_httpx_client(follow_redirects: bool = True, **kwargs) -> httpx.AsyncClient:
    """
    Create an HTTPX AsyncClient configured from the transport settings.

    Args:
        follow_redirects (bool): Whether to follow 3xx redirects automatically.
        **kwargs: Additional AsyncClient keyword arguments.

    Returns:
        httpx.AsyncClient: Configured client.
    """
    mounts = settings.transport_config.get_mounts()
    kwargs.setdefault("timeout", settings.transport_config.timeout)
    kwargs.setdefault("verify", DEFAULT_SSL_CONTEXT)
    kwargs.setdefault("headers", {"user-agent": settings.user_agent})

    return httpx.AsyncClient(mounts=mounts, follow_redirects=follow_redirects, **kwargs)


def _body_preview(response: httpx.Response) -> str:
    try:
        text = response.text
    except Exception:
        return ""
    return text[: settings.error_body_preview].strip()


async def _read_body(response: httpx.Response, url: str) -> bytes:
    if not settings.enable_streaming_progress:
        return await response.aread()

    total = int(response.headers.get("Content-Length", 0)) or None
    chunks = []
    with tqdm_asyncio(
        total=total,
        unit="B",
        unit_scale=True,
        unit_divisor=1024,
        desc=f"Downloading {url[:40]}",
        ncols=100,
        mininterval=1,
    ) as progress_bar:
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            progress_bar.update(len(chunk))
    return b"".join(chunks)


async def fetch_bytes(url: str, client: typing.Optional[httpx.AsyncClient] = None) -> bytes:
    """
    Download a resource and return its full body.

    A single attempt is made; the caller decides whether to retry.

    Args:
        url (str): Source URL.
        client (httpx.AsyncClient, optional): Client to reuse. A new one is created and closed otherwise.

    Returns:
        bytes: The response body.

    Raises:
        FetchError: If the connection fails, the status is not 2xx or the body cannot be read.
    """
    logger.info(f"Downloading {url}")
    if client is None:
        async with create_httpx_client() as own_client:
            return await _fetch(own_client, url)
    return await _fetch(client, url)


async def _fetch(client: httpx.AsyncClient, url: str) -> bytes:
    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                try:
                    await response.aread()
                except httpx.HTTPError as e:
                    logger.warning(f"Could not read error body from {url}: {e}")
                body = _body_preview(response)
                logger.error(f"HTTP error {response.status_code} while downloading {url}")
                raise FetchError(
                    response.status_code, f"Failed to download: {response.status_code} {body}".strip(), body
                )
            content = await _read_body(response, url)
    except httpx.TimeoutException:
        logger.warning(f"Timeout while downloading {url}")
        raise FetchError(504, f"Timeout while downloading {url}")
    except httpx.InvalidURL as e:
        logger.error(f"Invalid source URL {url}: {e}")
        raise FetchError(400, f"Invalid URL {url}: {e}")
    except httpx.RequestError as e:
        logger.error(f"Error downloading {url}: {e}")
        raise FetchError(502, f"Error downloading {url}: {e}")

    logger.debug(f"Downloaded {len(content)} bytes from {url}")
    return content
