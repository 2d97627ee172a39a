import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple

from mediaflow_mux.configs import settings
from mediaflow_mux.errors import MuxPipelineError, MuxValidationError
from mediaflow_mux.muxer import BaseMuxExecutor, FFmpegMuxExecutor
from mediaflow_mux.schemas import MuxRequest
from mediaflow_mux.staging import StagingArea
from mediaflow_mux.utils.http_utils import fetch_bytes

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]


@dataclass(frozen=True)
class ErrorOutcome:
    kind: str
    message: str
    status_code: int = 500

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorOutcome":
        if isinstance(exc, MuxPipelineError):
            return cls(kind=exc.kind, message=exc.message, status_code=exc.status_code)
        return cls(kind="internal", message=str(exc) or exc.__class__.__name__, status_code=500)


@dataclass(frozen=True)
class MuxResult:
    """Outcome of one request: either the muxed payload or an error, never both."""

    payload: Optional[bytes] = None
    error: Optional[ErrorOutcome] = None

    def __post_init__(self):
        if (self.payload is None) == (self.error is None):
            raise ValueError("MuxResult requires exactly one of payload or error")

    @property
    def ok(self) -> bool:
        return self.error is None


class MuxOrchestrator:
    """
    Runs the full mux pipeline for a request.

    Both sources are downloaded concurrently into the staging area, muxed by
    the executor, and the output is read back into memory. Staged files are
    released on every exit path. Failures are returned as an ``ErrorOutcome``
    instead of being raised.
    """

    def __init__(
        self,
        staging: Optional[StagingArea] = None,
        executor: Optional[BaseMuxExecutor] = None,
        fetcher: Optional[Fetcher] = None,
        max_concurrent: Optional[int] = None,
    ):
        self.staging = staging or StagingArea()
        self.executor = executor or FFmpegMuxExecutor()
        self.fetcher = fetcher or fetch_bytes
        if max_concurrent is None:
            max_concurrent = settings.max_concurrent_muxes
        self._mux_slots = asyncio.Semaphore(max_concurrent) if max_concurrent > 0 else None
        self.active_muxes = 0

    async def run(self, request: MuxRequest) -> MuxResult:
        try:
            self._validate(request)
        except MuxValidationError as e:
            return MuxResult(error=ErrorOutcome.from_exception(e))

        token = self.staging.new_request_token()
        logger.info(f"Start mux {token}: video={request.video_source} audio={request.audio_source}")
        try:
            paths = self.staging.allocate(token)
        except OSError as e:
            logger.error(f"Mux error {token}: could not prepare staging area: {e}")
            return MuxResult(error=ErrorOutcome(kind="io", message=f"Failed to prepare staging area: {e}"))

        try:
            video, audio = await self._fetch_sources(request)
            await self.staging.write(paths.video, video)
            await self.staging.write(paths.audio, audio)
            await self._mux(paths.video.path, paths.audio.path, paths.output.path)
            payload = await self.staging.read(paths.output)
        except MuxPipelineError as e:
            logger.error(f"Mux error {token}: [{e.kind}] {e.message}")
            return MuxResult(error=ErrorOutcome.from_exception(e))
        except Exception as e:
            logger.exception(f"Unexpected mux error {token}: {e}")
            return MuxResult(error=ErrorOutcome.from_exception(e))
        finally:
            await self.staging.release(paths)

        logger.info(f"Finished mux {token}: {len(payload)} bytes")
        return MuxResult(payload=payload)

    @staticmethod
    def _validate(request: MuxRequest) -> None:
        if not request.video_source or not request.audio_source:
            raise MuxValidationError("Missing videoUrl or audioUrl")

    async def _fetch_sources(self, request: MuxRequest) -> Tuple[bytes, bytes]:
        """Download both sources in parallel, cancelling the other download on the first failure."""
        tasks = [
            asyncio.ensure_future(self.fetcher(request.video_source)),
            asyncio.ensure_future(self.fetcher(request.audio_source)),
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        failed = [task for task in tasks if task.done() and not task.cancelled() and task.exception() is not None]
        if failed:
            await asyncio.gather(*tasks, return_exceptions=True)
            raise failed[0].exception()
        video_task, audio_task = tasks
        return video_task.result(), audio_task.result()

    async def _mux(self, video_path, audio_path, output_path) -> None:
        if self._mux_slots is None:
            await self._run_executor(video_path, audio_path, output_path)
            return
        async with self._mux_slots:
            await self._run_executor(video_path, audio_path, output_path)

    async def _run_executor(self, video_path, audio_path, output_path) -> None:
        self.active_muxes += 1
        try:
            await self.executor.mux(video_path, audio_path, output_path)
        finally:
            self.active_muxes -= 1
