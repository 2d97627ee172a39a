import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Union

import aiofiles
import aiofiles.os

from mediaflow_mux.configs import settings
from mediaflow_mux.errors import StagingError

logger = logging.getLogger(__name__)


class StagedRole(str, Enum):
    VIDEO_INPUT = "video"
    AUDIO_INPUT = "audio"
    OUTPUT = "output"


@dataclass(frozen=True)
class StagedFile:
    """A per-request file location inside the staging area."""

    path: Path
    role: StagedRole
    request_id: str


@dataclass(frozen=True)
class StagedPaths:
    """The three files owned by one mux request."""

    video: StagedFile
    audio: StagedFile
    output: StagedFile

    def __iter__(self) -> Iterator[StagedFile]:
        return iter((self.video, self.audio, self.output))


class StagingArea:
    """
    Allocates uniquely named files for each request and removes them afterwards.

    Requests never share a path because every file name starts with a random
    per-request token, so no locking is needed between concurrent requests.
    """

    # ffmpeg probes the inputs, so the suffixes only need to be plausible.
    SUFFIXES = {
        StagedRole.VIDEO_INPUT: ".mp4",
        StagedRole.AUDIO_INPUT: ".audio",
        StagedRole.OUTPUT: ".mp4",
    }

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        if base_dir is None:
            base_dir = Path(tempfile.gettempdir()) / settings.staging_dir_name
        self.base_dir = Path(base_dir)

    @staticmethod
    def new_request_token() -> str:
        """Return a fresh 128-bit random token."""
        return uuid.uuid4().hex

    def allocate(self, request_token: str) -> StagedPaths:
        """
        Derive the video, audio and output locations for a request.

        Args:
            request_token (str): Unique token of the request.

        Returns:
            StagedPaths: The three staged files. Nothing is created on disk except the staging directory.
        """
        if not request_token or os.sep in request_token or (os.altsep and os.altsep in request_token):
            raise ValueError(f"Invalid request token: {request_token!r}")

        os.makedirs(self.base_dir, exist_ok=True)

        def _staged(role: StagedRole) -> StagedFile:
            path = self.base_dir / f"{request_token}-{role.value}{self.SUFFIXES[role]}"
            return StagedFile(path=path, role=role, request_id=request_token)

        return StagedPaths(
            video=_staged(StagedRole.VIDEO_INPUT),
            audio=_staged(StagedRole.AUDIO_INPUT),
            output=_staged(StagedRole.OUTPUT),
        )

    async def write(self, staged: StagedFile, data: bytes) -> None:
        try:
            async with aiofiles.open(staged.path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Error writing staged {staged.role.value} file {staged.path}: {e}")
            raise StagingError(f"Failed to write {staged.role.value} input: {e}")

    async def read(self, staged: StagedFile) -> bytes:
        try:
            async with aiofiles.open(staged.path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error(f"Error reading staged {staged.role.value} file {staged.path}: {e}")
            raise StagingError(f"Failed to read {staged.role.value} file: {e}")

    async def release(self, paths: StagedPaths) -> None:
        """
        Remove every staged file of a request.

        Removal is best-effort: failures are logged and never raised, so they
        cannot replace the outcome of the request.
        """
        for staged in paths:
            try:
                await aiofiles.os.remove(staged.path)
            except FileNotFoundError:
                pass
            except Exception as e:
                logger.error(f"Error removing staged file {staged.path}: {e}")
