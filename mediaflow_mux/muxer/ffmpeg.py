import asyncio
import logging
import shutil
from collections import deque
from pathlib import Path
from typing import List, Optional

from mediaflow_mux.configs import settings
from mediaflow_mux.muxer.base import BaseMuxExecutor, MuxError

logger = logging.getLogger(__name__)

STDERR_CHUNK_SIZE = 65536
MAX_STDERR_LINE = 2000  # Longest stderr line kept for error messages.


def resolve_ffmpeg_path() -> str:
    """Return the configured ffmpeg executable, falling back to the one on PATH."""
    if settings.ffmpeg_path:
        return settings.ffmpeg_path
    return shutil.which("ffmpeg") or "ffmpeg"


class FFmpegMuxExecutor(BaseMuxExecutor):
    """
    Runs ffmpeg as a child process to mux one video and one audio input.

    The video elementary stream is copied untouched, the audio stream is
    re-encoded (AAC by default) and the output stops at the end of the
    shorter input. ffmpeg's stderr is forwarded to the log line by line.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        audio_codec: Optional[str] = None,
        audio_bitrate: Optional[str] = None,
        stderr_tail_lines: Optional[int] = None,
    ):
        self.ffmpeg_path = ffmpeg_path or resolve_ffmpeg_path()
        self.audio_codec = audio_codec or settings.audio_codec
        self.audio_bitrate = audio_bitrate if audio_bitrate is not None else settings.audio_bitrate
        self.stderr_tail_lines = stderr_tail_lines or settings.stderr_tail_lines

    def build_command(self, video_path: Path, audio_path: Path, output_path: Path) -> List[str]:
        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-nostdin",
            "-nostats",
            "-y",
            "-i", str(video_path),
            "-i", str(audio_path),
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", self.audio_codec,
        ]
        if self.audio_bitrate:
            cmd += ["-b:a", self.audio_bitrate]
        cmd += ["-shortest", "-movflags", "+faststart", str(output_path)]
        return cmd

    @staticmethod
    def _emit(raw_line: bytes, tail: deque) -> None:
        line = raw_line.decode(errors="replace").rstrip()
        if line:
            tail.append(line[:MAX_STDERR_LINE])
            logger.debug(f"[ffmpeg] {line}")

    async def _forward_stderr(self, stream: asyncio.StreamReader, tail: deque) -> None:
        """Log stderr line by line. Reads in chunks so lines of any length are accepted."""
        pending = b""
        while True:
            chunk = await stream.read(STDERR_CHUNK_SIZE)
            if not chunk:
                break
            lines = (pending + chunk).replace(b"\r", b"\n").split(b"\n")
            pending = lines.pop()
            for raw_line in lines:
                self._emit(raw_line, tail)
        if pending:
            self._emit(pending, tail)

    async def mux(self, video_path: Path, audio_path: Path, output_path: Path) -> None:
        cmd = self.build_command(video_path, audio_path, output_path)
        logger.debug(f"Running {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to launch {self.ffmpeg_path}: {e}")
            raise MuxError(f"Failed to start ffmpeg: {e}") from e

        tail = deque(maxlen=self.stderr_tail_lines)
        try:
            await self._forward_stderr(process.stderr, tail)
        except BaseException:
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise

        returncode = await process.wait()
        if returncode != 0:
            details = "\n".join(tail)
            logger.error(f"ffmpeg exited with status {returncode} while writing {output_path}")
            raise MuxError(f"ffmpeg exited with status {returncode}: {details}".strip(), returncode=returncode)

        logger.debug(f"ffmpeg finished writing {output_path}")
