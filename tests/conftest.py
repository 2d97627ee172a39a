"""
Pytest configuration and shared fakes for the mux pipeline tests.

Optional settings (e.g. FFMPEG_PATH) can be placed in a .env file at the
project root; tests needing a real ffmpeg are skipped when none is found.
"""

import asyncio
import shutil
from pathlib import Path

import pytest
from dotenv import load_dotenv

from mediaflow_mux.muxer import BaseMuxExecutor, MuxError
from mediaflow_mux.staging import StagingArea
from mediaflow_mux.utils.http_utils import FetchError

# Load .env file from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


class RecordingMuxExecutor(BaseMuxExecutor):
    """
    Fake executor that records its calls and returns a canned outcome.

    By default the output is ``video + b"|" + audio`` so tests can check which
    inputs reached which output.
    """

    def __init__(self, output: bytes | None = None, fail_with: Exception | None = None, partial_output: bytes = b""):
        self.output = output
        self.fail_with = fail_with
        self.partial_output = partial_output
        self.calls = []
        self.inputs_seen = []
        self.running = 0
        self.max_running = 0
        self.delay = 0.0

    async def mux(self, video_path: Path, audio_path: Path, output_path: Path) -> None:
        self.calls.append((video_path, audio_path, output_path))
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            video = video_path.read_bytes()
            audio = audio_path.read_bytes()
            self.inputs_seen.append((video, audio))
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_with is not None:
                if self.partial_output:
                    output_path.write_bytes(self.partial_output)
                raise self.fail_with
            output_path.write_bytes(self.output if self.output is not None else video + b"|" + audio)
        finally:
            self.running -= 1


class FakeFetcher:
    """Serves canned bodies per URL; a value that is an exception is raised instead."""

    def __init__(self, sources: dict, delays: dict | None = None):
        self.sources = sources
        self.delays = delays or {}
        self.calls = []
        self.cancelled = []

    async def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        try:
            if url in self.delays:
                await asyncio.sleep(self.delays[url])
        except asyncio.CancelledError:
            self.cancelled.append(url)
            raise
        body = self.sources.get(url)
        if body is None:
            raise FetchError(404, f"Failed to download: 404 {url} not found", "not found")
        if isinstance(body, Exception):
            raise body
        return body


@pytest.fixture
def staging(tmp_path) -> StagingArea:
    return StagingArea(base_dir=tmp_path / "staging")


@pytest.fixture
def executor() -> RecordingMuxExecutor:
    return RecordingMuxExecutor()


@pytest.fixture
def failing_executor() -> RecordingMuxExecutor:
    return RecordingMuxExecutor(
        fail_with=MuxError("ffmpeg exited with status 1: Invalid data found", returncode=1),
        partial_output=b"partial",
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            "https://cdn.example.com/video.mp4": b"VIDEO",
            "https://cdn.example.com/audio.mp3": b"AUDIO",
        }
    )


def staged_files(staging: StagingArea) -> list:
    """Files currently left in the staging directory."""
    if not staging.base_dir.exists():
        return []
    return sorted(staging.base_dir.iterdir())


@pytest.fixture
def ffmpeg_bin():
    """Paths of ffmpeg and ffprobe, skipping the test when they are missing."""
    ffmpeg = shutil.which("ffmpeg")
    ffprobe = shutil.which("ffprobe")
    if not ffmpeg or not ffprobe:
        pytest.skip("ffmpeg/ffprobe not installed")
    return ffmpeg, ffprobe
