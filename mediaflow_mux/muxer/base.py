from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from mediaflow_mux.errors import MuxPipelineError


class MuxError(MuxPipelineError):
    """The multiplexing tool failed or could not be started."""

    kind = "mux"

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


class BaseMuxExecutor(ABC):
    """Combines a video file and an audio file into one container file."""

    @abstractmethod
    async def mux(self, video_path: Path, audio_path: Path, output_path: Path) -> None:
        """
        Write the combined file to ``output_path``.

        Returns only once the output is complete.

        Raises:
            MuxError: If the combination fails.
        """
        pass
