"""
Audio/video multiplexing backends.

- base: MuxExecutor interface and MuxError
- ffmpeg: ffmpeg subprocess implementation (video stream copy, audio re-encode)
"""

from mediaflow_mux.muxer.base import BaseMuxExecutor, MuxError
from mediaflow_mux.muxer.ffmpeg import FFmpegMuxExecutor

__all__ = ["BaseMuxExecutor", "MuxError", "FFmpegMuxExecutor"]
