from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from mediaflow_mux.errors import MuxValidationError


class MuxRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    video_source: str = Field(..., alias="videoUrl", description="URL of the video stream to mux.")
    audio_source: str = Field(..., alias="audioUrl", description="URL of the audio stream to mux.")

    @classmethod
    def from_payload(cls, payload: Any) -> "MuxRequest":
        """
        Build a request from a decoded JSON body.

        Raises:
            MuxValidationError: If the body is not an object or either URL is missing or empty.
        """
        if not isinstance(payload, dict):
            raise MuxValidationError("Missing videoUrl or audioUrl")
        video_url = payload.get("videoUrl")
        audio_url = payload.get("audioUrl")
        if not video_url or not audio_url or not isinstance(video_url, str) or not isinstance(audio_url, str):
            raise MuxValidationError("Missing videoUrl or audioUrl")
        return cls(videoUrl=video_url, audioUrl=audio_url)


class MuxedUrlResponse(BaseModel):
    muxedUrl: str = Field(..., description="The muxed MP4 encoded as a base64 data URL.")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable reason of the failure.")


class HealthResponse(BaseModel):
    status: str = "healthy"
    active_muxes: Optional[int] = None
