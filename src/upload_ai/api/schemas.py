"""Request/Response schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadVideoResponse(BaseModel):
    id: str


class TranscriptionRequest(BaseModel):
    prompt: Optional[str] = Field(
        default=None,
        description="Keywords mentioned in the video, comma separated (speech-to-text hint)",
    )


class CompletionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: Optional[str] = Field(
        default=None,
        alias="videoId",
        description="When set, {transcription} in prompt is filled from this video",
    )
    prompt: str
    temperature: float = 0.5


class ErrorResponse(BaseModel):
    error: str
    stage: Optional[str] = None
