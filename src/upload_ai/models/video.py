"""Pydantic models for stored videos and prompt templates."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class VideoRecord(BaseModel):
    id: str
    name: str
    path: str  # audio location inside the storage backend
    transcription: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PromptTemplate(BaseModel):
    id: str
    title: str
    template: str
