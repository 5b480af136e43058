"""Pydantic model for a single completion invocation."""

from typing import Optional

from pydantic import BaseModel, Field


class CompletionRequest(BaseModel):
    video_id: Optional[str] = None
    prompt: str  # already resolved; sole text input to the provider
    temperature: float = Field(ge=0.0, le=1.0)
