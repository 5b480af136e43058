"""Pydantic models for media assets."""

from pydantic import BaseModel, ConfigDict


class MediaAsset(BaseModel):
    """Binary content plus its MIME type (raw video or extracted audio)."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    mime_type: str
    filename: str = ""

    @property
    def size(self) -> int:
        return len(self.content)
