"""Storage collaborator interface used by the server stages."""

from __future__ import annotations

from abc import ABC, abstractmethod

from upload_ai.models.media import MediaAsset
from upload_ai.models.video import PromptTemplate, VideoRecord


class VideoStore(ABC):
    """Persists uploaded audio, video records and the prompt catalog."""

    @abstractmethod
    async def create_video(self, audio: MediaAsset) -> VideoRecord:
        """Store *audio* and create a record with an empty transcription."""

    @abstractmethod
    async def get_video(self, video_id: str) -> VideoRecord:
        """Return the record or raise ``VideoNotFoundError``."""

    @abstractmethod
    async def read_audio(self, record: VideoRecord) -> bytes: ...

    @abstractmethod
    async def set_transcription(self, video_id: str, text: str) -> None: ...

    @abstractmethod
    async def list_prompts(self) -> list[PromptTemplate]: ...
