"""Local storage backend: records in memory, audio files on disk."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import structlog

from upload_ai.errors import VideoNotFoundError
from upload_ai.models.media import MediaAsset
from upload_ai.models.video import PromptTemplate, VideoRecord
from upload_ai.prompts.catalog import DEFAULT_PROMPTS
from upload_ai.storage.base import VideoStore

logger = structlog.get_logger()


class LocalVideoStore(VideoStore):
    """In-memory record store. Replace with a database-backed implementation."""

    def __init__(self, upload_dir: Path, prompts: list[PromptTemplate] | None = None):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self._records: dict[str, VideoRecord] = {}
        self._prompts = list(prompts) if prompts is not None else list(DEFAULT_PROMPTS)

    async def create_video(self, audio: MediaAsset) -> VideoRecord:
        name = audio.filename or "audio.mp3"
        path = Path(name)
        stem = path.stem or "audio"
        ext = path.suffix or ".mp3"
        dest = self.upload_dir / f"{stem}-{uuid.uuid4()}{ext}"

        await asyncio.to_thread(dest.write_bytes, audio.content)

        record = VideoRecord(id=str(uuid.uuid4()), name=name, path=str(dest))
        self._records[record.id] = record
        logger.info("local_store.video_created", video_id=record.id, path=str(dest))
        return record

    async def get_video(self, video_id: str) -> VideoRecord:
        record = self._records.get(video_id)
        if record is None:
            raise VideoNotFoundError(video_id)
        return record

    async def read_audio(self, record: VideoRecord) -> bytes:
        return await asyncio.to_thread(Path(record.path).read_bytes)

    async def set_transcription(self, video_id: str, text: str) -> None:
        record = await self.get_video(video_id)
        self._records[video_id] = record.model_copy(update={"transcription": text})

    async def list_prompts(self) -> list[PromptTemplate]:
        return list(self._prompts)
