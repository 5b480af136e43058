"""Supabase backend: audio in Storage, records and prompts in PostgreSQL tables."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import structlog
from supabase import create_client

from upload_ai.config import settings
from upload_ai.errors import VideoNotFoundError
from upload_ai.models.media import MediaAsset
from upload_ai.models.video import PromptTemplate, VideoRecord
from upload_ai.storage.base import VideoStore

logger = structlog.get_logger()

_VIDEOS_TABLE = "videos"
_PROMPTS_TABLE = "prompts"


def _get_supabase_client():
    """Create a Supabase client using service_role key."""
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


class SupabaseVideoStore(VideoStore):
    """Sync Supabase SDK calls run in a thread pool to keep the event loop free."""

    def __init__(self, client=None, bucket: str | None = None):
        self._client = client if client is not None else _get_supabase_client()
        self.bucket = bucket or settings.supabase_storage_bucket

    # -- sync helpers -------------------------------------------------------

    def _create_video_sync(self, audio: MediaAsset) -> VideoRecord:
        video_id = str(uuid.uuid4())
        name = audio.filename or "audio.mp3"
        storage_path = f"{video_id}/{Path(name).name}"

        self._client.storage.from_(self.bucket).upload(
            storage_path,
            audio.content,
            file_options={"content-type": audio.mime_type},
        )
        record = VideoRecord(id=video_id, name=name, path=storage_path)
        self._client.table(_VIDEOS_TABLE).insert({
            "id": record.id,
            "name": record.name,
            "path": record.path,
            "transcription": None,
            "created_at": record.created_at.isoformat(),
        }).execute()
        logger.info("supabase.video_created", video_id=video_id, storage_path=storage_path)
        return record

    def _get_video_sync(self, video_id: str) -> VideoRecord:
        response = (
            self._client.table(_VIDEOS_TABLE)
            .select("*")
            .eq("id", video_id)
            .maybe_single()
            .execute()
        )
        row = response.data if response is not None else None
        if not row:
            raise VideoNotFoundError(video_id)
        return VideoRecord(**row)

    def _read_audio_sync(self, record: VideoRecord) -> bytes:
        return self._client.storage.from_(self.bucket).download(record.path)

    def _set_transcription_sync(self, video_id: str, text: str) -> None:
        self._client.table(_VIDEOS_TABLE).update({"transcription": text}).eq(
            "id", video_id
        ).execute()
        logger.info("supabase.transcription_saved", video_id=video_id, chars=len(text))

    def _list_prompts_sync(self) -> list[PromptTemplate]:
        response = self._client.table(_PROMPTS_TABLE).select("id,title,template").execute()
        return [PromptTemplate(**row) for row in response.data or []]

    # -- VideoStore ---------------------------------------------------------

    async def create_video(self, audio: MediaAsset) -> VideoRecord:
        return await asyncio.to_thread(self._create_video_sync, audio)

    async def get_video(self, video_id: str) -> VideoRecord:
        return await asyncio.to_thread(self._get_video_sync, video_id)

    async def read_audio(self, record: VideoRecord) -> bytes:
        return await asyncio.to_thread(self._read_audio_sync, record)

    async def set_transcription(self, video_id: str, text: str) -> None:
        await self.get_video(video_id)
        await asyncio.to_thread(self._set_transcription_sync, video_id, text)

    async def list_prompts(self) -> list[PromptTemplate]:
        return await asyncio.to_thread(self._list_prompts_sync)
