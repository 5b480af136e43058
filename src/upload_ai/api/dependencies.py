"""FastAPI dependency injection: storage backend and AI providers."""

from __future__ import annotations

from functools import lru_cache

import structlog

from upload_ai.config import get_upload_dir, settings
from upload_ai.storage.base import VideoStore
from upload_ai.tools.llm import CompletionProvider
from upload_ai.tools.whisper import WhisperTranscriber

logger = structlog.get_logger()


def is_supabase_backend() -> bool:
    return bool(settings.supabase_url)


@lru_cache(maxsize=1)
def get_video_store() -> VideoStore:
    """Return a singleton video store.

    Uses SupabaseVideoStore when supabase_url is set, otherwise falls back
    to LocalVideoStore under upload_dir.
    """
    if is_supabase_backend():
        from upload_ai.storage.supabase import SupabaseVideoStore

        logger.info("storage.backend", backend="supabase")
        return SupabaseVideoStore()

    from upload_ai.storage.memory import LocalVideoStore

    logger.info("storage.backend", backend="local", upload_dir=str(get_upload_dir()))
    return LocalVideoStore(get_upload_dir())


@lru_cache(maxsize=1)
def get_transcriber() -> WhisperTranscriber:
    return WhisperTranscriber()


@lru_cache(maxsize=1)
def get_completion_provider() -> CompletionProvider:
    return CompletionProvider()
