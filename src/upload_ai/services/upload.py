"""Upload stage: validates an uploaded audio artifact and creates its VideoRecord."""

from __future__ import annotations

from pathlib import Path

import structlog

from upload_ai.config import settings
from upload_ai.errors import UploadError
from upload_ai.models.media import MediaAsset
from upload_ai.models.video import VideoRecord
from upload_ai.storage.base import VideoStore

logger = structlog.get_logger()

ALLOWED_EXTENSIONS = {".mp3"}


def validate_audio(audio: MediaAsset, max_bytes: int | None = None) -> None:
    """Reject non-MP3, empty or oversized payloads with ``UploadError``."""
    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes

    extension = Path(audio.filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UploadError("Invalid input type, please upload a MP3.")
    if audio.size == 0:
        raise UploadError("Uploaded file is empty.")
    if audio.size > limit:
        raise UploadError(
            f"Uploaded file exceeds the {limit} byte limit.", status_code=413
        )


async def upload_audio(
    store: VideoStore, audio: MediaAsset, max_bytes: int | None = None
) -> VideoRecord:
    """Validate *audio* and persist it as a new VideoRecord (one per call)."""
    validate_audio(audio, max_bytes)
    try:
        record = await store.create_video(audio)
    except Exception as exc:
        logger.exception("upload.store_failed", filename=audio.filename)
        raise UploadError(f"Could not store upload: {exc}", status_code=500) from exc

    logger.info("upload.created", video_id=record.id, bytes=audio.size)
    return record
