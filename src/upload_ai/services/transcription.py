"""Transcription stage: runs speech-to-text over a stored audio file."""

from __future__ import annotations

from typing import Protocol

import structlog

from upload_ai.errors import TranscriptionError
from upload_ai.storage.base import VideoStore

logger = structlog.get_logger()


class Transcriber(Protocol):
    async def transcribe(
        self, audio: bytes, filename: str = "audio.mp3", hint: str | None = None
    ) -> str: ...


async def transcribe_video(
    store: VideoStore,
    transcriber: Transcriber,
    video_id: str,
    keyword_prompt: str | None = None,
) -> str:
    """Transcribe the audio of *video_id* and store the text on its record.

    Must be called exactly once per VideoRecord. Calling it again on an
    already transcribed record is a caller error and is not guarded here.

    Raises:
        VideoNotFoundError: unknown *video_id* (a ``TranscriptionError``).
        TranscriptionError: the provider or storage failed.
    """
    record = await store.get_video(video_id)

    try:
        audio = await store.read_audio(record)
    except Exception as exc:
        logger.exception("transcription.read_audio_failed", video_id=video_id)
        raise TranscriptionError(f"Could not read stored audio: {exc}") from exc

    try:
        text = await transcriber.transcribe(audio, filename=record.name, hint=keyword_prompt or None)
    except TranscriptionError:
        raise
    except Exception as exc:
        logger.exception("transcription.provider_failed", video_id=video_id)
        raise TranscriptionError(f"Speech-to-text provider failed: {exc}") from exc

    await store.set_transcription(video_id, text)
    logger.info("transcription.done", video_id=video_id, chars=len(text))
    return text
