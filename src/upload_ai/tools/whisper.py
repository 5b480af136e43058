"""Whisper transcription: speech-to-text over stored audio via the OpenAI API."""

from __future__ import annotations

import structlog
from openai import AsyncOpenAI

from upload_ai.config import settings
from upload_ai.errors import TranscriptionError

logger = structlog.get_logger()


class WhisperTranscriber:
    """Speech-to-text provider backed by ``whisper-1``.

    *hint* is forwarded as Whisper's ``prompt`` to bias recognition toward
    domain vocabulary (proper nouns, comma-separated keywords). It is not
    the generation prompt used later for completions.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
    ):
        self._client = client
        self.model = model or settings.whisper_model
        self.language = language if language is not None else settings.whisper_language
        self.timeout = timeout or settings.provider_timeout_sec

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            # No automatic retries: a failing provider surfaces as an error.
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key or None,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.mp3",
        hint: str | None = None,
    ) -> str:
        """Return the transcribed text; empty speech yields ``""``."""
        params: dict = {
            "model": self.model,
            "file": (filename, audio, "audio/mpeg"),
            "response_format": "json",
            "temperature": 0,
        }
        if self.language:
            params["language"] = self.language
        if hint:
            params["prompt"] = hint

        logger.info("whisper.transcribe.start", bytes=len(audio), has_hint=bool(hint))
        try:
            response = await self._get_client().audio.transcriptions.create(**params)
        except Exception as exc:
            logger.exception("whisper.transcribe.failed")
            raise TranscriptionError(f"Speech-to-text provider failed: {exc}") from exc

        text = (getattr(response, "text", None) or "").strip()
        logger.info("whisper.transcribe.done", chars=len(text))
        return text
