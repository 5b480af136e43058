"""Async HTTP client for the upload.ai API."""

from __future__ import annotations

import json
from typing import AsyncIterator

import httpx
import structlog

from upload_ai.client.stream import CompletionStream
from upload_ai.config import settings
from upload_ai.errors import (
    GenerationError,
    InvalidParameterError,
    TranscriptionError,
    UploadError,
    VideoNotFoundError,
)
from upload_ai.models.media import MediaAsset
from upload_ai.models.video import PromptTemplate
from upload_ai.services.completion import validate_temperature

logger = structlog.get_logger()


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if detail:
            return detail if isinstance(detail, str) else json.dumps(detail)
    return f"HTTP {response.status_code}"


async def _iter_sse(response: httpx.Response) -> AsyncIterator[tuple[str, str]]:
    """Yield ``(event, data)`` pairs from a text/event-stream body."""
    event, data = "message", []
    async for line in response.aiter_lines():
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):  # comment / keep-alive ping
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


def _event_field(data: str, field: str) -> str:
    """Return *field* from an SSE JSON payload; malformed payloads are ``GenerationError``."""
    try:
        value = json.loads(data)[field]
    except (ValueError, KeyError, TypeError) as exc:
        raise GenerationError(f"Malformed completion event: {data!r}", status_code=502) from exc
    if not isinstance(value, str):
        raise GenerationError(f"Malformed completion event: {data!r}", status_code=502)
    return value


class UploadAIClient:
    """Upload, transcription and completion calls against the API server."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.provider_timeout_sec,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "UploadAIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def upload(self, audio: MediaAsset) -> str:
        """Send *audio* as one multipart payload and return the new video id."""
        files = {"file": (audio.filename or "audio.mp3", audio.content, audio.mime_type)}
        try:
            response = await self._http.post("/videos", files=files)
        except httpx.HTTPError as exc:
            raise UploadError(f"Upload failed: {exc}", status_code=502) from exc

        if response.status_code != 201:
            raise UploadError(_detail(response), status_code=response.status_code)

        video_id = response.json().get("id")
        if not video_id:
            raise UploadError("Server did not return a video id", status_code=502)

        logger.info("client.uploaded", video_id=video_id, bytes=audio.size)
        return video_id

    async def transcribe(self, video_id: str, keyword_prompt: str | None = None) -> None:
        """Ask the server to transcribe *video_id*, biased by *keyword_prompt*."""
        try:
            response = await self._http.post(
                f"/videos/{video_id}/transcription", json={"prompt": keyword_prompt}
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Transcription request failed: {exc}", status_code=502) from exc

        if response.status_code == 404:
            raise VideoNotFoundError(video_id)
        if response.status_code != 200:
            raise TranscriptionError(_detail(response), status_code=response.status_code)

        logger.info("client.transcribed", video_id=video_id)

    async def list_prompts(self) -> list[PromptTemplate]:
        response = await self._http.get("/prompts")
        response.raise_for_status()
        return [PromptTemplate(**item) for item in response.json()]

    def complete(
        self, video_id: str | None, prompt: str, temperature: float = 0.5
    ) -> CompletionStream:
        """Start a streamed completion.

        Temperature is validated here, before any request is made. The
        returned stream sends the request when it is first iterated.
        """
        value = validate_temperature(temperature)
        payload = {"videoId": video_id, "prompt": prompt, "temperature": value}
        return CompletionStream(self._stream_chunks(payload))

    async def _stream_chunks(self, payload: dict) -> AsyncIterator[str]:
        try:
            async with self._http.stream(
                "POST",
                "/ai/complete",
                json=payload,
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    detail = _detail(response)
                    if response.status_code == 400:
                        raise InvalidParameterError(detail)
                    if response.status_code == 404:
                        raise VideoNotFoundError(payload.get("videoId") or "")
                    raise GenerationError(detail, status_code=response.status_code)

                async for event, data in _iter_sse(response):
                    if event == "chunk":
                        yield _event_field(data, "text")
                    elif event == "error":
                        raise GenerationError(_event_field(data, "error"))
                    elif event == "end":
                        return
        except httpx.HTTPError as exc:
            raise GenerationError(f"Completion stream failed: {exc}", status_code=502) from exc

        raise GenerationError("Completion stream ended before its end event", status_code=502)
