"""Completion generator: resolves the prompt and streams the provider's output."""

from __future__ import annotations

import math
from typing import AsyncIterator, Protocol

import structlog

from upload_ai.errors import GenerationError, InvalidParameterError, TranscriptionNotReadyError
from upload_ai.models.completion import CompletionRequest
from upload_ai.prompts.templates import resolve
from upload_ai.storage.base import VideoStore

logger = structlog.get_logger()

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 1.0


class TextGenerator(Protocol):
    def generate(self, prompt: str, temperature: float) -> AsyncIterator[str]: ...


def validate_temperature(temperature) -> float:
    """Return *temperature* as a float, or raise ``InvalidParameterError``.

    Both bounds are inclusive.
    """
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise InvalidParameterError(f"Temperature must be a number, got {temperature!r}")
    value = float(temperature)
    if math.isnan(value) or not MIN_TEMPERATURE <= value <= MAX_TEMPERATURE:
        raise InvalidParameterError(
            f"Temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}, got {value}"
        )
    return value


def build_request(prompt: str, temperature: float, video_id: str | None = None) -> CompletionRequest:
    """Caller-resolved entry point: *prompt* is sent as-is."""
    value = validate_temperature(temperature)
    if not isinstance(prompt, str):
        raise InvalidParameterError("Prompt must be a string")
    return CompletionRequest(video_id=video_id, prompt=prompt, temperature=value)


async def prepare_completion(
    store: VideoStore, video_id: str, template: str, temperature: float
) -> CompletionRequest:
    """Server-resolved entry point: substitute the stored transcription into *template*.

    Validation happens before any storage or provider call.
    """
    value = validate_temperature(temperature)
    if not isinstance(template, str):
        raise InvalidParameterError("Prompt must be a string")

    record = await store.get_video(video_id)
    if record.transcription is None:
        raise TranscriptionNotReadyError(video_id)

    return CompletionRequest(
        video_id=video_id,
        prompt=resolve(template, record.transcription),
        temperature=value,
    )


async def stream_completion(
    generator: TextGenerator, request: CompletionRequest
) -> AsyncIterator[str]:
    """Forward provider chunks in order; end normally or raise ``GenerationError``."""
    logger.info(
        "completion.started",
        video_id=request.video_id,
        temperature=request.temperature,
        prompt_chars=len(request.prompt),
    )
    count = 0
    try:
        async for chunk in generator.generate(request.prompt, request.temperature):
            count += 1
            yield chunk
    except GenerationError:
        logger.error("completion.failed", video_id=request.video_id, chunks=count)
        raise
    except Exception as exc:
        logger.exception("completion.failed", video_id=request.video_id, chunks=count)
        raise GenerationError(f"Generation failed: {exc}") from exc

    logger.info("completion.finished", video_id=request.video_id, chunks=count)
