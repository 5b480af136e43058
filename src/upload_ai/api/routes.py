"""FastAPI route handlers for the upload / transcription / completion API."""

from __future__ import annotations

import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile
from fastapi.responses import StreamingResponse
from sse_starlette.sse import EventSourceResponse

from upload_ai.api.dependencies import get_completion_provider, get_transcriber, get_video_store
from upload_ai.api.schemas import (
    CompletionBody,
    ErrorResponse,
    TranscriptionRequest,
    UploadVideoResponse,
)
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
from upload_ai.services.completion import build_request, prepare_completion, stream_completion
from upload_ai.services.transcription import transcribe_video
from upload_ai.services.upload import upload_audio
from upload_ai.storage.base import VideoStore
from upload_ai.tools.llm import CompletionProvider
from upload_ai.tools.whisper import WhisperTranscriber

logger = structlog.get_logger()

router = APIRouter()


@router.get("/prompts", response_model=list[PromptTemplate])
async def get_all_prompts(store: VideoStore = Depends(get_video_store)):
    """List the prompt templates offered to the user."""
    return await store.list_prompts()


@router.post("/videos", response_model=UploadVideoResponse, status_code=201)
async def upload_video(
    file: UploadFile = File(...),
    store: VideoStore = Depends(get_video_store),
):
    """Store an uploaded MP3 and create its video record."""
    # Read one byte past the limit so oversized payloads are detected without
    # buffering them completely.
    content = await file.read(settings.max_upload_bytes + 1)
    audio = MediaAsset(
        content=content,
        mime_type=file.content_type or "audio/mpeg",
        filename=file.filename or "",
    )

    try:
        record = await upload_audio(store, audio)
    except UploadError as exc:
        logger.warning("videos.upload.rejected", filename=audio.filename, reason=exc.message)
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return UploadVideoResponse(id=record.id)


@router.post("/videos/{video_id}/transcription")
async def create_transcription(
    video_id: str,
    payload: Optional[TranscriptionRequest] = None,
    store: VideoStore = Depends(get_video_store),
    transcriber: WhisperTranscriber = Depends(get_transcriber),
):
    """Transcribe a stored video's audio. Responds 200 with an empty body."""
    keyword_prompt = payload.prompt if payload else None

    try:
        await transcribe_video(store, transcriber, video_id, keyword_prompt)
    except VideoNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except TranscriptionError as exc:
        raise HTTPException(status_code=500, detail=exc.message)

    return Response(status_code=200)


@router.post("/ai/complete")
async def generate_ai_completion(
    body: CompletionBody,
    request: Request,
    store: VideoStore = Depends(get_video_store),
    provider: CompletionProvider = Depends(get_completion_provider),
):
    """Stream an AI completion for a prompt.

    With ``videoId`` the server fills ``{transcription}`` from the stored
    record; without it the prompt is used as sent. Clients asking for
    ``text/event-stream`` get SSE with a terminal ``end`` or ``error``
    event; others get a plain text body. A provider that fails before its
    first chunk is answered with 500.
    """
    try:
        if body.video_id:
            completion = await prepare_completion(store, body.video_id, body.prompt, body.temperature)
        else:
            completion = build_request(body.prompt, body.temperature)
    except VideoNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except InvalidParameterError as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    # Pull the first chunk before responding: start-up failures become a 500.
    chunks = stream_completion(provider, completion)
    head: list[str] = []
    try:
        head.append(await anext(chunks))
    except StopAsyncIteration:
        pass
    except GenerationError as exc:
        raise HTTPException(status_code=500, detail=exc.message)

    async def text_stream():
        for chunk in head:
            yield chunk
        async for chunk in chunks:
            yield chunk

    if "text/event-stream" not in request.headers.get("accept", ""):
        return StreamingResponse(text_stream(), media_type="text/plain; charset=utf-8")

    async def event_generator():
        try:
            async for chunk in text_stream():
                yield {"event": "chunk", "data": json.dumps({"text": chunk})}
        except GenerationError as exc:
            error = ErrorResponse(error=exc.message, stage=exc.stage)
            yield {"event": "error", "data": error.model_dump_json()}
            return
        yield {"event": "end", "data": "{}"}

    return EventSourceResponse(event_generator())
