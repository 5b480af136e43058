"""Pipeline controller: sequences transcode, upload and transcription for one session."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Protocol

import structlog

from upload_ai.client.state import (
    IN_FLIGHT_STATES,
    STATUS_MESSAGES,
    PipelineEvent,
    PipelineFailure,
    PipelineSnapshot,
    PipelineState,
    transition,
)
from upload_ai.client.transcoder import ProgressCallback, transcode
from upload_ai.errors import (
    PipelineBusyError,
    TranscodeError,
    TranscriptionError,
    UploadAIError,
    UploadError,
)
from upload_ai.models.media import MediaAsset

logger = structlog.get_logger()

Transcode = Callable[[MediaAsset, Optional[ProgressCallback]], Awaitable[MediaAsset]]
Observer = Callable[[PipelineSnapshot], None]

# Error raised when a stage fails with something outside the taxonomy.
_STAGE_ERRORS: dict[PipelineState, type[UploadAIError]] = {
    PipelineState.CONVERTING: TranscodeError,
    PipelineState.UPLOADING: UploadError,
    PipelineState.TRANSCRIBING: TranscriptionError,
}


class IngestionClient(Protocol):
    async def upload(self, audio: MediaAsset) -> str: ...

    async def transcribe(self, video_id: str, keyword_prompt: str | None = None) -> None: ...


class PipelineController:
    """Owns the current pipeline state of one client session.

    ``submit`` runs Converting -> Uploading -> Transcribing -> Ready. Any
    stage failure lands in Failed and is re-raised; nothing is retried.
    The observer is called with a :class:`PipelineSnapshot` after every
    transition; an observer that raises is logged and otherwise ignored.
    """

    def __init__(
        self,
        client: IngestionClient,
        transcoder: Transcode = transcode,
        observer: Observer | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self._client = client
        self._transcode = transcoder
        self._observer = observer
        self._on_progress = on_progress

        self.state = PipelineState.IDLE
        self.progress = 0
        self.failure: PipelineFailure | None = None
        self.video_id: str | None = None

    @property
    def busy(self) -> bool:
        return self.state in IN_FLIGHT_STATES

    @property
    def status_message(self) -> str:
        return self.snapshot().message

    def snapshot(
        self,
        previous: PipelineState | None = None,
        event: PipelineEvent | None = None,
    ) -> PipelineSnapshot:
        return PipelineSnapshot(
            state=self.state,
            previous=previous,
            event=event,
            progress=self.progress,
            video_id=self.video_id,
            failure=self.failure,
        )

    def _apply(self, event: PipelineEvent, failure: PipelineFailure | None = None) -> None:
        previous = self.state
        self.state = transition(previous, event)
        self.failure = failure
        logger.info(
            "pipeline.transition",
            previous=previous.value,
            trigger=event.value,
            state=self.state.value,
            video_id=self.video_id,
        )
        self._notify(self.snapshot(previous, event))

    def _notify(self, snapshot: PipelineSnapshot) -> None:
        # Observer errors never change the pipeline state.
        if self._observer is None:
            return
        try:
            self._observer(snapshot)
        except Exception:
            logger.exception("pipeline.observer_failed", state=snapshot.state.value)

    def _fail(self, message: str) -> None:
        stage = self.state.value
        logger.warning("pipeline.failed", stage=stage, reason=message)
        self._apply(PipelineEvent.FAIL, PipelineFailure(stage=stage, message=message))

    def _report_progress(self, percent: int) -> None:
        self.progress = percent
        if self._on_progress is not None:
            self._on_progress(percent)

    def reset(self) -> None:
        """Return a finished (Ready or Failed) run to Idle."""
        self.progress = 0
        self.video_id = None
        self._apply(PipelineEvent.RESET)

    async def submit(self, video: MediaAsset, keyword_prompt: str | None = None) -> str:
        """Run the ingestion pipeline for *video* and return its video id.

        Rejected with ``PipelineBusyError`` while a run is in flight. A
        finished run (Ready or Failed) is reset to Idle first.
        """
        if self.busy:
            raise PipelineBusyError(
                f"A submission is already in progress ({STATUS_MESSAGES[self.state]})"
            )
        if self.state in (PipelineState.READY, PipelineState.FAILED):
            self.reset()

        try:
            self._apply(PipelineEvent.SUBMIT)
            audio = await self._transcode(video, self._report_progress)
            self._apply(PipelineEvent.TRANSCODED)

            video_id = await self._client.upload(audio)
            self.video_id = video_id
            self._apply(PipelineEvent.UPLOADED)

            await self._client.transcribe(video_id, keyword_prompt)
            self._apply(PipelineEvent.TRANSCRIBED)
        except asyncio.CancelledError:
            # In-flight calls are abandoned; an orphaned server record is acceptable.
            if self.busy:
                self._fail("cancelled")
            raise
        except UploadAIError as exc:
            if self.busy:
                self._fail(exc.message)
            raise
        except Exception as exc:
            if not self.busy:
                raise
            error_cls = _STAGE_ERRORS[self.state]
            self._fail(str(exc))
            raise error_cls(str(exc)) from exc

        return video_id
