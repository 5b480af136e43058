"""Pipeline states, events and the pure transition function."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from upload_ai.errors import InvalidTransitionError


class PipelineState(str, Enum):
    IDLE = "idle"
    CONVERTING = "converting"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    READY = "ready"
    FAILED = "failed"


class PipelineEvent(str, Enum):
    SUBMIT = "submit"
    TRANSCODED = "transcoded"
    UPLOADED = "uploaded"
    TRANSCRIBED = "transcribed"
    FAIL = "fail"
    RESET = "reset"


# Stages with an external call in flight.
IN_FLIGHT_STATES = frozenset(
    {PipelineState.CONVERTING, PipelineState.UPLOADING, PipelineState.TRANSCRIBING}
)

TRANSITIONS: dict[tuple[PipelineState, PipelineEvent], PipelineState] = {
    (PipelineState.IDLE, PipelineEvent.SUBMIT): PipelineState.CONVERTING,
    (PipelineState.CONVERTING, PipelineEvent.TRANSCODED): PipelineState.UPLOADING,
    (PipelineState.UPLOADING, PipelineEvent.UPLOADED): PipelineState.TRANSCRIBING,
    (PipelineState.TRANSCRIBING, PipelineEvent.TRANSCRIBED): PipelineState.READY,
    (PipelineState.CONVERTING, PipelineEvent.FAIL): PipelineState.FAILED,
    (PipelineState.UPLOADING, PipelineEvent.FAIL): PipelineState.FAILED,
    (PipelineState.TRANSCRIBING, PipelineEvent.FAIL): PipelineState.FAILED,
    (PipelineState.READY, PipelineEvent.RESET): PipelineState.IDLE,
    (PipelineState.FAILED, PipelineEvent.RESET): PipelineState.IDLE,
}

STATUS_MESSAGES: dict[PipelineState, str] = {
    PipelineState.IDLE: "Upload video",
    PipelineState.CONVERTING: "Converting...",
    PipelineState.UPLOADING: "Uploading...",
    PipelineState.TRANSCRIBING: "Transcribing...",
    PipelineState.READY: "Success!",
    PipelineState.FAILED: "Failed",
}


def transition(state: PipelineState, event: PipelineEvent) -> PipelineState:
    """Return the state reached from *state* on *event*.

    Raises ``InvalidTransitionError`` for pairs outside the table.
    """
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state.value, event.value) from None


@dataclass(frozen=True)
class PipelineFailure:
    stage: str  # state the run was in when it failed
    message: str


@dataclass(frozen=True)
class PipelineSnapshot:
    """What an observer sees after each transition."""

    state: PipelineState
    previous: Optional[PipelineState]
    event: Optional[PipelineEvent]
    progress: int
    video_id: Optional[str] = None
    failure: Optional[PipelineFailure] = None

    @property
    def message(self) -> str:
        if self.failure is not None:
            return f"{STATUS_MESSAGES[self.state]}: {self.failure.message}"
        return STATUS_MESSAGES[self.state]
