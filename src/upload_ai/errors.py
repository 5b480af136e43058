"""Error taxonomy shared by the server stages and the client pipeline."""

from __future__ import annotations


class UploadAIError(Exception):
    """Base error. ``stage`` names the pipeline stage that failed."""

    stage: str = "pipeline"
    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class TranscodeError(UploadAIError):
    """Input media could not be decoded or the transcoding engine is unavailable."""

    stage = "transcode"


class UploadError(UploadAIError):
    """Transport failure, server rejection or payload too large."""

    stage = "upload"
    status_code = 400


class TranscriptionError(UploadAIError):
    """Unknown record or speech-to-text provider failure."""

    stage = "transcription"


class VideoNotFoundError(TranscriptionError):
    status_code = 404

    def __init__(self, video_id: str):
        super().__init__(f"Video {video_id} not found")
        self.video_id = video_id


class InvalidParameterError(UploadAIError):
    """Temperature out of range or malformed template."""

    stage = "generation"
    status_code = 400


class TranscriptionNotReadyError(InvalidParameterError):
    def __init__(self, video_id: str):
        super().__init__("Video transcription was not generated yet.")
        self.video_id = video_id


class GenerationError(UploadAIError):
    """Text-generation provider failure, before or during streaming."""

    stage = "generation"


class PipelineBusyError(UploadAIError):
    """A run is already in flight for this controller."""

    stage = "submit"
    status_code = 409


class InvalidTransitionError(UploadAIError):
    stage = "state"

    def __init__(self, state: str, event: str):
        super().__init__(f"Event '{event}' is not allowed in state '{state}'")
        self.state = state
        self.event = event
