"""Client-side transcoding: extracts a compact MP3 audio track from a video.

Runs locally so only the small audio artifact is ever uploaded. The ffmpeg
engine behind MoviePy is resolved once per process and reused; teardown is
explicit via :func:`shutdown_engine`.
"""

from __future__ import annotations

import asyncio
import mimetypes
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Callable

import structlog
from moviepy import AudioFileClip
from proglog import ProgressBarLogger

from upload_ai.config import settings
from upload_ai.errors import TranscodeError
from upload_ai.models.media import MediaAsset

logger = structlog.get_logger()

ProgressCallback = Callable[[int], None]

AUDIO_MIME_TYPE = "audio/mpeg"
AUDIO_FILENAME = "audio.mp3"


class _PercentLogger(ProgressBarLogger):
    """Turns MoviePy's chunk progress bar into a 0-100 integer signal."""

    def __init__(self, callback: ProgressCallback):
        super().__init__()
        self._callback = callback
        self._last = -1

    def bars_callback(self, bar, attr, value, old_value=None):
        if attr != "index":
            return
        total = self.bars.get(bar, {}).get("total")
        if not total:
            return
        percent = min(100, round(100 * (value + 1) / total))
        if percent != self._last:
            self._last = percent
            self._callback(percent)


class TranscoderEngine:
    """Handle on the ffmpeg binary used by MoviePy."""

    def __init__(
        self,
        bitrate: str | None = None,
        codec: str | None = None,
        sample_rate: int | None = None,
    ):
        self.bitrate = bitrate or settings.transcode_bitrate
        self.codec = codec or settings.transcode_codec
        self.sample_rate = sample_rate or settings.transcode_sample_rate
        self.ffmpeg_binary: str | None = None
        self.version: str = ""

    @property
    def ready(self) -> bool:
        return self.ffmpeg_binary is not None

    def initialize(self) -> None:
        """Resolve and verify the ffmpeg binary. Raises ``TranscodeError``."""
        from moviepy.config import FFMPEG_BINARY

        try:
            result = subprocess.run(
                [FFMPEG_BINARY, "-version"], capture_output=True, timeout=30
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise TranscodeError(f"Transcoding engine unavailable: {exc}") from exc
        if result.returncode != 0:
            raise TranscodeError(
                f"Transcoding engine unavailable: ffmpeg exited with {result.returncode}"
            )

        lines = result.stdout.decode(errors="replace").splitlines()
        self.version = lines[0] if lines else ""
        self.ffmpeg_binary = FFMPEG_BINARY
        logger.info("transcoder.engine.ready", ffmpeg=FFMPEG_BINARY, version=self.version)

    def teardown(self) -> None:
        self.ffmpeg_binary = None
        logger.info("transcoder.engine.teardown")

    def transcode_sync(
        self, video: MediaAsset, on_progress: ProgressCallback | None = None
    ) -> MediaAsset:
        """Extract the audio stream as mono MP3 at the configured bitrate (blocking)."""
        if not self.ready:
            raise TranscodeError("Transcoding engine is not initialized")
        if not video.content:
            raise TranscodeError("Input video is empty")

        suffix = Path(video.filename).suffix or mimetypes.guess_extension(video.mime_type) or ".mp4"

        with tempfile.TemporaryDirectory(prefix="upload_ai_") as tmp:
            input_path = Path(tmp) / f"input{suffix}"
            output_path = Path(tmp) / "output.mp3"
            input_path.write_bytes(video.content)

            if on_progress is not None:
                on_progress(0)

            clip = None
            try:
                clip = AudioFileClip(str(input_path))
                clip.write_audiofile(
                    str(output_path),
                    fps=self.sample_rate,
                    codec=self.codec,
                    bitrate=self.bitrate,
                    ffmpeg_params=["-ac", "1"],
                    logger=_PercentLogger(on_progress) if on_progress else None,
                )
            except Exception as exc:
                logger.warning("transcoder.failed", filename=video.filename, error=str(exc))
                raise TranscodeError(f"Could not transcode input media: {exc}") from exc
            finally:
                if clip is not None:
                    clip.close()

            data = output_path.read_bytes() if output_path.is_file() else b""

        if not data:
            raise TranscodeError("Transcoding produced no audio")

        if on_progress is not None:
            on_progress(100)

        logger.info(
            "transcoder.done",
            input_bytes=video.size,
            output_bytes=len(data),
            bitrate=self.bitrate,
        )
        return MediaAsset(content=data, mime_type=AUDIO_MIME_TYPE, filename=AUDIO_FILENAME)


# ---------------------------------------------------------------------------
# Process-wide engine
# ---------------------------------------------------------------------------

_engine: TranscoderEngine | None = None
_engine_lock = threading.Lock()


def get_engine() -> TranscoderEngine:
    """Return the shared engine, initializing it on first use."""
    global _engine
    with _engine_lock:
        if _engine is None:
            engine = TranscoderEngine()
            engine.initialize()
            _engine = engine
        return _engine


def shutdown_engine() -> None:
    """Tear down the shared engine; the next :func:`get_engine` re-initializes."""
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.teardown()
            _engine = None


async def transcode(video: MediaAsset, on_progress: ProgressCallback | None = None) -> MediaAsset:
    """Transcode *video* into a compact audio MediaAsset without blocking the loop.

    *on_progress* receives integers from 0 to 100 on the caller's event loop.
    """
    loop = asyncio.get_running_loop()
    engine = await asyncio.to_thread(get_engine)

    report = None
    if on_progress is not None:
        def report(percent: int) -> None:
            loop.call_soon_threadsafe(on_progress, percent)

    return await asyncio.to_thread(engine.transcode_sync, video, report)
