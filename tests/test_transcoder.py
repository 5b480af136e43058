import httpx
import numpy as np
import pytest
from moviepy import ColorClip
from moviepy.audio.AudioClip import AudioArrayClip

from upload_ai.client import transcoder
from upload_ai.client.api import UploadAIClient
from upload_ai.client.controller import PipelineController
from upload_ai.client.state import PipelineState
from upload_ai.client.transcoder import TranscoderEngine, get_engine, shutdown_engine, transcode
from upload_ai.errors import TranscodeError
from upload_ai.models.media import MediaAsset


@pytest.fixture(scope="module")
def silent_video(tmp_path_factory) -> MediaAsset:
    """Ten seconds of black frames with a silent stereo track."""
    path = tmp_path_factory.mktemp("media") / "silent.mp4"
    audio = AudioArrayClip(np.zeros((441000, 2)), fps=44100)
    clip = ColorClip(size=(32, 32), color=(0, 0, 0), duration=10).with_audio(audio)
    clip.write_videofile(str(path), fps=5, codec="libx264", audio_codec="aac", logger=None)
    clip.close()
    return MediaAsset(content=path.read_bytes(), mime_type="video/mp4", filename="silent.mp4")


@pytest.fixture(autouse=True)
def fresh_engine():
    shutdown_engine()
    yield
    shutdown_engine()


async def test_transcode_produces_compact_mp3(silent_video) -> None:
    progress: list[int] = []

    audio = await transcode(silent_video, progress.append)

    assert audio.mime_type == "audio/mpeg"
    assert audio.filename == "audio.mp3"
    assert 0 < audio.size < 50_000
    assert progress[0] == 0
    assert progress[-1] == 100
    assert progress == sorted(progress)


async def test_transcode_without_progress_callback(silent_video) -> None:
    audio = await transcode(silent_video)
    assert audio.size > 0


async def test_garbage_input_is_transcode_error() -> None:
    garbage = MediaAsset(content=b"definitely not a video" * 64, mime_type="video/mp4", filename="x.mp4")
    with pytest.raises(TranscodeError):
        await transcode(garbage)


async def test_empty_input_is_transcode_error() -> None:
    with pytest.raises(TranscodeError):
        await transcode(MediaAsset(content=b"", mime_type="video/mp4", filename="x.mp4"))


def test_engine_is_shared_until_shutdown() -> None:
    first = get_engine()
    assert first.ready
    assert get_engine() is first

    shutdown_engine()

    assert not first.ready
    assert transcoder._engine is None
    assert get_engine() is not first


def test_uninitialized_engine_refuses_work(silent_video) -> None:
    with pytest.raises(TranscodeError):
        TranscoderEngine().transcode_sync(silent_video)


def test_missing_ffmpeg_is_transcode_error(monkeypatch) -> None:
    monkeypatch.setattr("moviepy.config.FFMPEG_BINARY", "/nonexistent/ffmpeg")
    with pytest.raises(TranscodeError):
        TranscoderEngine().initialize()


async def test_silent_video_end_to_end(silent_video, override_dependencies, store, provider) -> None:
    transport = httpx.ASGITransport(app=override_dependencies)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        api = UploadAIClient(http=http)
        controller = PipelineController(api)

        video_id = await controller.submit(silent_video, keyword_prompt="silence")
        text = await api.complete(video_id, "Summarize: {transcription}", temperature=0.0).text()

    record = await store.get_video(video_id)
    assert controller.state is PipelineState.READY
    assert record.name == "audio.mp3"
    assert record.transcription is not None
    assert text == "Rockets and pasta."
    assert provider.calls == [(f"Summarize: {record.transcription}", 0.0)]
