from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import FakeTranscriber, MP3_BYTES

from upload_ai.errors import TranscriptionError, UploadError, VideoNotFoundError
from upload_ai.models.media import MediaAsset
from upload_ai.models.video import PromptTemplate
from upload_ai.services.transcription import transcribe_video
from upload_ai.services.upload import upload_audio, validate_audio
from upload_ai.storage.memory import LocalVideoStore
from upload_ai.storage.supabase import SupabaseVideoStore


# ---------------------------------------------------------------------------
# Local store
# ---------------------------------------------------------------------------


async def test_local_store_names_files_after_upload(store, mp3_asset) -> None:
    named = mp3_asset.model_copy(update={"filename": "episode.mp3"})
    record = await store.create_video(named)

    path = Path(record.path)
    assert path.parent == store.upload_dir
    assert path.name.startswith("episode-")
    assert path.suffix == ".mp3"
    assert path.read_bytes() == MP3_BYTES
    assert record.name == "episode.mp3"


async def test_local_store_ids_are_unique(store, mp3_asset) -> None:
    first = await store.create_video(mp3_asset)
    second = await store.create_video(mp3_asset)
    assert first.id != second.id
    assert first.path != second.path


async def test_local_store_set_transcription(store, mp3_asset) -> None:
    record = await store.create_video(mp3_asset)
    await store.set_transcription(record.id, "hello")

    assert (await store.get_video(record.id)).transcription == "hello"
    assert record.transcription is None


async def test_local_store_unknown_id(store) -> None:
    with pytest.raises(VideoNotFoundError):
        await store.get_video("nope")
    with pytest.raises(VideoNotFoundError):
        await store.set_transcription("nope", "text")


async def test_local_store_custom_prompts(tmp_path) -> None:
    prompts = [PromptTemplate(id="p1", title="Tweet", template="Tweet about {transcription}")]
    store = LocalVideoStore(tmp_path, prompts=prompts)
    assert await store.list_prompts() == prompts


# ---------------------------------------------------------------------------
# Upload stage
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "filename, content, status_code",
    [
        ("clip.mp4", MP3_BYTES, 400),
        ("noext", MP3_BYTES, 400),
        ("audio.mp3", b"", 400),
        ("audio.mp3", b"x" * 11, 413),
    ],
)
def test_validate_audio_rejections(filename, content, status_code) -> None:
    audio = MediaAsset(content=content, mime_type="audio/mpeg", filename=filename)
    with pytest.raises(UploadError) as excinfo:
        validate_audio(audio, max_bytes=10)
    assert excinfo.value.status_code == status_code


def test_validate_audio_accepts_uppercase_extension() -> None:
    validate_audio(MediaAsset(content=b"x" * 10, mime_type="audio/mpeg", filename="LOUD.MP3"), max_bytes=10)


async def test_upload_store_failure_is_upload_error(mp3_asset) -> None:
    broken = MagicMock()
    broken.create_video.side_effect = OSError("disk full")

    with pytest.raises(UploadError) as excinfo:
        await upload_audio(broken, mp3_asset)
    assert excinfo.value.status_code == 500


# ---------------------------------------------------------------------------
# Transcription stage
# ---------------------------------------------------------------------------


async def test_transcribe_video_persists_text(store, mp3_asset) -> None:
    record = await store.create_video(mp3_asset)
    transcriber = FakeTranscriber("hello there")

    text = await transcribe_video(store, transcriber, record.id, "kw")

    assert text == transcriber.text
    assert (await store.get_video(record.id)).transcription == transcriber.text
    assert transcriber.calls[0]["hint"] == "kw"


async def test_transcribe_video_failure_leaves_record_untouched(store, mp3_asset) -> None:
    record = await store.create_video(mp3_asset)
    transcriber = FakeTranscriber(error=TranscriptionError("boom"))

    with pytest.raises(TranscriptionError):
        await transcribe_video(store, transcriber, record.id)

    assert (await store.get_video(record.id)).transcription is None


async def test_transcribe_video_unknown_id(store, transcriber) -> None:
    with pytest.raises(VideoNotFoundError):
        await transcribe_video(store, transcriber, "missing")
    assert transcriber.calls == []


# ---------------------------------------------------------------------------
# Supabase store
# ---------------------------------------------------------------------------


@pytest.fixture
def supabase_client() -> MagicMock:
    return MagicMock()


def _select_result(client: MagicMock, row):
    query = client.table.return_value.select.return_value.eq.return_value.maybe_single.return_value
    query.execute.return_value = MagicMock(data=row)


async def test_supabase_create_uploads_then_inserts(supabase_client, mp3_asset) -> None:
    store = SupabaseVideoStore(client=supabase_client, bucket="audio")

    record = await store.create_video(mp3_asset)

    supabase_client.storage.from_.assert_called_with("audio")
    upload = supabase_client.storage.from_.return_value.upload
    path, content = upload.call_args.args
    assert path == f"{record.id}/audio.mp3"
    assert content == MP3_BYTES
    inserted = supabase_client.table.return_value.insert.call_args.args[0]
    assert inserted["id"] == record.id
    assert inserted["transcription"] is None


async def test_supabase_get_video(supabase_client) -> None:
    _select_result(supabase_client, {"id": "v1", "name": "a.mp3", "path": "v1/a.mp3", "transcription": "hi"})
    store = SupabaseVideoStore(client=supabase_client, bucket="audio")

    record = await store.get_video("v1")

    assert record.transcription == "hi"
    supabase_client.table.assert_called_with("videos")


async def test_supabase_missing_row(supabase_client) -> None:
    _select_result(supabase_client, None)
    store = SupabaseVideoStore(client=supabase_client, bucket="audio")

    with pytest.raises(VideoNotFoundError):
        await store.get_video("v1")


async def test_supabase_set_transcription(supabase_client) -> None:
    _select_result(supabase_client, {"id": "v1", "name": "a.mp3", "path": "v1/a.mp3"})
    store = SupabaseVideoStore(client=supabase_client, bucket="audio")

    await store.set_transcription("v1", "words")

    supabase_client.table.return_value.update.assert_called_once_with({"transcription": "words"})


async def test_supabase_list_prompts(supabase_client) -> None:
    supabase_client.table.return_value.select.return_value.execute.return_value = MagicMock(
        data=[{"id": "p1", "title": "Title", "template": "{transcription}"}]
    )
    store = SupabaseVideoStore(client=supabase_client, bucket="audio")

    prompts = await store.list_prompts()

    assert prompts == [PromptTemplate(id="p1", title="Title", template="{transcription}")]
