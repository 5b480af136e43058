from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage

from upload_ai.api.dependencies import get_completion_provider, get_transcriber, get_video_store
from upload_ai.main import app
from upload_ai.models.media import MediaAsset
from upload_ai.storage.memory import LocalVideoStore
from upload_ai.tools.llm import CompletionProvider

MP3_BYTES = b"ID3\x03\x00\x00\x00" + b"\xff\xfb\x90\x00" * 64


class FakeTranscriber:
    def __init__(self, text: str = "we talked about rockets and pasta", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    async def transcribe(self, audio: bytes, filename: str = "audio.mp3", hint: str | None = None) -> str:
        self.calls.append({"audio": audio, "filename": filename, "hint": hint})
        if self.error is not None:
            raise self.error
        return self.text


class RecordingProvider:
    """Yields fixed chunks and remembers what it was asked."""

    def __init__(self, chunks=("Rockets ", "and ", "pasta.")):
        self.chunks = list(chunks)
        self.calls: list[tuple[str, float]] = []

    async def generate(self, prompt: str, temperature: float):
        self.calls.append((prompt, temperature))
        for chunk in self.chunks:
            yield chunk


class FailingProvider:
    """Yields some chunks, then blows up mid-stream."""

    def __init__(self, chunks=("partial ",)):
        self.chunks = list(chunks)

    async def generate(self, prompt: str, temperature: float):
        for chunk in self.chunks:
            yield chunk
        raise RuntimeError("provider exploded")


def fake_chat_provider(reply: str) -> CompletionProvider:
    """CompletionProvider backed by LangChain's streaming fake chat model."""
    return CompletionProvider(
        model_factory=lambda temperature: GenericFakeChatModel(messages=iter([AIMessage(content=reply)]))
    )


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    # sse-starlette keeps a module-level exit event bound to the first event loop.
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit_event = None


@pytest.fixture
def store(tmp_path) -> LocalVideoStore:
    return LocalVideoStore(tmp_path / "uploads")


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def provider() -> RecordingProvider:
    return RecordingProvider()


@pytest.fixture
def mp3_asset() -> MediaAsset:
    return MediaAsset(content=MP3_BYTES, mime_type="audio/mpeg", filename="audio.mp3")


@pytest.fixture
def override_dependencies(store, transcriber, provider):
    app.dependency_overrides[get_video_store] = lambda: store
    app.dependency_overrides[get_transcriber] = lambda: transcriber
    app.dependency_overrides[get_completion_provider] = lambda: provider
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_dependencies):
    with TestClient(override_dependencies) as test_client:
        yield test_client
