"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # LLM API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Text generation ("openai" | "anthropic")
    llm_provider: str = "openai"
    completion_model: str = "gpt-3.5-turbo-16k"
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Speech-to-text
    whisper_model: str = "whisper-1"
    whisper_language: str | None = None

    # Upper bound for a single provider call (or a single streamed chunk)
    provider_timeout_sec: float = 120.0

    # Upload
    max_upload_bytes: int = 1_048_576 * 25  # 25 MiB
    upload_dir: str = "./tmp"

    # Supabase (optional storage backend)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_storage_bucket: str = "videos"

    # HTTP
    allowed_origins: str = "*"
    host: str = "0.0.0.0"
    port: int = 3333

    # Client
    api_base_url: str = "http://localhost:3333"
    transcode_bitrate: str = "20k"
    transcode_codec: str = "libmp3lame"
    transcode_sample_rate: int = 16000  # Hz; MPEG-2 rates allow ~20 kbps

    log_level: str = "INFO"


settings = Settings()


def get_upload_dir() -> Path:
    """Return the local upload directory, creating it if needed."""
    path = Path(settings.upload_dir).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path
