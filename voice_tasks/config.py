# voice_tasks/config.py

"""Application configuration loaded from `.env` and environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class TranscriptionConfig(BaseModel, frozen=True):
    """Google Cloud Speech recognition settings."""

    api_key: str
    model: str = "latest_long"
    language: str = "en-US"
    smart_format: bool = True
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=1, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0)
    normalize_audio: bool = True


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    database_url: str
    transcription: TranscriptionConfig
    port: int = 5000
    frontend_url: str = "*"
    temp_dir: Path = Path("temp_audio")


def normalize_database_url(url: str) -> str:
    """Rewrites plain PostgreSQL URLs so they use the asyncpg driver."""
    # Hosting providers hand out postgres:// URLs, which SQLAlchemy rejects
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AppConfig:
    """
    Loads configuration from the environment.

    Raises:
        ValueError: If the speech API key or the database URL is missing.
    """
    load_dotenv()

    api_key = os.getenv("GOOGLE_API_KEY", "").strip()
    if not api_key:
        raise ValueError("GOOGLE_API_KEY is not set in the environment variables.")

    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url or database_url == "None":
        raise ValueError("DATABASE_URL environment variable is not set")

    return AppConfig(
        database_url=normalize_database_url(database_url),
        port=int(os.getenv("PORT", "5000")),
        frontend_url=os.getenv("FRONTEND_URL", "*"),
        temp_dir=Path(os.getenv("TEMP_DIR", "temp_audio")),
        transcription=TranscriptionConfig(
            api_key=api_key,
            model=os.getenv("TRANSCRIBE_MODEL", "latest_long"),
            language=os.getenv("TRANSCRIBE_LANGUAGE", "en-US"),
            smart_format=_env_flag("TRANSCRIBE_SMART_FORMAT", True),
            timeout=float(os.getenv("TRANSCRIBE_TIMEOUT", "30")),
            max_retries=int(os.getenv("TRANSCRIBE_MAX_RETRIES", "1")),
            normalize_audio=_env_flag("TRANSCRIBE_NORMALIZE_AUDIO", True),
        ),
    )
