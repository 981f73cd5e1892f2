from pathlib import Path

import pytest

from voice_tasks import config as config_module
from voice_tasks.config import load_config, normalize_database_url

ENV_VARS = [
    "GOOGLE_API_KEY",
    "DATABASE_URL",
    "PORT",
    "FRONTEND_URL",
    "TEMP_DIR",
    "TRANSCRIBE_MODEL",
    "TRANSCRIBE_LANGUAGE",
    "TRANSCRIBE_SMART_FORMAT",
    "TRANSCRIBE_TIMEOUT",
    "TRANSCRIBE_MAX_RETRIES",
    "TRANSCRIBE_NORMALIZE_AUDIO",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of these tests
    monkeypatch.setattr(config_module, "load_dotenv", lambda: None)


def test_missing_api_key_fails(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///tasks.db")
    with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
        load_config()


def test_blank_api_key_fails(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "   ")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///tasks.db")
    with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
        load_config()


def test_missing_database_url_fails(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "key")
    with pytest.raises(ValueError, match="DATABASE_URL"):
        load_config()


def test_defaults(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", " key \n")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///tasks.db")

    config = load_config()

    assert config.port == 5000
    assert config.frontend_url == "*"
    assert config.temp_dir == Path("temp_audio")
    assert config.transcription.api_key == "key"
    assert config.transcription.model == "latest_long"
    assert config.transcription.language == "en-US"
    assert config.transcription.smart_format is True
    assert config.transcription.max_retries == 1


def test_overrides(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "key")
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/tasks")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("TRANSCRIBE_SMART_FORMAT", "false")
    monkeypatch.setenv("TRANSCRIBE_TIMEOUT", "12.5")
    monkeypatch.setenv("TRANSCRIBE_MAX_RETRIES", "0")

    config = load_config()

    assert config.port == 8080
    assert config.database_url == "postgresql+asyncpg://u:p@db:5432/tasks"
    assert config.transcription.smart_format is False
    assert config.transcription.timeout == 12.5
    assert config.transcription.max_retries == 0


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("postgresql://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("postgresql+asyncpg://u@h/db", "postgresql+asyncpg://u@h/db"),
        ("sqlite+aiosqlite:///tasks.db", "sqlite+aiosqlite:///tasks.db"),
    ],
)
def test_normalize_database_url(url, expected):
    assert normalize_database_url(url) == expected
