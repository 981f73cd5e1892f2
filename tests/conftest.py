import io
import wave
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from voice_tasks.config import AppConfig, TranscriptionConfig
from voice_tasks.main import create_app
from voice_tasks.transcription import TranscriptionError


class FakeTranscriber:
    """Stands in for the Google client; records every staged path it sees."""

    def __init__(self, transcript="hello world", error=None):
        self.transcript = transcript
        self.error = error
        self.calls = []
        self.staged_existed = []

    async def transcribe(self, audio_path: Path) -> str:
        self.calls.append(audio_path)
        self.staged_existed.append(audio_path.exists())
        if self.error is not None:
            raise self.error
        return self.transcript


def make_wav(seconds: float = 2.0, sample_rate: int = 16000) -> bytes:
    """Returns a silent mono 16-bit WAV of the given length."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(b"\x00\x00" * int(seconds * sample_rate))
    return buffer.getvalue()


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}",
        temp_dir=tmp_path / "staging",
        transcription=TranscriptionConfig(api_key="test-key", normalize_audio=False),
    )


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def client(config, transcriber):
    app = create_app(config, transcriber=transcriber)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def failing_transcriber():
    return FakeTranscriber(error=TranscriptionError("speech service error: boom"))


@pytest.fixture
def wav_bytes():
    return make_wav()
