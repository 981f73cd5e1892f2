import logging
from pathlib import Path

import ffmpeg  # Use the ffmpeg-python wrapper

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000


class AudioProcessingError(Exception):
    """Raised when ffmpeg cannot convert an uploaded file."""

    def __init__(self, file_name: str, cause: Exception | None = None):
        self.file_name = file_name
        self.cause = cause
        super().__init__(f"Failed to convert audio file '{file_name}'")


def convert_to_linear16(input_path: Path, output_path: Path, sample_rate: int = TARGET_SAMPLE_RATE) -> Path:
    """
    Converts any audio container/codec ffmpeg understands into a mono
    16-bit PCM WAV file at `sample_rate`.

    The speech API only auto-detects WAV and FLAC headers; normalising every
    upload lets clients send webm, ogg, mp3 or m4a without extra settings.
    Blocking: call it through an executor from async code.
    """
    logger.info("FFMPEG Processor: converting", extra={"input": input_path.name})
    try:
        (
            ffmpeg
            .input(str(input_path))
            .output(str(output_path), acodec='pcm_s16le', ac=1, ar=sample_rate, f='wav')
            .overwrite_output()
            .run(capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else ""
        logger.error("❌ FFMPEG Error during conversion", extra={"input": input_path.name, "stderr": stderr})
        raise AudioProcessingError(input_path.name, e) from e

    # A silent or truncated upload can leave ffmpeg with nothing to write
    if not output_path.exists() or output_path.stat().st_size == 0:
        raise AudioProcessingError(input_path.name, Exception("ffmpeg produced no output"))

    logger.info(
        "✅ Converted audio is valid",
        extra={"output": output_path.name, "size": output_path.stat().st_size},
    )
    return output_path
