"""Speech-to-text through Google Cloud Speech."""

import asyncio
import logging
from pathlib import Path

import aiofiles
from google.api_core import exceptions
from google.cloud import speech

from voice_tasks.audio_processor import TARGET_SAMPLE_RATE, AudioProcessingError, convert_to_linear16
from voice_tasks.config import TranscriptionConfig
from voice_tasks.utils import remove_file

logger = logging.getLogger(__name__)

# Failures worth another attempt; anything else is reported straight away
RETRYABLE_ERRORS = (
    exceptions.ServiceUnavailable,
    exceptions.DeadlineExceeded,
    asyncio.TimeoutError,
)


class TranscriptionError(Exception):
    """Raised when the speech service fails or returns no usable transcript."""

    def __init__(self, reason: str, cause: Exception | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(f"Transcription failed: {reason}")


def extract_transcript(response: speech.RecognizeResponse) -> str:
    """
    Returns the transcript held in a recognize response.

    The service splits longer audio into sequential results; the top
    alternative of each one is joined in order.

    Raises:
        TranscriptionError: If the response has no results, a result has no
            alternatives, or the joined transcript is empty.
    """
    if not response.results:
        raise TranscriptionError("response contained no results")

    parts = []
    for result in response.results:
        if not result.alternatives:
            raise TranscriptionError("result contained no alternatives")
        parts.append(result.alternatives[0].transcript.strip())

    transcript = " ".join(part for part in parts if part)
    if not transcript:
        raise TranscriptionError("transcript was empty")
    return transcript


class SpeechTranscriber:
    """Transcribes staged audio files with a fixed recognition configuration."""

    def __init__(self, client: speech.SpeechAsyncClient, config: TranscriptionConfig):
        self._client = client
        self._config = config

    def recognition_config(self) -> speech.RecognitionConfig:
        if self._config.normalize_audio:
            return speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=TARGET_SAMPLE_RATE,
                language_code=self._config.language,
                model=self._config.model,
                enable_automatic_punctuation=self._config.smart_format,
            )
        # Without conversion the service reads encoding and rate from the WAV/FLAC header
        return speech.RecognitionConfig(
            language_code=self._config.language,
            model=self._config.model,
            enable_automatic_punctuation=self._config.smart_format,
        )

    async def transcribe(self, audio_path: Path) -> str:
        """
        Transcribes the audio file at `audio_path`.

        Raises:
            TranscriptionError: On conversion failure, service failure after
                the retry budget, or a response without a transcript.
        """
        converted_path = None
        try:
            source_path = audio_path
            if self._config.normalize_audio:
                converted_path = audio_path.with_name(f"{audio_path.stem}_linear16.wav")
                loop = asyncio.get_running_loop()
                source_path = await loop.run_in_executor(
                    None, convert_to_linear16, audio_path, converted_path
                )

            async with aiofiles.open(source_path, 'rb') as audio_file:
                content = await audio_file.read()

            response = await self._recognize(speech.RecognitionAudio(content=content))
            transcript = extract_transcript(response)
            logger.info("Transcription successful", extra={"characters": len(transcript)})
            return transcript
        except AudioProcessingError as e:
            raise TranscriptionError("audio could not be converted", e) from e
        finally:
            if converted_path is not None:
                remove_file(converted_path)

    async def _recognize(self, audio: speech.RecognitionAudio) -> speech.RecognizeResponse:
        config = self.recognition_config()
        attempts = self._config.max_retries + 1

        for attempt in range(attempts):
            try:
                # The client's own retry is disabled so the budget here is the only one
                return await asyncio.wait_for(
                    self._client.recognize(
                        config=config,
                        audio=audio,
                        retry=None,
                        timeout=self._config.timeout,
                    ),
                    timeout=self._config.timeout,
                )
            except RETRYABLE_ERRORS as e:
                if attempt < attempts - 1:
                    delay = self._config.retry_base_delay * (2 ** attempt)
                    logger.warning(
                        f"⚠️ Speech service unavailable on attempt {attempt + 1}. "
                        f"Retrying in {delay:.1f} seconds... Error: {e!r}"
                    )
                    await asyncio.sleep(delay)
                else:
                    raise TranscriptionError(f"no response after {attempts} attempts", e) from e
            except exceptions.GoogleAPICallError as e:
                raise TranscriptionError(f"speech service error: {e.message}", e) from e

        raise TranscriptionError("no attempts were made")


def create_transcriber(config: TranscriptionConfig) -> SpeechTranscriber:
    """Builds a transcriber backed by an API-key authenticated async client."""
    client = speech.SpeechAsyncClient(client_options={"api_key": config.api_key})
    logger.info("✅ Google Cloud Speech client initialized successfully.")
    return SpeechTranscriber(client, config)
