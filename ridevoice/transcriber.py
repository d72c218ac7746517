"""Speech-to-text backends."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import openai
from faster_whisper import WhisperModel
from openai import AsyncOpenAI

from .audio_capture import AudioClip
from .config import TranscriptionConfig
from .errors import IOFailure, ServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "transcription"


@dataclass(frozen=True)
class TranscriptionResult:
    """Result of a transcription with metadata."""

    text: str
    source: Path
    language: Optional[str] = None
    duration: Optional[float] = None

    def __str__(self) -> str:
        return self.text


class Transcriber(ABC):
    """Turns a finished clip into text. Never retries on its own."""

    async def transcribe(self, clip: AudioClip) -> TranscriptionResult:
        """Transcribe a clip.

        An empty clip yields an empty transcript without a backend call.

        Raises:
            ServiceError: The backend failed or rejected the request.
            IOFailure: The clip could not be read.
        """
        if clip.is_empty:
            logger.info(f"Clip {clip.path.name} is empty, skipping transcription")
            return TranscriptionResult(text="", source=clip.path)

        result = await self._transcribe(clip)
        logger.info(f"Transcribed {clip.path.name}: {result.text[:100]!r}")
        return result

    @abstractmethod
    async def _transcribe(self, clip: AudioClip) -> TranscriptionResult:
        """Backend-specific transcription."""


class OpenAITranscriber(Transcriber):
    """Sends clips to the OpenAI audio transcription endpoint."""

    def __init__(self, client: AsyncOpenAI, config: TranscriptionConfig):
        self.client = client
        self.model = config.model

    async def _transcribe(self, clip: AudioClip) -> TranscriptionResult:
        try:
            with open(clip.path, "rb") as audio_file:
                transcription = await self.client.audio.transcriptions.create(
                    file=audio_file,
                    model=self.model,
                )
        except OSError as e:
            raise IOFailure(f"File read error: {e}") from e
        except openai.OpenAIError as e:
            logger.error(f"Transcription request failed: {e}")
            raise ServiceError(
                f"Transcription failed: {e}", service=SERVICE_NAME
            ) from e

        return TranscriptionResult(
            text=transcription.text or "",
            source=clip.path,
            duration=clip.duration_s,
        )


class WhisperTranscriber(Transcriber):
    """Transcribes clips locally with faster-whisper."""

    def __init__(self, config: TranscriptionConfig):
        self.config = config
        self._model: Optional[WhisperModel] = None

    def load_model(self) -> bool:
        """Load the Whisper model.

        Returns:
            True if model loaded successfully, False otherwise.
        """
        if self._model:
            logger.warning("Model already loaded")
            return True

        try:
            logger.info(
                f"Loading Whisper model '{self.config.whisper_model}' "
                f"(Device: {self.config.device}, "
                f"Compute: {self.config.compute_type}, "
                f"CPU threads: {self.config.cpu_threads})"
            )
            self._model = WhisperModel(
                self.config.whisper_model,
                device=self.config.device,
                compute_type=self.config.compute_type,
                download_root=None,  # Use default location
                cpu_threads=self.config.cpu_threads,
            )
            logger.info("Whisper model loaded successfully")
            return True

        except Exception as e:
            logger.exception(f"Failed to load Whisper model: {e}")
            self._model = None
            return False

    def _run_transcription(self, path: Path) -> TranscriptionResult:
        """Run transcription in a thread."""
        segments_generator, info = self._model.transcribe(
            str(path),
            language=self.config.language,
            beam_size=self.config.beam_size,
        )

        segments = list(segments_generator)
        full_text = " ".join(seg.text.strip() for seg in segments).strip()

        return TranscriptionResult(
            text=full_text,
            source=path,
            language=info.language,
            duration=info.duration,
        )

    async def _transcribe(self, clip: AudioClip) -> TranscriptionResult:
        if not self._model:
            raise ServiceError("Whisper model not loaded", service=SERVICE_NAME)

        try:
            return await asyncio.to_thread(self._run_transcription, clip.path)
        except Exception as e:
            logger.exception("Error during transcription")
            raise ServiceError(
                f"Transcription failed: {e}", service=SERVICE_NAME
            ) from e


def create_transcriber(
    config: TranscriptionConfig, client: Optional[AsyncOpenAI] = None
) -> Transcriber:
    """Build the configured transcription backend.

    Raises:
        ServiceError: The local model could not be loaded, or no client was
            supplied for the OpenAI backend.
    """
    if config.backend == "whisper":
        transcriber = WhisperTranscriber(config)
        if not transcriber.load_model():
            raise ServiceError("Failed to load Whisper model", service=SERVICE_NAME)
        return transcriber

    if client is None:
        raise ServiceError("OpenAI client is required", service=SERVICE_NAME)
    logger.info(f"Using OpenAI transcription model '{config.model}'")
    return OpenAITranscriber(client, config)
