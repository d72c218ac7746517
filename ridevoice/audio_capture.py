"""Audio capture module."""

import asyncio
import logging
import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

import numpy as np
import soundfile as sf

from .config import AudioConfig, CaptureProfile
from .errors import SOX_REMEDIATION, DeviceUnavailable, IOFailure

logger = logging.getLogger(__name__)

NUM_CHANNELS = 1
BYTES_PER_SAMPLE = 2  # Signed 16-bit

# Define a buffer size for reading from stdout
BUFFER_SIZE = 4096

# Conversion factor for s16 to float32
INT16_TO_FLOAT32 = 1.0 / 32768.0

# Silence is evaluated over 10ms frames
FRAMES_PER_SECOND = 100

PIPEWIRE_REMEDIATION = (
    "pw-record not found. Please ensure PipeWire is installed and on PATH."
)


class StopReason(str, Enum):
    """Why a recording ended."""

    SILENCE = "silence"
    TIMEOUT = "timeout"
    END_OF_STREAM = "end_of_stream"


@dataclass
class AudioClip:
    """A finished recording stored as a WAV file."""

    path: Path
    sample_rate: int
    num_samples: int
    stop_reason: StopReason
    released: bool = False

    @property
    def duration_s(self) -> float:
        return self.num_samples / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return self.num_samples == 0

    def release(self) -> None:
        """Delete the backing file. Failures are logged and ignored."""
        if self.released:
            return
        self.released = True
        try:
            self.path.unlink(missing_ok=True)
            logger.debug(f"Released clip {self.path}")
        except OSError as e:
            logger.debug(f"Could not delete clip {self.path}: {e}")


class SilenceDetector:
    """Tracks trailing silence in a stream of s16 audio.

    Silence only counts once sound above the threshold has been heard, so a
    recording is never cut short before the speaker starts talking.
    """

    def __init__(self, profile: CaptureProfile, sample_rate: int):
        self.level = profile.threshold / 100.0
        self.frame_size = max(1, sample_rate // FRAMES_PER_SECOND)
        self.frames_needed = max(
            1, math.ceil(round(profile.silence_duration_s * sample_rate) / self.frame_size)
        )

        self._pending = b""
        self._heard_sound = False
        self._silent_frames = 0

    @property
    def heard_sound(self) -> bool:
        return self._heard_sound

    def feed(self, data: bytes) -> bool:
        """Consume raw audio.

        Returns:
            True once a full trailing-silence window has been observed.
        """
        data = self._pending + data
        frame_bytes = self.frame_size * BYTES_PER_SAMPLE
        usable = len(data) - len(data) % frame_bytes
        self._pending = data[usable:]
        if not usable:
            return False

        frames = np.frombuffer(data[:usable], dtype=np.int16).reshape(
            -1, self.frame_size
        )
        # Widen before abs() so -32768 does not overflow
        peaks = np.abs(frames.astype(np.int32)).max(axis=1) * INT16_TO_FLOAT32

        for loud in peaks >= self.level:
            if loud:
                self._heard_sound = True
                self._silent_frames = 0
            elif self._heard_sound:
                self._silent_frames += 1
                if self._silent_frames >= self.frames_needed:
                    return True
        return False


class AudioRecorder:
    """Records one clip at a time from an external capture program."""

    def __init__(self, config: AudioConfig):
        """Initialize the recorder.

        Args:
            config: Capture backend configuration.
        """
        self.audio_config = config
        self.sample_rate = config.sample_rate

    def _build_command(self) -> List[str]:
        """Construct a command that writes raw s16 mono audio to stdout."""
        if self.audio_config.record_program == "pw-record":
            return [
                "pw-record",
                f"--target={self.audio_config.target}",
                f"--rate={self.sample_rate}",
                "--format=s16",
                f"--channels={NUM_CHANNELS}",
                "-",
            ]

        return [
            "sox",
            "--no-show-progress",
            "--default-device",
            "--type=raw",
            f"--rate={self.sample_rate}",
            "--encoding=signed-integer",
            "--bits=16",
            f"--channels={NUM_CHANNELS}",
            "-",
        ]

    def _remediation(self) -> str:
        if self.audio_config.record_program == "pw-record":
            return PIPEWIRE_REMEDIATION
        return SOX_REMEDIATION

    async def _start_process(self) -> asyncio.subprocess.Process:
        command = self._build_command()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            logger.error(f"'{command[0]}' command not found.")
            raise DeviceUnavailable(
                f"{command[0]} ENOENT: {e}", remediation=self._remediation()
            ) from e
        except OSError as e:
            logger.exception(f"Failed to start {command[0]} process.")
            raise DeviceUnavailable(
                f"Mic stream error: {e}", remediation=self._remediation()
            ) from e

        logger.info(f"Started {command[0]} process with PID: {process.pid}")
        return process

    async def _stop_process(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=2.0)
            logger.info("Capture process terminated.")
        except asyncio.TimeoutError:
            logger.warning("Timeout waiting for capture process to terminate, killing.")
            process.kill()
        except ProcessLookupError:
            pass  # Process already finished

    async def _read_until_stop(
        self,
        process: asyncio.subprocess.Process,
        profile: CaptureProfile,
        chunks: List[bytes],
    ) -> StopReason:
        """Buffer audio until silence, end of stream or the hard timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + profile.max_duration_s
        max_bytes = int(profile.max_duration_s * self.sample_rate) * BYTES_PER_SAMPLE
        detector = SilenceDetector(profile, self.sample_rate)
        total = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return StopReason.TIMEOUT

            try:
                data = await asyncio.wait_for(
                    process.stdout.read(BUFFER_SIZE), timeout=remaining
                )
            except asyncio.TimeoutError:
                return StopReason.TIMEOUT

            if not data:
                return StopReason.END_OF_STREAM

            chunks.append(data)
            total += len(data)
            if total >= max_bytes:
                return StopReason.TIMEOUT
            if detector.feed(data):
                return StopReason.SILENCE

    async def capture(self, profile: CaptureProfile, path: Path) -> AudioClip:
        """Record a single clip and store it as a WAV file.

        Args:
            profile: Stop conditions for this recording.
            path: Where to write the clip.

        Returns:
            The finished clip. A hard timeout is a normal stop, not an error.

        Raises:
            DeviceUnavailable: The capture program could not be started.
            IOFailure: The clip could not be written.
        """
        logger.info(
            f"Starting capture with {self.audio_config.record_program} "
            f"(Silence: {profile.silence_duration_s}s, Max: {profile.max_duration_s}s)"
        )
        chunks: List[bytes] = []
        process = await self._start_process()

        try:
            if not process.stdout:
                raise DeviceUnavailable(
                    "Mic stream error: capture process has no stdout",
                    remediation=self._remediation(),
                )
            stop_reason = await self._read_until_stop(process, profile, chunks)
        finally:
            await self._stop_process(process)

        if (
            stop_reason == StopReason.END_OF_STREAM
            and not chunks
            and process.returncode
        ):
            raise DeviceUnavailable(
                f"Mic stream error: capture process exited with code {process.returncode}",
                remediation=self._remediation(),
            )

        audio = self._to_samples(chunks, profile)
        logger.info(
            f"Capture stopped ({stop_reason.value}): {len(audio)} samples "
            f"({len(audio) / self.sample_rate:.1f}s)"
        )
        self._write_clip(path, audio)

        return AudioClip(
            path=path,
            sample_rate=self.sample_rate,
            num_samples=len(audio),
            stop_reason=stop_reason,
        )

    def _to_samples(self, chunks: List[bytes], profile: CaptureProfile) -> np.ndarray:
        raw = b"".join(chunks)
        max_bytes = int(profile.max_duration_s * self.sample_rate) * BYTES_PER_SAMPLE
        usable = min(len(raw) - len(raw) % BYTES_PER_SAMPLE, max_bytes)
        return np.frombuffer(raw[:usable], dtype=np.int16)

    def _write_clip(self, path: Path, audio: np.ndarray) -> None:
        try:
            sf.write(str(path), audio, self.sample_rate, subtype="PCM_16")
        except (OSError, RuntimeError) as e:
            logger.error(f"Failed to write clip {path}: {e}")
            try:
                path.unlink(missing_ok=True)
            except OSError:
                pass  # Best effort
            raise IOFailure(f"File write error: {e}") from e
        logger.debug(f"Wrote clip {path}")

