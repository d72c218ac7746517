"""Error types that abort a pipeline run."""

from typing import Optional

SOX_REMEDIATION = (
    "SoX not found. Install with `brew install sox` (macOS) or "
    "`apt install sox` (Debian/Ubuntu) and ensure it's on PATH."
)


class RideVoiceError(Exception):
    """Base class for errors that abort a pipeline run."""


class DeviceUnavailable(RideVoiceError):
    """The capture program or microphone could not be started."""

    def __init__(self, message: str, remediation: Optional[str] = None):
        super().__init__(message)
        self.remediation = remediation


class IOFailure(RideVoiceError):
    """A clip could not be written to or read from temporary storage."""


class ServiceError(RideVoiceError):
    """A transcription or language-understanding backend call failed."""

    def __init__(self, message: str, service: str = "unknown"):
        super().__init__(message)
        self.service = service
