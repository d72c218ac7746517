"""Configuration handling for ridevoice."""

import os
import tomllib
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_WAKE_PHRASES = [
    "Hey Snapp",
    "Hei Snapp",
    "He Snapp",
    "Hey, Snap!",
    "Hey Snap!",
    "it's Snap.",
    "Hey, Snap.",
    "Hey, it's Snap.",
    "Hey You Snap",
    "Hey, you snap.",
]

DEFAULT_INTENT_PROMPT = (
    "You are an intent parser for a ride app. Return ONLY valid JSON: "
    '{"intent":..., "destination"?:..., "date"?..., "time"?...}.'
)


def get_default_config_path() -> Path:
    """Get the default config file path following the XDG base directory layout."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base_dir = Path(xdg_config)
    else:
        base_dir = Path.home() / ".config"

    return base_dir / "ridevoice" / "config.toml"


def get_default_log_path() -> Path:
    """Get the default log file path following the XDG base directory layout."""
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        base_dir = Path(xdg_state)
    else:
        base_dir = Path.home() / ".local" / "state"

    log_dir = base_dir / "ridevoice"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "ridevoice.log"


class AudioConfig(BaseModel):
    """Capture backend configuration."""

    record_program: Literal["sox", "pw-record"] = Field(
        default="sox", description="External program used to read the microphone."
    )
    target: str = Field(
        default="auto", description="PipeWire target node (pw-record only)."
    )
    sample_rate: int = Field(
        default=16000, gt=0, description="Capture sample rate in Hz."
    )


class CaptureProfile(BaseModel):
    """Stop conditions for a single recording."""

    threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=100.0,
        description="Silence threshold as a percentage of full scale.",
    )
    silence_duration_s: float = Field(
        default=3.0,
        gt=0,
        description="Trailing silence after speech that ends the recording (s).",
    )
    max_duration_s: float = Field(
        default=15.0, gt=0, description="Hard upper bound on recording length (s)."
    )


def _activation_profile() -> CaptureProfile:
    return CaptureProfile(silence_duration_s=0.2)


class TranscriptionConfig(BaseModel):
    """Speech-to-text configuration."""

    backend: Literal["openai", "whisper"] = Field(
        default="openai",
        description="Transcription backend (openai API or local faster-whisper).",
    )
    model: str = Field(
        default="whisper-1", description="Model identifier for the OpenAI backend."
    )
    whisper_model: str = Field(
        default="small.en",
        description="Local faster-whisper model identifier (e.g., small.en).",
    )
    device: str = Field(
        default="auto", description="Device for local inference (auto, cpu, cuda)."
    )
    compute_type: str = Field(
        default="auto",
        description="Compute type for local inference (auto, float32, float16, int8).",
    )
    language: Optional[str] = Field(
        default=None, description="Optional language code (empty for auto-detect)."
    )
    beam_size: int = Field(default=5, ge=1, description="Beam size for local search.")
    cpu_threads: int = Field(
        default=0, ge=0, description="Number of CPU threads for inference (0 = auto)."
    )

    @field_validator("model", "whisper_model")
    @classmethod
    def check_model_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Model identifier cannot be empty")
        return v


class IntentConfig(BaseModel):
    """Language-understanding configuration."""

    model: str = Field(default="gpt-5", description="Chat model used to parse intents.")
    system_prompt: str = Field(
        default=DEFAULT_INTENT_PROMPT,
        description="Instruction asking the model to return only JSON.",
    )


class OpenAIConfig(BaseModel):
    """OpenAI client configuration."""

    api_key: Optional[str] = Field(
        default=None, description="API key (falls back to OPENAI_API_KEY)."
    )
    timeout_s: float = Field(default=60.0, gt=0, description="Request timeout (s).")


class WakeConfig(BaseModel):
    """Wake phrase configuration."""

    phrases: List[str] = Field(
        default_factory=lambda: list(DEFAULT_WAKE_PHRASES),
        description="Exact transcripts accepted as an activation.",
    )

    @field_validator("phrases")
    @classmethod
    def check_phrases_not_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("At least one wake phrase is required")
        return v


class DaemonConfig(BaseModel):
    """Runtime configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    )
    log_file: Optional[Path] = Field(
        default=None, description="Optional custom log file path."
    )
    temp_dir: Optional[Path] = Field(
        default=None, description="Parent directory for per-run clip storage."
    )
    loop_forever: bool = Field(
        default=False,
        description="Re-arm after each run instead of exiting after one.",
    )
    service_retries: int = Field(
        default=0, ge=0, description="Retries for failed service calls per stage."
    )
    retry_delay_s: float = Field(
        default=1.0, ge=0, description="Delay between service call retries (s)."
    )

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in allowed_levels:
            raise ValueError(f"Invalid log level. Choose from {allowed_levels}")
        return upper_v

    @property
    def computed_log_file(self) -> Path:
        return self.log_file or get_default_log_path()


class AppConfig(BaseModel):
    """Root configuration."""

    audio: AudioConfig = Field(default_factory=AudioConfig)
    activation: CaptureProfile = Field(default_factory=_activation_profile)
    command: CaptureProfile = Field(default_factory=CaptureProfile)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    intent: IntentConfig = Field(default_factory=IntentConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    wake: WakeConfig = Field(default_factory=WakeConfig)
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load and validate configuration.

    If path is not provided, looks for config in standard locations.
    If no config file is found, returns default configuration.

    Args:
        path: Optional path to config file.

    Returns:
        Validated AppConfig instance.

    Raises:
        ValueError: If config file exists but has invalid format/content.
        OSError: If config file exists but can't be read.
    """
    if path is None:
        path = get_default_config_path()

    if not path.exists():
        return AppConfig()  # Use defaults

    try:
        with open(path, "rb") as f:
            config_data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Error decoding TOML file: {path}\n{e}") from e
    except OSError as e:
        raise OSError(f"Error reading file: {path}\n{e}") from e

    try:
        return AppConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
