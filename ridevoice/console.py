"""Human-readable progress lines printed while a run progresses."""

import sys
from typing import Optional, TextIO

from .audio_capture import StopReason

GENERIC_REMEDIATION = (
    "If this mentions `sox ENOENT`, install SoX and ensure PATH is set."
)


class ConsoleReporter:
    """Prints one line per pipeline event.

    Streams default to the current sys.stdout/sys.stderr at call time.
    """

    def __init__(self, stream: Optional[TextIO] = None, err_stream: Optional[TextIO] = None):
        self._stream = stream
        self._err_stream = err_stream

    def _emit(self, line: str) -> None:
        print(line, file=self._stream or sys.stdout, flush=True)

    def _emit_error(self, line: str) -> None:
        print(line, file=self._err_stream or sys.stderr, flush=True)

    def activation_prompt(self) -> None:
        self._emit("🎙️ Say Hey Snapp to activate")

    def command_prompt(self) -> None:
        self._emit("🎙️ Hi, what can we do for you today?")

    def recording_stopped(self, reason: StopReason) -> None:
        if reason == StopReason.SILENCE:
            self._emit("🛑 Recording stopped (silence detected).")
        elif reason == StopReason.TIMEOUT:
            self._emit("🛑 Recording stopped (timeout).")
        else:
            self._emit("🛑 Recording stopped.")

    def activated(self) -> None:
        self._emit("🗣️ Activated!")

    def transcript(self, text: str) -> None:
        self._emit(f"🗣️ Transcribed Text: {text}")

    def intent_json(self, raw: str) -> None:
        self._emit(f"🧩 Intent JSON: {raw}")

    def unmatched(self, text: str) -> None:
        self._emit(f"Please add the text to the wake phrases: => {text}")

    def outcome(self, message: str) -> None:
        self._emit(message)

    def error(self, exc: Exception) -> None:
        """Report an aborted run with a remediation hint."""
        self._emit_error(f"App error: {exc}")
        remediation = getattr(exc, "remediation", None)
        self._emit_error(remediation or GENERIC_REMEDIATION)
