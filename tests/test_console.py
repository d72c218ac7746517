"""Tests for console reporting."""

import io

from ridevoice.audio_capture import StopReason
from ridevoice.console import GENERIC_REMEDIATION, ConsoleReporter
from ridevoice.errors import SOX_REMEDIATION, DeviceUnavailable, ServiceError


def test_progress_lines():
    """Each event prints one line."""
    out = io.StringIO()
    reporter = ConsoleReporter(stream=out)

    reporter.activation_prompt()
    reporter.recording_stopped(StopReason.SILENCE)
    reporter.recording_stopped(StopReason.TIMEOUT)
    reporter.unmatched("Hey Snap")

    assert out.getvalue().splitlines() == [
        "🎙️ Say Hey Snapp to activate",
        "🛑 Recording stopped (silence detected).",
        "🛑 Recording stopped (timeout).",
        "Please add the text to the wake phrases: => Hey Snap",
    ]


def test_error_with_remediation():
    """Device errors print their own remediation."""
    out, err = io.StringIO(), io.StringIO()
    reporter = ConsoleReporter(stream=out, err_stream=err)

    reporter.error(DeviceUnavailable("sox ENOENT", remediation=SOX_REMEDIATION))

    assert err.getvalue().splitlines() == ["App error: sox ENOENT", SOX_REMEDIATION]
    assert out.getvalue() == ""


def test_error_with_generic_hint():
    """Other errors get the generic capture hint."""
    err = io.StringIO()
    ConsoleReporter(err_stream=err).error(ServiceError("unauthorized"))

    assert err.getvalue().splitlines() == ["App error: unauthorized", GENERIC_REMEDIATION]


def test_defaults_to_stdout(capsys):
    """Without a stream the reporter prints to stdout."""
    ConsoleReporter().transcript("book a ride")
    assert capsys.readouterr().out == "🗣️ Transcribed Text: book a ride\n"
