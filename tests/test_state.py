"""Tests for pipeline phase tracking."""

from unittest.mock import Mock

import pytest

from ridevoice.state import InvalidTransition, PipelinePhase, PipelineStateManager


@pytest.fixture
def manager():
    """Create a state manager."""
    return PipelineStateManager()


def test_initial_state(manager):
    """The pipeline starts idle without an error."""
    assert manager.current_state == PipelinePhase.IDLE
    assert manager.last_error is None
    assert manager.get_status() == ("Idle", None)


def test_full_cycle(manager):
    """A matched run walks the whole chain back to Idle."""
    observer = Mock()
    manager.add_observer(observer)

    chain = [
        PipelinePhase.AWAITING_ACTIVATION_AUDIO,
        PipelinePhase.TRANSCRIBING_ACTIVATION,
        PipelinePhase.CHECKING_WAKE_PHRASE,
        PipelinePhase.AWAITING_COMMAND_AUDIO,
        PipelinePhase.TRANSCRIBING_COMMAND,
        PipelinePhase.EXTRACTING_INTENT,
        PipelinePhase.EXECUTING,
        PipelinePhase.CLEANUP,
        PipelinePhase.IDLE,
    ]
    for phase in chain:
        manager.set_state(phase)

    assert [c.args[0] for c in observer.call_args_list] == chain


def test_unmatched_returns_to_idle(manager):
    """Checking the wake phrase may go straight back to Idle."""
    manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)
    manager.set_state(PipelinePhase.TRANSCRIBING_ACTIVATION)
    manager.set_state(PipelinePhase.CHECKING_WAKE_PHRASE)
    manager.set_state(PipelinePhase.IDLE)
    assert manager.current_state == PipelinePhase.IDLE


def test_command_phase_requires_wake_check(manager):
    """The command phase cannot start before the wake phrase check."""
    manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)
    with pytest.raises(InvalidTransition):
        manager.set_state(PipelinePhase.AWAITING_COMMAND_AUDIO)


def test_executing_must_clean_up(manager):
    """Executing can only advance to Cleanup."""
    for phase in [
        PipelinePhase.AWAITING_ACTIVATION_AUDIO,
        PipelinePhase.TRANSCRIBING_ACTIVATION,
        PipelinePhase.CHECKING_WAKE_PHRASE,
        PipelinePhase.AWAITING_COMMAND_AUDIO,
        PipelinePhase.TRANSCRIBING_COMMAND,
        PipelinePhase.EXTRACTING_INTENT,
        PipelinePhase.EXECUTING,
    ]:
        manager.set_state(phase)

    with pytest.raises(InvalidTransition):
        manager.set_state(PipelinePhase.IDLE)


def test_set_state_type_check(manager):
    """Only PipelinePhase values are accepted."""
    with pytest.raises(TypeError):
        manager.set_state("Idle")


def test_aborted_run_rests_in_idle(manager):
    """An abort goes through Cleanup back to Idle and keeps the error message."""
    observer = Mock()
    manager.add_observer(observer)

    manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)
    manager.set_state(PipelinePhase.CLEANUP)
    manager.set_state(PipelinePhase.IDLE)
    manager.set_error("sox ENOENT")

    assert manager.get_status() == ("Idle", "sox ENOENT")
    observer.assert_called_with(PipelinePhase.IDLE, "sox ENOENT")

    manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)
    assert manager.last_error is None


def test_cleanup_only_returns_to_idle(manager):
    """Cleanup cannot skip ahead to a new capture."""
    manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)
    manager.set_state(PipelinePhase.CLEANUP)

    with pytest.raises(InvalidTransition):
        manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)


def test_observer_errors_are_contained(manager):
    """A failing observer does not break state management."""
    manager.add_observer(Mock(side_effect=RuntimeError("observer failed")))
    good = Mock()
    manager.add_observer(good)

    manager.set_state(PipelinePhase.AWAITING_ACTIVATION_AUDIO)

    good.assert_called_once_with(PipelinePhase.AWAITING_ACTIVATION_AUDIO, None)
