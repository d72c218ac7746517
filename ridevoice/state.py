"""Pipeline phase tracking."""

import logging
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

logger = logging.getLogger(__name__)


class PipelinePhase(str, Enum):
    """Phases of a pipeline run."""

    IDLE = "Idle"
    AWAITING_ACTIVATION_AUDIO = "AwaitingActivationAudio"
    TRANSCRIBING_ACTIVATION = "TranscribingActivation"
    CHECKING_WAKE_PHRASE = "CheckingWakePhrase"
    AWAITING_COMMAND_AUDIO = "AwaitingCommandAudio"
    TRANSCRIBING_COMMAND = "TranscribingCommand"
    EXTRACTING_INTENT = "ExtractingIntent"
    EXECUTING = "Executing"
    CLEANUP = "Cleanup"


# Every non-terminal stage may fall through to CLEANUP when a run aborts
ALLOWED_TRANSITIONS: Dict[PipelinePhase, FrozenSet[PipelinePhase]] = {
    PipelinePhase.IDLE: frozenset({PipelinePhase.AWAITING_ACTIVATION_AUDIO}),
    PipelinePhase.AWAITING_ACTIVATION_AUDIO: frozenset(
        {PipelinePhase.TRANSCRIBING_ACTIVATION, PipelinePhase.CLEANUP}
    ),
    PipelinePhase.TRANSCRIBING_ACTIVATION: frozenset(
        {PipelinePhase.CHECKING_WAKE_PHRASE, PipelinePhase.CLEANUP}
    ),
    PipelinePhase.CHECKING_WAKE_PHRASE: frozenset(
        {PipelinePhase.IDLE, PipelinePhase.AWAITING_COMMAND_AUDIO}
    ),
    PipelinePhase.AWAITING_COMMAND_AUDIO: frozenset(
        {PipelinePhase.TRANSCRIBING_COMMAND, PipelinePhase.CLEANUP}
    ),
    PipelinePhase.TRANSCRIBING_COMMAND: frozenset(
        {PipelinePhase.EXTRACTING_INTENT, PipelinePhase.CLEANUP}
    ),
    PipelinePhase.EXTRACTING_INTENT: frozenset(
        {PipelinePhase.EXECUTING, PipelinePhase.CLEANUP}
    ),
    PipelinePhase.EXECUTING: frozenset({PipelinePhase.CLEANUP}),
    PipelinePhase.CLEANUP: frozenset({PipelinePhase.IDLE}),
}


class InvalidTransition(Exception):
    """Raised when a phase change is not part of the pipeline state machine."""


class PipelineStateManager:
    """Manages the current phase of the pipeline."""

    def __init__(self):
        """Initialize state manager with IDLE state."""
        self._state: PipelinePhase = PipelinePhase.IDLE
        self._last_error: Optional[str] = None
        self._observers: List[Callable[[PipelinePhase, Optional[str]], Any]] = []

    @property
    def current_state(self) -> PipelinePhase:
        """Get the current phase."""
        return self._state

    @property
    def last_error(self) -> Optional[str]:
        """Get the last error message, if any."""
        return self._last_error

    def add_observer(
        self, observer: Callable[[PipelinePhase, Optional[str]], Any]
    ) -> None:
        """Add an observer callback for state changes.

        The callback receives the new state and optional error message.
        """
        self._observers.append(observer)

    def _notify_observers(self) -> None:
        """Notify all observers of the current state."""
        for observer in self._observers:
            try:
                observer(self._state, self._last_error)
            except Exception:
                # Don't let observer errors break state management
                logger.exception("State observer failed")

    def set_state(self, new_state: PipelinePhase) -> None:
        """Move the pipeline to a new phase.

        Args:
            new_state: The phase to enter.

        Raises:
            TypeError: If the provided state is not a valid PipelinePhase.
            InvalidTransition: If the pipeline cannot move there from the
                current phase.
        """
        if not isinstance(new_state, PipelinePhase):
            raise TypeError(f"State must be a PipelinePhase, got {type(new_state)}")

        if self._state == new_state:
            return

        if new_state not in ALLOWED_TRANSITIONS[self._state]:
            raise InvalidTransition(
                f"Cannot move from {self._state.value} to {new_state.value}"
            )

        self._last_error = None
        logger.debug(f"Phase: {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._notify_observers()

    def set_error(self, message: str) -> None:
        """Record why the last run aborted.

        The phase is left unchanged. The message is kept until the next
        transition.

        Args:
            message: The error message to store.
        """
        if self._last_error == message:
            return
        self._last_error = message
        self._notify_observers()

    def get_status(self) -> Tuple[str, Optional[str]]:
        """Get the current status and last error message.

        Returns:
            A tuple containing the current state value (as a string) and the last error
            message (if any).
        """
        return self.current_state.value, self.last_error
