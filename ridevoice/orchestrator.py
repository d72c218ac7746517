"""Sequences capture, transcription, wake matching and intent handling."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, TypeVar

from .audio_capture import AudioClip, AudioRecorder
from .config import AppConfig
from .console import ConsoleReporter
from .errors import DeviceUnavailable, RideVoiceError, ServiceError
from .executor import IntentExecutor
from .intents import Intent, IntentExtractor
from .state import PipelinePhase, PipelineStateManager
from .storage import ACTIVATION_CLIP, COMMAND_CLIP, RunStorage
from .transcriber import Transcriber
from .wake import WakePhraseMatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PipelineRun:
    """Transient state of one activation-to-execution cycle."""

    run_id: str
    phase: PipelinePhase = PipelinePhase.IDLE
    clips: List[AudioClip] = field(default_factory=list)
    activation_text: Optional[str] = None
    command_text: Optional[str] = None
    intent: Optional[Intent] = None

    def release_clips(self) -> None:
        for clip in self.clips:
            clip.release()


@dataclass
class RunOutcome:
    """What a finished run did."""

    run_id: str
    matched: bool
    activation_text: str
    command_text: Optional[str] = None
    intent: Optional[Intent] = None
    executed: bool = False
    message: Optional[str] = None


class PipelineOrchestrator:
    """Drives one pipeline run at a time through its phases."""

    def __init__(
        self,
        config: AppConfig,
        recorder: AudioRecorder,
        transcriber: Transcriber,
        matcher: WakePhraseMatcher,
        extractor: IntentExtractor,
        executor: IntentExecutor,
        reporter: ConsoleReporter,
        state_manager: Optional[PipelineStateManager] = None,
    ):
        self.config = config
        self.recorder = recorder
        self.transcriber = transcriber
        self.matcher = matcher
        self.extractor = extractor
        self.executor = executor
        self.reporter = reporter
        self.state_manager = state_manager or PipelineStateManager()

    def _enter(self, run: PipelineRun, phase: PipelinePhase) -> None:
        self.state_manager.set_state(phase)
        run.phase = phase

    async def _with_retries(
        self, stage: str, call: Callable[[], Awaitable[T]]
    ) -> T:
        """Run a service call, retrying ServiceError per the configured policy."""
        retries = self.config.daemon.service_retries
        attempt = 0
        while True:
            try:
                return await call()
            except ServiceError as e:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    f"{stage} failed ({e}), retry {attempt}/{retries} "
                    f"in {self.config.daemon.retry_delay_s}s"
                )
                await asyncio.sleep(self.config.daemon.retry_delay_s)

    async def _record(
        self, run: PipelineRun, storage: RunStorage, name: str, command: bool
    ) -> AudioClip:
        profile = self.config.command if command else self.config.activation
        clip = await self.recorder.capture(profile, storage.path_for(name))
        run.clips.append(clip)
        self.reporter.recording_stopped(clip.stop_reason)
        return clip

    async def _activation_phase(self, run: PipelineRun, storage: RunStorage) -> bool:
        self._enter(run, PipelinePhase.AWAITING_ACTIVATION_AUDIO)
        self.reporter.activation_prompt()
        clip = await self._record(run, storage, ACTIVATION_CLIP, command=False)

        self._enter(run, PipelinePhase.TRANSCRIBING_ACTIVATION)
        result = await self._with_retries(
            "Activation transcription", lambda: self.transcriber.transcribe(clip)
        )
        run.activation_text = result.text

        self._enter(run, PipelinePhase.CHECKING_WAKE_PHRASE)
        if self.matcher.matches(result.text):
            self.reporter.activated()
            return True

        self.reporter.unmatched(result.text)
        return False

    async def _command_phase(
        self, run: PipelineRun, storage: RunStorage
    ) -> RunOutcome:
        self._enter(run, PipelinePhase.AWAITING_COMMAND_AUDIO)
        self.reporter.command_prompt()
        clip = await self._record(run, storage, COMMAND_CLIP, command=True)

        self._enter(run, PipelinePhase.TRANSCRIBING_COMMAND)
        result = await self._with_retries(
            "Command transcription", lambda: self.transcriber.transcribe(clip)
        )
        run.command_text = result.text
        self.reporter.transcript(result.text)

        self._enter(run, PipelinePhase.EXTRACTING_INTENT)
        run.intent = await self._with_retries(
            "Intent extraction", lambda: self.extractor.extract(result.text)
        )

        self._enter(run, PipelinePhase.EXECUTING)
        executed, message = await self.executor.execute(run.intent)

        return RunOutcome(
            run_id=run.run_id,
            matched=True,
            activation_text=run.activation_text or "",
            command_text=run.command_text,
            intent=run.intent,
            executed=executed,
            message=message,
        )

    def _release(self, run: PipelineRun, storage: RunStorage) -> None:
        run.release_clips()
        storage.cleanup()

    async def run_once(self) -> RunOutcome:
        """Perform a single activation-to-execution cycle.

        Returns:
            The outcome of the run. A non-matching activation is a normal
            outcome with ``matched`` set to False.

        Raises:
            DeviceUnavailable, IOFailure, ServiceError: The run was aborted.
                All clips are released before the error propagates.
        """
        run = PipelineRun(run_id=uuid.uuid4().hex)
        storage = RunStorage(run.run_id, self.config.daemon.temp_dir)
        logger.info(f"Starting run {run.run_id}")

        try:
            if not await self._activation_phase(run, storage):
                self._release(run, storage)
                self._enter(run, PipelinePhase.IDLE)
                logger.info(f"Run {run.run_id} ended without activation")
                return RunOutcome(
                    run_id=run.run_id,
                    matched=False,
                    activation_text=run.activation_text or "",
                )

            outcome = await self._command_phase(run, storage)

            self._enter(run, PipelinePhase.CLEANUP)
            self._release(run, storage)
            self._enter(run, PipelinePhase.IDLE)
            logger.info(f"Run {run.run_id} finished (executed: {outcome.executed})")
            return outcome

        except RideVoiceError as e:
            logger.error(f"Run {run.run_id} aborted in {run.phase.value}: {e}")
            self._enter(run, PipelinePhase.CLEANUP)
            self._release(run, storage)
            self._enter(run, PipelinePhase.IDLE)
            self.state_manager.set_error(str(e))
            raise

        finally:
            # Covers cancellation and unexpected errors
            self._release(run, storage)

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Run cycles back to back until stop_event is set.

        Aborted runs are reported and the loop re-arms, except for
        DeviceUnavailable which is propagated.
        """
        while not stop_event.is_set():
            run_task = asyncio.create_task(self.run_once())
            stop_task = asyncio.create_task(stop_event.wait())
            try:
                await asyncio.wait(
                    {run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
            except asyncio.CancelledError:
                run_task.cancel()
                raise
            finally:
                stop_task.cancel()

            if not run_task.done():
                logger.info("Stop requested, cancelling the active run")
                run_task.cancel()
                try:
                    await run_task
                except asyncio.CancelledError:
                    pass
                break

            try:
                run_task.result()
            except DeviceUnavailable:
                raise
            except RideVoiceError as e:
                self.reporter.error(e)
                await asyncio.sleep(self.config.daemon.retry_delay_s)

        logger.info("Pipeline loop stopped")
