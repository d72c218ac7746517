"""Main entry point for ridevoice."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import openai
from dotenv import load_dotenv
from openai import AsyncOpenAI

from .audio_capture import AudioRecorder
from .config import AppConfig, load_config
from .console import ConsoleReporter
from .errors import RideVoiceError
from .executor import IntentExecutor
from .intents import IntentExtractor
from .logging_setup import setup_logging
from .orchestrator import PipelineOrchestrator
from .state import PipelineStateManager
from .transcriber import create_transcriber
from .wake import WakePhraseMatcher, WakePhraseSet

logger = logging.getLogger(__name__)

__all__ = ["run"]  # Export the run function


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ridevoice",
        description="Listen for a wake phrase, then turn a spoken command into a ride intent.",
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to a TOML config file."
    )
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Re-arm after each run instead of exiting after one.",
    )
    return parser.parse_args(argv)


def build_orchestrator(
    config: AppConfig, client: AsyncOpenAI, reporter: ConsoleReporter
) -> PipelineOrchestrator:
    """Construct all pipeline components from configuration."""
    phrase_set = WakePhraseSet(config.wake.phrases)
    logger.info(f"Loaded {len(phrase_set)} wake phrases")

    return PipelineOrchestrator(
        config=config,
        recorder=AudioRecorder(config.audio),
        transcriber=create_transcriber(config.transcription, client),
        matcher=WakePhraseMatcher(phrase_set),
        extractor=IntentExtractor(client, config.intent, reporter),
        executor=IntentExecutor(reporter),
        reporter=reporter,
        state_manager=PipelineStateManager(),
    )


async def main(argv: Optional[List[str]] = None) -> int:
    """Main function.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = parse_args(argv)

    # Load configuration first
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    if args.loop:
        config.daemon.loop_forever = True

    setup_logging(config.daemon.log_level, config.daemon.computed_log_file)
    logger.info("Starting ridevoice...")

    # Picks up OPENAI_API_KEY from a .env file if present
    load_dotenv()
    reporter = ConsoleReporter()

    try:
        client = AsyncOpenAI(
            api_key=config.openai.api_key, timeout=config.openai.timeout_s
        )
    except openai.OpenAIError as e:
        logger.error(f"Failed to create OpenAI client: {e}")
        reporter.error(e)
        return 1

    try:
        orchestrator = build_orchestrator(config, client, reporter)

        if config.daemon.loop_forever:
            stop_event = asyncio.Event()

            def handle_signal(sig: int) -> None:
                sig_name = signal.Signals(sig).name
                logger.info(f"Received signal {sig_name}, initiating shutdown...")
                stop_event.set()

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

            await orchestrator.run_forever(stop_event)
        else:
            await orchestrator.run_once()

    except RideVoiceError as e:
        logger.error(f"Run aborted: {e}")
        reporter.error(e)
        return 1

    finally:
        await client.close()
        logger.info("ridevoice shutdown complete")

    return 0


def run() -> NoReturn:
    """Entry point for the command line."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        # Fallback logger in case of early failure
        logging.basicConfig()
        logger.exception(f"ridevoice failed with unhandled exception: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
