"""Placeholder actions for recognized intents."""

import logging
from typing import Awaitable, Callable, Dict, Optional, Tuple

from .console import ConsoleReporter
from .intents import Intent, IntentKind

logger = logging.getLogger(__name__)

NO_DESTINATION = "(no destination provided)"


async def book_ride(intent: Intent) -> str:
    message = f"📆 Booking ride to: {intent.destination or NO_DESTINATION}"
    if intent.date and intent.time:
        message += f" for {intent.date} at {intent.time}"
    return message


async def request_ride(intent: Intent) -> str:
    return f"🚗 Request ride to: {intent.destination or NO_DESTINATION}"


async def cancel_ride(intent: Intent) -> str:
    return "❌ Ride cancelled."


async def get_price_estimate(intent: Intent) -> str:
    return f"💰 Getting price estimate to: {intent.destination or NO_DESTINATION}"


IntentHandler = Callable[[Intent], Awaitable[str]]

DEFAULT_HANDLERS: Dict[IntentKind, IntentHandler] = {
    IntentKind.BOOK_RIDE: book_ride,
    IntentKind.REQUEST_RIDE: request_ride,
    IntentKind.CANCEL_RIDE: cancel_ride,
    IntentKind.GET_PRICE_ESTIMATE: get_price_estimate,
}


class IntentExecutor:
    """Dispatches intents to their handlers."""

    def __init__(
        self,
        reporter: ConsoleReporter,
        handlers: Optional[Dict[IntentKind, IntentHandler]] = None,
    ):
        """Initialize the executor.

        Args:
            reporter: Where execution results are reported.
            handlers: Optional handler table (defaults to the ride actions).
        """
        self.reporter = reporter
        self.handlers = dict(DEFAULT_HANDLERS if handlers is None else handlers)

    async def execute(self, intent: Optional[Intent]) -> Tuple[bool, str]:
        """Execute an intent.

        Null intents and unknown tags are no-ops, not errors.

        Returns:
            Tuple of (executed, message)
            - executed: True if a handler ran successfully
            - message: The reported result line
        """
        success, message = await self._dispatch(intent)
        self.reporter.outcome(message)
        return success, message

    async def _dispatch(self, intent: Optional[Intent]) -> Tuple[bool, str]:
        if intent is None or not intent.kind:
            logger.info("No valid command to execute")
            return False, "❌ No valid command."

        kind = intent.recognized_kind
        handler = self.handlers.get(kind) if kind else None
        if handler is None:
            logger.info(f"Unknown intent: {intent.kind}")
            return False, f"🤷 Unknown intent: {intent.kind}"

        try:
            message = await handler(intent)
        except Exception as e:
            logger.exception(f"Error executing intent {kind.value}: {e}")
            return False, f"❌ Could not {kind.value.replace('_', ' ')}: {e}"

        logger.info(f"Executed intent {kind.value}")
        return True, message
