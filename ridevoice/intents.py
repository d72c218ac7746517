"""Intent model and extraction from free-form command text."""

import json
import logging
from enum import Enum
from typing import Any, Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import IntentConfig
from .console import ConsoleReporter
from .errors import ServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "language-understanding"


class IntentKind(str, Enum):
    """Intent tags the executor knows how to act on."""

    BOOK_RIDE = "book_ride"
    REQUEST_RIDE = "request_ride"
    CANCEL_RIDE = "cancel_ride"
    GET_PRICE_ESTIMATE = "get_price_estimate"


class Intent(BaseModel):
    """Structured interpretation of a spoken command.

    The tag is carried in the ``intent`` key and must be a string. The
    contextual fields keep whatever JSON value the model returned, and
    additional keys are kept as extra fields.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    kind: Optional[str] = Field(default=None, alias="intent")
    destination: Any = None
    date: Any = None
    time: Any = None

    @property
    def recognized_kind(self) -> Optional[IntentKind]:
        """The tag as an IntentKind, or None if absent or unknown."""
        if self.kind is None:
            return None
        try:
            return IntentKind(self.kind)
        except ValueError:
            return None


def parse_intent(raw: str) -> Optional[Intent]:
    """Parse a model response into an Intent.

    Returns None for anything that is not a JSON object, or whose tag is
    not a string. Never raises.
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        logger.info("Intent response is not valid JSON")
        return None

    if not isinstance(data, dict):
        logger.info(f"Intent response is JSON but not an object: {type(data).__name__}")
        return None

    try:
        return Intent.model_validate(data)
    except (ValidationError, RecursionError) as e:
        logger.info(f"Intent response has an unusable tag: {e}")
        return None


class IntentExtractor:
    """Asks a chat model to turn command text into an Intent."""

    def __init__(
        self,
        client: AsyncOpenAI,
        config: IntentConfig,
        reporter: Optional[ConsoleReporter] = None,
    ):
        self.client = client
        self.config = config
        self.reporter = reporter

    async def _complete(self, text: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": self.config.system_prompt},
                    {"role": "user", "content": text},
                ],
            )
        except openai.OpenAIError as e:
            logger.error(f"Intent request failed: {e}")
            raise ServiceError(
                f"Intent extraction failed: {e}", service=SERVICE_NAME
            ) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def extract(self, text: str) -> Optional[Intent]:
        """Extract an intent from command text.

        Returns:
            The parsed Intent, or None if the model output could not be
            understood.

        Raises:
            ServiceError: Only for transport or auth failures of the call.
        """
        if not text.strip():
            logger.info("Empty command text, nothing to extract")
            return None

        raw = await self._complete(text)
        logger.debug(f"Raw intent response: {raw!r}")
        if self.reporter:
            self.reporter.intent_json(raw)

        intent = parse_intent(raw)
        if intent is None:
            logger.warning("Could not understand the command")
        else:
            logger.info(f"Extracted intent: {intent.kind}")
        return intent
