"""Base reviewer implementing the Template Method pattern.

All providers share the same call algorithm:
    review(prompt) → _call_with_retry() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

The reviewer returns raw text only. Recovering JSON from that text is the
pipeline's job (prmentor_core.response), so every provider gets the same
tolerance for fenced or malformed output.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

# Shared defaults — subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 8192


class BaseReviewer(ABC):
    MODEL: str = ""
    TEMPERATURE: float = 0.3
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS

    def __init__(self, model_name: str | None = None):
        self.model = model_name or self.MODEL

    def review(self, prompt: str) -> str | None:
        """Send ``prompt`` to the model and return its raw text, or None if every attempt failed."""
        return self._call_with_retry(prompt)

    @abstractmethod
    def _call_api(self, prompt: str) -> str:
        """Make a single API call and return the raw text response.

        It should raise on failure — _call_with_retry handles retries and logging.
        """

    def _call_with_retry(self, prompt: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        return None
