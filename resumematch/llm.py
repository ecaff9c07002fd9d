"""
Language-model client.

The tailoring pipeline only needs free text back for a prompt, so the
interface is a single ``generate`` coroutine.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
import httpx
from loguru import logger

from .config import DEFAULT_MODEL
from .exceptions import ServiceUnavailable


class TextCompletionClient(ABC):
    """Anything that turns a prompt into reply text."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the reply text. Transport failures raise ServiceUnavailable."""


class AnthropicClient(TextCompletionClient):
    """Claude-backed text completion."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 3000,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable required")

        self.model = model
        self.max_tokens = max_tokens
        self.client = anthropic.AsyncAnthropic(api_key=self.api_key)

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}]
            )
        except anthropic.APIConnectionError as e:
            logger.error(f"Language model unreachable: {e}")
            raise ServiceUnavailable("Language model service is unreachable", cause=e) from e
        except anthropic.APIStatusError as e:
            logger.error(f"Language model returned HTTP {e.status_code}: {e}")
            raise ServiceUnavailable(
                f"Language model service failed with status {e.status_code}", cause=e
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Language model transport error: {e}")
            raise ServiceUnavailable("Language model transport error", cause=e) from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
