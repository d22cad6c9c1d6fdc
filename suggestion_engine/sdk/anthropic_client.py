"""
Anthropic provider client.

Sends suggestion prompts to the Messages API.
"""

import logging
from typing import Any, Optional

from anthropic import AsyncAnthropic

from ..core.errors import ProviderFailure
from ..storage.models import Provider
from .base import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class AnthropicClient:
    """Provider for structured and technical generation.

    Wraps AsyncAnthropic messages. Only text blocks of the reply are
    returned; errors are re-raised as ProviderFailure.
    """

    name = Provider.ANTHROPIC

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 3000,
        client: Optional[Any] = None,
    ):
        """Initialize Anthropic provider.

        Args:
            model: Claude model name (required)
            max_tokens: Reply budget per call
            client: Pre-built AsyncAnthropic client (built from ANTHROPIC_API_KEY if omitted)

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.max_tokens = max_tokens
        self.client = client if client is not None else AsyncAnthropic()

    async def complete(self, prompt: str) -> str:
        """Send one user message and return the concatenated text reply.

        Raises:
            ValueError: If prompt is empty
            ProviderFailure: If the API call fails or the reply has no text
        """
        if not prompt:
            raise ValueError("prompt is required and cannot be empty")

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise ProviderFailure(self.name.value, str(e), cause=e) from e

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text:
            raise ProviderFailure(self.name.value, "response contained no text")

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(f"{self.model} used {usage.input_tokens + usage.output_tokens} tokens")
        return text
