"""
OpenAI provider client.

Sends suggestion prompts to chat completions in JSON mode.
"""

import logging
from typing import Any, Optional

from openai import AsyncOpenAI

from ..core.errors import ProviderFailure
from ..storage.models import Provider
from .base import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Provider for creative and trending generation.

    Wraps AsyncOpenAI chat completions. Errors are re-raised as
    ProviderFailure so callers handle a single exception type.
    """

    name = Provider.OPENAI

    def __init__(
        self,
        model: str = "gpt-4o",
        max_tokens: int = 3000,
        client: Optional[Any] = None,
    ):
        """Initialize OpenAI provider.

        Args:
            model: OpenAI model name (required)
            max_tokens: Reply budget per call
            client: Pre-built AsyncOpenAI client (built from OPENAI_API_KEY if omitted)

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.max_tokens = max_tokens
        self.client = client if client is not None else AsyncOpenAI()

    async def complete(self, prompt: str) -> str:
        """Create a JSON-mode chat completion for one prompt.

        Args:
            prompt: User prompt text

        Returns:
            Reply content ('{"suggestions": []}' if the model sent none)

        Raises:
            ValueError: If prompt is empty
            ProviderFailure: If the API call fails
        """
        if not prompt:
            raise ValueError("prompt is required and cannot be empty")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise ProviderFailure(self.name.value, str(e), cause=e) from e

        if not response.choices:
            raise ProviderFailure(self.name.value, "response contained no choices")

        content = response.choices[0].message.content
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(f"{self.model} used {usage.total_tokens} tokens")
        return content or '{"suggestions": []}'
