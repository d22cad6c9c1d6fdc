"""
Provider client interface.

Every LLM backend takes one text prompt and returns the raw reply text.
"""

from typing import Protocol

from suggestion_engine.storage.models import Provider

SYSTEM_PROMPT = (
    "You are an expert prompt engineer specialized in creating high-quality, "
    "actionable prompts. Always answer with a single JSON object."
)


class LLMClient(Protocol):
    """A provider the generator can call."""

    name: Provider

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the reply text.

        Raises:
            ProviderFailure: On any API or network error
        """
        ...
