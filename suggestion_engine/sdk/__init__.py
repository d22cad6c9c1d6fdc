"""
Provider clients for the suggestion engine.

One client per LLM backend, all exposing `async complete(prompt) -> str`.
"""

from .anthropic_client import AnthropicClient
from .base import LLMClient
from .openai_client import OpenAIClient

__all__ = ["AnthropicClient", "LLMClient", "OpenAIClient"]
