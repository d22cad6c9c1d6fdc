"""
Suggestion engine.

Cached, quota-gated, personalized prompt suggestions from two LLM providers.
"""

from .core.errors import QuotaExceeded, SuggestionEngineError
from .engine import SuggestionEngine, create_engine

__all__ = ["QuotaExceeded", "SuggestionEngine", "SuggestionEngineError", "create_engine"]
