"""
Provider selection and scheduling priority.

Fixed policy tables, no state.
"""

from suggestion_engine.storage.models import Priority, Provider, SuggestionType

PROVIDER_BY_TYPE = {
    SuggestionType.CREATIVE: Provider.OPENAI,
    SuggestionType.TRENDING: Provider.OPENAI,
    SuggestionType.STRUCTURED: Provider.ANTHROPIC,
    SuggestionType.TECHNICAL: Provider.ANTHROPIC,
}

DEFAULT_PROVIDER = Provider.ANTHROPIC

POPULAR_CATEGORIES = frozenset({'marketing', 'product', 'general'})


def select_provider(type: SuggestionType) -> Provider:
    """Pick the provider that handles a content type best.

    OpenAI for creative and trending text, Anthropic for structured and
    technical output and for anything unrecognised.
    """
    return PROVIDER_BY_TYPE.get(type, DEFAULT_PROVIDER)


def determine_priority(type: SuggestionType, category: str) -> Priority:
    """Creative requests and popular categories jump the queue."""
    if type == SuggestionType.CREATIVE or category in POPULAR_CATEGORIES:
        return Priority.HIGH
    if type == SuggestionType.TRENDING:
        return Priority.MEDIUM
    return Priority.LOW
