"""
Relevance scoring and ranking.

Scores how well a suggestion fits a query and the user's context, and
turns a scored list into the ranked list shown to the user.

Score terms:
- Base: 0.5
- Query match: +0.3 * (query words found / query words)
- Previous queries mention the category or a tag: +0.15
- A user preference appears in the category or a tag: +0.2
Capped at 1.0.
"""

from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Optional

from suggestion_engine.storage.models import InteractionContext, PromptSuggestion

BASE_SCORE = 0.5
QUERY_WEIGHT = 0.3
HISTORY_BONUS = 0.15
PREFERENCE_BONUS = 0.2
CATEGORY_BOOST = 0.1

RELEVANCE_THRESHOLD = 0.6
MAX_SUGGESTIONS = 8

TOKENS_BY_COMPLEXITY = {
    1: 150,
    2: 300,
    3: 500,
    4: 750,
    5: 1000,
}
DEFAULT_TOKENS = 500


def score(
    suggestion: Mapping[str, Any],
    query: str,
    context: Optional[InteractionContext] = None,
) -> float:
    """Score a raw suggestion against a query and user context.

    Args:
        suggestion: Mapping with title, description, category and tags
        query: What the user asked for
        context: Session context (previous queries, preferences)

    Returns:
        Relevance in [0.5, 1.0]
    """
    context = context or InteractionContext()
    category = str(suggestion.get("category") or "").lower()
    raw_tags = suggestion.get("tags")
    tags = [str(tag).lower() for tag in raw_tags] if isinstance(raw_tags, list) else []

    result = BASE_SCORE

    query_words = query.lower().split()
    if query_words:
        text = " ".join([
            str(suggestion.get("title") or ""),
            str(suggestion.get("description") or ""),
            " ".join(tags),
        ]).lower()
        matches = [word for word in query_words if word in text]
        result += (len(matches) / len(query_words)) * QUERY_WEIGHT

    if _mentions_any(context.previous_queries, category, tags):
        result += HISTORY_BONUS

    if _preferred(context.user_preferences, category, tags):
        result += PREFERENCE_BONUS

    return min(1.0, result)


def rank(
    suggestions: Iterable[PromptSuggestion],
    context: Optional[InteractionContext] = None,
    threshold: float = RELEVANCE_THRESHOLD,
    limit: int = MAX_SUGGESTIONS,
) -> List[PromptSuggestion]:
    """Filter, sort, truncate and then boost preferred categories.

    The boost is applied after truncation, so it changes scores but
    never which suggestions make the cut or their order.

    Args:
        suggestions: Scored suggestions
        context: Session context; its preferences drive the boost
        threshold: Minimum score kept
        limit: Maximum suggestions returned

    Returns:
        Ranked suggestions
    """
    context = context or InteractionContext()
    kept = [s for s in suggestions if s.relevance_score >= threshold]
    kept.sort(key=lambda s: s.relevance_score, reverse=True)

    ranked = []
    for suggestion in kept[:limit]:
        if suggestion.category in context.user_preferences:
            suggestion = replace(
                suggestion,
                relevance_score=min(1.0, suggestion.relevance_score + CATEGORY_BOOST),
            )
        ranked.append(suggestion)
    return ranked


def estimate_tokens(complexity: Any) -> int:
    """Expected token usage of a prompt of the given complexity (1-5)."""
    if isinstance(complexity, bool) or not isinstance(complexity, int):
        return DEFAULT_TOKENS
    return TOKENS_BY_COMPLEXITY.get(complexity, DEFAULT_TOKENS)


def _mentions_any(previous_queries: Iterable[str], category: str, tags: List[str]) -> bool:
    for previous in previous_queries:
        previous = previous.lower()
        if category and category in previous:
            return True
        if any(tag and tag in previous for tag in tags):
            return True
    return False


def _preferred(preferences: Iterable[str], category: str, tags: List[str]) -> bool:
    for preference in preferences:
        preference = preference.lower()
        if not preference:
            continue
        if preference in category or any(preference in tag for tag in tags):
            return True
    return False
