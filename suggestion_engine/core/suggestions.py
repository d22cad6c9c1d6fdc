"""
Query, trending and personalized suggestions.

Single-query suggestions are generated per user and query, scored for
relevance and ranked; trending and personalized variants share the
same cache and provider clients.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from suggestion_engine.config.loader import EngineConfig
from suggestion_engine.sdk.base import LLMClient
from suggestion_engine.storage.cache import CacheStore, TTLCache
from suggestion_engine.storage.models import (
    InteractionContext,
    PromptSuggestion,
    Provider,
    SuggestionType,
    UserInteraction,
)

from . import personalization, relevance
from .errors import CacheUnavailable, MalformedResponse, ProviderFailure
from .generator import coerce_complexity, coerce_tags, coerce_text, parse_suggestion_items
from .selector import select_provider

logger = logging.getLogger(__name__)

TIMEFRAMES = ("day", "week", "month")

QUERY_SUGGESTION_COUNT = 8
TRENDING_SUGGESTION_COUNT = 6
PERSONALIZED_SUGGESTION_COUNT = 6

TRENDING_RELEVANCE = 0.8
PERSONALIZED_RELEVANCE = 0.9

CATEGORIES = "marketing|product|financial|education|personal|general"


def query_prompt(query: str, context: InteractionContext) -> str:
    return f"""Generate {QUERY_SUGGESTION_COUNT} intelligent prompt suggestions based on this user query: "{query}"

Context Information:
- Previous queries: {', '.join(context.previous_queries)}
- User preferences: {', '.join(context.user_preferences)}
- Session context: {context.session_data}

For each suggestion, provide:
1. A clear, actionable title
2. Brief description of what the prompt accomplishes
3. The actual prompt text (optimized for AI generation)
4. Relevant category ({CATEGORIES.replace('|', ', ')})
5. 3-5 relevant tags
6. Estimated complexity/token usage (1-5 scale)

Focus on:
- Practical, immediately useful prompts
- Variety across different use cases
- Building on user's apparent interests
- Progressive complexity from simple to advanced

Return as JSON: {{"suggestions": [{{"title": "", "description": "", "prompt": "", "category": "{CATEGORIES}", "tags": [], "complexity": 1-5}}]}}"""


def trending_prompt(timeframe: str) -> str:
    return f"""Generate {TRENDING_SUGGESTION_COUNT} trending prompt suggestions for this {timeframe}. Focus on:
- Current business and technology trends
- Seasonal professional development needs
- Popular productivity and growth topics
- Emerging market opportunities

Return as JSON: {{"suggestions": [{{"title": "", "description": "", "prompt": "", "category": "", "tags": [], "complexity": 1-5}}]}}"""


def personalized_prompt(profile: personalization.UserProfile, category: Optional[str]) -> str:
    focus = f"\n- Focus category: {category}" if category else ""
    return f"""Generate {PERSONALIZED_SUGGESTION_COUNT} personalized prompt suggestions based on user behavior analysis:

User Patterns:
- Frequent categories: {', '.join(profile.frequent_categories)}
- Common keywords: {', '.join(profile.common_keywords)}
- Inferred preferences: {', '.join(profile.preferences)}{focus}

Create suggestions that:
- Build on user's established interests
- Introduce complementary topics
- Provide progressive skill development
- Offer advanced variations of familiar prompts

Return as JSON: {{"suggestions": [{{"title": "", "description": "", "prompt": "", "category": "", "tags": [], "complexity": 1-5}}]}}"""


def fallback_query_suggestions(query: str) -> List[PromptSuggestion]:
    """Two generic suggestions used when query generation fails."""
    return [
        PromptSuggestion(
            id="fallback_1",
            title="Improve Content Quality",
            description="Enhance existing content with better structure and clarity",
            category="general",
            prompt=f"Review and improve the following content for clarity, engagement, and effectiveness: {query}",
            tags=["content", "improvement", "clarity"],
            relevance_score=0.7,
            estimated_tokens=300,
        ),
        PromptSuggestion(
            id="fallback_2",
            title="Generate Ideas",
            description="Brainstorm creative ideas and solutions",
            category="general",
            prompt=(
                f"Generate 10 creative ideas related to: {query}. For each idea, provide a brief "
                "explanation of its potential impact and implementation approach."
            ),
            tags=["brainstorming", "creativity", "ideas"],
            relevance_score=0.6,
            estimated_tokens=400,
        ),
    ]


class SuggestionService:
    """Per-user suggestion paths on top of the shared cache.

    Usage:
        service = SuggestionService(clients, cache)
        ranked = await service.generate_suggestions("marketing email", "u1")
        trending = await service.get_trending_suggestions("day")
    """

    def __init__(
        self,
        clients: Mapping[Provider, LLMClient],
        cache: Optional[CacheStore] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the service.

        Args:
            clients: Provider clients; query and personalized prompts use the
                structured provider, trending prompts the trending provider
            cache: Shared cache store
            config: Cache lifetimes
        """
        self.config = config or EngineConfig()
        self.clients = dict(clients)
        self.cache = cache if cache is not None else TTLCache(self.config.cache.default_ttl_seconds)

    async def generate_suggestions(
        self,
        query: str,
        user_id: str,
        context: Optional[InteractionContext] = None,
    ) -> List[PromptSuggestion]:
        """Relevance-ranked suggestions for one query.

        Args:
            query: What the user asked for
            user_id: Who asked
            context: Session context used for scoring and ranking

        Returns:
            Up to 8 suggestions scoring at least 0.6
        """
        context = context or InteractionContext()
        cache_key = f"suggestions:{query}:{user_id}"
        cached = self._cache_get(cache_key)
        if cached:
            return relevance.rank(cached, context)

        suggestions = await self._generate_for_query(query, context)
        self._cache_set(cache_key, suggestions, self.config.cache.query_ttl_seconds)

        await self.record_interaction(UserInteraction(
            user_id=user_id,
            query=query,
            timestamp=datetime.now(),
            context=context,
        ))

        return relevance.rank(suggestions, context)

    async def _generate_for_query(self, query: str, context: InteractionContext) -> List[PromptSuggestion]:
        items = await self._ask(select_provider(SuggestionType.STRUCTURED), query_prompt(query, context))
        if not items:
            return fallback_query_suggestions(query)

        stamp = int(datetime.now().timestamp() * 1000)
        suggestions = []
        for index, item in enumerate(items):
            item = _normalized(item, default_category="general")
            suggestions.append(_to_prompt_suggestion(
                item,
                id=f"suggestion_{stamp}_{index}",
                relevance_score=relevance.score(item, query, context),
            ))
        return suggestions

    async def get_trending_suggestions(self, timeframe: str = "week") -> List[PromptSuggestion]:
        """Trending suggestions for a timeframe; empty if generation fails.

        Raises:
            ValueError: If timeframe is not day, week or month
        """
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"timeframe must be one of: {list(TIMEFRAMES)}")

        cache_key = f"trending:{timeframe}"
        cached = self._cache_get(cache_key)
        if cached:
            return cached

        items = await self._ask(select_provider(SuggestionType.TRENDING), trending_prompt(timeframe))
        stamp = int(datetime.now().timestamp() * 1000)
        suggestions = [
            _to_prompt_suggestion(
                _normalized(item, default_category="general"),
                id=f"trending_{stamp}_{index}",
                relevance_score=TRENDING_RELEVANCE,
            )
            for index, item in enumerate(items or [])
        ]

        if suggestions:
            self._cache_set(cache_key, suggestions, self.config.cache.trending_ttl_seconds)
        return suggestions

    async def record_interaction(self, interaction: UserInteraction) -> None:
        """Prepend an interaction to the user's capped history."""
        cache_key = f"interactions:{interaction.user_id}"
        history = self._cache_get(cache_key) or []
        self._cache_set(cache_key, personalization.append_interaction(history, interaction))

    def get_interactions(self, user_id: str) -> List[UserInteraction]:
        """The user's history, newest first."""
        return list(self._cache_get(f"interactions:{user_id}") or [])

    async def get_personalized_suggestions(
        self,
        user_id: str,
        category: Optional[str] = None,
    ) -> List[PromptSuggestion]:
        """Suggestions built from the user's history.

        Users with fewer than three recorded interactions get the weekly
        trending suggestions instead.
        """
        cache_key = f"personalized:{user_id}:{category or 'all'}"
        cached = self._cache_get(cache_key)
        if cached:
            return cached

        profile = personalization.build_profile(self.get_interactions(user_id))
        if profile is None:
            logger.debug(f"Not enough history for {user_id}, serving trending suggestions")
            return await self.get_trending_suggestions()

        items = await self._ask(
            select_provider(SuggestionType.STRUCTURED),
            personalized_prompt(profile, category),
        )
        stamp = int(datetime.now().timestamp() * 1000)
        suggestions = [
            _to_prompt_suggestion(
                _normalized(item, default_category=category or "general"),
                id=f"personalized_{stamp}_{index}",
                relevance_score=PERSONALIZED_RELEVANCE,
            )
            for index, item in enumerate((items or [])[:PERSONALIZED_SUGGESTION_COUNT])
        ]

        if suggestions:
            self._cache_set(cache_key, suggestions, self.config.cache.personalized_ttl_seconds)
        return suggestions

    async def _ask(self, provider: Provider, prompt: str) -> Optional[List[Dict[str, Any]]]:
        """Call a provider and parse its suggestions; None on any failure."""
        client = self.clients.get(provider)
        if client is None:
            logger.error(f"No client configured for {provider.value}")
            return None
        try:
            reply = await client.complete(prompt)
            return parse_suggestion_items(reply)
        except (ProviderFailure, MalformedResponse) as e:
            logger.error(f"Error generating suggestions with {provider.value}: {e}")
            return None
        except Exception as e:
            logger.exception(f"Unexpected error generating suggestions with {provider.value}: {e}")
            return None

    def _cache_get(self, cache_key: str) -> Optional[Any]:
        try:
            return self.cache.get(cache_key)
        except CacheUnavailable as e:
            logger.warning(f"Cache unavailable, treating {cache_key} as a miss: {e}")
            return None

    def _cache_set(self, cache_key: str, value: Any, ttl: Optional[float] = None) -> None:
        try:
            self.cache.set(cache_key, value, ttl=ttl)
        except CacheUnavailable as e:
            logger.warning(f"Cache unavailable, {cache_key} not cached: {e}")


def _normalized(item: Dict[str, Any], default_category: str) -> Dict[str, Any]:
    return {
        "title": coerce_text(item.get("title")),
        "description": coerce_text(item.get("description")),
        "prompt": coerce_text(item.get("prompt")),
        "category": coerce_text(item.get("category")) or default_category,
        "tags": coerce_tags(item.get("tags")),
        "complexity": coerce_complexity(item.get("complexity")),
    }


def _to_prompt_suggestion(item: Dict[str, Any], id: str, relevance_score: float) -> PromptSuggestion:
    return PromptSuggestion(
        id=id,
        title=item["title"],
        description=item["description"],
        category=item["category"],
        prompt=item["prompt"],
        tags=item["tags"],
        relevance_score=relevance_score,
        estimated_tokens=relevance.estimate_tokens(item["complexity"]),
    )
