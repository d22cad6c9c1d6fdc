"""
Engine facade.

Wires the cache, quota store, provider clients, orchestrator and
suggestion service together and exposes the caller-facing operations.
"""

from datetime import timedelta
from typing import List, Mapping, Optional, Union

from suggestion_engine.config.loader import EngineConfig
from suggestion_engine.core.generator import SuggestionGenerator
from suggestion_engine.core.orchestrator import BatchOrchestrator, BatchQueueStatus, CacheStats
from suggestion_engine.core.pricing import PricingTable
from suggestion_engine.core.quota import QuotaEnforcer
from suggestion_engine.core.suggestions import SuggestionService
from suggestion_engine.sdk.base import LLMClient
from suggestion_engine.storage.cache import CacheStore, TTLCache
from suggestion_engine.storage.models import (
    InteractionContext,
    OptimizedSuggestion,
    PromptSuggestion,
    Provider,
    SessionLimits,
    SuggestionType,
    Tier,
    UserInteraction,
)
from suggestion_engine.storage.repository import QuotaStore


class SuggestionEngine:
    """All suggestion operations behind one object.

    The cache and quota store are injected so several engines (or tests)
    never share hidden global state.
    """

    def __init__(
        self,
        clients: Mapping[Provider, LLMClient],
        cache: Optional[CacheStore] = None,
        quota_store: Optional[QuotaStore] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        self.cache = cache if cache is not None else TTLCache(self.config.cache.default_ttl_seconds)
        self.quota = QuotaEnforcer(quota_store, self.config)
        generator = SuggestionGenerator(
            clients,
            pricing=PricingTable.from_rates(self.config.provider_rates),
            lifetime=timedelta(hours=self.config.cache.batch_ttl_hours),
        )
        self.orchestrator = BatchOrchestrator(generator, self.quota, self.cache, self.config)
        self.suggestions = SuggestionService(clients, self.cache, self.config)

    async def process_batch_request(
        self,
        type: Union[SuggestionType, str],
        category: str,
        user_id: Optional[str] = None,
    ) -> List[OptimizedSuggestion]:
        return await self.orchestrator.process(type, category, user_id)

    async def generate_suggestions(
        self,
        query: str,
        user_id: str,
        context: Optional[InteractionContext] = None,
    ) -> List[PromptSuggestion]:
        return await self.suggestions.generate_suggestions(query, user_id, context)

    async def get_trending_suggestions(self, timeframe: str = "week") -> List[PromptSuggestion]:
        return await self.suggestions.get_trending_suggestions(timeframe)

    async def get_personalized_suggestions(self, user_id: str, category: Optional[str] = None) -> List[PromptSuggestion]:
        return await self.suggestions.get_personalized_suggestions(user_id, category)

    async def record_interaction(self, interaction: UserInteraction) -> None:
        await self.suggestions.record_interaction(interaction)

    def update_user_limits(self, user_id: str, tier: Union[Tier, str]) -> SessionLimits:
        return self.orchestrator.update_user_limits(user_id, tier)

    def get_session_stats(self, user_id: str) -> Optional[SessionLimits]:
        return self.orchestrator.get_session_stats(user_id)

    def get_batch_queue_status(self) -> BatchQueueStatus:
        return self.orchestrator.get_batch_queue_status()

    def get_cache_stats(self) -> CacheStats:
        return self.orchestrator.get_cache_stats()

    async def clear_expired_batches(self) -> int:
        return await self.orchestrator.clear_expired_batches()

    async def warm_cache(self) -> int:
        return await self.orchestrator.warm_cache()

    async def close(self) -> None:
        await self.orchestrator.close()


def create_engine(config: Optional[EngineConfig] = None) -> SuggestionEngine:
    """Build an engine talking to the real OpenAI and Anthropic APIs.

    API keys are read from OPENAI_API_KEY and ANTHROPIC_API_KEY.
    """
    from suggestion_engine.sdk import AnthropicClient, OpenAIClient

    config = config or EngineConfig()
    clients = {
        Provider.OPENAI: OpenAIClient(config.providers.openai_model, config.providers.max_tokens),
        Provider.ANTHROPIC: AnthropicClient(config.providers.anthropic_model, config.providers.max_tokens),
    }
    return SuggestionEngine(clients, config=config)
