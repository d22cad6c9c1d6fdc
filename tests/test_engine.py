"""
Integration tests for the engine facade.
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from suggestion_engine import QuotaExceeded, SuggestionEngine, create_engine
from suggestion_engine.config.loader import CacheConfig, EngineConfig, ProviderConfig, QueueConfig
from suggestion_engine.sdk import AnthropicClient, OpenAIClient
from suggestion_engine.storage.cache import TTLCache
from suggestion_engine.storage.models import Provider, SuggestionType, Tier, UserInteraction
from suggestion_engine.storage.repository import QuotaStore

from conftest import FakeClient, suggestions_reply


class TestSuggestionEngine:
    """Test the wired-up engine with fake providers."""

    def setup_method(self):
        """Set up an engine with injected stores."""
        self.openai = FakeClient(Provider.OPENAI, suggestions_reply(3))
        self.anthropic = FakeClient(Provider.ANTHROPIC, suggestions_reply(4, category="marketing"))
        self.cache = TTLCache()
        self.quota_store = QuotaStore()
        self.engine = SuggestionEngine(
            {Provider.OPENAI: self.openai, Provider.ANTHROPIC: self.anthropic},
            cache=self.cache,
            quota_store=self.quota_store,
            config=EngineConfig(queue=QueueConfig(delay_seconds=0)),
        )

    @pytest.mark.asyncio
    async def test_free_user_batch_flow(self):
        """Test the free tier runs out after ten requests."""
        for _ in range(10):
            batch = await self.engine.process_batch_request("creative", "marketing", "u1")
        assert len(batch) == 3
        assert self.openai.calls == 1

        with pytest.raises(QuotaExceeded):
            await self.engine.process_batch_request("creative", "marketing", "u1")

        self.engine.update_user_limits("u1", Tier.PRO)
        await self.engine.process_batch_request("creative", "marketing", "u1")
        assert self.engine.get_session_stats("u1").request_count == 11

    @pytest.mark.asyncio
    async def test_stores_are_shared(self):
        """Test the injected cache and quota store are used."""
        await self.engine.process_batch_request(SuggestionType.TECHNICAL, "product", "u1")

        assert self.cache.get("batch:technical:product") is not None
        assert self.quota_store.get("u1").request_count == 1

    @pytest.mark.asyncio
    async def test_personalization_after_history(self):
        """Test recorded interactions unlock personalized suggestions."""
        for query in ("marketing plan", "growth ideas", "email campaign"):
            await self.engine.record_interaction(UserInteraction(
                user_id="u1",
                query=query,
                timestamp=datetime.now(),
                category="marketing",
            ))

        results = await self.engine.get_personalized_suggestions("u1")

        assert len(results) == 4
        assert results[0].relevance_score == 0.9

    @pytest.mark.asyncio
    async def test_status_stats_and_maintenance(self):
        """Test the reporting and maintenance operations."""
        assert self.engine.get_batch_queue_status().queue_length == 0

        assert await self.engine.warm_cache() == 3
        await self.engine.process_batch_request("creative", "general")

        stats = self.engine.get_cache_stats()
        assert stats.misses == 3
        assert stats.hits == 1
        assert await self.engine.clear_expired_batches() == 0

        await self.engine.close()

    def test_configured_batch_lifetime(self):
        """Test the generator uses the configured lifetime."""
        engine = SuggestionEngine({}, config=EngineConfig(cache=CacheConfig(batch_ttl_hours=2)))

        assert engine.orchestrator.generator.lifetime.total_seconds() == 7200


class TestCreateEngine:
    """Test construction with real provider clients."""

    @patch('suggestion_engine.sdk.anthropic_client.AsyncAnthropic')
    @patch('suggestion_engine.sdk.openai_client.AsyncOpenAI')
    def test_create_engine_uses_configured_models(self, mock_openai_class, mock_anthropic_class):
        """Test both providers get their configured model."""
        config = EngineConfig(providers=ProviderConfig(openai_model="gpt-4o-mini", max_tokens=900))

        engine = create_engine(config)

        clients = engine.orchestrator.generator.clients
        assert isinstance(clients[Provider.OPENAI], OpenAIClient)
        assert isinstance(clients[Provider.ANTHROPIC], AnthropicClient)
        assert clients[Provider.OPENAI].model == "gpt-4o-mini"
        assert clients[Provider.ANTHROPIC].max_tokens == 900
        mock_openai_class.assert_called_once()
        mock_anthropic_class.assert_called_once()
