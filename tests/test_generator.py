"""
Tests for batch suggestion generation and fallbacks.
"""

import json
from datetime import datetime, timedelta

import pytest

from suggestion_engine.core.errors import MalformedResponse, ProviderFailure
from suggestion_engine.core.generator import (
    SuggestionGenerator,
    build_prompt,
    coerce_complexity,
    coerce_tags,
    coerce_text,
    parse_suggestion_items,
)
from suggestion_engine.storage.models import BatchRequest, Priority, Provider, SuggestionType

from conftest import FakeClient, suggestions_reply


def make_request(type=SuggestionType.CREATIVE, category="marketing", count=15) -> BatchRequest:
    return BatchRequest(
        id="batch_1",
        type=type,
        category=category,
        count=count,
        priority=Priority.HIGH,
        timestamp=datetime(2024, 3, 1, 12, 0, 0),
    )


class TestBuildPrompt:
    """Test prompt rendering."""

    def test_includes_count_type_and_category(self):
        """Test the opening line names what to generate."""
        prompt = build_prompt(make_request())

        assert prompt.startswith("Generate 15 creative prompt suggestions for marketing.")
        assert "Brainstorming and ideation prompts" in prompt
        assert '"suggestions"' in prompt

    def test_type_specific_instructions(self):
        """Test each type gets its own focus."""
        prompt = build_prompt(make_request(SuggestionType.TECHNICAL, "product", 12))

        assert "Technical implementation guides" in prompt
        assert "Brainstorming" not in prompt


class TestParseItems:
    """Test reply parsing."""

    def test_object_with_suggestions(self):
        """Test the documented reply shape."""
        items = parse_suggestion_items(suggestions_reply(2))

        assert [item["title"] for item in items] == ["Idea 0", "Idea 1"]

    def test_bare_list(self):
        """Test a bare JSON array is accepted."""
        assert parse_suggestion_items('[{"title": "x"}, "junk"]') == [{"title": "x"}]

    def test_missing_suggestions_key(self):
        """Test an object without a suggestions list is malformed."""
        with pytest.raises(MalformedResponse):
            parse_suggestion_items('{"ideas": []}')


class TestSuggestionGenerator:
    """Test SuggestionGenerator behaviour."""

    def setup_method(self):
        """Set up a generator with a fake OpenAI client."""
        self.client = FakeClient(Provider.OPENAI, suggestions_reply(3))
        self.generator = SuggestionGenerator({Provider.OPENAI: self.client})

    @pytest.mark.asyncio
    async def test_generate_formats_items(self):
        """Test ids, category, provider, cost and expiry are filled in."""
        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert len(suggestions) == 3
        assert self.client.calls == 1
        first = suggestions[0]
        assert first.id.startswith("creative_marketing_")
        assert first.id.endswith("_0")
        assert first.category == "marketing"
        assert first.provider_used == Provider.OPENAI
        assert first.complexity == 2
        assert first.tags == ["idea", "tag0"]
        # "Write something useful number 0" -> 5 words -> 7 tokens
        assert first.estimated_cost == 0.00021
        assert first.expires_at - first.created_at == timedelta(hours=8)

    def test_format_defaults(self):
        """Test missing fields get defaults and complexity is clamped."""
        now = datetime(2024, 3, 1, 12, 0, 0)
        items = [{"title": "Only a title"}, {"complexity": 9}, {"complexity": "hard"}]

        suggestions = self.generator.format_suggestions(items, make_request(), Provider.OPENAI, now=now)

        assert suggestions[0].description == ""
        assert suggestions[0].tags == []
        assert suggestions[0].complexity == 3
        assert suggestions[0].estimated_cost == 0.0
        assert suggestions[1].complexity == 5
        assert suggestions[2].complexity == 3
        assert suggestions[2].id == f"creative_marketing_{int(now.timestamp() * 1000)}_2"

    @pytest.mark.asyncio
    async def test_fallback_on_provider_failure(self):
        """Test a failing provider yields one fallback suggestion."""
        self.client.error = ProviderFailure("openai", "rate limited")

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert len(suggestions) == 1
        fallback = suggestions[0]
        assert fallback.id.startswith("fallback_creative_marketing_")
        assert fallback.title == "Marketing creative Strategy"
        assert fallback.tags == ["marketing", "creative", "strategy"]
        assert fallback.complexity == 3
        assert fallback.estimated_cost == 0.01
        assert fallback.provider_used == Provider.OPENAI

    @pytest.mark.asyncio
    async def test_fallback_on_unexpected_error(self):
        """Test arbitrary exceptions never escape generate()."""
        self.client.error = RuntimeError("boom")

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert len(suggestions) == 1
        assert suggestions[0].id.startswith("fallback_")

    @pytest.mark.asyncio
    async def test_fallback_on_malformed_reply(self):
        """Test unparseable replies fall back."""
        self.client.reply = "I cannot help with that."

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert suggestions[0].id.startswith("fallback_")

    @pytest.mark.asyncio
    async def test_fallback_on_empty_list(self):
        """Test an empty suggestions list falls back."""
        self.client.reply = json.dumps({"suggestions": []})

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert len(suggestions) == 1
        assert suggestions[0].id.startswith("fallback_")

    @pytest.mark.asyncio
    async def test_fallback_when_client_missing(self):
        """Test a provider without a client falls back."""
        suggestions = await self.generator.generate(
            make_request(SuggestionType.STRUCTURED, "financial", 20),
            Provider.ANTHROPIC,
        )

        assert suggestions[0].title == "Financial structured Strategy"
        assert suggestions[0].provider_used == Provider.ANTHROPIC

    def test_custom_lifetime(self):
        """Test the configured lifetime sets expiry."""
        generator = SuggestionGenerator({}, lifetime=timedelta(hours=1))
        now = datetime(2024, 3, 1, 12, 0, 0)

        fallback = generator.fallback(make_request(), Provider.OPENAI, now=now)

        assert fallback[0].expires_at == now + timedelta(hours=1)


class TestMistypedItems:
    """Test provider items with wrongly typed fields."""

    def setup_method(self):
        """Set up a generator with a fake OpenAI client."""
        self.client = FakeClient(Provider.OPENAI)
        self.generator = SuggestionGenerator({Provider.OPENAI: self.client})

    @pytest.mark.asyncio
    async def test_scalar_tags(self):
        """Test non-list tags become an empty tag list."""
        self.client.reply = json.dumps({"suggestions": [
            {"title": "a", "prompt": "Write a plan", "tags": 5, "complexity": 2},
            {"title": "b", "prompt": "Write a plan", "tags": "growth", "complexity": 2},
        ]})

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert [s.title for s in suggestions] == ["a", "b"]
        assert [s.tags for s in suggestions] == [[], []]

    @pytest.mark.asyncio
    async def test_overflowing_complexity(self):
        """Test an infinite complexity defaults to 3."""
        self.client.reply = '{"suggestions": [{"title": "x", "prompt": "p", "complexity": 1e999}]}'

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert len(suggestions) == 1
        assert suggestions[0].title == "x"
        assert suggestions[0].complexity == 3

    @pytest.mark.asyncio
    async def test_non_string_text_fields(self):
        """Test object titles and numeric prompts are dropped."""
        self.client.reply = json.dumps({"suggestions": [
            {"title": {"a": 1}, "description": ["d"], "prompt": 42, "complexity": [1, 2]},
        ]})

        suggestions = await self.generator.generate(make_request(), Provider.OPENAI)

        assert suggestions[0].title == ""
        assert suggestions[0].description == ""
        assert suggestions[0].prompt == ""
        assert suggestions[0].estimated_cost == 0.0
        assert suggestions[0].complexity == 3

    def test_coercion_helpers(self):
        """Test the field coercions directly."""
        assert coerce_complexity(4.7) == 4
        assert coerce_complexity(float("nan")) == 3
        assert coerce_complexity(True) == 3
        assert coerce_complexity("2") == 2
        assert coerce_tags(["a", 1, None, {"b": 2}]) == ["a", "1"]
        assert coerce_tags(None) == []
        assert coerce_text(None) == ""
