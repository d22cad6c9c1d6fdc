"""
Unit tests for token estimation and pricing.
"""

from decimal import Decimal

import pytest

from suggestion_engine.config.loader import DEFAULT_PROVIDER_RATES
from suggestion_engine.core.pricing import (
    FALLBACK_COST,
    PRICING_TABLE,
    PricingTable,
    calculate_cost,
    estimate_text_cost,
)
from suggestion_engine.core.token_counter import TokenUsage, estimate_tokens
from suggestion_engine.storage.models import Provider


class TestTokenCounter:
    """Test word-based token estimation."""

    def test_tokens_round_up(self):
        """Test tokens are words / 0.75 rounded up."""
        assert TokenUsage(word_count=3).total_tokens == 4
        assert TokenUsage(word_count=4).total_tokens == 6
        assert TokenUsage(word_count=75).total_tokens == 100

    def test_no_words_no_tokens(self):
        """Test empty text estimates zero tokens."""
        assert estimate_tokens("").total_tokens == 0
        assert estimate_tokens("   ").total_tokens == 0
        assert estimate_tokens(None).total_tokens == 0

    def test_whitespace_word_count(self):
        """Test words are split on any whitespace."""
        assert estimate_tokens("one two\nthree\tfour").word_count == 4


class TestPricing:
    """Test cost calculation."""

    def test_get_rate(self):
        """Test fixed per-1K rates."""
        assert PRICING_TABLE.get_rate(Provider.OPENAI) == Decimal("0.03")
        assert PRICING_TABLE.get_rate(Provider.ANTHROPIC) == Decimal("0.025")

    def test_unsupported_provider(self):
        """Test a provider without a rate raises ValueError."""
        table = PricingTable({Provider.OPENAI: Decimal("0.03")})

        with pytest.raises(ValueError, match="Unsupported provider"):
            table.get_rate(Provider.ANTHROPIC)

    def test_calculate_cost(self):
        """Test 1000 tokens cost exactly the rate."""
        assert calculate_cost(Provider.OPENAI, TokenUsage(word_count=750)) == 0.03
        assert calculate_cost(Provider.ANTHROPIC, TokenUsage(word_count=750)) == 0.025

    def test_cost_rounds_up(self):
        """Test costs round up to six decimal places."""
        # 4 tokens * 0.025 / 1000 = 0.0001
        assert calculate_cost(Provider.ANTHROPIC, TokenUsage(word_count=3)) == 0.0001
        # 2 tokens * 0.03 / 1000 = 0.00006
        assert calculate_cost(Provider.OPENAI, TokenUsage(word_count=1)) == 0.00006

    def test_estimate_text_cost(self):
        """Test a 30 word prompt on OpenAI."""
        text = " ".join(["word"] * 30)

        # 30 words -> 40 tokens -> 0.0012
        assert estimate_text_cost(text, Provider.OPENAI) == 0.0012

    def test_from_rates(self):
        """Test configured float rates are converted exactly."""
        table = PricingTable.from_rates({Provider.OPENAI: 0.1, Provider.ANTHROPIC: 0.2})

        assert table.get_rate(Provider.OPENAI) == Decimal("0.1")
        assert estimate_text_cost(" ".join(["w"] * 75), Provider.ANTHROPIC, table) == 0.02

    def test_default_table_matches_config_defaults(self):
        """Test the built-in table uses the configured default rates."""
        for provider, rate in DEFAULT_PROVIDER_RATES.items():
            assert PRICING_TABLE.get_rate(provider) == Decimal(str(rate))

    def test_fallback_cost(self):
        """Test fallback suggestions have a fixed cost."""
        assert FALLBACK_COST == 0.01
