"""
Pricing calculations.

Converts estimated token counts into a per-suggestion cost using a
fixed per-provider rate.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_UP
from typing import Dict, Mapping

from suggestion_engine.config.loader import DEFAULT_PROVIDER_RATES
from suggestion_engine.storage.models import Provider

from .token_counter import TokenUsage, estimate_tokens


@dataclass(frozen=True)
class PricingTable:
    """Cost per 1K tokens for each provider."""
    prices: Dict[Provider, Decimal]

    @classmethod
    def from_rates(cls, rates: Mapping[Provider, float]) -> "PricingTable":
        return cls({provider: Decimal(str(rate)) for provider, rate in rates.items()})

    def get_rate(self, provider: Provider) -> Decimal:
        """Get the per-1K-token rate for a provider.

        Args:
            provider: Provider identifier

        Returns:
            Cost per 1K tokens

        Raises:
            ValueError: If the provider has no rate
        """
        if provider not in self.prices:
            raise ValueError(f"Unsupported provider: {provider}")
        return self.prices[provider]


# Fixed pricing table - estimated, not fetched
PRICING_TABLE = PricingTable.from_rates(DEFAULT_PROVIDER_RATES)

# Cost charged for a locally synthesized fallback suggestion
FALLBACK_COST = 0.01


def calculate_cost(provider: Provider, usage: TokenUsage, table: PricingTable = PRICING_TABLE) -> float:
    """Calculate the cost of a token count with conservative rounding.

    Args:
        provider: Provider that produced the text
        usage: Estimated token usage
        table: Rates to price against

    Returns:
        Cost rounded UP to 6 decimal places

    Raises:
        ValueError: If provider is not priced
    """
    rate = table.get_rate(provider)
    cost = (Decimal(usage.total_tokens) / Decimal("1000")) * rate
    return float(cost.quantize(Decimal("0.000001"), rounding=ROUND_UP))


def estimate_text_cost(text: str, provider: Provider, table: PricingTable = PRICING_TABLE) -> float:
    """Estimate what a piece of prompt text costs to generate."""
    return calculate_cost(provider, estimate_tokens(text), table)
