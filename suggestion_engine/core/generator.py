"""
Batch suggestion generation.

Builds the provider prompt for a batch request, calls the provider and
turns its JSON reply into OptimizedSuggestion objects. Any failure is
converted into a single deterministic fallback suggestion.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from suggestion_engine.sdk.base import LLMClient
from suggestion_engine.storage.models import (
    BATCH_LIFETIME,
    BatchRequest,
    OptimizedSuggestion,
    Provider,
    SuggestionType,
)

from .errors import MalformedResponse, ProviderFailure
from .json_repair import loads_lenient
from .pricing import FALLBACK_COST, PRICING_TABLE, PricingTable, estimate_text_cost

logger = logging.getLogger(__name__)

DEFAULT_COMPLEXITY = 3

TYPE_INSTRUCTIONS = {
    SuggestionType.CREATIVE: """Focus on imaginative, engaging prompts that inspire creativity and innovation. Include:
- Brainstorming and ideation prompts
- Creative problem-solving scenarios
- Innovative thinking exercises
- Out-of-the-box approaches""",
    SuggestionType.STRUCTURED: """Focus on systematic, well-organized prompts with clear frameworks. Include:
- Step-by-step methodologies
- Structured analysis templates
- Process optimization frameworks
- Systematic planning approaches""",
    SuggestionType.TECHNICAL: """Focus on precise, technical prompts with detailed specifications. Include:
- Technical implementation guides
- Detailed specification templates
- Technical analysis frameworks
- Implementation best practices""",
    SuggestionType.TRENDING: """Focus on current trends and popular topics. Include:
- Current market opportunities
- Trending business strategies
- Popular productivity methods
- Emerging technology applications""",
}

REQUIREMENTS = """Requirements:
- Each suggestion must be immediately actionable
- Include complexity levels from 1-5
- Provide specific, detailed prompts (not just titles)
- Ensure variety in approach and scope
- Make prompts practical for real-world use"""

RESPONSE_CONTRACT = (
    'Return as JSON: {"suggestions": [{"title": "", "description": "", '
    '"prompt": "", "tags": [], "complexity": 1-5}]}'
)


def build_prompt(request: BatchRequest) -> str:
    """Render the provider prompt for a batch request."""
    base = f"Generate {request.count} {request.type.value} prompt suggestions for {request.category}."
    return f"{base}\n\n{TYPE_INSTRUCTIONS[request.type]}\n\n{REQUIREMENTS}\n\n{RESPONSE_CONTRACT}"


def parse_suggestion_items(text: str) -> List[Dict[str, Any]]:
    """Extract the list of raw suggestion objects from a provider reply.

    Raises:
        MalformedResponse: If the reply is not JSON with a suggestions list
    """
    payload = loads_lenient(text)
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("suggestions"), list):
        items = payload["suggestions"]
    else:
        raise MalformedResponse("Reply has no 'suggestions' list")
    return [item for item in items if isinstance(item, dict)]


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def coerce_complexity(value: Any) -> int:
    """Provider complexity as an int in 1..5, 3 when unusable."""
    if isinstance(value, bool):
        return DEFAULT_COMPLEXITY
    try:
        complexity = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_COMPLEXITY
    return min(5, max(1, complexity))


def coerce_tags(value: Any) -> List[str]:
    """Provider tags as strings; anything but a list yields no tags."""
    if not isinstance(value, list):
        return []
    return [str(tag) for tag in value if isinstance(tag, (str, int, float))]


def coerce_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class SuggestionGenerator:
    """Turns BatchRequests into suggestions via the configured providers.

    Usage:
        generator = SuggestionGenerator({Provider.OPENAI: OpenAIClient()})
        suggestions = await generator.generate(request, Provider.OPENAI)
    """

    def __init__(
        self,
        clients: Mapping[Provider, LLMClient],
        pricing: PricingTable = PRICING_TABLE,
        lifetime: timedelta = BATCH_LIFETIME,
    ):
        """Initialize generator.

        Args:
            clients: Provider client for each Provider the selector may pick
            pricing: Rates used for estimated_cost
            lifetime: How long generated suggestions stay valid
        """
        self.clients = dict(clients)
        self.pricing = pricing
        self.lifetime = lifetime

    async def generate(self, request: BatchRequest, provider: Provider) -> List[OptimizedSuggestion]:
        """Generate a batch. Never raises and never returns an empty list.

        Args:
            request: What to generate
            provider: Which backend to ask

        Returns:
            Parsed suggestions, or a single fallback suggestion on failure
        """
        client = self.clients.get(provider)
        if client is None:
            logger.error(f"No client configured for {provider.value}")
            return self.fallback(request, provider)

        try:
            reply = await client.complete(build_prompt(request))
            items = parse_suggestion_items(reply)
        except (ProviderFailure, MalformedResponse) as e:
            logger.error(f"Error generating with {provider.value}: {e}")
            return self.fallback(request, provider)
        except Exception as e:
            logger.exception(f"Unexpected error generating with {provider.value}: {e}")
            return self.fallback(request, provider)

        if not items:
            logger.warning(f"{provider.value} returned no suggestions for {request.type.value}:{request.category}")
            return self.fallback(request, provider)

        try:
            return self.format_suggestions(items, request, provider)
        except Exception as e:
            logger.exception(f"Could not format {provider.value} suggestions: {e}")
            return self.fallback(request, provider)

    def format_suggestions(
        self,
        items: List[Dict[str, Any]],
        request: BatchRequest,
        provider: Provider,
        now: Optional[datetime] = None,
    ) -> List[OptimizedSuggestion]:
        """Fill ids, defaults, cost and expiry on raw provider items."""
        now = now or datetime.now()
        expires_at = now + self.lifetime
        stamp = _epoch_ms(now)

        suggestions = []
        for index, item in enumerate(items):
            prompt = coerce_text(item.get("prompt"))
            suggestions.append(OptimizedSuggestion(
                id=f"{request.type.value}_{request.category}_{stamp}_{index}",
                title=coerce_text(item.get("title")),
                description=coerce_text(item.get("description")),
                prompt=prompt,
                category=request.category,
                tags=coerce_tags(item.get("tags")),
                complexity=coerce_complexity(item.get("complexity")),
                provider_used=provider,
                estimated_cost=estimate_text_cost(prompt, provider, self.pricing),
                created_at=now,
                expires_at=expires_at,
            ))
        return suggestions

    def fallback(self, request: BatchRequest, provider: Provider, now: Optional[datetime] = None) -> List[OptimizedSuggestion]:
        """One locally synthesized suggestion for the request's category and type."""
        now = now or datetime.now()
        type_name = request.type.value
        category = request.category
        return [OptimizedSuggestion(
            id=f"fallback_{type_name}_{category}_{_epoch_ms(now)}",
            title=f"{category[:1].upper()}{category[1:]} {type_name} Strategy",
            description=f"Comprehensive {type_name} approach for {category} optimization",
            prompt=(
                f"Create a detailed {type_name} strategy for {category} that includes: "
                "1) Current situation analysis, 2) Strategic objectives, 3) Implementation approach, "
                "4) Success metrics, 5) Risk mitigation. "
                f"Focus on {type_name} methodologies and provide specific, actionable recommendations."
            ),
            category=category,
            tags=[category, type_name, "strategy"],
            complexity=DEFAULT_COMPLEXITY,
            provider_used=provider,
            estimated_cost=FALLBACK_COST,
            created_at=now,
            expires_at=now + self.lifetime,
        )]
