"""
Data models for the suggestion engine.

Defines requests, suggestions, quota records and interaction history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional


BATCH_LIFETIME = timedelta(hours=8)


class SuggestionType(Enum):
    """Kinds of batch suggestions."""
    CREATIVE = "creative"
    STRUCTURED = "structured"
    TECHNICAL = "technical"
    TRENDING = "trending"


class Priority(Enum):
    """Scheduling priority of a batch request."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Tier(Enum):
    """User quota classes."""
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class Provider(Enum):
    """LLM backends.

    OPENAI is used for open-ended creative text, ANTHROPIC for strictly
    structured output.
    """
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class BatchRequest:
    """A request for a bulk set of suggestions for one (type, category) pair."""
    id: str
    type: SuggestionType
    category: str
    count: int
    priority: Priority
    timestamp: datetime

    @property
    def cache_key(self) -> str:
        return batch_cache_key(self.type, self.category)


@dataclass(frozen=True)
class OptimizedSuggestion:
    """One member of a generated batch.

    A batch is cached as a unit and is only usable while every member
    is unexpired.
    """
    id: str
    title: str
    description: str
    prompt: str
    category: str
    tags: List[str]
    complexity: int
    provider_used: Provider
    estimated_cost: float
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once expires_at is no longer in the future."""
        return self.expires_at <= (now or datetime.now())


@dataclass
class SessionLimits:
    """Per-user quota record, mutated in place on every accepted request."""
    user_id: str
    request_count: int
    token_usage: float
    last_reset: datetime
    daily_limit: int
    session_limit: int
    tier: Tier = Tier.FREE

    @property
    def unlimited(self) -> bool:
        return self.daily_limit < 0 and self.session_limit < 0


@dataclass(frozen=True)
class PromptSuggestion:
    """Suggestion returned by the query, trending and personalized paths."""
    id: str
    title: str
    description: str
    category: str
    prompt: str
    tags: List[str]
    relevance_score: float
    estimated_tokens: int


@dataclass
class InteractionContext:
    """What the caller knows about the user's current session."""
    previous_queries: List[str] = field(default_factory=list)
    user_preferences: List[str] = field(default_factory=list)
    session_data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UserInteraction:
    """A single query made by a user; the only input to personalization."""
    user_id: str
    query: str
    timestamp: datetime
    category: Optional[str] = None
    selected_suggestion_id: Optional[str] = None
    context: InteractionContext = field(default_factory=InteractionContext)


def batch_cache_key(type: SuggestionType, category: str) -> str:
    """Cache key for a batch of the given type and category."""
    return f"batch:{type.value}:{category}"
