"""
Exception types for the suggestion engine.

Only QuotaExceeded reaches callers; the others are recovered locally.
"""

from datetime import datetime
from typing import Optional

from suggestion_engine.storage.models import Tier


class SuggestionEngineError(Exception):
    """Base class for engine errors."""


class QuotaExceeded(SuggestionEngineError):
    """Raised when a user has used up their request allowance."""

    def __init__(
        self,
        user_id: str,
        tier: Tier,
        limit: int,
        request_count: int,
        reset_at: datetime,
        limit_name: str = "session",
    ):
        self.user_id = user_id
        self.tier = tier
        self.limit = limit
        self.request_count = request_count
        self.reset_at = reset_at
        self.limit_name = limit_name
        super().__init__(
            f"{limit_name.capitalize()} limit of {limit} requests reached for user "
            f"{user_id} ({tier.value} tier). Resets at {reset_at.isoformat(timespec='seconds')}; "
            f"try again later or upgrade your plan."
        )


class ProviderFailure(SuggestionEngineError):
    """An LLM provider call failed (network error, API error, empty reply)."""

    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.cause = cause


class MalformedResponse(SuggestionEngineError):
    """A provider reply could not be parsed into suggestions."""


class CacheUnavailable(SuggestionEngineError):
    """The cache backend could not be reached."""
