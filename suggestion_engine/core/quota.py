"""
Tier-based request quotas.

Tracks per-user request counts and token usage against tier limits,
with a rolling 24 hour reset window.

Check Order:
1. Unknown user - Create a free tier record and allow
2. Window elapsed - Reset counters and allow
3. Daily limit - Reject when the daily ceiling is reached
4. Session limit - Reject when the (tighter) session ceiling is reached
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from suggestion_engine.config.loader import EngineConfig
from suggestion_engine.storage.models import SessionLimits, SuggestionType, Tier
from suggestion_engine.storage.repository import QuotaStore

from .errors import QuotaExceeded

logger = logging.getLogger(__name__)

RESET_WINDOW = timedelta(hours=24)


class QuotaEnforcer:
    """Per-user request accounting.

    Usage:
        quota = QuotaEnforcer(QuotaStore())
        quota.enforce("u1", SuggestionType.CREATIVE)   # raises QuotaExceeded
        quota.update("u1", token_delta=0.42)
    """

    def __init__(
        self,
        store: Optional[QuotaStore] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the enforcer.

        Args:
            store: Where quota records live (a fresh in-memory store if omitted)
            config: Tier limits (defaults if omitted)
            clock: Source of the current time
        """
        self.store = store if store is not None else QuotaStore()
        self.config = config or EngineConfig()
        self._clock = clock

    def check(self, user_id: str, type: SuggestionType) -> bool:
        """Count a request against the user's quota if it fits.

        Args:
            user_id: User making the request
            type: Kind of batch requested

        Returns:
            True if the request is allowed (and has been counted)
        """
        record = self.store.get(user_id)
        now = self._clock()

        if record is None:
            limits = self.config.get_tier_limits(Tier.FREE)
            self.store.save(SessionLimits(
                user_id=user_id,
                request_count=1,
                token_usage=0.0,
                last_reset=now,
                daily_limit=limits.daily,
                session_limit=limits.session,
                tier=Tier.FREE,
            ))
            logger.debug(f"Started quota tracking for {user_id} on free tier")
            return True

        if now - record.last_reset > RESET_WINDOW:
            record.request_count = 1
            record.token_usage = 0.0
            record.last_reset = now
            logger.debug(f"Quota window reset for {user_id}")
            return True

        if self._breached_limit(record) is not None:
            logger.info(f"Rejected {type.value} request for {user_id}: {record.request_count} requests used")
            return False

        record.request_count += 1
        return True

    def enforce(self, user_id: str, type: SuggestionType) -> None:
        """Like check(), but raise with details instead of returning False.

        Raises:
            QuotaExceeded: If the user is out of requests
        """
        if self.check(user_id, type):
            return
        record = self.store.get(user_id)
        limit_name, limit = self._breached_limit(record)
        raise QuotaExceeded(
            user_id=user_id,
            tier=record.tier,
            limit=limit,
            request_count=record.request_count,
            reset_at=record.last_reset + RESET_WINDOW,
            limit_name=limit_name,
        )

    def update(self, user_id: str, token_delta: float) -> None:
        """Add usage to an existing record. Unknown users are ignored."""
        record = self.store.get(user_id)
        if record is not None:
            record.token_usage += token_delta

    def update_user_limits(self, user_id: str, tier: Tier) -> SessionLimits:
        """Move a user to another tier without resetting their counters.

        Args:
            user_id: User to change
            tier: New tier

        Returns:
            The user's (possibly newly created) record
        """
        limits = self.config.get_tier_limits(tier)
        record = self.store.get(user_id)
        if record is None:
            record = SessionLimits(
                user_id=user_id,
                request_count=0,
                token_usage=0.0,
                last_reset=self._clock(),
                daily_limit=limits.daily,
                session_limit=limits.session,
                tier=tier,
            )
            self.store.save(record)
        else:
            record.daily_limit = limits.daily
            record.session_limit = limits.session
            record.tier = tier
        logger.info(f"User {user_id} moved to {tier.value} tier")
        return record

    def get(self, user_id: str) -> Optional[SessionLimits]:
        return self.store.get(user_id)

    def remaining(self, user_id: str) -> Optional[int]:
        """Requests left in the current window, or None when unlimited."""
        record = self.store.get(user_id)
        if record is None:
            return self.config.get_tier_limits(Tier.FREE).session
        if self._clock() - record.last_reset > RESET_WINDOW:
            record_count = 0
        else:
            record_count = record.request_count
        if record.unlimited:
            return None
        positive = [limit for limit in (record.daily_limit, record.session_limit) if limit > 0]
        if not positive:
            return None
        return max(0, min(positive) - record_count)

    @staticmethod
    def _breached_limit(record: SessionLimits):
        if record.daily_limit > 0 and record.request_count >= record.daily_limit:
            return "daily", record.daily_limit
        if record.session_limit > 0 and record.request_count >= record.session_limit:
            return "session", record.session_limit
        return None
