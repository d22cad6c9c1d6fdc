"""
Batch orchestration.

Owns the deferred request queue, the in-flight tracking, batch cache
validity checks and priority routing for bulk suggestion generation.

Request Flow:
1. Quota check - Rejects with QuotaExceeded when the user is out of requests
2. Cache lookup - Serves a batch only if every member is unexpired
3. Routing - High priority (or an idle engine) runs immediately, the rest queue
4. Execution - Select provider, generate, cache, charge usage
"""

import asyncio
import logging
import random
import string
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Iterable, List, Optional, Sequence, Set, Union

from suggestion_engine.config.loader import EngineConfig
from suggestion_engine.storage.cache import CacheStore, TTLCache
from suggestion_engine.storage.models import (
    BatchRequest,
    OptimizedSuggestion,
    Priority,
    SuggestionType,
    Tier,
    SessionLimits,
    batch_cache_key,
)

from .errors import CacheUnavailable
from .generator import SuggestionGenerator
from .quota import QuotaEnforcer
from .selector import POPULAR_CATEGORIES, determine_priority, select_provider

logger = logging.getLogger(__name__)

# Rough seconds of waiting per queued batch, for status reporting
SECONDS_PER_QUEUED_BATCH = 2


@dataclass(frozen=True)
class BatchQueueStatus:
    """Snapshot of the deferred queue."""
    queue_length: int
    processing: bool
    average_wait_time: float


@dataclass(frozen=True)
class CacheStats:
    """Batch cache effectiveness since the orchestrator started."""
    hits: int
    misses: int
    cost_savings: float

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass
class _QueuedBatch:
    request: BatchRequest
    user_id: Optional[str]
    future: asyncio.Future


def is_batch_valid(suggestions: Optional[Sequence[OptimizedSuggestion]], now: Optional[datetime] = None) -> bool:
    """A cached batch is usable only while every member is unexpired.

    Args:
        suggestions: Cached batch (may be None or empty)
        now: Reference time (defaults to now)

    Returns:
        False for a missing or empty batch, or if any member has expired
    """
    if not suggestions:
        return False
    now = now or datetime.now()
    return all(not s.is_expired(now) for s in suggestions)


def new_batch_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"batch_{int(now.timestamp() * 1000)}_{suffix}"


class BatchOrchestrator:
    """Cached, quota-gated bulk suggestion generation.

    High priority requests always run immediately, even alongside other
    work. Lower priority requests run immediately only when nothing is in
    flight; otherwise they join a queue that one worker drains an item at
    a time, pausing between items to respect upstream rate limits. Each
    queued caller awaits the result of its own request.

    Usage:
        orchestrator = BatchOrchestrator(generator)
        batch = await orchestrator.process(SuggestionType.CREATIVE, "marketing", user_id="u1")
    """

    def __init__(
        self,
        generator: SuggestionGenerator,
        quota: Optional[QuotaEnforcer] = None,
        cache: Optional[CacheStore] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize orchestrator.

        Args:
            generator: Produces suggestions for a request
            quota: Per-user quota accounting (fresh in-memory if omitted)
            cache: Shared cache store (fresh TTLCache if omitted)
            config: Batch sizes and queue pacing
        """
        self.config = config or EngineConfig()
        self.generator = generator
        self.quota = quota or QuotaEnforcer(config=self.config)
        self.cache = cache if cache is not None else TTLCache(self.config.cache.default_ttl_seconds)

        self._queue: Deque[_QueuedBatch] = deque()
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._worker: Optional[asyncio.Task] = None
        self._batch_keys: Set[str] = set()

        self._hits = 0
        self._misses = 0
        self._cost_savings = 0.0

    @property
    def processing(self) -> bool:
        """True while any batch is being generated."""
        return self._active > 0

    async def process(
        self,
        type: Union[SuggestionType, str],
        category: str,
        user_id: Optional[str] = None,
    ) -> List[OptimizedSuggestion]:
        """Get a batch of suggestions for a type and category.

        Args:
            type: Kind of suggestions
            category: Subject area, e.g. "marketing"
            user_id: User to charge; anonymous requests are not quota-checked

        Returns:
            The cached or freshly generated batch (never empty)

        Raises:
            QuotaExceeded: If the user is out of requests
            ValueError: If type is not a known SuggestionType
        """
        type = SuggestionType(type)

        if user_id:
            self.quota.enforce(user_id, type)

        cache_key = batch_cache_key(type, category)
        cached = self._cached_batch(cache_key)
        if cached is not None:
            logger.info(f"Serving cached batch for {type.value}:{category}")
            return cached

        self._misses += 1
        request = self.build_request(type, category)

        if request.priority == Priority.HIGH or not self.processing:
            return await self._execute(request, user_id)

        return await self._enqueue(request, user_id)

    def build_request(self, type: SuggestionType, category: str) -> BatchRequest:
        """Create the BatchRequest for a cache miss."""
        now = datetime.now()
        return BatchRequest(
            id=new_batch_id(now),
            type=type,
            category=category,
            count=self.config.batch_sizes[type],
            priority=determine_priority(type, category),
            timestamp=now,
        )

    async def _execute(self, request: BatchRequest, user_id: Optional[str]) -> List[OptimizedSuggestion]:
        self._active += 1
        self._idle.clear()
        try:
            provider = select_provider(request.type)
            logger.info(f"Processing batch request: {request.type.value} for {request.category} with {provider.value}")
            suggestions = await self.generator.generate(request, provider)

            self._cache_set(request.cache_key, suggestions)

            if user_id:
                self.quota.update(user_id, sum(s.estimated_cost for s in suggestions))

            logger.info(f"Generated {len(suggestions)} suggestions using {provider.value}")
            return suggestions
        finally:
            self._active -= 1
            if self._active == 0:
                self._idle.set()

    async def _enqueue(self, request: BatchRequest, user_id: Optional[str]) -> List[OptimizedSuggestion]:
        future = asyncio.get_running_loop().create_future()
        self._queue.append(_QueuedBatch(request=request, user_id=user_id, future=future))
        logger.debug(f"Queued {request.priority.value} priority batch {request.id} ({len(self._queue)} waiting)")

        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain())

        return await future

    async def _drain(self) -> None:
        """Run queued requests one at a time with a fixed pause before each."""
        while self._queue:
            await self._idle.wait()
            await asyncio.sleep(self.config.queue.delay_seconds)

            item = self._queue.popleft()
            if item.future.done():
                continue

            # An earlier queued request for the same pair may have filled the cache
            cached = self._cached_batch(item.request.cache_key, record_hit=False)
            if cached is not None:
                item.future.set_result(cached)
                continue

            try:
                result = await self._execute(item.request, item.user_id)
            except Exception as e:
                logger.error(f"Queued batch {item.request.id} failed: {e}")
                if not item.future.done():
                    item.future.set_exception(e)
            else:
                if not item.future.done():
                    item.future.set_result(result)

    def _cached_batch(self, cache_key: str, record_hit: bool = True) -> Optional[List[OptimizedSuggestion]]:
        try:
            cached = self.cache.get(cache_key)
        except CacheUnavailable as e:
            logger.warning(f"Cache unavailable, treating {cache_key} as a miss: {e}")
            return None

        if not is_batch_valid(cached):
            return None

        # Requests that reach the queue were already counted as misses
        if record_hit:
            self._hits += 1
            self._cost_savings += sum(s.estimated_cost for s in cached)
        return list(cached)

    def _cache_set(self, cache_key: str, suggestions: List[OptimizedSuggestion]) -> None:
        try:
            self.cache.set(cache_key, suggestions)
        except CacheUnavailable as e:
            logger.warning(f"Cache unavailable, batch {cache_key} not cached: {e}")
            return
        self._batch_keys.add(cache_key)

    def get_session_stats(self, user_id: str) -> Optional[SessionLimits]:
        return self.quota.get(user_id)

    def update_user_limits(self, user_id: str, tier: Union[Tier, str]) -> SessionLimits:
        return self.quota.update_user_limits(user_id, Tier(tier))

    def get_batch_queue_status(self) -> BatchQueueStatus:
        return BatchQueueStatus(
            queue_length=len(self._queue),
            processing=self.processing,
            average_wait_time=len(self._queue) * SECONDS_PER_QUEUED_BATCH,
        )

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses, cost_savings=round(self._cost_savings, 6))

    async def clear_expired_batches(self) -> int:
        """Delete stale batches this orchestrator has cached.

        Returns:
            Number of batches removed
        """
        cleared = 0
        for cache_key in sorted(self._batch_keys):
            try:
                cached = self.cache.get(cache_key)
                if cached is None:
                    self._batch_keys.discard(cache_key)
                elif not is_batch_valid(cached):
                    self.cache.delete(cache_key)
                    self._batch_keys.discard(cache_key)
                    cleared += 1
            except CacheUnavailable as e:
                logger.warning(f"Cache unavailable while clearing expired batches: {e}")
                break
        if cleared:
            logger.info(f"Cleared {cleared} expired batches")
        return cleared

    async def warm_cache(
        self,
        types: Iterable[SuggestionType] = (SuggestionType.CREATIVE,),
        categories: Iterable[str] = tuple(sorted(POPULAR_CATEGORIES)),
    ) -> int:
        """Pre-generate batches without charging any user.

        Returns:
            Number of batches that had to be generated
        """
        misses_before = self._misses
        categories = list(categories)
        for type in types:
            for category in categories:
                await self.process(type, category)
        warmed = self._misses - misses_before
        logger.info(f"Cache warm-up generated {warmed} batches")
        return warmed

    async def close(self) -> None:
        """Stop the queue worker and cancel anything still waiting."""
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.cancel()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
