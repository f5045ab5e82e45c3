"""Rate-limited, cached translation client.

Lookups go through the cache tiers first (memory, then the SQLite store);
only full misses reach the remote backend, and every remote request waits
for a slot in the :class:`RateLimiter` and is retried with exponential
backoff while the backend reports throttling.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from modsync.backends.base import TranslationBackend
from modsync.core.errors import Throttled
from modsync.core.models import CacheStats, TranslationResult
from modsync.translation.rate_limit import RateLimiter
from modsync.translation.tiers import CacheKey, CacheTier, MemoryTier, StoreTier, make_key

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BACKOFF_BASE_DELAY = 1.0


class TranslationClient:
    """Translate texts through cache tiers, a call budget and retry on throttling.

    Args:
        backend: Remote backend; one ``translate_batch`` call is one request.
        limiter: Shared call budget.
        tiers: Cache tiers in lookup order, fastest first.
        max_retries: Retries after the first attempt on :class:`Throttled`.
        backoff_base: Delay before the first retry; doubles every retry.
        sleep: Used for backoff delays (injectable for tests).
    """

    def __init__(
        self,
        backend: TranslationBackend,
        limiter: RateLimiter,
        tiers: Sequence[CacheTier] = (),
        *,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = BACKOFF_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.backend = backend
        self.limiter = limiter
        self.tiers = list(tiers)
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._sleep = sleep
        self.remote_calls = 0

    # ── Cache tiers ──

    def _lookup(self, key: CacheKey) -> TranslationResult | None:
        for i, tier in enumerate(self.tiers):
            hit = tier.get(key)
            if hit is None:
                continue
            logger.debug("Translation found in %s cache", tier.name)
            for faster in self.tiers[:i]:
                faster.put(key, hit)
            return TranslationResult(hit.text, hit.detected_language, from_cache=True)
        return None

    def _store(self, key: CacheKey, result: TranslationResult) -> None:
        for tier in self.tiers:
            tier.put(key, result)

    # ── Remote calls ──

    def _call_with_retry(
        self, texts: list[str], target_lang: str, source_lang: str | None,
    ) -> list[TranslationResult]:
        """One remote request, retried with exponential backoff on throttling.

        Every attempt takes a slot from the rate budget. Errors other than
        :class:`Throttled` propagate immediately.
        """
        for attempt in range(self.max_retries + 1):
            self.limiter.acquire()
            self.remote_calls += 1
            try:
                return self.backend.translate_batch(texts, target_lang, source_lang)
            except Throttled:
                if attempt == self.max_retries:
                    raise
                delay = self.backoff_base * (2 ** attempt)
                logger.warning(
                    "Rate limited. Retrying in %.1fs (attempt %d/%d)...",
                    delay, attempt + 1, self.max_retries,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")

    # ── Public API ──

    def translate(
        self,
        text: str,
        target_lang: str,
        source_lang: str | None = None,
    ) -> TranslationResult:
        """Translate one text, from cache when possible."""
        return self.translate_batch([text], target_lang, source_lang)[0]

    def translate_batch(
        self,
        texts: list[str],
        target_lang: str,
        source_lang: str | None = None,
    ) -> list[TranslationResult]:
        """Translate several texts with a single remote request for all cache misses.

        Duplicate texts are sent once. Results come back in input order and
        each new translation is cached individually.
        """
        results: list[TranslationResult | None] = []
        misses: dict[str, CacheKey] = {}
        for text in texts:
            key = make_key(text, target_lang, source_lang)
            hit = self._lookup(key) if text.strip() else TranslationResult(text)
            results.append(hit)
            if hit is None:
                misses.setdefault(text, key)

        if misses:
            pending = list(misses)
            chunk_size = getattr(self.backend, "max_batch_size", None) or len(pending)
            fresh: dict[str, TranslationResult] = {}
            for start in range(0, len(pending), chunk_size):
                chunk = pending[start:start + chunk_size]
                translated = self._call_with_retry(chunk, target_lang, source_lang)
                for original, result in zip(chunk, translated, strict=True):
                    self._store(misses[original], result)
                    fresh[original] = result
            results = [r if r is not None else fresh[t] for r, t in zip(results, texts)]

        return results  # type: ignore[return-value]

    def purge_expired(self) -> int:
        """Sweep expired entries from every tier. Returns rows purged from the store."""
        purged = 0
        for tier in self.tiers:
            if isinstance(tier, StoreTier):
                purged += tier.purge_expired()
            elif isinstance(tier, MemoryTier):
                tier.cache.expire()
        return purged

    def clear_cache(self) -> None:
        for tier in self.tiers:
            tier.clear()
        logger.info("Translation caches cleared")

    def cache_stats(self) -> CacheStats:
        for tier in self.tiers:
            if isinstance(tier, MemoryTier):
                return CacheStats(len(tier.cache), tier.cache.approximate_size())
        return CacheStats(0, 0)
