"""Cache tiers consulted by the translation client, fastest first.

Each tier answers a lookup with a :class:`TranslationResult` or ``None``
and accepts write-through of fresh translations. The client walks the
tiers in order and back-fills the faster ones on a hit.
"""

from __future__ import annotations

import logging
from typing import Protocol

from modsync.core.errors import StoreUnavailable
from modsync.core.models import TranslationResult
from modsync.translation.cache import TranslationCacheStore
from modsync.translation.memory import MemoryTranslationCache

logger = logging.getLogger(__name__)

# (original_text, source_lang or "auto", target_lang)
CacheKey = tuple[str, str, str]


def make_key(text: str, target_lang: str, source_lang: str | None = None) -> CacheKey:
    return (text, (source_lang or "auto").lower(), target_lang.lower())


class CacheTier(Protocol):
    name: str

    def get(self, key: CacheKey) -> TranslationResult | None: ...

    def put(self, key: CacheKey, result: TranslationResult) -> None: ...

    def clear(self) -> None: ...


class MemoryTier:
    """Session-scoped tier backed by :class:`MemoryTranslationCache`."""

    name = "memory"

    def __init__(self, cache: MemoryTranslationCache) -> None:
        self.cache = cache

    def get(self, key: CacheKey) -> TranslationResult | None:
        return self.cache.get(key)

    def put(self, key: CacheKey, result: TranslationResult) -> None:
        self.cache.set(key, TranslationResult(result.text, result.detected_language))

    def clear(self) -> None:
        self.cache.clear()


class StoreTier:
    """Durable tier backed by :class:`TranslationCacheStore`.

    The first :class:`StoreUnavailable` switches the tier off for the rest of
    the process; lookups then miss and writes are skipped, so the client keeps
    working from memory alone.
    """

    name = "store"

    def __init__(self, store: TranslationCacheStore, ttl: float) -> None:
        self.store = store
        self.ttl = ttl
        self.available = True

    def _disable(self, error: StoreUnavailable) -> None:
        if self.available:
            logger.error("Translation cache unavailable, continuing memory-only: %s", error)
        self.available = False

    def get(self, key: CacheKey) -> TranslationResult | None:
        if not self.available:
            return None
        text, source_lang, target_lang = key
        try:
            row = self.store.get(text, source_lang, target_lang)
        except StoreUnavailable as e:
            self._disable(e)
            return None
        if row is None:
            return None
        return TranslationResult(row.translated_text, row.detected_lang)

    def put(self, key: CacheKey, result: TranslationResult) -> None:
        if not self.available:
            return
        text, source_lang, target_lang = key
        try:
            self.store.put(
                text, result.text, source_lang, target_lang, self.ttl,
                detected_lang=result.detected_language,
            )
        except StoreUnavailable as e:
            self._disable(e)

    def purge_expired(self) -> int:
        if not self.available:
            return 0
        try:
            return self.store.purge_expired()
        except StoreUnavailable as e:
            self._disable(e)
            return 0

    def clear(self) -> None:
        if not self.available:
            return
        try:
            self.store.clear()
        except StoreUnavailable as e:
            self._disable(e)
