"""Sync and translation workflow over the local catalog.

A sync pass enumerates the mods present locally, fetches their metadata
from the remote catalog in fixed-size batches, decides per item whether
its translation is stale, translates what needs it and commits every item
to the :class:`CatalogStore`. Failures are isolated per batch and per item
and reported in the returned :class:`SyncResult`; only a pass that cannot
enumerate anything or reach the remote catalog at all raises.

Used by both the CLI (cli.py) and the background worker (worker.py), with
callback-based progress reporting and cooperative cancellation.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from threading import Event

from modsync.backends.base import TranslationBackend
from modsync.catalog.local import LocalModScanner, LocalSource
from modsync.catalog.steam import CatalogClient, SteamWorkshopClient
from modsync.catalog.store import CatalogStore
from modsync.config import Settings
from modsync.core.errors import (
    CatalogUnavailable,
    ConfigurationError,
    QuotaExceeded,
    StoreUnavailable,
    TranslationFailed,
)
from modsync.core.models import (
    CacheStats,
    CatalogItem,
    CatalogStatistics,
    ItemFetched,
    ItemTranslation,
    RefreshResult,
)
from modsync.reporting.report import SyncResult
from modsync.translation.cache import TranslationCacheStore
from modsync.translation.client import TranslationClient
from modsync.translation.lang_detect import needs_translation_language
from modsync.translation.memory import MemoryTranslationCache
from modsync.translation.rate_limit import RateLimiter
from modsync.translation.tiers import CacheTier, MemoryTier, StoreTier

logger = logging.getLogger(__name__)

# Type alias for progress callback: (phase, current, total, message)
ProgressCallback = Callable[[str, int, int, str], None]

DEFAULT_BATCH_SIZE = 100
RECENT_UPDATE_WINDOW = timedelta(days=7)

# Failures that make every further translation in the same pass pointless
_HALTING_ERRORS = (QuotaExceeded, ConfigurationError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def needs_translation(
    item: CatalogItem,
    existing: CatalogItem | None,
    now: datetime,
    staleness: timedelta,
) -> bool:
    """Decide whether ``item`` must be (re)translated.

    True when there is no stored record or stored translation time, when the
    remote item changed after the last translation, or when the last
    translation is at least ``staleness`` old (the boundary counts as stale).
    """
    if existing is None:
        return True
    last = existing.last_translated_at
    if last is None:
        return True
    if item.time_updated is not None and item.time_updated > last:
        return True
    return last <= now - staleness


class SyncOrchestrator:
    """Coordinates catalog refresh, translation staleness and persistence.

    Args:
        catalog_client: Remote catalog, one ``fetch_details`` call per batch.
        local_source: Lists the ids of locally present mods.
        store: Catalog record cache.
        translator: Translation client, or None when translation is disabled.
        target_lang: Language items are translated into; items already in it
            are never translated.
        staleness_days: Age after which a translation is redone even if the
            item is unchanged.
        batch_size: Ids per remote catalog request.
        clock: Returns the current aware datetime (injectable for tests).
    """

    def __init__(
        self,
        catalog_client: CatalogClient,
        local_source: LocalSource,
        store: CatalogStore,
        translator: TranslationClient | None,
        *,
        target_lang: str = "en",
        staleness_days: float = 7.0,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.catalog_client = catalog_client
        self.local_source = local_source
        self.store = store
        self.translator = translator
        self.target_lang = target_lang.lower()
        self.staleness = timedelta(days=staleness_days)
        self.batch_size = batch_size
        self._clock = clock
        if translator is None:
            logger.warning("DeepL API key not configured. Translation features will be disabled.")

    # ── Translation of a single item ──

    def _wants_translation(self, item: CatalogItem) -> bool:
        return needs_translation_language(item.language, self.target_lang)

    def _translate_item(self, item: CatalogItem, now: datetime) -> None:
        """Translate title and description in one batch and attach the result.

        The original text is preserved alongside the translation.

        Raises:
            TranslationFailed: From the translation client.
        """
        assert self.translator is not None
        title, description = self.translator.translate_batch(
            [item.title, item.description], self.target_lang,
        )
        item.translation = ItemTranslation(
            original_title=item.title,
            original_description=item.description,
            translated_title=title.text,
            translated_description=description.text,
            last_translated_at=now,
        )
        detected = title.detected_language or description.detected_language
        if detected:
            item.language = detected

    # ── Sync pass ──

    def sync(
        self,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> SyncResult:
        """Scan local mods and sync them from the remote catalog.

        Raises:
            CatalogUnavailable: If local mods cannot be enumerated or no
                remote batch could be fetched.
        """
        started = self._clock()
        logger.info("Starting local mod scan and sync...")
        if self.translator is not None:
            self.translator.purge_expired()

        try:
            ids = self.local_source.list_local_identifiers()
        except Exception as e:
            logger.error("Failed to scan local mods: %s", e)
            raise CatalogUnavailable(f"Cannot enumerate local mods: {e}") from e

        if not ids:
            logger.info("No local mods found")
            return SyncResult(started_at=started, finished_at=self._clock())

        return self.sync_items(
            ids, on_progress=on_progress, cancel_event=cancel_event, started_at=started,
        )

    def sync_items(
        self,
        ids: list[str],
        *,
        on_progress: ProgressCallback | None = None,
        cancel_event: Event | None = None,
        started_at: datetime | None = None,
    ) -> SyncResult:
        """Fetch, translate and store the given ids in batches.

        Batch and item failures are collected as error lines. Cancellation
        is checked before each batch and each item.
        """
        started = started_at or self._clock()
        # Deduplicate, keep order
        ids = list(dict.fromkeys(ids))
        total = len(ids)
        logger.info("Syncing %d mods from the remote catalog", total)

        synced: list[CatalogItem] = []
        errors: list[str] = []
        translated = 0
        processed = 0
        batches_ok = 0
        batches_failed = 0
        halted = False
        cancelled = False

        def is_cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        def report(item_id: str = "") -> None:
            if on_progress is not None:
                on_progress("sync", processed, total, item_id)

        for batch_no, start in enumerate(range(0, total, self.batch_size), start=1):
            if is_cancelled():
                cancelled = True
                break
            batch = ids[start:start + self.batch_size]
            try:
                outcomes = self.catalog_client.fetch_details(batch)
            except Exception as e:
                batches_failed += 1
                msg = f"Failed to fetch batch {batch_no} ({', '.join(batch)}): {e}"
                logger.error(msg)
                errors.append(msg)
                processed += len(batch)
                report()
                continue
            batches_ok += 1

            returned: set[str] = set()
            for outcome in outcomes:
                if is_cancelled():
                    cancelled = True
                    break
                processed += 1
                if not isinstance(outcome, ItemFetched):
                    returned.add(outcome.item_id)
                    errors.append(
                        f"Mod {outcome.item_id}: remote catalog error "
                        f"(result: {outcome.result_code})"
                    )
                    report(outcome.item_id)
                    continue
                item = outcome.item
                returned.add(item.id)
                try:
                    did_translate, halted = self._process_item(item, halted, errors)
                except Exception as e:
                    msg = f"Failed to process mod {item.id}: {e}"
                    logger.error(msg)
                    errors.append(msg)
                    report(item.id)
                    continue
                translated += did_translate
                synced.append(item)
                logger.debug("Synced mod: %s (%s)", item.title, item.id)
                report(item.id)
            if cancelled:
                break

            missing = [item_id for item_id in batch if item_id not in returned]
            if missing:
                processed += len(missing)
                for item_id in missing:
                    errors.append(f"Mod {item_id}: missing from remote catalog response")
                logger.warning("Remote catalog omitted %d of %d mods", len(missing), len(batch))
                report()

        if cancelled:
            logger.warning("Sync cancelled after %d of %d mods", processed, total)
        elif batches_ok == 0 and batches_failed > 0:
            raise CatalogUnavailable(
                "Could not reach the remote catalog: " + "; ".join(errors)
            )

        logger.info(
            "Sync complete: %d scanned, %d synced, %d translated, %d errors",
            total, len(synced), translated, len(errors),
        )
        return SyncResult(
            scanned_count=total,
            synced_items=tuple(synced),
            errors=tuple(errors),
            translated_count=translated,
            cancelled=cancelled,
            started_at=started,
            finished_at=self._clock(),
        )

    def _process_item(
        self, item: CatalogItem, halted: bool, errors: list[str],
    ) -> tuple[bool, bool]:
        """Bring one fetched item up to date and save it.

        Returns ``(translated, halted)``. A translation failure keeps the
        previous translation and is appended to ``errors``; quota and
        configuration failures also halt translation for the rest of the pass.
        """
        if not self._wants_translation(item):
            self.store.save(item)
            return False, halted

        existing = self.store.get(item.id)
        now = self._clock()
        stale = needs_translation(item, existing, now, self.staleness)

        if stale and self.translator is not None and not halted:
            logger.info("Mod %s needs translation", item.id)
            try:
                self._translate_item(item, now)
            except TranslationFailed as e:
                msg = f"Mod {item.id}: translation failed: {e}"
                if isinstance(e, _HALTING_ERRORS):
                    halted = True
                    msg += " (translation stopped for the rest of this pass)"
                logger.error(msg)
                errors.append(msg)
            else:
                self.store.save(item)
                return True, halted

        # Unchanged, disabled or failed: keep the last known translation along
        # with the language it was detected as
        if existing is not None and existing.translation is not None:
            item.translation = existing.translation
            if existing.language:
                item.language = existing.language
            if not stale:
                logger.debug("Mod %s unchanged, using existing translation", item.id)
        self.store.save(item)
        return False, halted

    def check_for_updates(
        self,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_event: Event | None = None,
    ) -> SyncResult:
        """Re-sync every mod already in the catalog."""
        logger.info("Checking for mod updates...")
        ids = self.store.ids()
        if not ids:
            now = self._clock()
            return SyncResult(started_at=now, finished_at=now)
        return self.sync_items(ids, on_progress=on_progress, cancel_event=cancel_event)

    # ── Queries and commands for the UI ──

    def get_item(self, item_id: str, include_translation: bool = True) -> CatalogItem | None:
        """Return a stored item, fetching (and translating) it remotely if unknown."""
        item = self.store.get(item_id)
        if item is None:
            item = self._fetch_single(item_id, include_translation)
            if item is None:
                return None
        if not include_translation and item.translation is not None:
            return replace(item, translation=None)
        return item

    def _fetch_single(self, item_id: str, translate: bool) -> CatalogItem | None:
        try:
            outcomes = self.catalog_client.fetch_details([item_id])
        except Exception as e:
            logger.error("Failed to fetch mod %s from the remote catalog: %s", item_id, e)
            return None
        item = next((o.item for o in outcomes if isinstance(o, ItemFetched)), None)
        if item is None:
            return None
        if translate and self.translator is not None and self._wants_translation(item):
            try:
                self._translate_item(item, self._clock())
            except TranslationFailed as e:
                logger.error("Failed to translate mod %s: %s", item_id, e)
        try:
            self.store.save(item)
        except StoreUnavailable as e:
            logger.error("Failed to save mod %s: %s", item_id, e)
        return item

    def list_items(self, limit: int = 100, offset: int = 0) -> list[CatalogItem]:
        return self.store.list_items(limit, offset)

    def search(self, term: str, limit: int = 50) -> list[CatalogItem]:
        return self.store.search(term, limit)

    def refresh_translations(self, language: str | None = None) -> RefreshResult:
        """Force re-translation of stored items.

        With ``language`` only items in that language are refreshed; without
        it every item not already in the target language is.
        """
        items = self.store.all_items()
        if language:
            items = [i for i in items if i.language == language.lower()]
        else:
            items = [i for i in items if self._wants_translation(i)]

        logger.info("Refreshing translations for %d mods", len(items))
        if self.translator is None:
            logger.warning("Translation disabled; %d mods not refreshed", len(items))
            return RefreshResult(0, len(items))

        success = 0
        errors = 0
        halted = False
        for item in items:
            if halted:
                errors += 1
                continue
            try:
                self._translate_item(item, self._clock())
                self.store.save(item)
                success += 1
            except (TranslationFailed, StoreUnavailable) as e:
                logger.error("Failed to refresh translation for mod %s: %s", item.id, e)
                errors += 1
                if isinstance(e, _HALTING_ERRORS):
                    halted = True

        logger.info("Translation refresh complete. %d successful, %d errors", success, errors)
        return RefreshResult(success, errors)

    def get_statistics(self) -> CatalogStatistics:
        items = self.store.all_items()
        recent_since = self._clock() - RECENT_UPDATE_WINDOW
        breakdown = Counter(item.language or "unknown" for item in items)
        return CatalogStatistics(
            total_items=len(items),
            translated_items=sum(
                1 for i in items if i.translation is not None and i.translation.is_translated
            ),
            language_breakdown=dict(breakdown),
            recent_update_count=sum(
                1 for i in items if i.time_updated is not None and i.time_updated > recent_since
            ),
        )

    def get_cache_stats(self) -> CacheStats:
        if self.translator is None:
            return CacheStats(0, 0)
        return self.translator.cache_stats()

    def clear_translation_cache(self) -> None:
        """Empty both the memory cache and the persistent translation cache."""
        if self.translator is not None:
            self.translator.clear_cache()

    def close(self) -> None:
        self.store.close()
        if self.translator is not None:
            for tier in self.translator.tiers:
                if isinstance(tier, StoreTier):
                    tier.store.close()


# ── Construction ──


def create_backend(settings: Settings) -> TranslationBackend:
    """Create the remote translation backend.

    Raises:
        ConfigurationError: If no DeepL API key is configured.
    """
    if not settings.deepl_api_key:
        raise ConfigurationError(
            "DeepL API key required. Set DEEPL_API_KEY or deepl_api_key in the config file."
        )
    from modsync.backends.deepl import DeepLBackend
    return DeepLBackend(settings.deepl_api_key, settings.deepl_server_url)


def create_translation_client(
    settings: Settings,
    backend: TranslationBackend | None = None,
) -> TranslationClient:
    """Wire a translation client with both cache tiers and the configured budget.

    If the SQLite cache cannot be opened the client runs memory-only.
    """
    tiers: list[CacheTier] = [MemoryTier(MemoryTranslationCache(settings.memory_ttl_seconds))]
    try:
        store = TranslationCacheStore(settings.cache_db_path)
    except StoreUnavailable as e:
        logger.error("Translation cache unavailable, continuing memory-only: %s", e)
    else:
        tiers.append(StoreTier(store, settings.cache_ttl_seconds))

    return TranslationClient(
        backend or create_backend(settings),
        RateLimiter(
            settings.max_calls_per_second,
            settings.max_calls_per_minute,
            settings.min_call_interval,
        ),
        tiers,
        max_retries=settings.max_retries,
        backoff_base=settings.backoff_base_delay,
    )


def build_orchestrator(
    settings: Settings,
    *,
    catalog_client: CatalogClient | None = None,
    local_source: LocalSource | None = None,
    backend: TranslationBackend | None = None,
) -> SyncOrchestrator:
    """Assemble an orchestrator from settings; collaborators may be overridden."""
    translator = None
    if backend is not None or settings.translation_enabled:
        translator = create_translation_client(settings, backend)
    return SyncOrchestrator(
        catalog_client or SteamWorkshopClient(settings.steam_api_key),
        local_source or LocalModScanner(settings.workshop_path),
        CatalogStore(settings.catalog_db_path),
        translator,
        target_lang=settings.target_lang,
        staleness_days=settings.staleness_days,
        batch_size=settings.fetch_batch_size,
    )
