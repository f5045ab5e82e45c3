"""Shared test fixtures for modsync tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from modsync.core.errors import CatalogFetchError
from modsync.core.models import CatalogItem, FetchOutcome, ItemFetched, ItemFetchFailed
from modsync.translation.lang_detect import detect_language

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Simulated monotonic clock; ``sleep`` advances it and records the delay."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDateClock:
    """Settable aware-datetime clock for the orchestrator."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_item(
    item_id: str,
    title: str = "Test Mod",
    description: str = "",
    time_updated: datetime | None = T0 - timedelta(days=30),
    language: str | None = None,
    **kwargs,
) -> CatalogItem:
    """Create a CatalogItem as the remote catalog would return it."""
    return CatalogItem(
        id=item_id,
        title=title,
        description=description,
        time_updated=time_updated,
        language=language if language is not None else detect_language(title, description),
        **kwargs,
    )


def make_raw_item(item_id: str, title: str = "Test Mod", **overrides) -> dict:
    """Create one ``publishedfiledetails`` entry of a Steam response."""
    raw = {
        "publishedfileid": item_id,
        "result": 1,
        "title": title,
        "description": "A description",
        "creator": "76561198000000000",
        "preview_url": "https://example.com/preview.jpg",
        "file_size": 2048,
        "subscriptions": 120,
        "lifetime_subscriptions": 200,
        "lifetime_favorited": 40,
        "tags": [{"tag": "Weapons"}, {"tag": "Gameplay"}],
        "time_created": 1700000000,
        "time_updated": 1705000000,
    }
    raw.update(overrides)
    return raw


class FakeCatalogClient:
    """In-memory remote catalog.

    ``items`` maps id → CatalogItem; ids not present come back as a failed
    item with result code 9. Batches whose 1-based number is in
    ``failing_batches`` raise CatalogFetchError. Ids in ``omitted`` are left
    out of the response entirely.
    """

    def __init__(
        self,
        items: dict[str, CatalogItem] | None = None,
        failing_batches: set[int] | None = None,
        omitted: set[str] | None = None,
    ) -> None:
        self.items = items or {}
        self.failing_batches = failing_batches or set()
        self.omitted = omitted or set()
        self.calls: list[list[str]] = []

    def fetch_details(self, ids: list[str]) -> list[FetchOutcome]:
        self.calls.append(list(ids))
        if len(self.calls) in self.failing_batches:
            raise CatalogFetchError("Steam API returned error code: 2")
        outcomes: list[FetchOutcome] = []
        for item_id in ids:
            if item_id in self.omitted:
                continue
            item = self.items.get(item_id)
            if item is None:
                outcomes.append(ItemFetchFailed(item_id, 9))
            else:
                # Hand out a fresh copy like a real response would
                outcomes.append(ItemFetched(CatalogItem(**{
                    **item.__dict__, "tags": list(item.tags), "translation": None,
                })))
        return outcomes


class FakeLocalSource:
    def __init__(self, ids: list[str] | None = None, error: Exception | None = None) -> None:
        self.ids = ids or []
        self.error = error

    def list_local_identifiers(self) -> list[str]:
        if self.error is not None:
            raise self.error
        return list(self.ids)


@pytest.fixture(autouse=True)
def _isolated_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own settings variables out of every test."""
    from modsync.config import Settings
    for field in Settings.model_fields.values():
        if field.validation_alias:
            monkeypatch.delenv(str(field.validation_alias), raising=False)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tmp_translation_store(tmp_path: Path, fake_clock: FakeClock):
    """Create a temporary translation cache driven by the fake clock."""
    from modsync.translation.cache import TranslationCacheStore
    store = TranslationCacheStore(tmp_path / "cache.db", clock=fake_clock)
    yield store
    store.close()


@pytest.fixture
def catalog_store(tmp_path: Path):
    """Create a temporary catalog store."""
    from modsync.catalog.store import CatalogStore
    store = CatalogStore(tmp_path / "catalog.db")
    yield store
    store.close()
