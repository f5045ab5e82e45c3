"""Data model for catalog items, fetch outcomes and query results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ItemTranslation:
    """Translated copy of an item's title and description.

    The original text is kept next to the translation so a re-sync never
    loses what the author actually wrote.
    """

    original_title: str | None = None
    original_description: str | None = None
    translated_title: str | None = None
    translated_description: str | None = None
    last_translated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.translated_title and not self.original_title:
            raise ValueError("translated_title requires original_title")
        if self.translated_description and self.original_description is None:
            raise ValueError("translated_description requires original_description")

    @property
    def is_translated(self) -> bool:
        return bool(self.translated_title or self.translated_description)


@dataclass
class CatalogItem:
    """A single mod mirrored from the remote catalog."""

    id: str
    title: str
    description: str = ""
    creator: str = ""
    preview_url: str = ""
    file_size: int = 0
    subscriptions: int = 0
    rating: float = 0.0
    tags: list[str] = field(default_factory=list)
    time_created: datetime | None = None
    time_updated: datetime | None = None
    language: str | None = None
    translation: ItemTranslation | None = None

    @property
    def last_translated_at(self) -> datetime | None:
        if self.translation is None:
            return None
        return self.translation.last_translated_at

    @property
    def display_title(self) -> str:
        if self.translation is not None and self.translation.translated_title:
            return self.translation.translated_title
        return self.title

    @property
    def display_description(self) -> str:
        if self.translation is not None and self.translation.translated_description:
            return self.translation.translated_description
        return self.description


# ── Remote fetch outcomes ──
# Each record of a batch response is decoded into exactly one of these,
# so the orchestrator never looks at raw status codes.


@dataclass(frozen=True)
class ItemFetched:
    item: CatalogItem

    @property
    def item_id(self) -> str:
        return self.item.id


@dataclass(frozen=True)
class ItemFetchFailed:
    item_id: str
    result_code: int


FetchOutcome = ItemFetched | ItemFetchFailed


# ── Query results ──


@dataclass(frozen=True)
class TranslationResult:
    """One translated text as returned by the translation client."""
    text: str
    detected_language: str | None = None
    from_cache: bool = False


@dataclass(frozen=True)
class RefreshResult:
    success_count: int = 0
    error_count: int = 0


@dataclass(frozen=True)
class CatalogStatistics:
    total_items: int
    translated_items: int
    language_breakdown: dict[str, int]
    recent_update_count: int


@dataclass(frozen=True)
class CacheStats:
    memory_entry_count: int
    approximate_memory_size: int  # bytes
