"""Sync pass report data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from modsync.core.models import CatalogItem


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync pass, handed to the caller and never persisted.

    ``errors`` holds one human-readable line per failed batch or item.
    """

    scanned_count: int = 0
    synced_items: tuple[CatalogItem, ...] = ()
    errors: tuple[str, ...] = ()
    translated_count: int = 0
    cancelled: bool = False
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime = field(default_factory=_utcnow)

    @property
    def synced_count(self) -> int:
        return len(self.synced_items)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "scanned_count": self.scanned_count,
            "synced_count": self.synced_count,
            "translated_count": self.translated_count,
            "error_count": self.error_count,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "synced_ids": [item.id for item in self.synced_items],
            "errors": list(self.errors),
        }
