"""SQLite store of catalog items: the local source of truth the UI reads from."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from modsync.core.errors import StoreUnavailable
from modsync.core.models import CatalogItem, ItemTranslation

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS mods (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    original_title TEXT,
    original_description TEXT,
    translated_title TEXT,
    translated_description TEXT,
    creator TEXT,
    preview_url TEXT,
    file_size INTEGER,
    subscriptions INTEGER,
    rating REAL,
    tags TEXT,
    time_created REAL,
    time_updated REAL,
    last_translated REAL,
    language TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_mods_updated ON mods(time_updated);
CREATE INDEX IF NOT EXISTS idx_mods_language ON mods(language);
"""

_COLUMNS = (
    "id, title, description, original_title, original_description, "
    "translated_title, translated_description, creator, preview_url, "
    "file_size, subscriptions, rating, tags, time_created, time_updated, "
    "last_translated, language"
)


def _to_ts(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


def _from_ts(value: float | None) -> datetime | None:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value is not None else None


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _row_to_item(row: tuple) -> CatalogItem:
    (item_id, title, description, original_title, original_description,
     translated_title, translated_description, creator, preview_url,
     file_size, subscriptions, rating, tags, time_created, time_updated,
     last_translated, language) = row

    translation = None
    if original_title is not None or last_translated is not None:
        translation = ItemTranslation(
            original_title=original_title,
            original_description=original_description,
            translated_title=translated_title,
            translated_description=translated_description,
            last_translated_at=_from_ts(last_translated),
        )
    return CatalogItem(
        id=item_id,
        title=title,
        description=description or "",
        creator=creator or "",
        preview_url=preview_url or "",
        file_size=file_size or 0,
        subscriptions=subscriptions or 0,
        rating=rating or 0.0,
        tags=json.loads(tags or "[]"),
        time_created=_from_ts(time_created),
        time_updated=_from_ts(time_updated),
        language=language,
        translation=translation,
    )


class CatalogStore:
    """Persistent catalog of mods with their translation state.

    Items are upserted on every sync and never deleted here.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.create_function("casefold", 1, _casefold, deterministic=True)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"Cannot open catalog {self._db_path}: {e}") from e
        logger.debug("Opened catalog at %s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Catalog query failed: {e}") from e

    def save(self, item: CatalogItem) -> None:
        """Insert or replace an item."""
        t = item.translation or ItemTranslation()
        params = (
            item.id, item.title, item.description,
            t.original_title, t.original_description,
            t.translated_title, t.translated_description,
            item.creator, item.preview_url, item.file_size, item.subscriptions,
            item.rating, json.dumps(item.tags, ensure_ascii=False),
            _to_ts(item.time_created), _to_ts(item.time_updated),
            _to_ts(t.last_translated_at), item.language,
        )
        try:
            with self._lock:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO mods ({_COLUMNS}, updated_at) "
                    f"VALUES ({', '.join('?' * len(params))}, CURRENT_TIMESTAMP)",
                    params,
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to save mod {item.id}: {e}") from e

    def get(self, item_id: str) -> CatalogItem | None:
        rows = self._query(f"SELECT {_COLUMNS} FROM mods WHERE id = ?", (item_id,))
        return _row_to_item(rows[0]) if rows else None

    def list_items(self, limit: int = 100, offset: int = 0) -> list[CatalogItem]:
        """Items ordered by last remote update, newest first."""
        rows = self._query(
            f"SELECT {_COLUMNS} FROM mods ORDER BY time_updated DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [_row_to_item(r) for r in rows]

    def all_items(self) -> list[CatalogItem]:
        rows = self._query(f"SELECT {_COLUMNS} FROM mods ORDER BY time_updated DESC")
        return [_row_to_item(r) for r in rows]

    def ids(self) -> list[str]:
        return [r[0] for r in self._query("SELECT id FROM mods ORDER BY id")]

    def search(self, term: str, limit: int = 50) -> list[CatalogItem]:
        """Case-insensitive substring match over original and translated title/description.

        SQLite folds ASCII only, so both sides go through ``str.casefold``.
        """
        escaped = term.casefold().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        rows = self._query(
            f"SELECT {_COLUMNS} FROM mods "
            "WHERE casefold(title) LIKE ? ESCAPE '\\' "
            "OR casefold(description) LIKE ? ESCAPE '\\' "
            "OR casefold(translated_title) LIKE ? ESCAPE '\\' "
            "OR casefold(translated_description) LIKE ? ESCAPE '\\' "
            "ORDER BY time_updated DESC LIMIT ?",
            (pattern, pattern, pattern, pattern, limit),
        )
        return [_row_to_item(r) for r in rows]

    def count(self) -> int:
        return self._query("SELECT COUNT(*) FROM mods")[0][0]  # type: ignore[no-any-return]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
