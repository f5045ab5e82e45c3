"""SQLite cache for translations to avoid redundant API calls."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from modsync.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS translations (
    original_text TEXT NOT NULL,
    source_lang TEXT NOT NULL,
    target_lang TEXT NOT NULL,
    translated_text TEXT NOT NULL,
    detected_lang TEXT,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL,
    PRIMARY KEY (original_text, source_lang, target_lang)
);
CREATE INDEX IF NOT EXISTS idx_translations_expires ON translations(expires_at);
"""


@dataclass(frozen=True)
class CachedTranslation:
    """A live row of the translation cache."""
    original_text: str
    source_lang: str
    target_lang: str
    translated_text: str
    detected_lang: str | None
    created_at: float
    expires_at: float


class TranslationCacheStore:
    """Persistent SQLite cache mapping (text, source_lang, target_lang) → translation.

    Every row carries an expiry timestamp; reads ignore expired rows and
    :meth:`purge_expired` removes them physically. ``sqlite3.Error`` is
    re-raised as :class:`StoreUnavailable`.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"Cannot open translation cache {self._db_path}: {e}") from e

    @property
    def path(self) -> Path:
        return self._db_path

    def get(
        self, text: str, source_lang: str, target_lang: str,
    ) -> CachedTranslation | None:
        """Look up a live translation. Returns None if absent or expired."""
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT original_text, source_lang, target_lang, translated_text, "
                    "detected_lang, created_at, expires_at FROM translations "
                    "WHERE original_text = ? AND source_lang = ? AND target_lang = ? "
                    "AND expires_at > ?",
                    (text, source_lang, target_lang, self._clock()),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Translation cache read failed: {e}") from e
        return CachedTranslation(*row) if row else None

    def put(
        self,
        text: str,
        translated_text: str,
        source_lang: str,
        target_lang: str,
        ttl: float,
        *,
        detected_lang: str | None = None,
    ) -> None:
        """Store a translation, replacing any previous entry and resetting its expiry.

        ``ttl`` is in seconds and must be positive.
        """
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        now = self._clock()
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO translations (original_text, source_lang, "
                    "target_lang, translated_text, detected_lang, created_at, expires_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (text, source_lang, target_lang, translated_text, detected_lang,
                     now, now + ttl),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Translation cache write failed: {e}") from e

    def purge_expired(self) -> int:
        """Delete rows whose expiry has passed. Returns number of rows deleted."""
        try:
            with self._lock:
                cursor = self._conn.execute(
                    "DELETE FROM translations WHERE expires_at <= ?", (self._clock(),),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Translation cache purge failed: {e}") from e
        if cursor.rowcount:
            logger.info("Purged %d expired cached translations", cursor.rowcount)
        return cursor.rowcount

    def count(self) -> int:
        """Return total number of rows, expired or not."""
        try:
            with self._lock:
                cursor = self._conn.execute("SELECT COUNT(*) FROM translations")
                return cursor.fetchone()[0]  # type: ignore[no-any-return]
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Translation cache read failed: {e}") from e

    def clear(self) -> int:
        """Clear all cached translations. Returns number of entries deleted."""
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM translations")
                self._conn.commit()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Translation cache clear failed: {e}") from e
        return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            self._conn.close()
