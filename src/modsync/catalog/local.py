"""Enumeration of mods present in the local workshop folder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from modsync.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class LocalSource(Protocol):
    def list_local_identifiers(self) -> list[str]: ...


class LocalModScanner:
    """Lists mod ids from the workshop content folder.

    Steam keeps each subscribed item in a directory named after its
    numeric published file id; anything else in the folder is ignored.
    """

    def __init__(self, workshop_path: str | Path | None) -> None:
        self.workshop_path = Path(workshop_path) if workshop_path else None

    def list_local_identifiers(self) -> list[str]:
        if self.workshop_path is None:
            raise ConfigurationError("Workshop data path not configured")
        if not self.workshop_path.is_dir():
            raise FileNotFoundError(f"Workshop data path does not exist: {self.workshop_path}")

        logger.info("Scanning workshop folder: %s", self.workshop_path)
        ids = sorted(
            (entry.name for entry in self.workshop_path.iterdir()
             if entry.is_dir() and entry.name.isascii() and entry.name.isdigit()),
            key=int,
        )
        logger.info("Found %d local mods", len(ids))
        return ids
