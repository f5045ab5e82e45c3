"""Exception taxonomy shared by the translation client, stores and orchestrator."""

from __future__ import annotations

from enum import Enum


class FailureCategory(str, Enum):
    """Why a remote translation failed."""
    configuration = "configuration"
    throttled = "throttled"
    quota = "quota"
    transient = "transient"
    backend = "backend"


class ModSyncError(Exception):
    """Base class for all modsync errors."""


class TranslationFailed(ModSyncError):
    """A remote translation call failed.

    ``category`` lets callers tell configuration problems (bad key, quota)
    apart from transient ones without parsing the message.
    """

    category = FailureCategory.backend

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(TranslationFailed):
    """Missing or rejected credentials/endpoint, or an invalid setting."""

    category = FailureCategory.configuration


class Throttled(TranslationFailed):
    """The backend signalled rate limiting (HTTP 429)."""

    category = FailureCategory.throttled


class QuotaExceeded(TranslationFailed):
    """The backend's hard character quota is used up (HTTP 456)."""

    category = FailureCategory.quota


class TransientBackendError(TranslationFailed):
    """Network error or timeout talking to the backend."""

    category = FailureCategory.transient


class StoreUnavailable(ModSyncError):
    """A persistent SQLite store could not be read or written."""


class CatalogFetchError(ModSyncError):
    """A remote catalog batch call failed as a whole."""


class CatalogUnavailable(ModSyncError):
    """Local items cannot be enumerated or no remote batch could be fetched."""
