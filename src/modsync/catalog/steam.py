"""Steam Workshop remote catalog client."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

import requests

from modsync.core.errors import CatalogFetchError, ConfigurationError
from modsync.core.models import CatalogItem, FetchOutcome, ItemFetched, ItemFetchFailed
from modsync.translation.lang_detect import detect_language

logger = logging.getLogger(__name__)

STEAM_API_BASE = "https://api.steampowered.com/ISteamRemoteStorage"
# Steam's GetPublishedFileDetails accepts at most 100 ids per request
MAX_BATCH_SIZE = 100
REQUEST_TIMEOUT = 30
STEAM_RESULT_OK = 1


class CatalogClient(Protocol):
    """Anything that can fetch item details for a batch of ids."""

    def fetch_details(self, ids: list[str]) -> list[FetchOutcome]: ...


def _rating(favorited: int, subscriptions: int) -> float:
    """Favourite ratio scaled to a 5-star rating."""
    if not subscriptions:
        return 0.0
    return favorited / subscriptions * 5


def _timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def map_workshop_item(raw: dict[str, Any]) -> CatalogItem:
    """Convert one ``publishedfiledetails`` entry into a :class:`CatalogItem`."""
    title = raw.get("title") or "Unknown Title"
    description = raw.get("description") or ""
    return CatalogItem(
        id=str(raw["publishedfileid"]),
        title=title,
        description=description,
        creator=str(raw.get("creator") or "Unknown Creator"),
        preview_url=raw.get("preview_url") or "",
        file_size=int(raw.get("file_size") or 0),
        subscriptions=int(raw.get("subscriptions") or 0),
        rating=_rating(
            int(raw.get("lifetime_favorited") or 0),
            int(raw.get("lifetime_subscriptions") or 0),
        ),
        tags=[t["tag"] for t in raw.get("tags") or [] if t.get("tag")],
        time_created=_timestamp(raw.get("time_created")),
        time_updated=_timestamp(raw.get("time_updated")),
        language=detect_language(title, description),
    )


def decode_details(payload: dict[str, Any]) -> list[FetchOutcome]:
    """Decode a GetPublishedFileDetails response into per-item outcomes.

    Raises:
        CatalogFetchError: If the response as a whole reports failure.
    """
    response = payload.get("response")
    if not isinstance(response, dict):
        raise CatalogFetchError("Malformed Steam response: missing 'response'")
    if response.get("result") != STEAM_RESULT_OK:
        raise CatalogFetchError(f"Steam API returned error code: {response.get('result')}")

    outcomes: list[FetchOutcome] = []
    for raw in response.get("publishedfiledetails") or []:
        item_id = str(raw.get("publishedfileid", ""))
        result = raw.get("result")
        if result != STEAM_RESULT_OK:
            outcomes.append(ItemFetchFailed(item_id, int(result or 0)))
            continue
        outcomes.append(ItemFetched(map_workshop_item(raw)))
    return outcomes


class SteamWorkshopClient:
    """Fetches mod metadata from the Steam Web API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        session: requests.Session | None = None,
        base_url: str = STEAM_API_BASE,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        if not api_key:
            logger.warning("Steam API key not configured. Catalog sync will fail.")
        self._api_key = api_key
        self._session = session or requests.Session()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def fetch_details(self, ids: list[str]) -> list[FetchOutcome]:
        """Fetch details for up to 100 ids in one request.

        Raises:
            ConfigurationError: If no API key is configured.
            CatalogFetchError: On transport errors or a failed response.
        """
        if not self._api_key:
            raise ConfigurationError("Steam API key not configured")
        if len(ids) > MAX_BATCH_SIZE:
            raise ValueError(f"At most {MAX_BATCH_SIZE} ids per request")
        if not ids:
            return []

        form: dict[str, Any] = {"key": self._api_key, "itemcount": len(ids)}
        for index, item_id in enumerate(ids):
            form[f"publishedfileids[{index}]"] = item_id

        try:
            resp = self._session.post(
                f"{self._base_url}/GetPublishedFileDetails/v1/",
                data=form,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise CatalogFetchError(f"Steam request failed: {e}") from e

        outcomes = decode_details(payload)
        logger.debug("Fetched %d/%d workshop items", len(outcomes), len(ids))
        return outcomes
