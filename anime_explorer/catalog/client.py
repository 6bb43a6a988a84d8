"""Jikan API client for browsing the MyAnimeList catalog."""
import logging
import time
from typing import Any, Iterable, Optional

import httpx

from anime_explorer.settings import settings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Raised when the upstream catalog cannot serve a request."""


class CatalogClient:
    """Thin pass-through client for the Jikan v4 API.

    List operations return the ``data`` array of the upstream payload and
    raise :class:`UpstreamError` on any failure. Single-anime lookups retry
    and report a miss as ``None`` instead of raising.
    """

    def __init__(
        self,
        base_url: str = settings.jikan_base_url,
        timeout: float = settings.jikan_timeout,
        max_retries: int = settings.jikan_max_retries,
        retry_delay: float = settings.jikan_retry_delay,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "User-Agent": "AnimeExplorer/1.0",
                "Accept": "application/json",
            },
        )
        logger.info(f"CatalogClient initialized ({self.base_url})")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.client.close()

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def _request(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """GET an endpoint and return the decoded JSON payload."""
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise UpstreamError(f"GET {endpoint} failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"GET {endpoint} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise UpstreamError(f"GET {endpoint} returned an unexpected payload")
        return payload

    def _request_list(self, endpoint: str, params: Optional[dict] = None) -> list[dict[str, Any]]:
        payload = self._request(endpoint, params)
        data = payload.get("data")
        if not isinstance(data, list):
            raise UpstreamError(f"GET {endpoint} payload has no data array")
        return data

    def fetch_top_page(self, page: int) -> list[dict[str, Any]]:
        """Fetch one page of the top-ranked anime list."""
        return self._request_list("/top/anime", params={"page": page})

    def search_by_query(self, query: str) -> list[dict[str, Any]]:
        """Search anime by free-text query."""
        return self._request_list("/anime", params={"q": query})

    def fetch_by_genre(self, genre_id: str, page: int) -> list[dict[str, Any]]:
        """Fetch anime in a genre, best scored first."""
        return self._request_list(
            "/anime",
            params={"genres": genre_id, "order_by": "score", "sort": "desc", "page": page},
        )

    def fetch_by_id(self, anime_id: int) -> Optional[dict[str, Any]]:
        """Fetch a single anime, retrying failures with a fixed delay.

        Returns None when the record is missing or every attempt failed.
        """
        endpoint = f"/anime/{anime_id}"
        for attempt in range(self.max_retries + 1):
            try:
                payload = self._request(endpoint)
                return payload.get("data") or None
            except UpstreamError as e:
                if attempt < self.max_retries:
                    logger.warning(f"{e}. Retrying in {self.retry_delay}s...")
                    time.sleep(self.retry_delay)
                else:
                    logger.warning(f"Giving up on anime {anime_id} after {self.max_retries + 1} attempts: {e}")
        return None

    def fetch_batch(self, anime_ids: Iterable[int], delay: float) -> list[dict[str, Any]]:
        """Fetch several anime one at a time, pausing between lookups.

        Lookups that come back empty are skipped.
        """
        anime_ids = list(anime_ids)
        anime_list = []
        for i, anime_id in enumerate(anime_ids):
            if i > 0 and delay > 0:
                time.sleep(delay)
            logger.debug(f"Fetching anime {i+1}/{len(anime_ids)}: {anime_id}")
            anime = self.fetch_by_id(anime_id)
            if anime:
                anime_list.append(anime)
            else:
                logger.warning(f"Skipping anime {anime_id}: not available upstream")
        logger.info(f"Fetched {len(anime_list)}/{len(anime_ids)} anime")
        return anime_list


def annotate_favorites(anime_list: list[dict[str, Any]], favorite_ids: set[int]) -> list[dict[str, Any]]:
    """Copy each record with an ``isFavorited`` flag for the given id set."""
    annotated = []
    for anime in anime_list:
        try:
            mal_id = int(anime.get("mal_id"))
        except (TypeError, ValueError):
            mal_id = None
        annotated.append({**anime, "isFavorited": mal_id in favorite_ids})
    return annotated
