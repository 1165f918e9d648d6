"""TMDB title search adapter for movies and TV shows."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

LOGGER = logging.getLogger(__name__)

TMDB_SEARCH_URL = "https://api.themoviedb.org/3/search/{endpoint}"
TMDB_IMAGE_URL = "https://image.tmdb.org/t/p/w185{path}"


def choose_result(results: list[dict[str, Any]], title: str, is_tv: bool) -> Optional[dict[str, Any]]:
    """Prefer an exact (case-insensitive) title match, else the most popular."""

    name_key = "name" if is_tv else "title"
    wanted = title.strip().lower()
    for result in results:
        if str(result.get(name_key) or "").strip().lower() == wanted:
            return result
    if not results:
        return None
    return max(results, key=lambda result: float(result.get("popularity") or 0))


class TMDBTitleSearch:
    """Looks up canonical titles and posters on The Movie Database."""

    def __init__(
        self,
        api_key: Optional[str],
        timeout_seconds: float,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._client = client

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, timeout=self._timeout)
        async with httpx.AsyncClient() as client:
            return await client.get(url, params=params, timeout=self._timeout)

    async def search(self, title: str, kind: str) -> Optional[tuple[str, Optional[str]]]:
        # Without a key, enrichment silently degrades to the extracted title.
        if not self._api_key:
            return None

        is_tv = kind == "tv_show"
        params = {
            "api_key": self._api_key,
            "query": title,
            "language": "en-US",
            "include_adult": "false",
        }
        try:
            response = await self._get(TMDB_SEARCH_URL.format(endpoint="tv" if is_tv else "movie"), params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.info("TMDB search failed for %r: %s", title, exc)
            return None

        results = data.get("results") if isinstance(data, dict) else None
        chosen = choose_result(results if isinstance(results, list) else [], title, is_tv)
        if chosen is None:
            return None

        canonical = str(chosen.get("name" if is_tv else "title") or title)
        path = chosen.get("poster_path") or chosen.get("backdrop_path")
        return canonical, TMDB_IMAGE_URL.format(path=path) if path else None
