"""Recommendation enrichment.

Candidates naming a URL are resolved through the link's page metadata;
movies and shows are looked up by title. Lookups run concurrently in small
sub-batches so a single batch never fans out more than ``concurrency``
outbound requests at once.
"""

from __future__ import annotations

import asyncio
import html
import logging
import re
from typing import Iterable, List, Optional

from core.config import EnrichmentConfig
from core.models import EnrichedRecommendation, Mention, RecommendationCandidate
from core.ports import LinkMetadataPort, TitleSearchPort

LOGGER = logging.getLogger(__name__)

URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_URL_TRAILING_RE = re.compile(r"[)\],.]+$")
_APPLE_MUSIC_SUFFIX_RE = re.compile(r"\s+on\s+Apple\s+Music\s*$", re.IGNORECASE)

TITLE_SEARCH_TYPES = frozenset({"movie", "tv_show"})


def extract_url(text: Optional[str]) -> Optional[str]:
    """Return the first http(s) URL in text without trailing punctuation."""

    match = URL_RE.search(text or "")
    if not match:
        return None
    return _URL_TRAILING_RE.sub("", match.group(0))


def clean_title(title: Optional[str]) -> str:
    return _APPLE_MUSIC_SUFFIX_RE.sub("", html.unescape(title or "")).strip()


class Enricher:
    """Resolves candidates into canonical recommendations."""

    def __init__(
        self,
        link_metadata: LinkMetadataPort,
        title_search: TitleSearchPort,
        config: EnrichmentConfig,
    ) -> None:
        if config.concurrency < 1:
            raise ValueError("concurrency must be positive")
        self._link_metadata = link_metadata
        self._title_search = title_search
        self._config = config

    async def enrich(self, candidate: RecommendationCandidate) -> Optional[EnrichedRecommendation]:
        """Enrich one candidate; None means the candidate is dropped."""

        title = candidate.title
        link: Optional[str] = None
        image_url: Optional[str] = None

        url = extract_url(title)
        if url:
            link = url
            try:
                page_title, image_url = await asyncio.wait_for(
                    self._link_metadata.fetch(url), self._config.timeout_seconds
                )
            except Exception as exc:
                LOGGER.info("Link lookup failed for %s: %r", url, exc)
                return None
            # A bare URL is not a usable title.
            if not page_title:
                return None
            title = clean_title(page_title)
        elif candidate.type in TITLE_SEARCH_TYPES:
            try:
                found = await asyncio.wait_for(
                    self._title_search.search(title, candidate.type),
                    self._config.timeout_seconds,
                )
            except Exception as exc:
                LOGGER.info("Title search failed for %r: %r", title, exc)
                found = None
            if found:
                title, image_url = found

        if not title:
            return None
        return EnrichedRecommendation(
            title=title,
            type=candidate.type,
            mentioned_by=Mention(sender=candidate.sender, timestamp=candidate.timestamp),
            link=link,
            image_url=image_url or None,
        )

    async def enrich_all(
        self, candidates: Iterable[RecommendationCandidate]
    ) -> List[EnrichedRecommendation]:
        """Enrich candidates in order, isolating failures per candidate."""

        pending = list(candidates)
        results: List[EnrichedRecommendation] = []
        step = self._config.concurrency
        for offset in range(0, len(pending), step):
            chunk = pending[offset : offset + step]
            settled = await asyncio.gather(
                *(self.enrich(candidate) for candidate in chunk),
                return_exceptions=True,
            )
            for candidate, outcome in zip(chunk, settled):
                if isinstance(outcome, BaseException):
                    LOGGER.warning("Enrichment failed for %r: %s", candidate.title, outcome)
                    continue
                if outcome is not None:
                    results.append(outcome)
        return results
