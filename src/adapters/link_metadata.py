"""Open Graph link metadata adapter."""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

LOGGER = logging.getLogger(__name__)

# Link previews are served to crawler user agents more reliably than browsers.
USER_AGENT = "Mozilla/5.0 (compatible; Twitterbot/1.0)"

_OG_TITLE_RE = re.compile(
    r"""<meta\s+property=["']og:title["']\s+content=["']([^"']+)["']""", re.IGNORECASE
)
_OG_IMAGE_RE = re.compile(
    r"""<meta\s+property=["']og:image["']\s+content=["']([^"']+)["']""", re.IGNORECASE
)


def parse_og_tags(html_text: str) -> tuple[Optional[str], Optional[str]]:
    title = _OG_TITLE_RE.search(html_text)
    image = _OG_IMAGE_RE.search(html_text)
    return (title.group(1) if title else None, image.group(1) if image else None)


class OpenGraphMetadata:
    """Fetches og:title and og:image for a URL."""

    def __init__(self, timeout_seconds: float, client: Optional[httpx.AsyncClient] = None) -> None:
        self._timeout = timeout_seconds
        self._client = client

    async def fetch(self, url: str) -> tuple[Optional[str], Optional[str]]:
        headers = {"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"}
        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(url, headers=headers, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.info("Open Graph fetch failed for %s: %s", url, exc)
            return None, None
        return parse_og_tags(response.text)
