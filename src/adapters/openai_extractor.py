"""OpenAI recommendation extractor.

Sends a batch of chat messages to the Chat Completions API and parses the
returned JSON array into recommendation candidates.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Sequence

from openai import AsyncOpenAI

from core.errors import ConfigurationError
from core.models import Message, RecommendationCandidate, TokenUsage

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a precise data extractor. Respond only with valid JSON."

EXTRACTION_PROMPT = """Core task: Extract media recommendations from Hinglish chat.
Output: Strict JSON array [{title, type, sender, timestamp}]

Types: book | movie | tv_show | song | youtube

Link handling (highest priority):
- If the message contains a URL that fits one of our types (Spotify, Apple Music, YouTube, SoundCloud, Netflix), set "title" to the URL exactly as it appears.
- Do NOT replace a URL with track/movie names or artists. Never infer names when a URL is present.
- If both text and a URL exist in the same message, prefer the URL.

Classification rules:
- Link with Spotify/Apple Music → song
- Link with YouTube → youtube
- Text-only songs:
    - Require high confidence that the message is actually a song.
    - Do NOT classify ambiguous words or messages as songs.
    - Neutral/positive mentions still count as recommendations; clearly negative mentions are excluded.
- Movies/TV: STRICT. Need explicit recommendation or very enthusiastic intent. Series title only, no season/episode.
- Books: Include intent to read
- EXCLUDE: sports events, generic activities or anything that cannot be mapped to a specific book/movie/tv_show/song/youtube.

Title formatting:
- Canonical English title with articles (The/A/An)
- Songs: "Title — Artist"
- Fix typos: 'social network' → 'The Social Network'

Copy timestamp exactly from message."""


def build_user_prompt(batch: Sequence[Message]) -> str:
    payload = json.dumps([message.to_dict() for message in batch], ensure_ascii=False)
    return f"{EXTRACTION_PROMPT}\n\nMessages (JSON):\n{payload}"


def parse_candidates(raw: Optional[str]) -> list[RecommendationCandidate]:
    """Parse model output; anything but a JSON array of objects yields nothing."""

    try:
        items = json.loads((raw or "").strip() or "[]")
    except json.JSONDecodeError:
        LOGGER.warning("Extractor returned invalid JSON")
        return []
    if not isinstance(items, list):
        return []
    return [RecommendationCandidate.from_dict(item) for item in items if isinstance(item, dict)]


class OpenAIRecommendationExtractor:
    """Recommendation extractor backed by an OpenAI chat model."""

    def __init__(self, api_key: Optional[str], model: str) -> None:
        # Fail fast on a missing key to avoid an opaque error on the first batch.
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set in environment")
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model

    async def extract(
        self, batch: Sequence[Message]
    ) -> tuple[list[RecommendationCandidate], Optional[TokenUsage]]:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(batch)},
            ],
        )
        content = response.choices[0].message.content if response.choices else None
        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
            )
        return parse_candidates(content), usage
