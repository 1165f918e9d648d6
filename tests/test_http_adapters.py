from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import pytest

from adapters.link_metadata import USER_AGENT, OpenGraphMetadata, parse_og_tags
from adapters.openai_extractor import OpenAIRecommendationExtractor, parse_candidates
from adapters.tmdb_search import TMDBTitleSearch, choose_result
from core.errors import ConfigurationError
from core.models import Message, TokenUsage

PAGE = """
<html><head>
<meta property="og:title" content="Blue on Apple Music">
<meta property='og:image' content='https://img.example/blue.jpg'>
</head></html>
"""


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_parse_og_tags() -> None:
    assert parse_og_tags(PAGE) == ("Blue on Apple Music", "https://img.example/blue.jpg")
    assert parse_og_tags("<html></html>") == (None, None)


def test_open_graph_fetch_sends_crawler_user_agent() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=PAGE)

    async def run():
        async with _client(handler) as client:
            return await OpenGraphMetadata(4.0, client=client).fetch("https://music.example/x")

    assert asyncio.run(run()) == ("Blue on Apple Music", "https://img.example/blue.jpg")
    assert seen[0].headers["User-Agent"] == USER_AGENT


def test_open_graph_fetch_error_status_yields_nothing() -> None:
    async def run():
        async with _client(lambda request: httpx.Response(404)) as client:
            return await OpenGraphMetadata(4.0, client=client).fetch("https://music.example/x")

    assert asyncio.run(run()) == (None, None)


def test_choose_result_prefers_exact_title() -> None:
    results = [
        {"title": "Dune Part Two", "popularity": 90},
        {"title": "dune", "popularity": 10},
    ]
    assert choose_result(results, "Dune", is_tv=False)["popularity"] == 10
    assert choose_result(results, "Dun", is_tv=False)["title"] == "Dune Part Two"
    assert choose_result([], "Dune", is_tv=False) is None


def test_tmdb_search_returns_title_and_poster() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"results": [{"name": "Dark", "popularity": 5, "poster_path": "/dark.jpg"}]},
        )

    async def run():
        async with _client(handler) as client:
            return await TMDBTitleSearch("key", 4.0, client=client).search("dark", "tv_show")

    assert asyncio.run(run()) == ("Dark", "https://image.tmdb.org/t/p/w185/dark.jpg")
    assert seen[0].url.path == "/3/search/tv"
    assert seen[0].url.params["query"] == "dark"


def test_tmdb_search_falls_back_to_backdrop() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": [{"title": "Arrival", "backdrop_path": "/a.jpg"}]})

    async def run():
        async with _client(handler) as client:
            return await TMDBTitleSearch("key", 4.0, client=client).search("Arrival", "movie")

    assert asyncio.run(run()) == ("Arrival", "https://image.tmdb.org/t/p/w185/a.jpg")


@pytest.mark.parametrize(
    "response",
    [httpx.Response(500), httpx.Response(200, text="not json"), httpx.Response(200, json={"results": []})],
)
def test_tmdb_search_failures_yield_none(response: httpx.Response) -> None:
    async def run():
        async with _client(lambda request: response) as client:
            return await TMDBTitleSearch("key", 4.0, client=client).search("Arrival", "movie")

    assert asyncio.run(run()) is None


def test_tmdb_search_without_key_skips_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async def run():
        async with _client(handler) as client:
            return await TMDBTitleSearch("", 4.0, client=client).search("Arrival", "movie")

    assert asyncio.run(run()) is None


def test_parse_candidates_tolerates_bad_output() -> None:
    assert parse_candidates("not json") == []
    assert parse_candidates('{"title": "x"}') == []
    assert parse_candidates(None) == []
    parsed = parse_candidates('[{"title": " Dune ", "type": "book", "sender": "A", "timestamp": "t"}, 5]')
    assert len(parsed) == 1
    assert parsed[0].title == "Dune"


def test_extractor_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        OpenAIRecommendationExtractor("", "gpt-5-mini")


def test_extractor_parses_completion_and_usage() -> None:
    calls: list[dict] = []

    async def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='[{"title": "Dark", "type": "tv_show"}]'))],
            usage=SimpleNamespace(prompt_tokens=40, completion_tokens=8),
        )

    extractor = OpenAIRecommendationExtractor("sk-test", "gpt-5-mini")
    extractor._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    candidates, usage = asyncio.run(extractor.extract([Message("01/01/24, 9:00:00 AM", "D", "watch Dark")]))

    assert [c.title for c in candidates] == ["Dark"]
    assert usage == TokenUsage(prompt_tokens=40, completion_tokens=8)
    assert calls[0]["model"] == "gpt-5-mini"
    assert "watch Dark" in calls[0]["messages"][1]["content"]
