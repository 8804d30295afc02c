import time
from unittest.mock import MagicMock

import pytest
import requests

from newsdesk.errors import UpstreamFetchError
from newsdesk.models import QueryProfile
from newsdesk.providers import rss_provider
from newsdesk.providers.mock_provider import MockProvider
from newsdesk.providers.newsapi_provider import MAX_QUERY_LENGTH, NewsAPIProvider, _bounded_query
from newsdesk.providers.rss_provider import RSSSearchProvider, _matches_profile

PROFILE = QueryProfile(topic="science", keywords=("climate", "quantum science"))


def _response(payload, status_error=None):
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


# ── NewsAPIProvider ───────────────────────────────────────────

class TestNewsAPIProvider:
    def test_requires_key(self):
        with pytest.raises(ValueError):
            NewsAPIProvider("")

    def test_maps_articles(self):
        provider = NewsAPIProvider("key")
        provider._session.get = MagicMock(return_value=_response({
            "status": "ok",
            "articles": [
                {
                    "title": "Climate report",
                    "url": "https://news.example/climate",
                    "source": {"name": "Example"},
                    "publishedAt": "2024-06-15T10:00:00Z",
                    "content": "Full text",
                    "description": "Short",
                },
                {"title": None, "url": None, "source": None, "publishedAt": "not a date"},
            ],
        }))
        articles = list(provider.fetch(PROFILE, limit=5))
        assert articles[0].title == "Climate report"
        assert articles[0].source == "Example"
        assert articles[0].published_at.isoformat() == "2024-06-15T10:00:00+00:00"
        assert articles[1].title == "Untitled"
        assert articles[1].url == ""
        assert articles[1].source == "Unknown"
        assert articles[1].published_at is None

    def test_keyword_query(self):
        provider = NewsAPIProvider("key", language="fr")
        provider._session.get = MagicMock(return_value=_response({"status": "ok", "articles": []}))
        provider.fetch(PROFILE, limit=7)
        url = provider._session.get.call_args.args[0]
        params = provider._session.get.call_args.kwargs["params"]
        assert url == NewsAPIProvider.EVERYTHING_URL
        assert params["q"] == '"climate" OR "quantum science"'
        assert params["pageSize"] == 7
        assert params["language"] == "fr"

    def test_category_query(self):
        provider = NewsAPIProvider("key")
        provider._session.get = MagicMock(return_value=_response({"status": "ok", "articles": []}))
        provider.fetch(QueryProfile(topic="science", category="science"))
        assert provider._session.get.call_args.args[0] == NewsAPIProvider.HEADLINES_URL
        assert provider._session.get.call_args.kwargs["params"]["category"] == "science"

    def test_empty_profile_rejected(self):
        with pytest.raises(UpstreamFetchError):
            NewsAPIProvider("key").fetch(QueryProfile(topic="science"))

    def test_http_error_propagates(self):
        provider = NewsAPIProvider("key")
        provider._session.get = MagicMock(
            return_value=_response({}, status_error=requests.HTTPError("401 Unauthorized"))
        )
        with pytest.raises(requests.HTTPError):
            provider.fetch(PROFILE)

    def test_error_payload(self):
        provider = NewsAPIProvider("key")
        provider._session.get = MagicMock(
            return_value=_response({"status": "error", "code": "rateLimited", "message": "slow down"})
        )
        with pytest.raises(UpstreamFetchError):
            provider.fetch(PROFILE)

    def test_query_length_bounded(self):
        profile = QueryProfile(topic="x", keywords=tuple(f"keyword number {i}" for i in range(100)))
        query = _bounded_query(profile)
        assert len(query) <= MAX_QUERY_LENGTH
        assert query.startswith('"keyword number 0"')


# ── RSSSearchProvider ─────────────────────────────────────────

FEED = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>World Feed</title>
<item><title>Climate talks stall</title><link>https://rss.example/a</link>
<description>Delegates disagree.</description><pubDate>Sat, 15 Jun 2024 10:00:00 GMT</pubDate></item>
<item><title>Football results</title><link>https://rss.example/b</link>
<description>Scores from the weekend.</description></item>
<item><title>Breakthrough in quantum science</title><link>https://rss.example/c</link>
<description>Researchers report.</description></item>
</channel></rss>"""


class TestRSSSearchProvider:
    def test_filters_by_keywords(self, monkeypatch):
        response = MagicMock(content=FEED)
        monkeypatch.setattr(rss_provider.requests, "get", MagicMock(return_value=response))
        articles = list(RSSSearchProvider(["https://rss.example/feed"]).fetch(PROFILE))
        assert [a.url for a in articles] == ["https://rss.example/a", "https://rss.example/c"]
        assert articles[0].source == "World Feed"
        assert articles[0].published_at is not None
        assert articles[0].description == "Delegates disagree."

    def test_respects_limit(self, monkeypatch):
        monkeypatch.setattr(rss_provider.requests, "get", MagicMock(return_value=MagicMock(content=FEED)))
        articles = RSSSearchProvider(["https://rss.example/feed"]).fetch(PROFILE, limit=1)
        assert len(articles) == 1

    def test_one_failing_feed_is_skipped(self, monkeypatch):
        def fake_get(url, timeout):
            if "broken" in url:
                raise requests.ConnectionError("down")
            return MagicMock(content=FEED)

        monkeypatch.setattr(rss_provider.requests, "get", fake_get)
        provider = RSSSearchProvider(["https://broken.example/feed", "https://rss.example/feed"])
        assert len(provider.fetch(PROFILE)) == 2

    def test_all_feeds_failing_raises(self, monkeypatch):
        monkeypatch.setattr(
            rss_provider.requests, "get", MagicMock(side_effect=requests.Timeout("slow"))
        )
        with pytest.raises(UpstreamFetchError):
            RSSSearchProvider(["https://a.example", "https://b.example"]).fetch(PROFILE)


class TestMatchesProfile:
    def test_phrase_match(self):
        assert _matches_profile(PROFILE, "new results in quantum science today")

    def test_phrase_needs_all_words_together(self):
        assert not _matches_profile(QueryProfile(topic="x", keywords=("cold war",)), "cold weather and war games")

    def test_single_word_match(self):
        assert _matches_profile(PROFILE, "the climate is changing")

    def test_fuzzy_single_word(self):
        assert _matches_profile(PROFILE, "climates shifted again")

    def test_short_words_need_exact_token(self):
        assert not _matches_profile(QueryProfile(topic="x", keywords=("war",)), "software award")

    def test_no_keywords_matches_everything(self):
        assert _matches_profile(QueryProfile(topic="x", category="general"), "anything")


def test_mock_provider_is_topical():
    articles = list(MockProvider().fetch(PROFILE, limit=1))
    assert len(articles) == 1
    assert "climate" in articles[0].title
    assert articles[0].url.startswith("https://example.com/science/")


def test_struct_time_dates_parsed():
    entry = {"published_parsed": time.struct_time((2024, 6, 15, 12, 0, 0, 5, 167, 0))}
    assert rss_provider._parse_published(entry).hour == 12
