import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from newsdesk.errors import RewriteError
from newsdesk.models import ArticleRecord, RawArticle, RewriteResult
from newsdesk.providers.base import BaseProvider
from newsdesk.rewriter import BaseRewriter
from newsdesk.store import MemoryShardStore

TODAY = date(2024, 6, 15)


def make_raw(n, **kwargs):
    defaults = {
        "title": f"Original headline {n}",
        "url": f"https://example.com/story-{n}",
        "source": "Example Wire",
        "published_at": datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=n),
        "content": f"Original content {n}.",
        "description": f"Description {n}.",
    }
    defaults.update(kwargs)
    return RawArticle(**defaults)


def make_record(n, published_at="2024-06-15T12:00:00+00:00", **kwargs):
    defaults = {
        "id": f"https://example.com/story-{n}",
        "title": f"Headline {n}",
        "source": "Example Wire",
        "published_at": published_at,
        "rewritten_body": f"Body {n}",
        "original_url": f"https://example.com/story-{n}",
        "fetched_at": "2024-06-15T13:00:00+00:00",
    }
    defaults.update(kwargs)
    return ArticleRecord(**defaults)


class FakeProvider(BaseProvider):
    name = "fake"

    def __init__(self, articles=None, error=None):
        self.articles = list(articles or [])
        self.error = error
        self.calls = 0

    def fetch(self, profile, limit=20):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.articles[:limit])


class BlockingProvider(FakeProvider):
    """Holds fetches for ``blocking_topic`` open until ``release`` is set."""

    def __init__(self, articles, blocking_topic="science"):
        super().__init__(articles)
        self.blocking_topic = blocking_topic
        self.entered = threading.Event()
        self.release = threading.Event()

    def fetch(self, profile, limit=20):
        if profile.topic == self.blocking_topic:
            self.entered.set()
            self.release.wait(timeout=5)
        return super().fetch(profile, limit)


class FakeRewriter(BaseRewriter):
    def __init__(self, fail_urls=()):
        self.fail_urls = set(fail_urls)
        self.calls = []

    def rewrite(self, article):
        self.calls.append(article.url)
        if article.url in self.fail_urls:
            raise RewriteError("provider unavailable")
        return RewriteResult(
            headline=f"**Title:** Rewritten {article.title} - Example Wire",
            body=f"Authored by NWO News — Staff\nRewritten body for {article.title}.",
        )


@pytest.fixture
def store():
    return MemoryShardStore()
