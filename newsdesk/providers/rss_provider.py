from __future__ import annotations

from datetime import datetime, timezone
import difflib
import logging
import re
from typing import Iterable, List, Mapping, Sequence

import feedparser
import requests

from ..errors import UpstreamFetchError
from ..models import QueryProfile, RawArticle
from .base import BaseProvider

logger = logging.getLogger(__name__)


class RSSSearchProvider(BaseProvider):
    """Searches a fixed set of RSS feeds for entries matching a topic's keywords.

    Used when no newsapi.org key is configured. A feed that fails is skipped;
    the fetch only fails when every feed does.
    """

    name = "rss"
    DEFAULT_FEEDS: Sequence[str] = (
        "https://feeds.bbci.co.uk/news/world/rss.xml",
        "https://www.theguardian.com/world/rss",
        "https://www.wired.com/feed/category/science/latest/rss",
        "https://www.wired.com/feed/category/business/latest/rss",
    )

    def __init__(self, feeds: Sequence[str] | None = None, timeout: float = 10) -> None:
        self._feeds = list(feeds or self.DEFAULT_FEEDS)
        self._timeout = timeout

    def fetch(self, profile: QueryProfile, limit: int = 20) -> Iterable[RawArticle]:
        results: List[RawArticle] = []
        failures = 0
        for url in self._feeds:
            try:
                response = requests.get(url, timeout=self._timeout)
                response.raise_for_status()
            except requests.RequestException as exc:
                failures += 1
                logger.warning("RSS feed %s failed: %s", url, exc)
                continue
            feed = feedparser.parse(response.content)
            feed_title = (feed.get("feed") or {}).get("title") or url
            for entry in feed.entries or []:
                if not _matches_profile(profile, _entry_text(entry)):
                    continue
                results.append(
                    RawArticle(
                        title=entry.get("title") or "Untitled",
                        url=entry.get("link") or "",
                        source=str(feed_title),
                        published_at=_parse_published(entry),
                        content=_get_content(entry),
                        description=entry.get("summary"),
                    )
                )
                if len(results) >= limit:
                    return results
        if self._feeds and failures == len(self._feeds):
            raise UpstreamFetchError("every RSS feed failed")
        return results


def _entry_text(entry: Mapping[str, object]) -> str:
    title = str(entry.get("title", ""))
    summary = str(entry.get("summary", ""))
    return f"{title} {summary} {_get_content(entry) or ''}".lower()


def _get_content(entry: Mapping[str, object]) -> str | None:
    contents = entry.get("content")
    if contents:
        parts: List[str] = []
        for part in contents:
            if isinstance(part, Mapping):
                value = part.get("value")
                if isinstance(value, str):
                    parts.append(value)
        if parts:
            return "\n\n".join(parts)
    summary = entry.get("summary")
    return summary if isinstance(summary, str) else None


def _parse_published(entry: Mapping[str, object]) -> datetime | None:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def _matches_profile(profile: QueryProfile, entry_text: str) -> bool:
    if not profile.keywords:
        return True
    entry_tokens = set(_tokenize(entry_text))
    for keyword in profile.keywords:
        phrase = keyword.lower().strip()
        if not phrase:
            continue
        if " " in phrase:
            if phrase in entry_text:
                return True
            continue
        if phrase in entry_tokens:
            return True
        if len(phrase) >= 5 and any(_similar(phrase, token) for token in entry_tokens):
            return True
    return False


def _tokenize(value: str) -> List[str]:
    return [token for token in re.split(r"[^a-z0-9]+", value.lower()) if token]


def _similar(a: str, b: str, threshold: float = 0.82) -> bool:
    if a == b:
        return True
    return difflib.SequenceMatcher(a=a, b=b).ratio() >= threshold
