from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import requests

from ..errors import UpstreamFetchError
from ..models import QueryProfile, RawArticle
from .base import BaseProvider

# newsapi.org rejects longer `q` values
MAX_QUERY_LENGTH = 500


class NewsAPIProvider(BaseProvider):
    """Fetches articles from newsapi.org."""

    name = "newsapi"
    EVERYTHING_URL = "https://newsapi.org/v2/everything"
    HEADLINES_URL = "https://newsapi.org/v2/top-headlines"

    def __init__(self, api_key: str, language: str = "en", timeout: float = 10) -> None:
        if not api_key:
            raise ValueError("NewsAPIProvider requires an API key")
        self._api_key = api_key
        self._language = language
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"X-Api-Key": api_key})

    def fetch(self, profile: QueryProfile, limit: int = 20) -> Iterable[RawArticle]:
        url, params = self._request_for(profile, limit)
        response = self._session.get(url, params=params, timeout=self._timeout)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise UpstreamFetchError("newsapi returned an unexpected payload")
        if payload.get("status") == "error":
            raise UpstreamFetchError(
                f"newsapi error {payload.get('code')}: {payload.get('message')}"
            )
        articles: List[RawArticle] = []
        for article in payload.get("articles") or []:
            if not isinstance(article, dict):
                continue
            articles.append(
                RawArticle(
                    title=article.get("title") or "Untitled",
                    url=article.get("url") or "",
                    source=(article.get("source") or {}).get("name") or "Unknown",
                    published_at=_parse_date(article.get("publishedAt")),
                    content=article.get("content"),
                    description=article.get("description"),
                )
            )
        return articles[:limit]

    def _request_for(self, profile: QueryProfile, limit: int) -> tuple[str, dict]:
        if profile.keywords:
            return self.EVERYTHING_URL, {
                "q": _bounded_query(profile),
                "pageSize": limit,
                "language": self._language,
                "sortBy": "publishedAt",
            }
        if profile.category:
            return self.HEADLINES_URL, {
                "category": profile.category,
                "pageSize": limit,
                "language": self._language,
            }
        raise UpstreamFetchError(f"topic {profile.topic!r} has neither keywords nor a category")


def _bounded_query(profile: QueryProfile) -> str:
    parts: List[str] = []
    for keyword in profile.keywords:
        candidate = " OR ".join(parts + [f'"{keyword}"'])
        if len(candidate) > MAX_QUERY_LENGTH and parts:
            break
        parts.append(f'"{keyword}"')
    return " OR ".join(parts)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
