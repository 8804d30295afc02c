from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(slots=True)
class RawArticle:
    """Raw article data collected from a provider."""

    title: str
    url: str
    source: str
    published_at: Optional[datetime]
    content: Optional[str]
    description: Optional[str]

    @property
    def text(self) -> str:
        return self.content or self.description or ""


@dataclass(frozen=True, slots=True)
class QueryProfile:
    """What a search provider is asked for on behalf of one topic."""

    topic: str
    keywords: Tuple[str, ...] = ()
    category: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RewriteResult:
    headline: str
    body: str


@dataclass(frozen=True, slots=True)
class ArticleRecord:
    """A stored, rewritten article. ``id`` is always the original URL."""

    id: str
    title: str
    source: str
    published_at: str
    rewritten_body: str
    original_url: str
    fetched_at: str = field(default="", compare=False)

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "publishedAt": self.published_at,
            "rewrittenBody": self.rewritten_body,
            "originalUrl": self.original_url,
            "fetchedAt": self.fetched_at,
        }

    def to_public_dict(self) -> Dict[str, str]:
        data = self.to_dict()
        data.pop("fetchedAt")
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArticleRecord":
        if not isinstance(data, Mapping):
            raise ValueError("article record must be an object")
        record_id = data.get("id")
        if not isinstance(record_id, str) or not record_id:
            raise ValueError("article record is missing its id")
        return cls(
            id=record_id,
            title=_as_str(data.get("title")),
            source=_as_str(data.get("source")),
            published_at=_as_str(data.get("publishedAt")),
            rewritten_body=_as_str(data.get("rewrittenBody")),
            original_url=_as_str(data.get("originalUrl")) or record_id,
            fetched_at=_as_str(data.get("fetchedAt")),
        )

    def published_datetime(self) -> Optional[datetime]:
        return parse_timestamp(self.published_at)


@dataclass(slots=True)
class RefreshReport:
    """Outcome of one refresh trigger for one topic."""

    topic: str
    status: str
    added: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"topic": self.topic, "status": self.status, "added": self.added, "total": self.total}


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
