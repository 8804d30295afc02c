from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

from ..models import QueryProfile, RawArticle
from .base import BaseProvider


class MockProvider(BaseProvider):
    """Returns hard-coded articles for offline development."""

    name = "mock"

    def fetch(self, profile: QueryProfile, limit: int = 20) -> Iterable[RawArticle]:
        now = datetime.now(timezone.utc)
        topic = profile.topic
        keyword = profile.keywords[0] if profile.keywords else topic
        sample = [
            RawArticle(
                title=f"Officials weigh in on {keyword}",
                url=f"https://example.com/{topic}/officials",
                source="Example News",
                published_at=now - timedelta(hours=2),
                content=(
                    f"Officials met this week to discuss {keyword}. Several delegations asked "
                    "for more transparency and a follow-up meeting is planned for next month."
                ),
                description=f"Officials discuss {keyword}.",
            ),
            RawArticle(
                title=f"Analysts debate the latest {topic} developments",
                url=f"https://example.com/{topic}/analysts",
                source="Market Watchers",
                published_at=now - timedelta(days=1),
                content=(
                    f"Analysts offered mixed reactions to recent {topic} news, citing "
                    "uncertainty about what comes next."
                ),
                description=f"Mixed reactions to {topic} news.",
            ),
        ]
        return sample[:limit]
