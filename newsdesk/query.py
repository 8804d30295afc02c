from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, List, Set, Tuple

from .models import ArticleRecord
from .retention import retention_cutoff, utc_today
from .store import ShardStore

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class QueryService:
    """Paginated reads over every shard of a topic inside the retention window."""

    def __init__(
        self,
        store: ShardStore,
        window_days: int = 30,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.store = store
        self.window_days = window_days
        self._today = today

    def get_page(self, topic: str, page: int = 1, page_size: int = 10) -> List[ArticleRecord]:
        if page < 1:
            raise ValueError("page must be 1 or greater")
        if page_size < 1:
            raise ValueError("page_size must be 1 or greater")
        records = self.collect(topic)
        start = (page - 1) * page_size
        return records[start:start + page_size]

    def collect(self, topic: str) -> List[ArticleRecord]:
        """All live records for ``topic``, newest first, one per id."""
        cutoff = retention_cutoff(self._today(), self.window_days)
        seen: Set[str] = set()
        merged: List[ArticleRecord] = []
        for day in sorted(d for d in self.store.list_dates(topic) if d >= cutoff):
            for record in self.store.load(topic, day):
                if record.id in seen:
                    continue
                seen.add(record.id)
                merged.append(record)
        # list.sort is stable with reverse=True, so ties keep arrival order
        merged.sort(key=_sort_key, reverse=True)
        return merged


def _sort_key(record: ArticleRecord) -> Tuple[bool, datetime]:
    published = record.published_datetime()
    if published is None:
        return (False, _OLDEST)
    return (True, published)
