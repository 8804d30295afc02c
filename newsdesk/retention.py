from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import logging
from typing import Callable, List, Optional

from .errors import StorageWriteError
from .store import ShardStore

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def retention_cutoff(today: date, window_days: int) -> date:
    """Oldest day still inside the window; anything before it is expired."""
    return today - timedelta(days=window_days)


class RetentionSweeper:
    """Deletes shards that have fallen out of the retention window."""

    def __init__(
        self,
        store: ShardStore,
        window_days: int = 30,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.store = store
        self.window_days = window_days
        self._today = today

    def sweep(self, topic: str, today: Optional[date] = None) -> List[date]:
        cutoff = retention_cutoff(today or self._today(), self.window_days)
        deleted: List[date] = []
        for day in sorted(self.store.list_dates(topic)):
            if day >= cutoff:
                continue
            try:
                self.store.delete(topic, day)
            except StorageWriteError as exc:
                logger.warning("Could not delete expired shard %s/%s: %s", topic, day, exc)
                continue
            deleted.append(day)
        if deleted:
            logger.info("Deleted %d expired shard(s) for %s.", len(deleted), topic)
        return deleted
