"""Per-topic, per-day shard persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
import contextlib
from datetime import date
import json
import logging
import os
import re
import threading
from typing import Dict, List, Sequence, Set, Tuple

from .config import SHARD_CAPACITY
from .errors import StorageWriteError
from .models import ArticleRecord

logger = logging.getLogger(__name__)

_SHARD_NAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.json$")


class ShardStore(ABC):
    """Durable storage of article shards keyed by ``(topic, day)``.

    ``load`` never raises: absent or unreadable shards come back empty.
    ``save`` replaces a shard's full contents atomically, so a concurrent
    reader sees either the previous shard or the new one.
    """

    capacity = SHARD_CAPACITY

    def save(self, topic: str, day: date, records: Sequence[ArticleRecord]) -> None:
        if len(records) > self.capacity:
            raise ValueError(
                f"shard {topic}/{day.isoformat()} would hold {len(records)} records, "
                f"capacity is {self.capacity}"
            )
        self._write(topic, day, list(records))

    @abstractmethod
    def load(self, topic: str, day: date) -> List[ArticleRecord]:
        """Return the shard's records in insertion order."""

    @abstractmethod
    def list_dates(self, topic: str) -> Set[date]:
        """Return the days for which ``topic`` has a shard."""

    @abstractmethod
    def delete(self, topic: str, day: date) -> None:
        """Remove a shard. Removing an absent shard is a no-op."""

    @abstractmethod
    def _write(self, topic: str, day: date, records: List[ArticleRecord]) -> None:
        ...


class JsonShardStore(ShardStore):
    """One JSON array per shard at ``<root>/<topic>/<YYYY-MM-DD>.json``."""

    def __init__(self, root: str) -> None:
        self.root = root

    def _topic_dir(self, topic: str) -> str:
        return os.path.join(self.root, topic)

    def path_for(self, topic: str, day: date) -> str:
        return os.path.join(self._topic_dir(topic), f"{day.isoformat()}.json")

    def load(self, topic: str, day: date) -> List[ArticleRecord]:
        path = self.path_for(topic, day)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Shard %s is unreadable, treating as empty: %s", path, exc)
            return []
        if not isinstance(payload, list):
            logger.warning("Shard %s does not hold a list, treating as empty.", path)
            return []
        records: List[ArticleRecord] = []
        for index, item in enumerate(payload):
            try:
                records.append(ArticleRecord.from_dict(item))
            except ValueError as exc:
                logger.warning("Skipping entry %d of shard %s: %s", index, path, exc)
        return records

    def _write(self, topic: str, day: date, records: List[ArticleRecord]) -> None:
        path = self.path_for(topic, day)
        tmp = f"{path}.tmp"
        try:
            os.makedirs(self._topic_dir(topic), exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump([record.to_dict() for record in records], f, ensure_ascii=False, indent=2)
            os.replace(tmp, path)
        except OSError as exc:
            with contextlib.suppress(FileNotFoundError):
                os.remove(tmp)
            raise StorageWriteError(f"could not write shard {path}: {exc}") from exc

    def list_dates(self, topic: str) -> Set[date]:
        try:
            names = os.listdir(self._topic_dir(topic))
        except FileNotFoundError:
            return set()
        except OSError as exc:
            logger.warning("Could not list shards for %s: %s", topic, exc)
            return set()
        days: Set[date] = set()
        for name in names:
            match = _SHARD_NAME_RE.match(name)
            if not match:
                continue
            try:
                days.add(date.fromisoformat(match.group(1)))
            except ValueError:
                continue
        return days

    def delete(self, topic: str, day: date) -> None:
        path = self.path_for(topic, day)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageWriteError(f"could not delete shard {path}: {exc}") from exc


class MemoryShardStore(ShardStore):
    """Process-local store, mainly for tests and offline runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._shards: Dict[Tuple[str, date], Tuple[ArticleRecord, ...]] = {}

    def load(self, topic: str, day: date) -> List[ArticleRecord]:
        with self._lock:
            return list(self._shards.get((topic, day), ()))

    def _write(self, topic: str, day: date, records: List[ArticleRecord]) -> None:
        with self._lock:
            self._shards[(topic, day)] = tuple(records)

    def list_dates(self, topic: str) -> Set[date]:
        with self._lock:
            return {day for (name, day) in self._shards if name == topic}

    def delete(self, topic: str, day: date) -> None:
        with self._lock:
            self._shards.pop((topic, day), None)
