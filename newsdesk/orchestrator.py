from __future__ import annotations

from datetime import date, datetime, timezone
import logging
import threading
from typing import Callable, Dict, Iterable, List, Set

import requests

from .config import SHARD_CAPACITY
from .errors import RewriteError, UpstreamFetchError
from .models import ArticleRecord, QueryProfile, RawArticle, RefreshReport
from .providers.base import BaseProvider, ProviderList
from .retention import RetentionSweeper, retention_cutoff, utc_today
from .rewriter import BaseRewriter, sources_trailer
from .sanitizer import clean_body, clean_title
from .store import ShardStore

logger = logging.getLogger(__name__)

SKIPPED = "skipped"
QUOTA_MET = "quota_met"
FETCH_FAILED = "fetch_failed"
NO_NEW = "no_new"
STORED = "stored"


class RefreshOrchestrator:
    """Fetches, dedupes, rewrites and stores today's articles for a topic.

    At most one run per topic is active at a time. A trigger that arrives
    while its topic is being refreshed is dropped rather than queued.
    """

    def __init__(
        self,
        store: ShardStore,
        providers: Iterable[BaseProvider],
        rewriter: BaseRewriter,
        sweeper: RetentionSweeper,
        daily_quota: int = SHARD_CAPACITY,
        fetch_limit: int = 20,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.store = store
        self.providers: ProviderList = list(providers)
        if not self.providers:
            raise RuntimeError("No search providers configured")
        self.rewriter = rewriter
        self.sweeper = sweeper
        self.daily_quota = min(daily_quota, store.capacity)
        self.fetch_limit = fetch_limit
        self._today = today
        self._guard = threading.Lock()
        self._running: Dict[str, threading.Lock] = {}

    def _lock_for(self, topic: str) -> threading.Lock:
        with self._guard:
            return self._running.setdefault(topic, threading.Lock())

    def is_running(self, topic: str) -> bool:
        return self._lock_for(topic).locked()

    def refresh(self, profile: QueryProfile) -> RefreshReport:
        lock = self._lock_for(profile.topic)
        if not lock.acquire(blocking=False):
            logger.info("Refresh for %s already running, dropping trigger.", profile.topic)
            return RefreshReport(topic=profile.topic, status=SKIPPED)
        try:
            return self._run(profile)
        finally:
            lock.release()

    def _run(self, profile: QueryProfile) -> RefreshReport:
        topic = profile.topic
        today = self._today()
        existing = self.store.load(topic, today)
        if len(existing) >= self.daily_quota:
            logger.info("%s already has %d articles stored for %s.", topic, len(existing), today)
            return RefreshReport(topic=topic, status=QUOTA_MET, total=len(existing))

        try:
            fetched = self._fetch(profile)
        except UpstreamFetchError as exc:
            logger.error("Fetch for %s failed, shard left untouched: %s", topic, exc)
            return RefreshReport(topic=topic, status=FETCH_FAILED, total=len(existing))

        known = self._known_ids(topic, today, existing)
        room = self.daily_quota - len(existing)
        fresh: List[ArticleRecord] = []
        for article in fetched:
            if len(fresh) >= room:
                break
            if not article.url or article.url in known:
                continue
            known.add(article.url)
            fresh.append(self._build_record(article))

        if not fresh:
            logger.info("No new articles for %s.", topic)
            self.sweeper.sweep(topic, today)
            return RefreshReport(topic=topic, status=NO_NEW, total=len(existing))

        combined = existing + fresh
        self.store.save(topic, today, combined)
        logger.info("Stored %d articles (%d new) for %s on %s.", len(combined), len(fresh), topic, today)
        self.sweeper.sweep(topic, today)
        return RefreshReport(topic=topic, status=STORED, added=len(fresh), total=len(combined))

    def _fetch(self, profile: QueryProfile) -> List[RawArticle]:
        articles: List[RawArticle] = []
        failures = 0
        for provider in self.providers:
            try:
                articles.extend(provider.fetch(profile, limit=self.fetch_limit))
            except (requests.RequestException, ValueError, UpstreamFetchError) as exc:
                failures += 1
                logger.warning("Provider %s failed for %s: %s", provider.name, profile.topic, exc)
        if failures == len(self.providers):
            raise UpstreamFetchError(f"all search providers failed for {profile.topic}")
        return articles

    def _known_ids(self, topic: str, today: date, existing: List[ArticleRecord]) -> Set[str]:
        known = {record.id for record in existing}
        cutoff = retention_cutoff(today, self.sweeper.window_days)
        for day in self.store.list_dates(topic):
            if day == today or day < cutoff:
                continue
            known.update(record.id for record in self.store.load(topic, day))
        return known

    def _build_record(self, article: RawArticle) -> ArticleRecord:
        title, body = self._rewrite(article)
        now = datetime.now(timezone.utc)
        published = article.published_at or now
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        return ArticleRecord(
            id=article.url,
            title=title,
            source=article.source,
            published_at=published.isoformat(),
            rewritten_body=body,
            original_url=article.url,
            fetched_at=now.isoformat(),
        )

    def _rewrite(self, article: RawArticle) -> tuple[str, str]:
        try:
            result = self.rewriter.rewrite(article)
        except RewriteError as exc:
            logger.warning("Rewrite failed for %s, keeping original text: %s", article.url, exc)
            return article.title, article.text
        title = clean_title(result.headline) or article.title
        body = clean_body(result.body) or article.text
        return title, body + sources_trailer(article)
