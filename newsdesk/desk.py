from __future__ import annotations

from datetime import date
import logging
from typing import Callable, Iterable, List, Optional

from .config import DeskConfig
from .errors import InvalidTopicError
from .models import ArticleRecord, QueryProfile, RefreshReport
from .orchestrator import RefreshOrchestrator
from .providers.base import BaseProvider, ProviderList
from .providers.mock_provider import MockProvider
from .providers.newsapi_provider import NewsAPIProvider
from .providers.rss_provider import RSSSearchProvider
from .query import QueryService
from .retention import RetentionSweeper, utc_today
from .rewriter import BaseRewriter, OpenAIRewriter, UnavailableRewriter
from .store import JsonShardStore, ShardStore

logger = logging.getLogger(__name__)

FAILED = "failed"


class NewsDesk:
    """Wires storage, providers and the pipeline stages together per topic."""

    def __init__(
        self,
        config: Optional[DeskConfig] = None,
        store: Optional[ShardStore] = None,
        providers: Optional[Iterable[BaseProvider]] = None,
        rewriter: Optional[BaseRewriter] = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.config = config or DeskConfig.from_env()
        self.store = store or JsonShardStore(self.config.data_dir)
        self.sweeper = RetentionSweeper(self.store, self.config.retention_days, today=today)
        self.query = QueryService(self.store, self.config.retention_days, today=today)
        self.orchestrator = RefreshOrchestrator(
            store=self.store,
            providers=list(providers) if providers is not None else self._build_providers(),
            rewriter=rewriter or self._build_rewriter(),
            sweeper=self.sweeper,
            daily_quota=self.config.daily_quota,
            fetch_limit=self.config.fetch_limit,
            today=today,
        )

    def _build_providers(self) -> ProviderList:
        if self.config.offline:
            logger.warning("Offline mode: serving mock articles.")
            return [MockProvider()]
        if self.config.newsapi_key:
            return [NewsAPIProvider(self.config.newsapi_key, language=self.config.language)]
        logger.warning("NEWSAPI_KEY not set, searching RSS feeds instead.")
        return [RSSSearchProvider(self.config.rss_feeds or None)]

    def _build_rewriter(self) -> BaseRewriter:
        if self.config.openai_api_key:
            return OpenAIRewriter(
                self.config.openai_api_key,
                model=self.config.openai_model,
                base_url=self.config.openai_base_url,
            )
        logger.warning("OPENAI_API_KEY not set, articles will keep their original text.")
        return UnavailableRewriter()

    @property
    def topics(self) -> List[str]:
        return list(self.config.topics)

    def profile(self, topic: str) -> QueryProfile:
        profile = self.config.profile_for(topic)
        if profile is None:
            raise InvalidTopicError(topic)
        return profile

    def refresh(self, topic: str) -> RefreshReport:
        return self.orchestrator.refresh(self.profile(topic))

    def refresh_all(self) -> List[RefreshReport]:
        """Refresh every topic in turn; one topic failing does not stop the rest."""
        reports: List[RefreshReport] = []
        for topic in self.topics:
            try:
                reports.append(self.refresh(topic))
            except Exception:
                logger.exception("Refresh for %s failed.", topic)
                reports.append(RefreshReport(topic=topic, status=FAILED))
        return reports

    def get_page(self, topic: str, page: int = 1, page_size: int = 10) -> List[ArticleRecord]:
        return self.query.get_page(self.profile(topic).topic, page, page_size)
