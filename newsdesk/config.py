from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from typing import Dict, List, Mapping, Optional

from .models import QueryProfile

logger = logging.getLogger(__name__)

SHARD_CAPACITY = 10

DEFAULT_TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "military": [
        "war", "covert operations", "cold war", "meetings between world leaders",
        "international skirmishes", "confrontations", "new laws", "martial law",
        "military threats", "intelligence operations", "expansion of power", "threats",
        "military industrial complex",
    ],
    "science": [
        "human body discoveries", "anthropology", "climate", "nature", "celestial",
        "vaccinations", "human-technology fusion", "psychology", "mind", "consciousness",
        "psychedelics", "technological advancements", "quantum science",
        "strange phenomena", "simulation theory",
    ],
    "politics": [
        "regime changes", "new laws", "protests", "civil unrest", "social changes",
        "community activism", "police brutality", "police state", "strict governance",
        "government failures", "secret societies", "world meetings", "new leaders",
        "guerilla warfare", "psyops", "covert operations", "finance world ties",
        "political ties",
    ],
    "religion": [
        "spirituality", "new age", "institutional religions", "vatican", "christianity",
        "islam", "judaism", "religious fighting", "religious extremists", "prophecy",
        "religious leaders", "religion and politics", "aliens", "demons",
        "spiritual attacks", "antichrist", "middle east crisis", "secret societies",
        "crop circles", "strange phenomena",
    ],
    "media": [
        "hollywood", "celebrities", "influencers", "content creators", "legacy media",
        "scandals", "occult symbolism", "occult parties", "sex rings", "human trafficking",
        "jeffrey epstein", "satanic symbolism", "satanic rituals", "predictive programming",
        "significant events",
    ],
}


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def default_profiles() -> Dict[str, QueryProfile]:
    return {
        topic: QueryProfile(topic=topic, keywords=tuple(keywords))
        for topic, keywords in DEFAULT_TOPIC_KEYWORDS.items()
    }


@dataclass(slots=True)
class DeskConfig:
    """Runtime configuration for the news desk."""

    newsapi_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    data_dir: str = "data"
    retention_days: int = 30
    daily_quota: int = SHARD_CAPACITY
    fetch_limit: int = 20
    refresh_minutes: int = 60
    max_page_size: int = 100
    language: str = "en"
    offline: bool = False
    rss_feeds: List[str] = field(default_factory=list)
    topics: Dict[str, QueryProfile] = field(default_factory=default_profiles)

    def __post_init__(self) -> None:
        self.daily_quota = max(1, min(self.daily_quota, SHARD_CAPACITY))
        if self.retention_days < 1:
            raise ValueError("retention_days must be at least 1")

    @classmethod
    def from_env(cls) -> "DeskConfig":
        topics_file = os.getenv("NEWSDESK_TOPICS_FILE")
        return cls(
            newsapi_key=os.getenv("NEWSAPI_KEY") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("NEWSDESK_OPENAI_MODEL", "gpt-4o-mini"),
            openai_base_url=os.getenv("NEWSDESK_OPENAI_BASE_URL", "https://api.openai.com/v1"),
            data_dir=os.getenv("NEWSDESK_DATA_DIR", "data"),
            retention_days=_parse_int("NEWSDESK_RETENTION_DAYS", 30),
            daily_quota=_parse_int("NEWSDESK_DAILY_QUOTA", SHARD_CAPACITY),
            fetch_limit=_parse_int("NEWSDESK_FETCH_LIMIT", 20),
            refresh_minutes=_parse_int("NEWSDESK_REFRESH_MINUTES", 60),
            rss_feeds=_split_csv(os.getenv("NEWSDESK_RSS_FEEDS")),
            offline=os.getenv("NEWSDESK_OFFLINE", "").strip().lower() in {"1", "true", "yes"},
            topics=load_topics(topics_file) if topics_file else default_profiles(),
        )

    def profile_for(self, topic: str) -> Optional[QueryProfile]:
        return self.topics.get((topic or "").strip().lower())


def load_topics(path: str) -> Dict[str, QueryProfile]:
    """Read a topic table from JSON, falling back to the defaults on error."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict) or not data:
            raise ValueError("topics file must be a non-empty object")
        return {topic.strip().lower(): _profile_from_json(topic, entry) for topic, entry in data.items()}
    except FileNotFoundError:
        logger.warning("Topics file %s not found, using defaults.", path)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.error("Could not read topics file %s: %s", path, exc)
    return default_profiles()


def _profile_from_json(topic: str, entry: object) -> QueryProfile:
    name = topic.strip().lower()
    if not name:
        raise ValueError("topic names must not be empty")
    if isinstance(entry, list):
        keywords, category = entry, None
    elif isinstance(entry, Mapping):
        keywords = entry.get("keywords") or []
        category = entry.get("category")
        if not isinstance(keywords, list):
            raise ValueError(f"keywords for {name!r} must be a list")
    else:
        raise ValueError(f"invalid entry for topic {name!r}")
    cleaned = tuple(str(k).strip() for k in keywords if str(k).strip())
    if not cleaned and not category:
        raise ValueError(f"topic {name!r} needs keywords or a category")
    return QueryProfile(topic=name, keywords=cleaned, category=str(category) if category else None)


def _parse_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer if set") from None
