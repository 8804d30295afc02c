"""Topical news cache: fetch, rewrite, shard by day, serve paginated."""

from .config import DeskConfig
from .desk import NewsDesk
from .scheduler import RefreshScheduler

__all__ = ["NewsDesk", "DeskConfig", "RefreshScheduler"]
