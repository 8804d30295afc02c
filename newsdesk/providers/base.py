from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List

from ..models import QueryProfile, RawArticle


class BaseProvider(ABC):
    """Abstract base class for search providers."""

    name = "provider"

    @abstractmethod
    def fetch(self, profile: QueryProfile, limit: int = 20) -> Iterable[RawArticle]:
        """Yield ``RawArticle`` objects matching the topic's query profile.

        Network failures and non-success responses are raised to the caller.
        """


ProviderList = List[BaseProvider]
