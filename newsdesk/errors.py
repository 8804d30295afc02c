from __future__ import annotations


class NewsDeskError(Exception):
    """Base class for errors raised by the article pipeline."""


class UpstreamFetchError(NewsDeskError):
    """The search provider could not be reached or returned an error."""


class RewriteError(NewsDeskError):
    """The rewrite provider failed for a single article."""


class StorageWriteError(NewsDeskError):
    """A shard could not be written or deleted."""


class InvalidTopicError(NewsDeskError, ValueError):
    """The requested topic is not one of the configured topics."""

    def __init__(self, topic: str) -> None:
        super().__init__(f"Unknown topic: {topic!r}")
        self.topic = topic
