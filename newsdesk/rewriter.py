"""Rewrite providers.

The rewrite provider is asked for a JSON object ``{"headline": ..., "body": ...}``
and its reply is parsed by :func:`parse_rewrite`. Any reply that does not
follow that shape is a :class:`RewriteError`, and the orchestrator falls back
to the original article text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
import re
from typing import Any, Dict, Optional

import requests

from .errors import RewriteError
from .models import RawArticle, RewriteResult

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)

SYSTEM_PROMPT = (
    "You rewrite news articles for a topical news digest. "
    "Reply with a single JSON object with exactly two string fields: "
    '"headline" (one line, no source name, no label) and '
    '"body" (several paragraphs of plain text separated by blank lines). '
    "Do not include a sources section, author line or markdown."
)


def build_prompt(article: RawArticle) -> str:
    published = article.published_at.isoformat() if article.published_at else "unknown"
    return (
        "Rewrite the following news article into a detailed, engaging and informative piece. "
        "Keep the facts of the original, add context, and write in multiple paragraphs.\n\n"
        f'Article headline: "{article.title}"\n'
        f"Article source: {article.source}\n"
        f"Article published date: {published}\n\n"
        f"Article content:\n{article.text}\n"
    )


def parse_rewrite(text: Optional[str]) -> RewriteResult:
    """Parse the provider's reply into a headline and a body."""
    if not isinstance(text, str):
        raise RewriteError("reply content is not text")
    if not text.strip():
        raise RewriteError("empty reply from rewrite provider")
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RewriteError(f"reply is not JSON: {exc}") from None
    if not isinstance(payload, dict):
        raise RewriteError("reply is not a JSON object")
    headline = payload.get("headline")
    body = payload.get("body")
    if not isinstance(headline, str) or not isinstance(body, str):
        raise RewriteError("reply is missing headline or body")
    if not body.strip():
        raise RewriteError("reply has an empty body")
    return RewriteResult(headline=headline, body=body)


def sources_trailer(article: RawArticle) -> str:
    return f"\n\nSources:\n- {article.title} ({article.url})"


class BaseRewriter(ABC):
    """Turns a raw article into a rewritten headline and body."""

    @abstractmethod
    def rewrite(self, article: RawArticle) -> RewriteResult:
        """Return the rewrite, raising ``RewriteError`` on any failure."""


class UnavailableRewriter(BaseRewriter):
    """Stand-in used when no rewrite credentials are configured."""

    def rewrite(self, article: RawArticle) -> RewriteResult:
        raise RewriteError("no rewrite provider configured")


class OpenAIRewriter(BaseRewriter):
    """Rewrites articles through an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.85,
        max_tokens: int = 1200,
        timeout: float = 60,
    ) -> None:
        if not api_key:
            raise ValueError("OpenAIRewriter requires an API key")
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def rewrite(self, article: RawArticle) -> RewriteResult:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(article)},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        logger.debug("Rewriting %s with %s", article.url, self.model)
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise RewriteError(f"rewrite request failed: {exc}") from exc
        except ValueError as exc:
            raise RewriteError(f"rewrite response is not JSON: {exc}") from exc
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise RewriteError("rewrite response has no message content") from None
        return parse_rewrite(content)
