"""Cleanup of text produced by the rewrite provider.

Both cleaners only ever remove characters, so each is applied repeatedly
until the text stops changing. That makes them idempotent by construction.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

_TITLE_PREFIX_RE = re.compile(r"^(?:[*_#\"'\s]+|(?:title|headline)\s*:\s*)+", re.IGNORECASE)
_TITLE_SUFFIX_RE = re.compile(r"\s[-–—]\s.*$")
_AUTHORED_BY_RE = re.compile(
    r"^[ \t*_]*authored by[ \t]+[^\n]*?(?:[–—]|[ \t]-[ \t])[^\n]*(?:\n|$)",
    re.IGNORECASE | re.MULTILINE,
)
_BODY_LABEL_RE = re.compile(r"^[ \t*_#]*title:[ \t*_]*", re.IGNORECASE | re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def clean_title(raw: Optional[str]) -> str:
    return _settle(_title_pass, raw or "")


def clean_body(raw: Optional[str]) -> str:
    return _settle(_body_pass, raw or "")


def _title_pass(text: str) -> str:
    text = " ".join(text.split())
    text = _TITLE_PREFIX_RE.sub("", text)
    text = text.replace("*", "")
    text = _TITLE_SUFFIX_RE.sub("", text)
    return text.strip().strip("\"'").strip()


def _body_pass(text: str) -> str:
    text = text.replace("\r\n", "\n")
    text = _AUTHORED_BY_RE.sub("", text)
    text = _BODY_LABEL_RE.sub("", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def _settle(step: Callable[[str], str], text: str) -> str:
    while True:
        cleaned = step(text)
        if cleaned == text:
            return cleaned
        text = cleaned
