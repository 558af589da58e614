"""Text processing utilities: markdown stripping, summaries, reading time."""

from __future__ import annotations

import math
import re

_FENCED_CODE_RE = re.compile(r"```[\s\S]*?```")
_HEADING_RE = re.compile(r"^#+\s+", re.MULTILINE)
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")

_TERMINAL_PUNCTUATION = (".", "!", "?")


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    if not text or not isinstance(text, str):
        return 0
    return len(text.split())


def strip_markdown(text: str) -> str:
    """Remove fenced code, headings, links, bold and inline code markers."""
    if not text or not isinstance(text, str):
        return ""
    text = _FENCED_CODE_RE.sub("", text)
    text = _HEADING_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _BOLD_RE.sub(r"\1", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    return text.strip()


def extract_summary(content: str, length: int = 150) -> str:
    """First *length* characters of the markdown-stripped body.

    An ellipsis is appended unless the summary already ends with terminal
    punctuation.
    """
    if not isinstance(content, str):
        return ""
    if length <= 0:
        raise ValueError("length must be greater than 0")

    summary = strip_markdown(content)[:length].strip()
    if summary.endswith(_TERMINAL_PUNCTUATION):
        return summary
    return summary + "..."


def calculate_reading_time(content: str, words_per_minute: int = 200) -> int:
    """Reading time in whole minutes, never less than one."""
    if words_per_minute <= 0:
        raise ValueError("words_per_minute must be greater than 0")
    if not isinstance(content, str):
        return 0
    return max(1, math.ceil(count_words(content) / words_per_minute))

