"""Frontmatter parsing.

Documents may open with a metadata block::

    ---
    title: Hello
    date: 2024-01-15
    tags: [python, search]
    draft: false
    ---
    Body text

Block lines are ``key: value`` pairs with word-character keys; other
lines (hyphenated keys, block-style list items) are skipped. Values are
typed by shape rather than by a full YAML parse, so a plain title like
``Yes: a story`` stays a string.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any, NamedTuple

import yaml
from loguru import logger

_BLOCK_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---(?:\r?\n|\Z)(.*)\Z", re.DOTALL)
_KEY_VALUE_RE = re.compile(r"^(\w+)\s*:\s*(.*)$")
_INT_RE = re.compile(r"^\d+$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


class Frontmatter(NamedTuple):
    data: dict[str, Any]
    body: str


def parse_date(value: str) -> datetime | None:
    """Parse an ISO-8601 date or datetime into an aware UTC datetime."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _parse_collection(value: str) -> Any:
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError:
        return value
    if isinstance(parsed, list | dict):
        return parsed
    return value


def parse_value(value: str) -> Any:
    """Type a raw frontmatter value.

    ``true``/``false`` become booleans, digit strings integers, leading
    ``YYYY-MM-DD`` a UTC datetime, ``[...]``/``{...}`` a list/dict. Everything
    else is returned as a string with matching outer quotes removed.
    Unparsable dates and collections fall back to the raw string.
    """
    value = value.strip()
    if not value:
        return None
    if value == "true":
        return True
    if value == "false":
        return False
    if _INT_RE.match(value):
        return int(value)
    if _DATE_RE.match(value):
        parsed = parse_date(value)
        return parsed if parsed is not None else value
    if (value.startswith("[") and value.endswith("]")) or (value.startswith("{") and value.endswith("}")):
        return _parse_collection(value)
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _parse_block(block: str) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for line in block.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _KEY_VALUE_RE.match(line)
        if not match:
            logger.debug(f"Skipping frontmatter line: {line!r:.80}")
            continue
        key, raw = match.groups()
        value = parse_value(raw)
        if value is not None:
            data[key] = value
    return data


def parse_frontmatter(source: str) -> Frontmatter:
    """Split *source* into typed metadata and body.

    Without a leading block the body is *source* unchanged. Lines that are
    not ``key: value`` pairs are skipped. If the block cannot be parsed at
    all, metadata is empty and the body is the entire source; no exception
    escapes.
    """
    if not isinstance(source, str) or not source.strip():
        return Frontmatter({}, "")

    match = _BLOCK_RE.match(source)
    if not match:
        return Frontmatter({}, source)

    block, body = match.groups()
    try:
        data = _parse_block(block)
    except Exception as e:
        logger.warning(f"Failed to parse frontmatter: {e}")
        return Frontmatter({}, source)
    return Frontmatter(data, body.strip())
