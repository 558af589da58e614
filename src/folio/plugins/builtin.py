"""
Built-in plugins.

Each one registers a single document processor. They are ordinary plugins:
enable them by name from config (``plugins.enabled``) or register instances
directly with a ``PluginManager``.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from typing import Any

from folio.content.models import Document
from folio.core.utils.text import count_words

from .models import PluginContext

_FENCE_RE = re.compile(r"^(\s*```)(\w*)(.*)$")
_FENCED_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_HEADING_RE = re.compile(r"^(#+)\s+(.+)$", re.MULTILINE)
_MAX_HEADINGS = 100


class BuiltinPlugin(ABC):
    """Shared plumbing: wraps ``transform`` so a failure returns the input unchanged."""

    name: str = "builtin"
    version: str = "1.0.0"
    description: str = ""

    def activate(self, context: PluginContext) -> None:
        log = context.logger

        def _processor(document: Document) -> Document:
            try:
                return self.transform(document)
            except Exception as e:
                log.error(f"{self.name} processor error: {e}")
                return document

        context.register_processor(_processor)
        log.info(f"{self.name} plugin activated")

    @abstractmethod
    def transform(self, document: Document) -> Document:
        """Return the processed document (or the same one, unchanged)."""

    @staticmethod
    def _with_meta(document: Document, **entries: Any) -> Document:
        return document.replace(meta={**document.meta, **entries})


class CodeHighlightPlugin(BuiltinPlugin):
    """Tags every opening code fence with a language (``text`` when unset)."""

    name = "code-highlight"
    description = "Label fenced code blocks with their language"

    def transform(self, document: Document) -> Document:
        if not document.content:
            return document

        lines = document.content.split("\n")
        in_fence = False
        for i, line in enumerate(lines):
            match = _FENCE_RE.match(line)
            if not match:
                continue
            if not in_fence:
                fence, lang, rest = match.groups()
                lines[i] = f"{fence}{lang or 'text'}{rest}"
            in_fence = not in_fence
        return document.replace(content="\n".join(lines))


class AutoTocPlugin(BuiltinPlugin):
    """Stores the document's headings under ``meta["toc"]``."""

    name = "auto-toc"
    description = "Generate a table of contents from headings"

    def transform(self, document: Document) -> Document:
        if not document.content:
            return document

        toc = []
        for match in _HEADING_RE.finditer(document.content):
            if len(toc) >= _MAX_HEADINGS:
                break
            text = match.group(2).strip()[:200]
            toc.append(
                {
                    "level": len(match.group(1)),
                    "text": text,
                    "id": re.sub(r"\s+", "-", text.lower())[:100],
                }
            )
        return self._with_meta(document, toc=tuple(toc))


class WordCountPlugin(BuiltinPlugin):
    """Counts prose words (code blocks excluded) into ``meta``."""

    name = "word-count"
    description = "Word count and reading time, excluding code"

    words_per_minute = 200

    def transform(self, document: Document) -> Document:
        if not document.content:
            return document
        words = count_words(_FENCED_BLOCK_RE.sub("", document.content))
        return self._with_meta(
            document,
            word_count=words,
            reading_time=max(1, math.ceil(words / self.words_per_minute)),
        )


class SeoPlugin(BuiltinPlugin):
    """Derives ``meta["seo"]``; keywords fall back to tags."""

    name = "seo"
    description = "SEO metadata"

    def transform(self, document: Document) -> Document:
        seo = {
            "title": document.title[:200],
            "description": document.description[:500],
            "keywords": list(document.keywords or document.tags),
            "author": document.author[:100] if document.author else None,
        }
        return self._with_meta(document, seo=seo)


class CategoryTreePlugin(BuiltinPlugin):
    """Normalizes categories: trimmed, lower-cased, de-duplicated."""

    name = "category-tree"
    description = "Normalize category names"

    def transform(self, document: Document) -> Document:
        names = (c.strip().lower()[:100] for c in document.categories if isinstance(c, str))
        return document.replace(categories=tuple(dict.fromkeys(n for n in names if n)))


BUILTIN_PLUGINS: dict[str, type[BuiltinPlugin]] = {
    cls.name: cls
    for cls in (CodeHighlightPlugin, AutoTocPlugin, WordCountPlugin, SeoPlugin, CategoryTreePlugin)
}


def builtin_plugin(name: str) -> BuiltinPlugin:
    """Instantiate a built-in plugin by name."""
    cls = BUILTIN_PLUGINS.get(name)
    if cls is None:
        raise KeyError(f"No built-in plugin named '{name}'. Available: {sorted(BUILTIN_PLUGINS)}")
    return cls()
