"""Core data models for the document store and search index.

Documents and postings are value types: built once, never mutated.
Use ``Document.replace()`` to derive a changed copy.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

_EMPTY_META: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True)
class Document:
    """A parsed document.

    Attributes:
        id: Unique identifier within a store.
        title: Display title (defaults to the id when the source has none).
        description: Short summary; derived from the body when absent.
        content: Markdown body without the frontmatter block.
        date: Publication date, timezone-aware UTC.
        updated: Last update date, if known.
        author: Author name, if known.
        image: Cover image reference, if any.
        tags: Ordered, de-duplicated tag names.
        categories: Ordered, de-duplicated category names.
        keywords: Ordered, de-duplicated SEO keywords.
        meta: Read-only mapping of any other frontmatter keys.
        draft: Hidden from reads unless the store includes drafts.
        reading_time: Estimated minutes to read, at least 1.
        raw: The full source text the document was built from.
    """

    id: str
    title: str
    description: str
    content: str
    date: datetime
    updated: datetime | None = None
    author: str | None = None
    image: str | None = None
    tags: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    meta: Mapping[str, Any] = field(default_factory=lambda: _EMPTY_META, hash=False)
    draft: bool = False
    reading_time: int = 1
    raw: str | None = field(default=None, repr=False)

    def __post_init__(self):
        # Accept lists and plain dicts from callers; store immutable views.
        for name in ("tags", "categories", "keywords"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))
        if not isinstance(self.meta, MappingProxyType):
            object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    def replace(self, **changes: Any) -> Document:
        """Return a copy with *changes* applied."""
        return dataclasses.replace(self, **changes)

    @property
    def year(self) -> int:
        return self.date.year


@dataclass(frozen=True)
class Posting:
    """One (token, document) entry in the inverted index.

    Attributes:
        document_id: The document the token occurs in.
        weight: Summed field weights, capped at 1000.
        content: First 200 characters of the field that produced the posting.
        excerpt: First 100 characters of that same field.
    """

    document_id: str
    weight: int
    content: str = ""
    excerpt: str = ""


@dataclass
class SearchResult:
    """A search hit with its accumulated score and highlighted snippets."""

    document: Document
    score: float
    highlights: list[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"SearchResult(id='{self.document.id}', score={self.score:g})"


@dataclass
class DocumentFilter:
    """Criteria for ``DocumentStore.list``; unset fields match everything."""

    tag: str | None = None
    category: str | None = None
    author: str | None = None
    year: int | None = None
    search: str | None = None


@dataclass
class DocumentList:
    """A page of documents.

    Attributes:
        items: Documents on this page.
        total: Matching documents before pagination.
        filtered: Number of documents on this page.
    """

    items: list[Document]
    total: int
    filtered: int


@dataclass(frozen=True)
class StoreStats:
    total_articles: int
    total_tags: int
    total_categories: int
    total_words: int
    average_reading_time: int

    def as_dict(self) -> dict[str, int]:
        """Key names used by the query API."""
        return {
            "totalArticles": self.total_articles,
            "totalTags": self.total_tags,
            "totalCategories": self.total_categories,
            "totalWords": self.total_words,
            "averageReadingTime": self.average_reading_time,
        }


@dataclass(frozen=True)
class IndexStats:
    indexed_terms: int
    indexed_documents: int
    total_postings: int
