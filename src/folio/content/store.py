"""DocumentStore: the canonical, queryable collection of documents.

Builds immutable ``Document`` records from source text and answers list,
relatedness and aggregate queries over them. Drafts are hidden from every
read unless the store is configured to include them.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from folio.core.events import DOCUMENT_ADDED, Event, EventBus
from folio.core.exceptions import ConfigurationError, DisposedError, ValidationError
from folio.core.utils.text import calculate_reading_time, count_words, extract_summary

from .config import StoreConfig
from .frontmatter import parse_date, parse_frontmatter
from .models import Document, DocumentFilter, DocumentList, StoreStats

_SORT_ORDERS = ("asc", "desc")
_TAG_SCORE = 10
_CATEGORY_SCORE = 15
_AUTHOR_SCORE = 5
_MAX_RELATED = 100


def _string_list(value: Any) -> tuple[str, ...]:
    """Stringify, strip and de-duplicate list entries, keeping first occurrence."""
    if not isinstance(value, list | tuple):
        return ()
    items = (str(item).strip() for item in value if item is not None)
    return tuple(dict.fromkeys(item for item in items if item))


def _coerce_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, int) and not isinstance(value, bool):
        # Integer dates are epoch milliseconds.
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        return parse_date(value)
    return None


class DocumentStore:
    """In-memory document collection keyed by id.

    Example::

        store = DocumentStore(StoreConfig(default_author="ada"))
        doc = store.create_from_source("hello", "---\\ntitle: Hello\\n---\\nBody")
        store.add(doc)
        page = store.list(DocumentFilter(tag="python"), page=1, page_size=10)
    """

    def __init__(self, config: StoreConfig | None = None, bus: EventBus | None = None):
        self.config = config or StoreConfig()
        if self.config.max_articles <= 0:
            raise ConfigurationError("max_articles must be greater than 0")
        self._bus = bus
        self._documents: dict[str, Document] = {}
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("DocumentStore")

    def __len__(self) -> int:
        self._check_disposed()
        return len(self._visible())

    # ------------------------------------------------------------------
    # Creation and insertion
    # ------------------------------------------------------------------

    def create_from_source(self, id: str, source: str) -> Document:
        """Build a document from frontmatter + markdown *source*.

        Raises:
            ValidationError: *id* is blank or *source* is not a string.
        """
        if not isinstance(id, str) or not id.strip():
            raise ValidationError("id must be a non-empty string", field="id")
        if not isinstance(source, str):
            raise ValidationError("source must be a string", field="source")

        data, body = parse_frontmatter(source)

        title = str(data.get("title") or id).strip() or id
        description = str(data.get("description") or extract_summary(body, self.config.summary_length)).strip()

        date = None
        if "date" in data:
            date = _coerce_date(data["date"])
            if date is None:
                logger.warning(f"Invalid date for document {id}, using current date")
        if date is None:
            date = datetime.now(UTC)

        updated = _coerce_date(data["updated"]) if "updated" in data else None
        author = str(data["author"]).strip() if data.get("author") else self.config.default_author
        image = str(data["image"]).strip() if data.get("image") else None
        meta = data.get("meta") if isinstance(data.get("meta"), dict) else {}

        return Document(
            id=id,
            title=title,
            description=description,
            content=body,
            date=date,
            updated=updated,
            author=author,
            image=image,
            tags=_string_list(data.get("tags")),
            categories=_string_list(data.get("categories")),
            keywords=_string_list(data.get("keywords")),
            meta=meta,
            draft=data.get("draft") is True,
            reading_time=calculate_reading_time(body, self.config.words_per_minute),
            raw=source,
        )

    def add(self, document: Document) -> None:
        """Insert *document*, replacing any stored document with the same id.

        Past ``max_articles`` a warning is logged and the insert still happens.
        """
        self._check_disposed()
        if not isinstance(document, Document) or not isinstance(document.id, str) or not document.id:
            raise ValidationError("Invalid document: id must be a non-empty string", field="id")

        if document.id not in self._documents and len(self._documents) >= self.config.max_articles:
            logger.warning(f"Document count exceeded limit: {self.config.max_articles}")

        self._documents[document.id] = document
        logger.debug(f"Document added: {document.id}")
        if self._bus is not None:
            self._bus.emit_sync(Event(name=DOCUMENT_ADDED, payload={"id": document.id}, source="store"))

    def add_all(self, documents: Iterable[Document]) -> int:
        count = 0
        for document in documents:
            self.add(document)
            count += 1
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _visible(self) -> list[Document]:
        if self.config.include_drafts:
            return list(self._documents.values())
        return [d for d in self._documents.values() if not d.draft]

    def get(self, id: str) -> Document | None:
        self._check_disposed()
        if not isinstance(id, str):
            return None
        document = self._documents.get(id)
        if document is None or (document.draft and not self.config.include_drafts):
            return None
        return document

    def documents(self) -> list[Document]:
        """All visible documents in insertion order."""
        self._check_disposed()
        return self._visible()

    def list(
        self,
        filter: DocumentFilter | None = None,
        *,
        sort: str = "desc",
        page: int | None = None,
        page_size: int | None = None,
    ) -> DocumentList:
        """Filter, sort by date, then paginate.

        Pagination applies only when both *page* and *page_size* are given.
        ``total`` counts matches before pagination.
        """
        self._check_disposed()
        if sort not in _SORT_ORDERS:
            raise ValidationError(f"sort must be one of {_SORT_ORDERS}, got {sort!r}", field="sort")

        documents = self._visible()
        if filter is not None:
            documents = [d for d in documents if self._matches(d, filter)]

        total = len(documents)
        documents.sort(key=lambda d: d.date, reverse=(sort == "desc"))

        if page and page_size:
            page = max(1, int(page))
            page_size = max(1, int(page_size))
            start = (page - 1) * page_size
            documents = documents[start : start + page_size]

        return DocumentList(items=documents, total=total, filtered=len(documents))

    @staticmethod
    def _matches(document: Document, filter: DocumentFilter) -> bool:
        if filter.tag and filter.tag not in document.tags:
            return False
        if filter.category and filter.category not in document.categories:
            return False
        if filter.author and filter.author != document.author:
            return False
        if filter.year and document.date.year != filter.year:
            return False
        if filter.search and isinstance(filter.search, str):
            query = filter.search.lower()
            return (
                query in document.title.lower()
                or query in document.description.lower()
                or query in document.content.lower()
            )
        return True

    def related(self, id: str, limit: int = 3) -> list[Document]:
        """Documents sharing tags (10 each), categories (15 each) or author (5).

        Only positive scores are returned, best first; *limit* is clamped to [1, 100].
        """
        self._check_disposed()
        document = self.get(id)
        if document is None:
            return []

        limit = max(1, min(_MAX_RELATED, int(limit)))
        scored: list[tuple[int, Document]] = []
        for candidate in self._visible():
            if candidate.id == document.id:
                continue
            score = _TAG_SCORE * sum(1 for tag in document.tags if tag in candidate.tags)
            score += _CATEGORY_SCORE * sum(1 for cat in document.categories if cat in candidate.categories)
            if document.author and document.author == candidate.author:
                score += _AUTHOR_SCORE
            if score > 0:
                scored.append((score, candidate))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [candidate for _, candidate in scored[:limit]]

    def tag_stats(self) -> dict[str, int]:
        self._check_disposed()
        return dict(Counter(tag for d in self._visible() for tag in d.tags))

    def category_stats(self) -> dict[str, int]:
        self._check_disposed()
        return dict(Counter(cat for d in self._visible() for cat in d.categories))

    def timeline(self) -> dict[int, list[Document]]:
        """Visible documents grouped by publication year, newest year first."""
        self._check_disposed()
        groups: dict[int, list[Document]] = {}
        for document in self.list().items:
            groups.setdefault(document.date.year, []).append(document)
        return dict(sorted(groups.items(), reverse=True))

    def stats(self) -> StoreStats:
        self._check_disposed()
        documents = self._visible()
        total_reading = sum(d.reading_time for d in documents)
        average = math.floor(total_reading / len(documents) + 0.5) if documents else 0
        return StoreStats(
            total_articles=len(documents),
            total_tags=len(self.tag_stats()),
            total_categories=len(self.category_stats()),
            total_words=sum(count_words(d.content) for d in documents),
            average_reading_time=average,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._check_disposed()
        self._documents.clear()
        logger.debug("All documents cleared")

    def dispose(self) -> None:
        if self._disposed:
            return
        self._documents.clear()
        self._disposed = True
        logger.debug("DocumentStore disposed")
