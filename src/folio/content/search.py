"""Inverted-index keyword search.

Every input path is bounded: indexed fields and queries are truncated,
tokens are length- and count-capped, the term count has a ceiling, and
per-token lookups read a fixed number of postings. Bad input degrades
to empty results; only use after ``dispose()`` raises.
"""

from __future__ import annotations

import bisect
import dataclasses
import re
import unicodedata
from collections.abc import Iterable, Iterator
from itertools import islice

from loguru import logger

from folio.core.exceptions import ConfigurationError, DisposedError

from .config import SearchConfig
from .models import Document, IndexStats, Posting, SearchResult

_FIELD_WEIGHTS = (("title", 10), ("description", 5), ("tags", 4), ("categories", 4), ("content", 1))
_MAX_WEIGHT = 1000
_MAX_TOKEN_LENGTH = 100
_MAX_TOKENS = 50
_EXACT_POSTINGS = 100
_PREFIX_TERMS = 50
_PREFIX_POSTINGS = 50
_MAX_HIGHLIGHTS = 10
_MAX_HIGHLIGHT_MATCHES = 100
_MAX_PATTERN_LENGTH = 100
_CONTENT_SNIPPET = 200
_EXCERPT_SNIPPET = 100

_ESCAPES = {c: "\\" + c for c in ".*+?^${}()|[]\\"}


def _is_separator(ch: str) -> bool:
    return ch.isspace() or unicodedata.category(ch).startswith("P")


def _split_words(text: str) -> Iterator[str]:
    """Yield runs of characters between whitespace and Unicode punctuation.

    Symbols such as ``+``, ``$`` or ``=`` are not separators, so ``c++`` and
    ``$var`` stay whole. One pass over *text*, consumed lazily.
    """
    start = None
    for i, ch in enumerate(text):
        if _is_separator(ch):
            if start is not None:
                yield text[start:i]
                start = None
        elif start is None:
            start = i
    if start is not None:
        yield text[start:]


def escape_keyword(keyword: str) -> str:
    """Escape regex metacharacters one character at a time."""
    return "".join(_ESCAPES.get(c, c) for c in keyword)


class SearchEngine:
    """Weighted keyword search over a set of documents.

    Field weights: title 10, description 5, tags 4, categories 4, body 1.
    A term's weight for a document accumulates across fields, capped at 1000.

    Example::

        engine = SearchEngine()
        engine.index(store.documents())
        for result in engine.search("python guide"):
            print(result.document.title, result.score)
    """

    def __init__(self, config: SearchConfig | None = None):
        self.config = config or SearchConfig()
        for name in ("max_results", "max_query_length", "max_index_size"):
            if getattr(self.config, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1")

        self._index: dict[str, dict[str, Posting]] = {}
        self._terms: list[str] = []
        self._documents: dict[str, Document] = {}
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("SearchEngine")

    def _bounded(self, text: object) -> str:
        if not isinstance(text, str):
            return ""
        limit = self.config.max_query_length
        if len(text) > limit:
            logger.warning(f"String length exceeded limit: {limit}")
            return text[:limit]
        return text

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def tokenize(self, text: str) -> list[str]:
        """Split *text* into at most 50 distinct tokens shorter than 100 characters."""
        self._check_disposed()
        if not isinstance(text, str) or not text:
            return []
        if not self.config.case_sensitive:
            text = text.lower()
        words = (w for w in _split_words(text) if len(w) < _MAX_TOKEN_LENGTH)
        return list(dict.fromkeys(islice(words, _MAX_TOKENS)))

    def _field_text(self, document: Document, name: str) -> str:
        value = getattr(document, name)
        if name in ("tags", "categories"):
            return " ".join(value)
        return self._bounded(value)

    def _index_document(self, index: dict[str, dict[str, Posting]], document: Document) -> None:
        if not document.id or not document.title or not document.content:
            raise ValueError("missing id, title or body")

        for name, weight in _FIELD_WEIGHTS:
            text = self._field_text(document, name)
            if not text:
                continue
            for token in self.tokenize(text):
                postings = index.setdefault(token, {})
                existing = postings.get(document.id)
                if existing is None:
                    postings[document.id] = Posting(
                        document_id=document.id,
                        weight=weight,
                        content=text[:_CONTENT_SNIPPET],
                        excerpt=text[:_EXCERPT_SNIPPET],
                    )
                else:
                    postings[document.id] = dataclasses.replace(
                        existing, weight=min(existing.weight + weight, _MAX_WEIGHT)
                    )

    def index(self, documents: Iterable[Document]) -> int:
        """Rebuild the index from *documents*. Returns how many were indexed.

        The new index is built separately and swapped in when complete.
        Invalid documents are skipped; indexing stops once the term count
        exceeds ``max_index_size``.
        """
        self._check_disposed()
        if isinstance(documents, str | bytes) or not isinstance(documents, Iterable):
            logger.warning("index expects an iterable of documents")
            return 0

        index: dict[str, dict[str, Posting]] = {}
        indexed: dict[str, Document] = {}

        for document in documents:
            if not isinstance(document, Document) or not isinstance(document.id, str):
                logger.warning(f"Skipping invalid document: {document!r:.80}")
                continue
            try:
                self._index_document(index, document)
            except Exception as e:
                logger.error(f"Failed to index document {document.id}: {e}")
                continue
            indexed[document.id] = document

            if len(index) > self.config.max_index_size:
                logger.warning(f"Index size exceeded limit: {self.config.max_index_size}")
                break

        self._index = index
        self._terms = sorted(index)
        self._documents = indexed
        logger.debug(f"Indexed {len(indexed)} documents ({len(index)} terms)")
        return len(indexed)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _lookup(self, token: str) -> list[Posting]:
        postings = list(islice(self._index.get(token, {}).values(), _EXACT_POSTINGS))

        # Prefix terms come from the sorted term list, so the 50-term cap is deterministic.
        start = bisect.bisect_left(self._terms, token)
        matched = 0
        for term in islice(self._terms, start, None):
            if matched >= _PREFIX_TERMS or not term.startswith(token):
                break
            if term == token:
                continue
            postings.extend(islice(self._index[term].values(), _PREFIX_POSTINGS))
            matched += 1
        return postings

    def search(self, query: str) -> list[SearchResult]:
        """Ranked results for *query*, best first.

        Non-string or too-short queries return ``[]``; over-long queries are
        truncated rather than rejected.
        """
        self._check_disposed()
        if not isinstance(query, str) or len(query) < self.config.min_search_length:
            return []

        try:
            tokens = self.tokenize(self._bounded(query))
            scores: dict[str, int] = {}
            highlights: dict[str, dict[str, None]] = {}

            for token in tokens:
                for posting in self._lookup(token):
                    doc_id = posting.document_id
                    scores[doc_id] = scores.get(doc_id, 0) + posting.weight
                    snippets = highlights.setdefault(doc_id, {})
                    snippet = self.highlight(posting.content, token)
                    if snippet:
                        snippets[snippet] = None

            results = [
                SearchResult(
                    document=self._documents[doc_id],
                    score=score,
                    highlights=list(islice(highlights[doc_id], _MAX_HIGHLIGHTS)),
                )
                for doc_id, score in scores.items()
                if doc_id in self._documents
            ]
            results.sort(key=lambda r: r.score, reverse=True)
            return results[: max(1, self.config.max_results)]
        except Exception:
            logger.exception(f"Search failed for query {query!r:.80}")
            return []

    def highlight(self, content: str, keyword: str) -> str:
        """Wrap case-insensitive literal matches of *keyword* in the highlight tags.

        Only the first 100 matches are wrapped; keywords whose escaped form
        exceeds 100 characters leave *content* untouched.
        """
        self._check_disposed()
        if not isinstance(content, str) or not isinstance(keyword, str):
            return ""
        if not keyword or not content:
            return content

        escaped = escape_keyword(keyword)
        if len(escaped) > _MAX_PATTERN_LENGTH:
            return content

        open_tag, close_tag = self.config.highlight_tag
        count = 0

        def _wrap(match: re.Match[str]) -> str:
            nonlocal count
            count += 1
            if count > _MAX_HIGHLIGHT_MATCHES:
                return match.group(0)
            return f"{open_tag}{match.group(0)}{close_tag}"

        try:
            return re.compile(escaped, re.IGNORECASE).sub(_wrap, content)
        except re.error as e:
            logger.debug(f"Highlight failed for {keyword!r}: {e}")
            return content

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def stats(self) -> IndexStats:
        self._check_disposed()
        return IndexStats(
            indexed_terms=len(self._index),
            indexed_documents=len(self._documents),
            total_postings=sum(len(postings) for postings in self._index.values()),
        )

    def clear(self) -> None:
        self._check_disposed()
        self._index = {}
        self._terms = []
        self._documents = {}
        logger.debug("Search index cleared")

    def dispose(self) -> None:
        if self._disposed:
            return
        self.clear()
        self._disposed = True
        logger.debug("SearchEngine disposed")
