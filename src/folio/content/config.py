"""Configuration dataclasses for the document store and search index.

These are pure data containers with sensible defaults.
Override them from YAML config, env vars, or constructor args.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StoreConfig:
    """Settings for document creation and listing.

    Attributes:
        include_drafts: Whether read operations return draft documents.
        default_author: Author used when a document's metadata names none.
        max_articles: Soft cap; adding past it logs a warning but still inserts.
        summary_length: Characters kept when deriving a missing description.
        words_per_minute: Reading speed used for reading-time estimates.
    """

    include_drafts: bool = False
    default_author: str | None = None
    max_articles: int = 10000
    summary_length: int = 150
    words_per_minute: int = 200


@dataclass
class SearchConfig:
    """Settings for indexing and querying.

    Attributes:
        min_search_length: Queries shorter than this return no results.
        highlight_tag: Open/close markers wrapped around highlighted matches.
        case_sensitive: Keep token case instead of lower-casing.
        max_results: Maximum results per query (at least 1).
        max_query_length: Queries and indexed fields are truncated to this length.
        max_index_size: Term count at which indexing stops early.
    """

    min_search_length: int = 2
    highlight_tag: tuple[str, str] = ("<mark>", "</mark>")
    case_sensitive: bool = False
    max_results: int = 20
    max_query_length: int = 500
    max_index_size: int = 100000
