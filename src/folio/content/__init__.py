"""Document store and search index.

Provides immutable document models, frontmatter parsing, the
DocumentStore and the inverted-index SearchEngine.
"""

from .config import SearchConfig, StoreConfig
from .models import Document, DocumentFilter, DocumentList, IndexStats, Posting, SearchResult, StoreStats
from .search import SearchEngine
from .store import DocumentStore

__all__ = [
    "Document",
    "DocumentFilter",
    "DocumentList",
    "DocumentStore",
    "IndexStats",
    "Posting",
    "SearchConfig",
    "SearchEngine",
    "SearchResult",
    "StoreConfig",
    "StoreStats",
]
