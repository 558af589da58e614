"""
Engine: the explicit context that wires store, index, plugins and caches.

One ``Engine`` per site build or service; nothing in folio is a module-level
singleton. Lifecycle lives on the object::

    engine = Engine.from_config(Config("folio.yaml"))
    await engine.initialize([("hello", "---\\ntitle: Hello\\n---\\nBody")])
    results = engine.search("hello")
    await engine.dispose()
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from folio.content.config import SearchConfig, StoreConfig
from folio.content.models import Document, DocumentFilter, DocumentList, SearchResult, StoreStats
from folio.content.search import SearchEngine
from folio.content.store import DocumentStore
from folio.core.events import ENGINE_DISPOSED, ENGINE_INITIALIZED, INDEX_BUILT, SEARCH_EXECUTED, Event, EventBus
from folio.core.exceptions import DisposedError, FolioError, ValidationError
from folio.core.utils.cache import MemoryCache
from folio.plugins.manager import PluginManager
from folio.plugins.models import PluginConfig
from folio.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from folio.core.config import Config


@dataclass
class InitReport:
    """Outcome of ``Engine.initialize``."""

    loaded: int = 0
    errors: int = 0
    indexed: int = 0
    duration: float = 0.0


@dataclass
class SearchResponse:
    results: list[SearchResult]
    extensions: list[Any] = field(default_factory=list)


def _unpack_source(item: Any) -> tuple[Any, Any]:
    if isinstance(item, Mapping):
        return item.get("id"), item.get("content")
    if isinstance(item, tuple | list) and len(item) == 2:
        return item[0], item[1]
    return None, None


class Engine:
    """Owns one DocumentStore, SearchEngine, PluginManager, EventBus and named caches."""

    def __init__(
        self,
        store_config: StoreConfig | None = None,
        search_config: SearchConfig | None = None,
        plugin_config: PluginConfig | None = None,
        cache_ttl: float = 3600.0,
        bus: EventBus | None = None,
        cache_options: dict[str, Any] | None = None,
        enabled_plugins: Iterable[str] = (),
    ):
        """
        Args:
            store_config: Document store settings.
            search_config: Index and query limits.
            plugin_config: Extension pipeline limits.
            cache_ttl: Default expiry for every named cache, in seconds.
            bus: Event bus to publish on; a private one is created when omitted.
            cache_options: Extra ``MemoryCache`` arguments (max_size, policy, sweep_interval).
            enabled_plugins: Registry names registered at the start of ``initialize``.
        """
        self.bus = bus or EventBus()
        self.store = DocumentStore(store_config, bus=self.bus)
        self.search_engine = SearchEngine(search_config)
        self.plugins = PluginManager(self.store, plugin_config, bus=self.bus)
        self.registry = PluginRegistry()
        self.enabled_plugins = list(enabled_plugins)

        self._cache_ttl = cache_ttl
        self._cache_options = dict(cache_options or {})
        self._caches: dict[str, MemoryCache] = {}

        self._initialized = False
        self._initializing = False
        self._disposed = False

    @classmethod
    def from_config(cls, config: Config, bus: EventBus | None = None) -> Engine:
        """Build an engine from a ``Config``; ``plugins.enabled`` names are registered on initialize."""
        settings = config.validated()
        return cls(
            store_config=settings.store.to_store_config(),
            search_config=settings.search.to_search_config(),
            plugin_config=settings.plugins.to_plugin_config(),
            cache_ttl=settings.cache.default_ttl,
            bus=bus,
            cache_options=settings.cache.to_cache_options(),
            enabled_plugins=settings.plugins.enabled,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._initialized and not self._disposed

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("Engine")

    def cache(self, name: str) -> MemoryCache:
        """Return the named cache, creating it on first use."""
        self._check_disposed()
        if name not in self._caches:
            self._caches[name] = MemoryCache(default_ttl=self._cache_ttl, **self._cache_options)
        return self._caches[name]

    def _invalidate_caches(self) -> None:
        for cache in self._caches.values():
            cache.clear()

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    async def register_plugin(self, plugin: Any) -> bool:
        """Register a plugin object, or a registry name such as ``"word-count"``."""
        self._check_disposed()
        if isinstance(plugin, str):
            plugin = self.registry.create(plugin)
        return await self.plugins.register(plugin)

    async def register_plugins(self, plugins: Iterable[Any]) -> dict[str, bool]:
        """Register each plugin; failures are logged and do not stop the rest.

        Returns {plugin name: registered?}.
        """
        self._check_disposed()
        outcome: dict[str, bool] = {}
        for plugin in plugins:
            label = plugin if isinstance(plugin, str) else str(getattr(plugin, "name", None) or plugin)
            try:
                outcome[label] = await self.register_plugin(plugin)
            except (FolioError, KeyError) as e:
                logger.error(f"Plugin {label} not registered: {e}")
                outcome[label] = False
        return outcome

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self, sources: Iterable[Any]) -> InitReport:
        """Load, process, store and index *sources* once.

        Items are ``(id, text)`` pairs or mappings with ``id`` and ``content``;
        invalid items are skipped and counted. A repeated or concurrent call
        logs a warning and returns an empty report. An unexpected failure
        leaves the store and index empty.

        Raises:
            ValidationError: *sources* is not iterable.
        """
        self._check_disposed()
        report = InitReport()
        if self._initialized:
            logger.warning("Engine already initialized")
            return report
        if self._initializing:
            logger.warning("Engine initialization in progress")
            return report
        if isinstance(sources, str | bytes) or not isinstance(sources, Iterable):
            raise ValidationError("sources must be an iterable of (id, text) items", field="sources")

        self._initializing = True
        started = time.monotonic()
        try:
            pending = [name for name in self.enabled_plugins if self.plugins.get(name) is None]
            if pending:
                await self.register_plugins(pending)

            for position, item in enumerate(sources):
                doc_id, text = _unpack_source(item)
                if not isinstance(doc_id, str) or not isinstance(text, str):
                    logger.warning(f"Skipping source with invalid id or content at index {position}")
                    report.errors += 1
                    continue
                try:
                    document = self.store.create_from_source(doc_id, text)
                except FolioError as e:
                    logger.error(f"Failed to build document {doc_id}: {e}")
                    report.errors += 1
                    continue

                try:
                    document = await self.plugins.process(document)
                except FolioError as e:
                    logger.warning(f"Plugin processing failed for document {doc_id}, using original: {e}")

                self.store.add(document)
                report.loaded += 1

            if report.loaded:
                report.indexed = self.search_engine.index(self.store.documents())
                await self.bus.emit(Event(name=INDEX_BUILT, payload={"documents": report.indexed}, source="engine"))
            else:
                logger.warning("No documents to initialize")

            self._invalidate_caches()
            self._initialized = True
        except Exception:
            logger.exception("Failed to initialize engine")
            self.store.clear()
            self.search_engine.clear()
            self._invalidate_caches()
            return InitReport(errors=report.errors + 1, duration=time.monotonic() - started)
        finally:
            self._initializing = False

        report.duration = time.monotonic() - started
        logger.info(
            f"Engine initialized: {report.loaded} documents loaded, {report.errors} errors in {report.duration:.3f}s"
        )
        await self.bus.emit(
            Event(name=ENGINE_INITIALIZED, payload={"loaded": report.loaded, "errors": report.errors}, source="engine")
        )
        return report

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search(self, query: str) -> list[SearchResult]:
        self._check_disposed()
        results = self.search_engine.search(query)
        self.bus.emit_sync(Event(name=SEARCH_EXECUTED, payload={"query": query, "hits": len(results)}, source="engine"))
        return results

    async def search_with_extensions(self, query: str) -> SearchResponse:
        """Search, then give every plugin search extension the query and all documents."""
        results = self.search(query)
        extensions = await self.plugins.run_search_extensions(query, self.store.documents())
        return SearchResponse(results=results, extensions=extensions)

    def documents(self) -> list[Document]:
        self._check_disposed()
        return self.store.documents()

    def list(
        self,
        filter: DocumentFilter | None = None,
        *,
        sort: str = "desc",
        page: int | None = None,
        page_size: int | None = None,
    ) -> DocumentList:
        self._check_disposed()
        return self.store.list(filter, sort=sort, page=page, page_size=page_size)

    def related(self, id: str, limit: int = 3) -> list[Document]:
        self._check_disposed()
        cache = self.cache("related")
        key = (id, limit)
        cached = cache.get(key)
        if cached is None:
            cached = tuple(self.store.related(id, limit))
            cache.set(key, cached)
        return list(cached)

    def stats(self) -> StoreStats:
        self._check_disposed()
        cache = self.cache("stats")
        stats = cache.get("store")
        if stats is None:
            stats = self.store.stats()
            cache.set("store", stats)
        return stats

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def dispose(self) -> None:
        """Release everything. Idempotent; afterwards every call raises DisposedError."""
        if self._disposed:
            return
        try:
            await self.plugins.dispose()
        finally:
            self.store.dispose()
            self.search_engine.dispose()
            for cache in self._caches.values():
                cache.close()
            self._caches.clear()
            self._disposed = True
            self._initialized = False

        await self.bus.emit(Event(name=ENGINE_DISPOSED, source="engine"))
        logger.debug("Engine disposed")
