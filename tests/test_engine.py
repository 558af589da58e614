"""Tests for folio.engine: wiring of store, index, plugins and caches."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from folio.content.config import SearchConfig, StoreConfig
from folio.core.config import Config
from folio.core.events import (
    DOCUMENT_ADDED,
    ENGINE_DISPOSED,
    ENGINE_INITIALIZED,
    INDEX_BUILT,
    PLUGIN_LOADED,
    SEARCH_EXECUTED,
    EventBus,
)
from folio.core.exceptions import DisposedError, ValidationError
from folio.engine import Engine


DRAFT = ("wip", "---\ntitle: Unfinished Guide\ndraft: true\n---\nnot ready")


@pytest.fixture
async def engine():
    engine = Engine(cache_options={"sweep_interval": None})
    yield engine
    await engine.dispose()


@pytest.fixture
async def loaded(engine, sample_sources):
    await engine.initialize(sample_sources)
    return engine


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


@pytest.mark.smoke
class TestInitialize:
    async def test_loads_and_indexes(self, engine, sample_sources):
        report = await engine.initialize(sample_sources)
        assert (report.loaded, report.errors, report.indexed) == (3, 0, 3)
        assert report.duration >= 0
        assert engine.initialized
        assert {r.document.id for r in engine.search("guide")} == {"rust-guide", "go-guide"}

    async def test_accepts_mappings(self, engine):
        report = await engine.initialize([{"id": "note", "content": "---\ntitle: Note\n---\nbody"}])
        assert report.loaded == 1
        assert engine.store.get("note").title == "Note"

    async def test_invalid_items_counted(self, engine):
        report = await engine.initialize([("a", None), 42, ("", "text"), ("ok", "---\ntitle: Ok\n---\nfine")])
        assert report.loaded == 1
        assert report.errors == 3

    async def test_second_call_is_noop(self, loaded):
        report = await loaded.initialize([("extra", "more")])
        assert report.loaded == 0
        assert loaded.store.get("extra") is None

    @pytest.mark.parametrize("sources", [None, 42, "not-a-list"])
    async def test_rejects_non_iterable(self, engine, sources):
        with pytest.raises(ValidationError):
            await engine.initialize(sources)

    async def test_empty_sources(self, engine):
        report = await engine.initialize([])
        assert report.loaded == 0
        assert engine.initialized

    async def test_drafts_not_indexed(self, engine, sample_sources):
        await engine.initialize([*sample_sources, DRAFT])
        assert "wip" not in {d.id for d in engine.documents()}
        assert "wip" not in {r.document.id for r in engine.search("unfinished")}

    async def test_drafts_included_when_configured(self):
        engine = Engine(StoreConfig(include_drafts=True), cache_options={"sweep_interval": None})
        try:
            await engine.initialize([DRAFT])
            assert [r.document.id for r in engine.search("unfinished")] == ["wip"]
        finally:
            await engine.dispose()

    async def test_failure_leaves_engine_empty(self, engine, monkeypatch, sample_sources):
        def explode(documents):
            raise RuntimeError("index corrupted")

        monkeypatch.setattr(engine.search_engine, "index", explode)
        report = await engine.initialize(sample_sources)
        assert report.loaded == 0
        assert report.errors == 1
        assert len(engine.store) == 0
        assert not engine.initialized

    async def test_events(self, sample_sources):
        bus = EventBus()
        names = []
        bus.on_all(lambda event: names.append(event.name))
        engine = Engine(bus=bus, enabled_plugins=["seo"], cache_options={"sweep_interval": None})
        try:
            await engine.initialize(sample_sources)
            engine.search("guide")
        finally:
            await engine.dispose()

        assert names[0] == PLUGIN_LOADED
        assert names.count(DOCUMENT_ADDED) == 3
        assert names.index(INDEX_BUILT) < names.index(ENGINE_INITIALIZED) < names.index(SEARCH_EXECUTED)
        assert names[-1] == ENGINE_DISPOSED


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------


class TestPlugins:
    async def test_enabled_builtins_run_on_initialize(self, sample_sources):
        engine = Engine(enabled_plugins=["word-count", "category-tree"], cache_options={"sweep_interval": None})
        try:
            await engine.initialize(sample_sources)
            garden = engine.store.get("garden")
            assert garden.meta["word_count"] == 3
            assert engine.plugins.active_plugins() == ["word-count", "category-tree"]
        finally:
            await engine.dispose()

    async def test_unknown_enabled_plugin_skipped(self, sample_sources):
        engine = Engine(enabled_plugins=["no-such-plugin", "seo"], cache_options={"sweep_interval": None})
        try:
            report = await engine.initialize(sample_sources)
            assert report.loaded == 3
            assert engine.plugins.active_plugins() == ["seo"]
        finally:
            await engine.dispose()

    async def test_register_plugins_reports_outcome(self, engine):
        broken = SimpleNamespace(name="broken", version="1", activate=lambda ctx: 1 / 0)
        outcome = await engine.register_plugins(["seo", broken, "missing"])
        assert outcome == {"seo": True, "broken": False, "missing": False}

    async def test_failing_processor_keeps_document(self, engine, sample_sources):
        def activate(ctx):
            ctx.register_processor(lambda doc: 1 / 0)

        await engine.register_plugin(SimpleNamespace(name="bad", version="1", activate=activate))
        report = await engine.initialize(sample_sources)
        assert report.loaded == 3
        assert engine.store.get("rust-guide").content == "ownership model"

    async def test_search_with_extensions(self, engine, sample_sources):
        def activate(ctx):
            ctx.register_search_extension(lambda query, docs: {"query": query, "seen": len(docs)})

        await engine.register_plugin(SimpleNamespace(name="counter", version="1", activate=activate))
        await engine.initialize(sample_sources)

        response = await engine.search_with_extensions("guide")
        assert len(response.results) == 2
        assert response.extensions == [{"query": "guide", "seen": 3}]


# ---------------------------------------------------------------------------
# Queries and caches
# ---------------------------------------------------------------------------


class TestQueries:
    async def test_list_and_documents(self, loaded):
        assert [d.id for d in loaded.list().items] == ["garden", "rust-guide", "go-guide"]
        assert len(loaded.documents()) == 3

    async def test_related_is_memoized(self, loaded):
        first = loaded.related("rust-guide")
        second = loaded.related("rust-guide")
        assert [d.id for d in first] == ["go-guide"]
        assert second == first
        assert loaded.cache("related").stats().hits == 1

    async def test_related_returns_a_copy(self, loaded):
        first = loaded.related("rust-guide")
        first.clear()
        assert [d.id for d in loaded.related("rust-guide")] == ["go-guide"]

    async def test_related_cache_keyed_by_limit(self, loaded):
        loaded.related("rust-guide", limit=1)
        loaded.related("rust-guide", limit=2)
        assert loaded.cache("related").stats().misses == 2

    async def test_stats_memoized(self, loaded):
        stats = loaded.stats()
        assert stats.total_articles == 3
        assert loaded.stats() is stats

    async def test_named_caches_are_shared(self, engine):
        assert engine.cache("x") is engine.cache("x")
        assert engine.cache("x") is not engine.cache("y")


class TestFromConfig:
    async def test_builds_from_file(self, tmp_config_file, sample_sources):
        engine = Engine.from_config(Config(config_file=tmp_config_file))
        try:
            assert engine.search_engine.config.max_results == 5
            assert engine.plugins.config.timeout == 2.0
            assert engine.enabled_plugins == ["word-count"]

            await engine.initialize(sample_sources)
            assert engine.plugins.active_plugins() == ["word-count"]
        finally:
            await engine.dispose()

    async def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FOLIO_SEARCH__MAX_RESULTS", "7")
        monkeypatch.setenv("FOLIO_CACHE__SWEEP_INTERVAL", "30")
        engine = Engine.from_config(Config())
        try:
            assert engine.search_engine.config == SearchConfig(max_results=7)
        finally:
            await engine.dispose()


class TestDispose:
    async def test_dispose_is_final(self, loaded):
        await loaded.dispose()
        await loaded.dispose()
        assert loaded.disposed
        assert not loaded.initialized
        with pytest.raises(DisposedError):
            loaded.search("guide")
        with pytest.raises(DisposedError):
            await loaded.initialize([])
        with pytest.raises(DisposedError):
            loaded.cache("related")

    async def test_dispose_deactivates_plugins(self, engine):
        calls = []
        plugin = SimpleNamespace(name="p", version="1", activate=lambda ctx: None, deactivate=lambda: calls.append(1))
        await engine.register_plugin(plugin)
        await engine.dispose()
        assert calls == [1]
