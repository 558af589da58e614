"""Tests for folio.content.search."""

from datetime import UTC, datetime

import pytest

from folio.content.config import SearchConfig
from folio.content.models import Document
from folio.content.search import SearchEngine, escape_keyword
from folio.core.exceptions import ConfigurationError, DisposedError


def make_doc(doc_id: str, title: str, content: str, description: str = "", tags=(), categories=()) -> Document:
    return Document(
        id=doc_id,
        title=title,
        description=description,
        content=content,
        date=datetime(2024, 1, 1, tzinfo=UTC),
        tags=tags,
        categories=categories,
    )


@pytest.fixture
def guides():
    return [
        make_doc("doc1", "Rust Guide", "ownership model"),
        make_doc("doc2", "Go Guide", "goroutines"),
    ]


@pytest.fixture
def engine(guides):
    engine = SearchEngine()
    engine.index(guides)
    return engine


@pytest.mark.smoke
class TestEndToEnd:
    def test_shared_title_term_ranks_equally(self, engine):
        results = engine.search("guide")
        assert {r.document.id for r in results} == {"doc1", "doc2"}
        assert [r.score for r in results] == [10, 10]

    def test_body_term_matches_single_document(self, engine):
        results = engine.search("ownership")
        assert [r.document.id for r in results] == ["doc1"]
        assert results[0].score == 1

    def test_reindex_is_idempotent(self, engine, guides):
        before = [(r.document.id, r.score, r.highlights) for r in engine.search("guide ownership")]
        engine.index(guides)
        after = [(r.document.id, r.score, r.highlights) for r in engine.search("guide ownership")]
        assert before == after

    def test_index_replaces_previous_build(self, engine):
        engine.index([make_doc("doc3", "Python Notes", "decorators")])
        assert engine.search("guide") == []
        assert [r.document.id for r in engine.search("python")] == ["doc3"]


class TestWeights:
    def test_title_and_body_accumulate(self):
        engine = SearchEngine()
        engine.index(
            [
                make_doc("both", "Caching", "caching everywhere"),
                make_doc("body", "Other", "caching here"),
            ]
        )
        scores = {r.document.id: r.score for r in engine.search("caching")}
        assert scores == {"both": 11, "body": 1}

    def test_all_fields_sum(self):
        engine = SearchEngine()
        engine.index([make_doc("a", "term", "term", description="term", tags=("term",), categories=("term",))])
        assert engine.search("term")[0].score == 10 + 5 + 4 + 4 + 1

    def test_one_posting_per_document(self):
        engine = SearchEngine()
        engine.index([make_doc("a", "word word", "word again word")])
        stats = engine.stats()
        assert stats.indexed_documents == 1
        assert stats.total_postings == stats.indexed_terms

    def test_prefix_matches_contribute(self):
        engine = SearchEngine()
        engine.index([make_doc("a", "Testing", "body"), make_doc("b", "Test", "body")])
        scores = {r.document.id: r.score for r in engine.search("test")}
        assert scores == {"a": 10, "b": 10}

    def test_prefix_terms_capped_deterministically(self):
        docs = [make_doc(f"d{i:03d}", f"pre{i:03d}", "body") for i in range(60)]
        engine = SearchEngine(SearchConfig(max_results=100))
        engine.index(docs)
        ids = [r.document.id for r in engine.search("pre")]
        assert ids == [f"d{i:03d}" for i in range(50)]


class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self):
        engine = SearchEngine()
        assert engine.tokenize("Hello, World! snake_case-word") == ["hello", "world", "snake", "case", "word"]

    def test_symbols_stay_in_tokens(self):
        engine = SearchEngine()
        assert engine.tokenize("I like C++ and $var") == ["i", "like", "c++", "and", "$var"]

    def test_unicode_punctuation_splits(self):
        engine = SearchEngine()
        assert engine.tokenize("na\u00efve \u00abquoted\u00bb text\u2026end") == ["na\u00efve", "quoted", "text", "end"]

    def test_symbol_terms_searchable(self):
        engine = SearchEngine()
        engine.index([make_doc("cpp", "C++ Primer", "templates"), make_doc("c", "C Basics", "pointers")])
        results = engine.search("c++")
        assert [r.document.id for r in results] == ["cpp"]
        assert results[0].highlights == ["<mark>C++</mark> Primer"]

    def test_case_sensitive(self):
        engine = SearchEngine(SearchConfig(case_sensitive=True))
        assert engine.tokenize("Hello hello") == ["Hello", "hello"]

    def test_long_token_rejected(self):
        engine = SearchEngine()
        assert engine.tokenize("a" * 10_000) == []
        assert engine.tokenize("a" * 99) == ["a" * 99]

    def test_token_count_bounded(self):
        engine = SearchEngine()
        words = [f"word{i}" for i in range(80)]
        tokens = engine.tokenize(" ".join(words))
        assert tokens == words[:50]

    def test_deduplicates(self):
        engine = SearchEngine()
        assert engine.tokenize("a b a c b") == ["a", "b", "c"]

    def test_non_string(self):
        engine = SearchEngine()
        assert engine.tokenize(None) == []
        assert engine.tokenize("") == []


class TestSearchInput:
    def test_rejects_short_and_non_string(self, engine):
        assert engine.search("g") == []
        assert engine.search(None) == []
        assert engine.search(123) == []

    def test_long_query_truncated_not_rejected(self):
        engine = SearchEngine(SearchConfig(max_query_length=10))
        engine.index([make_doc("a", "guide", "body")])
        results = engine.search("guide " + "x" * 1000)
        assert [r.document.id for r in results] == ["a"]

    def test_max_results(self):
        engine = SearchEngine(SearchConfig(max_results=2))
        engine.index([make_doc(f"d{i}", "shared", "body") for i in range(5)])
        assert len(engine.search("shared")) == 2

    def test_empty_index(self):
        assert SearchEngine().search("anything") == []

    def test_highlights_capped_and_distinct(self):
        words = " ".join(f"alpha{i}" for i in range(20))
        engine = SearchEngine()
        engine.index([make_doc("a", words, "body")])
        result = engine.search("alpha")[0]
        assert len(result.highlights) == 1
        assert result.highlights[0].startswith("<mark>alpha</mark>0")


class TestIndexing:
    def test_invalid_documents_skipped(self, guides):
        engine = SearchEngine()
        count = engine.index([*guides, None, {"id": "x"}, make_doc("empty", "Title", "")])
        assert count == 2
        assert engine.stats().indexed_documents == 2

    def test_non_iterable_is_noop(self, engine):
        assert engine.index(None) == 0
        assert engine.index("not documents") == 0
        assert engine.search("guide") != []

    def test_stops_at_index_size_limit(self):
        engine = SearchEngine(SearchConfig(max_index_size=3))
        docs = [make_doc(f"d{i}", f"t{i}a t{i}b", "body") for i in range(5)]
        assert engine.index(docs) == 2

    def test_long_fields_truncated(self):
        engine = SearchEngine(SearchConfig(max_query_length=20))
        engine.index([make_doc("a", "short", "intro " + "filler " * 10 + "needle")])
        assert engine.search("needle") == []
        assert [r.document.id for r in engine.search("intro")] == ["a"]

    def test_oversized_token_not_indexed(self):
        engine = SearchEngine()
        engine.index([make_doc("a", "T", "x" * 300 + " tail")])
        assert engine.search("xx") == []
        assert [r.document.id for r in engine.search("tail")] == ["a"]

    def test_snippet_comes_from_matching_field(self):
        engine = SearchEngine()
        engine.index([make_doc("a", "Other", "body text", description="alpha summary")])
        assert engine.search("alpha")[0].highlights == ["<mark>alpha</mark> summary"]

    def test_snippet_limited_to_200_chars(self):
        engine = SearchEngine()
        engine.index([make_doc("a", "T", "word " * 60)])
        highlight = engine.search("word")[0].highlights[0]
        assert highlight.count("<mark>") == 40

class TestHighlight:
    def test_wraps_case_insensitive_matches(self):
        engine = SearchEngine()
        assert engine.highlight("Rust and rust", "RUST") == "<mark>Rust</mark> and <mark>rust</mark>"

    def test_custom_tags(self):
        engine = SearchEngine(SearchConfig(highlight_tag=("[", "]")))
        assert engine.highlight("a b a", "a") == "[a] b [a]"

    def test_special_characters_are_literal(self):
        engine = SearchEngine()
        assert engine.highlight("cost is $5.00 (approx)", "$5.00") == "cost is <mark>$5.00</mark> (approx)"
        assert engine.highlight("a.c abc", "a.c") == "<mark>a.c</mark> abc"

    def test_match_cap(self):
        engine = SearchEngine()
        out = engine.highlight("a " * 150, "a")
        assert out.count("<mark>") == 100

    def test_long_pattern_skipped(self):
        engine = SearchEngine()
        content = "." * 80
        assert engine.highlight(content, "." * 60) == content

    def test_degenerate_input(self):
        engine = SearchEngine()
        assert engine.highlight("content", "") == "content"
        assert engine.highlight(None, "a") == ""

    def test_escape_keyword(self):
        assert escape_keyword("a+b(c)") == "a\\+b\\(c\\)"
        assert escape_keyword("plain") == "plain"


class TestLifecycle:
    @pytest.mark.parametrize("field", ["max_results", "max_query_length", "max_index_size"])
    def test_invalid_config(self, field):
        with pytest.raises(ConfigurationError):
            SearchEngine(SearchConfig(**{field: 0}))

    def test_clear(self, engine):
        engine.clear()
        assert engine.search("guide") == []
        assert engine.stats().indexed_terms == 0

    def test_dispose(self, engine):
        engine.dispose()
        engine.dispose()
        assert engine.disposed
        with pytest.raises(DisposedError):
            engine.search("guide")
        with pytest.raises(DisposedError):
            engine.index([])
