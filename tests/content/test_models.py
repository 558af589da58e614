"""Tests for folio.content.models."""

import dataclasses
from dataclasses import FrozenInstanceError
from datetime import UTC, datetime

import pytest

from folio.content.models import Document, Posting, SearchResult, StoreStats


def make_doc(**overrides) -> Document:
    fields = {
        "id": "a",
        "title": "A",
        "description": "desc",
        "content": "body",
        "date": datetime(2024, 1, 1, tzinfo=UTC),
    }
    fields.update(overrides)
    return Document(**fields)


class TestDocument:
    def test_is_frozen(self):
        doc = make_doc()
        with pytest.raises(FrozenInstanceError):
            doc.title = "changed"  # type: ignore[misc]

    def test_lists_become_tuples(self):
        doc = make_doc(tags=["x", "y"], categories=["c"], keywords=["k"])
        assert doc.tags == ("x", "y")
        assert doc.categories == ("c",)
        assert doc.keywords == ("k",)

    def test_meta_is_read_only(self):
        source = {"toc": []}
        doc = make_doc(meta=source)
        with pytest.raises(TypeError):
            doc.meta["extra"] = 1  # type: ignore[index]
        source["later"] = True
        assert "later" not in doc.meta

    def test_meta_default_is_a_factory(self):
        # mappingproxy is unhashable before 3.12, so it cannot be a plain field default.
        meta_field = next(f for f in dataclasses.fields(Document) if f.name == "meta")
        assert meta_field.default is dataclasses.MISSING
        doc = make_doc()
        assert doc.meta == {}
        with pytest.raises(TypeError):
            doc.meta["extra"] = 1  # type: ignore[index]

    def test_replace_returns_new_record(self):
        doc = make_doc(tags=["x"])
        updated = doc.replace(title="B", tags=["y"])
        assert updated is not doc
        assert updated.title == "B"
        assert updated.tags == ("y",)
        assert doc.title == "A"
        assert doc.tags == ("x",)

    def test_equality(self):
        assert make_doc(meta={"a": 1}) == make_doc(meta={"a": 1})
        assert make_doc() != make_doc(title="other")

    def test_year(self):
        assert make_doc().year == 2024


def test_posting_is_frozen():
    posting = Posting(document_id="a", weight=10, content="Title", excerpt="Title")
    with pytest.raises(FrozenInstanceError):
        posting.weight = 11  # type: ignore[misc]


def test_search_result_repr():
    result = SearchResult(document=make_doc(), score=14)
    assert repr(result) == "SearchResult(id='a', score=14)"
    assert result.highlights == []


def test_store_stats_as_dict():
    stats = StoreStats(
        total_articles=2, total_tags=3, total_categories=1, total_words=40, average_reading_time=1
    )
    assert stats.as_dict() == {
        "totalArticles": 2,
        "totalTags": 3,
        "totalCategories": 1,
        "totalWords": 40,
        "averageReadingTime": 1,
    }
