"""Shared test fixtures for folio."""

import os
import tempfile

import pytest

from folio.content.config import StoreConfig
from folio.content.store import DocumentStore

SAMPLE_SOURCES = {
    "rust-guide": "---\ntitle: Rust Guide\ndate: 2024-03-01\ntags: [rust, systems]\ncategories: [programming]\nauthor: ada\n---\nownership model",
    "go-guide": "---\ntitle: Go Guide\ndate: 2023-06-15\ntags: [go, systems]\ncategories: [programming]\nauthor: ada\n---\ngoroutines",
    "garden": "---\ntitle: Spring Garden\ndate: 2024-04-20\ntags: [outdoors]\ncategories: [life]\nauthor: grace\n---\nTomatoes and basil.",
}


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "search": {"max_results": 5},
        "plugins": {"timeout": 2.0, "enabled": ["word-count"]},
        "cache": {"sweep_interval": None},
        "logging": {"level": "ERROR"},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def store():
    return DocumentStore(StoreConfig())


@pytest.fixture
def sample_documents(store):
    """Documents built from SAMPLE_SOURCES (not yet added to the store)."""
    return [store.create_from_source(doc_id, text) for doc_id, text in SAMPLE_SOURCES.items()]


@pytest.fixture
def markdown_files(tmp_dir):
    """SAMPLE_SOURCES written out as .md files; returns their paths."""
    paths = []
    for doc_id, text in SAMPLE_SOURCES.items():
        path = os.path.join(tmp_dir, f"{doc_id}.md")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        paths.append(path)
    return paths


@pytest.fixture
def sample_sources():
    """SAMPLE_SOURCES as (id, text) pairs, the shape Engine.initialize takes."""
    return list(SAMPLE_SOURCES.items())
