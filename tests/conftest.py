"""공용 pytest fixture."""

from __future__ import annotations

import pytest

from index_migrations import (
    IndexDescriptor,
    IndexLifecycleManager,
    InMemoryStore,
    StaticMappingProvider,
)

BOOKS_PROPERTIES = {
    "title": {"type": "text"},
    "author": {"type": "keyword"},
    "year": {"type": "integer"},
}

BOOKS = [
    {"_id": "1", "_source": {"title": "Dune", "author": "Herbert", "year": 1965}},
    {"_id": "2", "_source": {"title": "Solaris", "author": "Lem", "year": 1961}},
    {"_id": "3", "_source": {"title": "Neuromancer", "author": "Gibson", "year": 1984}},
]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def books_descriptor() -> IndexDescriptor:
    return IndexDescriptor("books", version=1, prefix="t", language="en")


@pytest.fixture
def make_manager(store):
    """descriptor로 InMemoryStore 기반 매니저 생성."""

    def _make(descriptor: IndexDescriptor, **kwargs) -> IndexLifecycleManager:
        return IndexLifecycleManager(
            descriptor,
            store=store,
            mapping_provider=StaticMappingProvider(BOOKS_PROPERTIES),
            **kwargs,
        )

    return _make
