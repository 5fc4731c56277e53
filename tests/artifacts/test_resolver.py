"""Tests for artifact resolution and the listing recovery boundary."""

from __future__ import annotations

import asyncio
import logging

import pytest

from artifact_sql.artifacts.resolver import ArtifactResolver
from artifact_sql.core.errors import ArtifactNotFoundError
from utils.fakes import FakeArtifactStore

COLLECTION = "biomni-dataset-collection"


@pytest.fixture
def store() -> FakeArtifactStore:
    return FakeArtifactStore(
        artifacts=[
            {"id": "a1", "manifest": {"name": "Foo"}},
            {"id": "a2", "manifest": {"name": "a1"}},
            {"id": "a3", "manifest": {"name": "Gene Expression", "files": [{"path": "expr.csv"}]}},
        ]
    )


def test_id_match_takes_precedence_over_name(store):
    resolver = ArtifactResolver(store, COLLECTION)
    artifact = asyncio.run(resolver.resolve("a1"))
    assert artifact.id == "a1"
    assert artifact.display_name == "Foo"
    assert store.list_calls == [COLLECTION]


def test_name_match_is_case_insensitive(store):
    resolver = ArtifactResolver(store, COLLECTION)
    artifact = asyncio.run(resolver.resolve("gene EXPRESSION"))
    assert artifact.id == "a3"
    assert artifact.files == ("expr.csv",)


@pytest.mark.parametrize("key", ["", None])
def test_empty_key_is_rejected_without_listing(store, key):
    resolver = ArtifactResolver(store, COLLECTION)
    with pytest.raises(ArtifactNotFoundError, match="artifact is required"):
        asyncio.run(resolver.resolve(key))
    assert store.list_calls == []


def test_no_match_raises_not_found(store):
    resolver = ArtifactResolver(store, COLLECTION)
    with pytest.raises(ArtifactNotFoundError, match="Artifact not found: missing"):
        asyncio.run(resolver.resolve("missing"))


def test_listing_failure_degrades_to_empty(caplog):
    """A failed listing is logged, returns [], and turns resolution into not-found."""
    store = FakeArtifactStore(fail_listing=True)
    resolver = ArtifactResolver(store, COLLECTION)

    with caplog.at_level(logging.ERROR):
        assert asyncio.run(resolver.list_artifacts()) == []
        with pytest.raises(ArtifactNotFoundError):
            asyncio.run(resolver.resolve("a1"))
    assert "List artifacts failed" in caplog.text


def test_other_store_failures_propagate():
    class BrokenStore(FakeArtifactStore):
        async def list(self, parent_id):
            raise ConnectionError("cannot reach server")

    resolver = ArtifactResolver(BrokenStore(), COLLECTION)
    with pytest.raises(ConnectionError, match="cannot reach server"):
        asyncio.run(resolver.resolve("a1"))
