"""Tests for the session context: bind, select, local files and docs."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from artifact_sql.core.errors import ArtifactNotFoundError
from artifact_sql.core.models import ArtifactRef
from artifact_sql.session import SessionContext


def test_select_artifact_binds_and_previews(settings, two_artifact_store):
    async def scenario():
        async with SessionContext(settings, store=two_artifact_store) as context:
            preview = await context.select_artifact("cities")
            return preview, context.current_artifact, context.bound_table

    preview, current, bound = asyncio.run(scenario())
    assert current.id == "ws/x"
    assert bound.artifact_id == "ws/x"
    assert preview.columns == ("city", "population")
    assert preview.row_count == 2


def test_failed_resolve_keeps_previous_binding(settings, two_artifact_store):
    async def scenario():
        async with SessionContext(settings, store=two_artifact_store) as context:
            await context.bind("Cities")
            with pytest.raises(ArtifactNotFoundError):
                await context.bind("Plants")
            rows = await context.facade.run_query("SELECT count(*) AS n FROM dataset")
            return context.current_artifact, rows

    current, rows = asyncio.run(scenario())
    assert current.id == "ws/x"
    assert rows.rows == ({"n": 2},)


def test_runtime_shared_across_binds(settings, two_artifact_store):
    async def scenario():
        async with SessionContext(settings, store=two_artifact_store) as context:
            await context.bind("Cities")
            first = context.runtime.handle
            await context.bind("Animals")
            return first, context.runtime.handle

    first, second = asyncio.run(scenario())
    assert first is second


def test_load_local_file(settings, csv_factory):
    sample = csv_factory("sample.csv", {"gene": ["TP53", "BRCA1"], "score": [0.9, 0.4]})

    async def scenario():
        async with SessionContext(settings, store=object()) as context:
            preview = await context.load_local_file(sample)
            return preview, context.bound_table, context.current_artifact

    preview, bound, current = asyncio.run(scenario())
    assert preview.columns == ("gene", "score")
    assert bound.artifact_id is None
    assert bound.file_path == "sample.csv"
    assert current is None


def test_load_local_file_missing(settings, tmp_path: Path):
    context = SessionContext(settings, store=object())
    with pytest.raises(FileNotFoundError):
        asyncio.run(context.load_local_file(tmp_path / "absent.csv"))


def test_fetch_docs_reads_docs_file_url(settings, two_artifact_store):
    two_artifact_store.files[("ws/x", "README.md")] = "https://files.example/ws/x/README.md"
    fetched = []

    async def fake_fetch(url: str) -> str:
        fetched.append(url)
        return "# Cities\n"

    context = SessionContext(settings, store=two_artifact_store, text_fetcher=fake_fetch)
    text = asyncio.run(context.fetch_docs(ArtifactRef("ws/x", "Cities")))
    assert text == "# Cities\n"
    assert fetched == ["https://files.example/ws/x/README.md"]
