"""Tests for two-tier engine bundle selection."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx

from artifact_sql.core.enums import BundleSource
from artifact_sql.engine.bundle import EngineBundle, probe_local_bundle, select_bundle

LOCAL_REPO = "http://localhost:8000/duckdb-extensions/"


def _transport(status_code: int) -> httpx.MockTransport:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return httpx.Response(status_code)

    transport = httpx.MockTransport(handler)
    transport.seen = seen  # type: ignore[attr-defined]
    return transport


def test_local_url_bundle_selected_when_head_succeeds(settings):
    transport = _transport(200)
    bundle = asyncio.run(
        select_bundle(settings.with_overrides(local_bundle=LOCAL_REPO), transport=transport)
    )
    assert bundle.source is BundleSource.LOCAL
    assert transport.seen == ["HEAD"]
    assert bundle.duckdb_config() == {
        "custom_extension_repository": "http://localhost:8000/duckdb-extensions"
    }


def test_remote_bundle_when_head_fails(settings):
    bundle = asyncio.run(
        select_bundle(settings.with_overrides(local_bundle=LOCAL_REPO), transport=_transport(404))
    )
    assert bundle.source is BundleSource.REMOTE
    assert bundle.duckdb_config() == {}


def test_probe_transport_error_counts_as_absent():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(probe_local_bundle(LOCAL_REPO, transport=httpx.MockTransport(handler))) is False


def test_local_directory_bundle(settings, tmp_path: Path):
    ext_dir = tmp_path / "ext"
    ext_dir.mkdir()
    bundle = asyncio.run(select_bundle(settings.with_overrides(local_bundle=str(ext_dir))))
    assert bundle == EngineBundle(BundleSource.LOCAL, str(ext_dir))
    assert bundle.duckdb_config() == {"extension_directory": str(ext_dir.resolve())}


def test_missing_directory_falls_back_to_remote(settings, tmp_path: Path):
    bundle = asyncio.run(
        select_bundle(settings.with_overrides(local_bundle=str(tmp_path / "missing")))
    )
    assert bundle.source is BundleSource.REMOTE


def test_no_local_bundle_configured(settings):
    assert asyncio.run(select_bundle(settings)).source is BundleSource.REMOTE
