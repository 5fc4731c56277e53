"""Engine bundle selection.

A bundle tells DuckDB where its extensions come from. A locally hosted bundle
(an extension directory, or an extension repository served over HTTP) is
preferred when a lightweight probe finds it; otherwise the engine's default
remote repository is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import httpx

from artifact_sql.core.enums import BundleSource
from artifact_sql.settings import Settings

logger = logging.getLogger(__name__)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


@dataclass(frozen=True)
class EngineBundle:
    source: BundleSource
    location: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.source is BundleSource.LOCAL

    def duckdb_config(self) -> Dict[str, str]:
        """Return the DuckDB connection config for this bundle.

        Examples:
            >>> EngineBundle(BundleSource.REMOTE).duckdb_config()
            {}
            >>> EngineBundle(BundleSource.LOCAL, "http://localhost:8000/ext/").duckdb_config()
            {'custom_extension_repository': 'http://localhost:8000/ext'}
        """
        if not self.is_local or not self.location:
            return {}
        if _is_url(self.location):
            return {"custom_extension_repository": self.location.rstrip("/")}
        return {"extension_directory": str(Path(self.location).expanduser().resolve())}


REMOTE_BUNDLE = EngineBundle(BundleSource.REMOTE)


async def probe_local_bundle(
    location: str,
    *,
    timeout: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """Return True when the local bundle exists.

    URLs are probed with a HEAD request (any 2xx counts); other locations are
    treated as directories. Probe errors count as "absent".
    """
    if not _is_url(location):
        return Path(location).expanduser().is_dir()
    try:
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, transport=transport
        ) as client:
            response = await client.head(location)
        return response.is_success
    except httpx.HTTPError as exc:
        logger.debug("Local bundle probe failed for %s: %s", location, exc)
        return False


async def select_bundle(
    settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None
) -> EngineBundle:
    """Prefer the configured local bundle; fall back to the remote default."""
    location = settings.local_bundle
    if location and await probe_local_bundle(
        location, timeout=settings.http_timeout, transport=transport
    ):
        logger.info("Using local engine bundle: %s", location)
        return EngineBundle(BundleSource.LOCAL, location)
    logger.debug("Using default remote engine bundle")
    return REMOTE_BUNDLE


__all__ = ["EngineBundle", "REMOTE_BUNDLE", "probe_local_bundle", "select_bundle"]
