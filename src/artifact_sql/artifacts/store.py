"""Artifact storage access.

The storage collaborator is consumed through two calls:
- list(parent_id) → sequence of {id, manifest}
- get_file(artifact_id, file_path) → time-limited URL

`HyphaArtifactStore` adapts the Hypha artifact-manager service; `fetch_text`
reads a small file (e.g., README.md) through such a URL.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

import httpx

from artifact_sql.core.errors import ArtifactListingError

logger = logging.getLogger(__name__)


class ArtifactStore(Protocol):
    async def list(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        """Return `{id, manifest}` entries of a collection.

        Raises:
            ArtifactListingError: The listing call itself failed.
        """
        ...

    async def get_file(self, artifact_id: str, file_path: str) -> str:
        """Return a time-limited direct-access URL for one file."""
        ...


class ArtifactManagerProvider(Protocol):
    async def artifact_manager(self) -> Any:
        ...


class HyphaArtifactStore:
    """ArtifactStore over the Hypha `public/artifact-manager` service."""

    def __init__(self, provider: ArtifactManagerProvider) -> None:
        self._provider = provider

    async def list(self, parent_id: Optional[str]) -> List[Dict[str, Any]]:
        # Connection failures propagate; only the listing call is recoverable
        manager = await self._provider.artifact_manager()
        try:
            items = await manager.list(parent_id=parent_id or None)
        except Exception as exc:  # noqa: BLE001
            raise ArtifactListingError(f"List artifacts failed: {exc}") from exc
        entries: List[Dict[str, Any]] = []
        for item in items or []:
            if not isinstance(item, Mapping) or not item.get("id"):
                logger.warning("Skipping malformed artifact listing entry: %r", item)
                continue
            entries.append({"id": item["id"], "manifest": item.get("manifest")})
        return entries

    async def get_file(self, artifact_id: str, file_path: str) -> str:
        manager = await self._provider.artifact_manager()
        url = await manager.get_file(artifact_id=artifact_id, file_path=file_path)
        return str(url)


async def fetch_text(
    url: str,
    *,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """GET a URL and return its body as text.

    Raises:
        httpx.HTTPStatusError: Non-2xx response.
        httpx.HTTPError: Transport failure.
    """
    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, transport=transport
    ) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.text


__all__ = ["ArtifactStore", "HyphaArtifactStore", "fetch_text"]
