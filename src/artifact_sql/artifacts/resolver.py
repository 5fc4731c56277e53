"""Artifact resolution by id or display name."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from artifact_sql.core.errors import ArtifactListingError, ArtifactNotFoundError
from artifact_sql.core.models import ArtifactRef

from .store import ArtifactStore

logger = logging.getLogger(__name__)


def find_artifact(items: Sequence[ArtifactRef], key: str) -> Optional[ArtifactRef]:
    """Return the first exact id match, else the first case-insensitive name match.

    Examples:
        >>> items = [ArtifactRef("a1", "Foo"), ArtifactRef("a2", "a1")]
        >>> find_artifact(items, "a1").id
        'a1'
        >>> find_artifact(items, "FOO").id
        'a1'
    """
    for item in items:
        if item.id == key:
            return item
    wanted = key.lower()
    for item in items:
        if (item.display_name or "").lower() == wanted:
            return item
    return None


class ArtifactResolver:
    """Resolve user-supplied keys against one collection."""

    def __init__(self, store: ArtifactStore, collection: Optional[str]) -> None:
        self._store = store
        self._collection = collection

    async def list_artifacts(self) -> List[ArtifactRef]:
        """List the collection; a failed listing degrades to an empty list."""
        try:
            items = await self._store.list(self._collection)
        except ArtifactListingError as exc:
            logger.error("%s", exc)
            return []
        return [ArtifactRef.from_listing(item) for item in items]

    async def resolve(self, key: Any) -> ArtifactRef:
        """Map an artifact id or display name to its record.

        Raises:
            ArtifactNotFoundError: Empty key, or no match after both passes.
        """
        if not key:
            raise ArtifactNotFoundError("artifact is required")
        if isinstance(key, ArtifactRef):
            return key
        items = await self.list_artifacts()
        hit = find_artifact(items, str(key))
        if hit is None:
            raise ArtifactNotFoundError(f"Artifact not found: {key}")
        return hit


__all__ = ["ArtifactResolver", "find_artifact"]
