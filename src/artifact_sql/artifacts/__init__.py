"""Artifact resolution and remote table binding."""

from .binder import RemoteTableBinder
from .resolver import ArtifactResolver, find_artifact
from .store import ArtifactStore, HyphaArtifactStore, fetch_text

__all__ = [
    "RemoteTableBinder",
    "ArtifactResolver",
    "find_artifact",
    "ArtifactStore",
    "HyphaArtifactStore",
    "fetch_text",
]
