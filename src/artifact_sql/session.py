"""Session context.

One `SessionContext` per logical session owns all mutable session state:
the runtime handle (through the acquirer), the capability state, the current
binding and artifact, the status indicator and the service registration flag.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Union

from artifact_sql.artifacts.binder import RemoteTableBinder
from artifact_sql.artifacts.resolver import ArtifactResolver
from artifact_sql.artifacts.store import ArtifactStore, HyphaArtifactStore, fetch_text
from artifact_sql.core.models import ArtifactRef, BoundTable, QueryResult
from artifact_sql.core.status import StatusIndicator
from artifact_sql.engine.capability import CapabilityLoader
from artifact_sql.engine.runtime import RuntimeAcquirer
from artifact_sql.interfaces.hypha.connection import SessionConnection
from artifact_sql.query.facade import QueryFacade
from artifact_sql.settings import Settings

logger = logging.getLogger(__name__)

ArtifactKey = Union[str, ArtifactRef]
TextFetcher = Callable[[str], Awaitable[str]]


class SessionContext:
    """Explicitly constructed, explicitly disposed session state."""

    def __init__(
        self,
        settings: Settings,
        *,
        store: Optional[ArtifactStore] = None,
        connection: Optional[SessionConnection] = None,
        runtime: Optional[RuntimeAcquirer] = None,
        text_fetcher: Optional[TextFetcher] = None,
    ) -> None:
        self.settings = settings
        self._fetch_text = text_fetcher or functools.partial(
            fetch_text, timeout=settings.http_timeout
        )
        self.status = runtime.status if runtime is not None else StatusIndicator()
        self.runtime = runtime or RuntimeAcquirer(
            settings,
            status=self.status,
            capability=CapabilityLoader(settings.capability_extension),
        )
        self.connection = connection or SessionConnection(settings)
        self.store: ArtifactStore = store or HyphaArtifactStore(self.connection)
        self.resolver = ArtifactResolver(self.store, settings.collection)
        self.binder = RemoteTableBinder(self.store, self.runtime, settings)
        self.facade = QueryFacade(self.runtime, settings)
        self.current_artifact: Optional[ArtifactRef] = None
        self.service_registered = False
        self.service_id: Optional[str] = None
        self.pending_registration: Optional[Any] = None

    @property
    def capability(self) -> CapabilityLoader:
        return self.runtime.capability

    @property
    def bound_table(self) -> Optional[BoundTable]:
        return self.binder.current

    async def list_artifacts(self) -> List[ArtifactRef]:
        return await self.resolver.list_artifacts()

    async def bind(self, key: ArtifactKey) -> BoundTable:
        """Resolve an artifact and bind its dataset as the logical view."""
        artifact = await self.resolver.resolve(key)
        bound = await self.binder.bind(artifact)
        self.current_artifact = artifact
        return bound

    async def select_artifact(self, key: ArtifactKey) -> QueryResult:
        """Bind an artifact and return a preview of its rows."""
        await self.bind(key)
        return await self.facade.preview()

    async def load_local_file(self, path: Path) -> QueryResult:
        """Bind a local CSV file with the same lazy view semantics and preview it."""
        resolved = path.expanduser().resolve()
        if not resolved.is_file():
            raise FileNotFoundError(f"CSV file not found: {resolved}")
        await self.binder.bind_url(str(resolved), file_path=resolved.name)
        self.current_artifact = None
        return await self.facade.preview()

    async def fetch_docs(self, artifact: ArtifactRef) -> str:
        """Return the artifact's docs file text.

        Raises:
            Exception: Whatever the storage or HTTP layer raised.
        """
        url = await self.store.get_file(artifact.id, self.settings.docs_file)
        return await self._fetch_text(url)

    async def close(self) -> None:
        await self.runtime.close()
        await self.connection.disconnect()

    async def __aenter__(self) -> "SessionContext":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["SessionContext", "ArtifactKey"]
