"""Bind an artifact's dataset file to the session's logical view.

The view is defined over the remote URL with `read_csv_auto`, so nothing is
downloaded at bind time; the engine reads the file when a query runs.
Binding always drops the previous view before creating the new one. Binds
are serialized, so concurrent binds apply in arrival order and the last wins.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from artifact_sql.core.errors import DatasetFileNotFoundError
from artifact_sql.core.models import ArtifactRef, BoundTable
from artifact_sql.engine.runtime import RuntimeAcquirer
from artifact_sql.settings import Settings

from .store import ArtifactStore

logger = logging.getLogger(__name__)


def sql_literal(value: str) -> str:
    """Quote a string as a SQL literal.

    Examples:
        >>> sql_literal("https://x/a?sig=it's")
        "'https://x/a?sig=it''s'"
    """
    return "'" + value.replace("'", "''") + "'"


def dataset_candidate(artifact: ArtifactRef, extension: str) -> Optional[str]:
    """Return the first declared file with the dataset extension (case-insensitive)."""
    suffix = extension.lower()
    for path in artifact.files:
        if path.lower().endswith(suffix):
            return path
    return None


class RemoteTableBinder:
    """Keep at most one live view under the logical table name.

    Attributes:
        current: The live binding, or None.
    """

    def __init__(self, store: ArtifactStore, runtime: RuntimeAcquirer, settings: Settings) -> None:
        self._store = store
        self._runtime = runtime
        self.table_name = settings.table_name
        self._default_file = settings.default_dataset_file
        self._extension = settings.dataset_extension
        self.current: Optional[BoundTable] = None
        self._lock = asyncio.Lock()

    async def locate(self, artifact: ArtifactRef) -> Tuple[str, str]:
        """Return (file path, signed URL) of the artifact's dataset file.

        Raises:
            DatasetFileNotFoundError: Neither the default file nor a declared
                candidate yielded a URL.
        """
        try:
            url = await self._store.get_file(artifact.id, self._default_file)
            return self._default_file, url
        except Exception as exc:  # noqa: BLE001
            candidate = dataset_candidate(artifact, self._extension)
            if candidate is None:
                raise DatasetFileNotFoundError(
                    f"No {self._extension} dataset found in artifact {artifact.id}: {exc}"
                ) from exc
            logger.info(
                "%s unavailable in %s, using %s", self._default_file, artifact.id, candidate
            )
        try:
            url = await self._store.get_file(artifact.id, candidate)
        except Exception as exc:  # noqa: BLE001
            raise DatasetFileNotFoundError(
                f"Failed to get {candidate} from artifact {artifact.id}: {exc}"
            ) from exc
        return candidate, url

    async def bind(self, artifact: ArtifactRef) -> BoundTable:
        file_path, url = await self.locate(artifact)
        return await self.bind_url(url, artifact_id=artifact.id, file_path=file_path)

    async def bind_url(
        self,
        url: str,
        *,
        artifact_id: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> BoundTable:
        """(Re)create the logical view over a URL or local path."""
        connection = await self._runtime.connection()
        async with self._lock:
            await connection.query(f"DROP VIEW IF EXISTS {self.table_name};")
            self.current = None
            await connection.query(
                f"CREATE VIEW {self.table_name} AS "
                f"SELECT * FROM read_csv_auto({sql_literal(url)}, header=true);"
            )
            bound = BoundTable(
                logical_name=self.table_name,
                source_url=url,
                artifact_id=artifact_id,
                file_path=file_path,
            )
            self.current = bound
        logger.info("Bound %s to %s", self.table_name, artifact_id or url)
        return bound


__all__ = ["RemoteTableBinder", "dataset_candidate", "sql_literal"]
