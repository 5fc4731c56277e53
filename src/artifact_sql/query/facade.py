"""SQL execution against the bound view and session connection."""

from __future__ import annotations

from typing import Optional

from artifact_sql.core.models import QueryResult
from artifact_sql.engine.runtime import RuntimeAcquirer
from artifact_sql.settings import Settings


class QueryFacade:
    """Run SQL text and return normalized results.

    Results are built per call and never cached.
    """

    def __init__(self, runtime: RuntimeAcquirer, settings: Settings) -> None:
        self._runtime = runtime
        self.table_name = settings.table_name
        self.preview_limit = settings.preview_limit

    async def run_query(self, sql: Optional[str]) -> Optional[QueryResult]:
        """Execute SQL; return None without touching the engine for blank input.

        Raises:
            QueryExecutionError: The engine rejected the SQL.
        """
        if not sql or not sql.strip():
            return None
        connection = await self._runtime.connection()
        return await connection.query(sql)

    async def get_schema(self) -> QueryResult:
        """Return the engine's table metadata for the bound view, unchanged."""
        connection = await self._runtime.connection()
        return await connection.query(f"PRAGMA table_info('{self.table_name}');")

    async def preview(self, limit: Optional[int] = None) -> QueryResult:
        n = self.preview_limit if limit is None else int(limit)
        connection = await self._runtime.connection()
        return await connection.query(f"SELECT * FROM {self.table_name} LIMIT {n};")


__all__ = ["QueryFacade"]
