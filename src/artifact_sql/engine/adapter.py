"""DuckDB adapter.

Wraps the engine module behind two small classes and normalizes every result
into a `QueryResult` at this boundary. Engine calls go through an executor:

- WorkerExecutor: one dedicated thread owns every engine call
- InlineExecutor: calls run directly on the calling thread
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, Protocol, TypeVar

from artifact_sql.core.enums import ExecutionStrategyKind
from artifact_sql.core.errors import QueryExecutionError
from artifact_sql.core.models import QueryResult

from .bundle import EngineBundle

logger = logging.getLogger(__name__)

T = TypeVar("T")

IN_MEMORY_DATABASE = ":memory:"


class Executor(Protocol):
    kind: ExecutionStrategyKind

    async def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        ...

    def shutdown(self) -> None:
        ...


class InlineExecutor:
    """Run engine calls on the caller's thread."""

    kind = ExecutionStrategyKind.INLINE

    async def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return fn(*args, **kwargs)

    def shutdown(self) -> None:
        pass


class WorkerExecutor:
    """Run engine calls on a single dedicated worker thread.

    A single thread serializes all engine access, so the engine objects never
    see concurrent calls.
    """

    kind = ExecutionStrategyKind.WORKER

    def __init__(self, thread_name_prefix: str = "duckdb-worker") -> None:
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)

    async def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, functools.partial(fn, *args, **kwargs))

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)


class EngineConnection:
    """One open connection; every query returns a normalized QueryResult."""

    def __init__(self, cursor: Any, executor: Executor, engine_error: type) -> None:
        self._cursor = cursor
        self._executor = executor
        self._engine_error = engine_error

    async def query(self, sql: str) -> QueryResult:
        """Execute one statement.

        Raises:
            QueryExecutionError: The engine rejected the statement; the message
                is the engine's own.
        """
        try:
            return await self._executor.run(self._execute, sql)
        except self._engine_error as exc:
            raise QueryExecutionError(str(exc)) from exc

    def _execute(self, sql: str) -> QueryResult:
        self._cursor.execute(sql)
        description = self._cursor.description
        if not description:
            return QueryResult()
        names = [d[0] for d in description]
        return QueryResult.from_records(names, self._cursor.fetchall())

    async def install_extension(self, name: str) -> None:
        await self.query(f"INSTALL {name};")

    async def load_extension(self, name: str) -> None:
        await self.query(f"LOAD {name};")

    async def close(self) -> None:
        await self._executor.run(self._cursor.close)


class EngineDatabase:
    """An engine instance created from a bundle on a given executor."""

    def __init__(self, module: Any, executor: Executor) -> None:
        self._module = module
        self._executor = executor
        self._db: Optional[Any] = None

    @property
    def executor(self) -> Executor:
        return self._executor

    async def instantiate(self, bundle: EngineBundle) -> None:
        self._db = await self._executor.run(
            self._module.connect,
            database=IN_MEMORY_DATABASE,
            config=bundle.duckdb_config(),
        )

    async def connect(self) -> EngineConnection:
        if self._db is None:
            raise RuntimeError("Engine database is not instantiated")
        cursor = await self._executor.run(self._db.cursor)
        return EngineConnection(cursor, self._executor, getattr(self._module, "Error", Exception))

    async def close(self) -> None:
        if self._db is not None:
            await self._executor.run(self._db.close)
            self._db = None
        self._executor.shutdown()


__all__ = [
    "Executor",
    "InlineExecutor",
    "WorkerExecutor",
    "EngineConnection",
    "EngineDatabase",
]
