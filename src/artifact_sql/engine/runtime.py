"""Runtime acquisition.

Obtains one initialized engine plus one open connection per session. The
execution strategies are tried in order and the first success wins:

1. WORKER: engine calls on a dedicated worker thread
2. INLINE: engine calls on the caller's thread

Both strategies use the same engine module and the same selected bundle.
In local development without a local bundle the worker strategy is skipped.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from artifact_sql.core.enums import ExecutionStrategyKind, RuntimeStatus
from artifact_sql.core.errors import RuntimeInitializationError
from artifact_sql.core.status import StatusIndicator
from artifact_sql.settings import Settings

from .adapter import EngineConnection, EngineDatabase, Executor, InlineExecutor, WorkerExecutor
from .bundle import EngineBundle, select_bundle
from .capability import CapabilityLoader

logger = logging.getLogger(__name__)

ENGINE_MODULE = "duckdb"

BundleSelector = Callable[[Settings], Awaitable[EngineBundle]]


@dataclass(frozen=True)
class ExecutionStrategy:
    kind: ExecutionStrategyKind
    make_executor: Callable[[], Executor]


WORKER_STRATEGY = ExecutionStrategy(ExecutionStrategyKind.WORKER, WorkerExecutor)
INLINE_STRATEGY = ExecutionStrategy(ExecutionStrategyKind.INLINE, InlineExecutor)


def default_strategies(bundle: EngineBundle, *, local_dev: bool) -> List[ExecutionStrategy]:
    """Return the strategies to try, in order.

    Examples:
        >>> from artifact_sql.engine.bundle import REMOTE_BUNDLE
        >>> [s.kind.value for s in default_strategies(REMOTE_BUNDLE, local_dev=True)]
        ['inline']
    """
    if local_dev and not bundle.is_local:
        logger.info("Local development without local bundle: skipping worker strategy")
        return [INLINE_STRATEGY]
    return [WORKER_STRATEGY, INLINE_STRATEGY]


@dataclass
class RuntimeHandle:
    """One initialized engine and its open connection."""

    database: EngineDatabase
    connection: EngineConnection
    strategy: ExecutionStrategyKind
    bundle: EngineBundle

    async def close(self) -> None:
        await self.connection.close()
        await self.database.close()


class RuntimeAcquirer:
    """Idempotent, re-entrancy safe engine acquisition.

    Concurrent callers share the in-flight attempt. A failed attempt caches
    nothing, so the next call starts from scratch.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        status: Optional[StatusIndicator] = None,
        capability: Optional[CapabilityLoader] = None,
        engine_module: Any = None,
        strategies: Optional[Sequence[ExecutionStrategy]] = None,
        bundle_selector: Optional[BundleSelector] = None,
    ) -> None:
        self._settings = settings
        self.status = status or StatusIndicator()
        self.capability = capability or CapabilityLoader(settings.capability_extension)
        self._engine_module = engine_module
        self._strategies = list(strategies) if strategies is not None else None
        self._bundle_selector = bundle_selector or select_bundle
        self._handle: Optional[RuntimeHandle] = None
        self._pending: Optional[asyncio.Future] = None

    @property
    def handle(self) -> Optional[RuntimeHandle]:
        return self._handle

    async def acquire(self) -> RuntimeHandle:
        if self._handle is not None:
            return self._handle
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._initialize())
        pending = self._pending
        try:
            return await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None

    async def connection(self) -> EngineConnection:
        return (await self.acquire()).connection

    def _load_engine_module(self) -> Any:
        if self._engine_module is None:
            self._engine_module = importlib.import_module(ENGINE_MODULE)
        return self._engine_module

    async def _initialize(self) -> RuntimeHandle:
        self.status.set(RuntimeStatus.INITIALIZING, "Loading DuckDB…")
        try:
            handle = await self._try_strategies()
        except Exception as exc:
            self.status.set(RuntimeStatus.FAILED, str(exc))
            raise
        self._handle = handle
        await self.capability.ensure(handle.connection)
        self.status.set(RuntimeStatus.READY, f"DuckDB ready ({handle.strategy.value})")
        return handle

    async def _try_strategies(self) -> RuntimeHandle:
        failures: List[Tuple[str, BaseException]] = []
        try:
            module = self._load_engine_module()
        except ImportError as exc:
            raise RuntimeInitializationError([("import", exc)]) from exc
        bundle = await self._bundle_selector(self._settings)
        strategies = self._strategies
        if strategies is None:
            strategies = default_strategies(bundle, local_dev=self._settings.local_dev)

        for strategy in strategies:
            executor: Optional[Executor] = None
            try:
                executor = strategy.make_executor()
                database = EngineDatabase(module, executor)
                await database.instantiate(bundle)
                connection = await database.connect()
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "DuckDB %s strategy failed, trying next: %s", strategy.kind.value, exc
                )
                failures.append((strategy.kind.value, exc))
                if executor is not None:
                    executor.shutdown()
                continue
            return RuntimeHandle(
                database=database,
                connection=connection,
                strategy=strategy.kind,
                bundle=bundle,
            )
        raise RuntimeInitializationError(failures)

    async def close(self) -> None:
        """Dispose of the runtime (optional session teardown).

        A later `acquire` builds a fresh engine, so the capability loader is
        reset and the extension is installed again on it.
        """
        if self._handle is not None:
            handle, self._handle = self._handle, None
            self.capability.reset()
            await handle.close()


__all__ = [
    "ExecutionStrategy",
    "WORKER_STRATEGY",
    "INLINE_STRATEGY",
    "default_strategies",
    "RuntimeHandle",
    "RuntimeAcquirer",
]
