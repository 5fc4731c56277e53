"""Query engine runtime: bundle selection, execution strategies, capability loading.

Exposes the pieces the session layer needs. The engine itself is DuckDB; this
package only acquires it and normalizes its results.
"""

from .adapter import EngineConnection, EngineDatabase, InlineExecutor, WorkerExecutor
from .bundle import EngineBundle, select_bundle
from .capability import CapabilityLoader
from .runtime import ExecutionStrategy, RuntimeAcquirer, RuntimeHandle, default_strategies

__all__ = [
    "EngineConnection",
    "EngineDatabase",
    "InlineExecutor",
    "WorkerExecutor",
    "EngineBundle",
    "select_bundle",
    "CapabilityLoader",
    "ExecutionStrategy",
    "RuntimeAcquirer",
    "RuntimeHandle",
    "default_strategies",
]
