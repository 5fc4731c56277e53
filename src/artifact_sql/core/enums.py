"""Core enumerations used across the package."""

from __future__ import annotations

from enum import Enum


class RuntimeStatus(str, Enum):
    """States of the process-wide engine status indicator.

    Values are strings to ease logging and display.
    """

    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class ExecutionStrategyKind(str, Enum):
    """Where engine calls run."""

    WORKER = "worker"  # dedicated worker thread
    INLINE = "inline"  # calling thread


class BundleSource(str, Enum):
    """Origin of the engine extension bundle."""

    LOCAL = "local"
    REMOTE = "remote"


__all__ = ["RuntimeStatus", "ExecutionStrategyKind", "BundleSource"]
