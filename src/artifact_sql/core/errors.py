"""Error taxonomy.

Propagation policy:
    - ArtifactListingError is the only recoverable class; the resolver turns
      it into an empty listing.
    - CapabilityInstallError is raised and absorbed inside the capability
      loader; callers never see it.
    - Everything else propagates to the immediate caller carrying the
      underlying message.
"""

from __future__ import annotations

from typing import List, Tuple


class ArtifactSQLError(Exception):
    """Base class for all package errors."""


class RuntimeInitializationError(ArtifactSQLError):
    """Every execution strategy failed to produce an engine runtime.

    Attributes:
        failures: (strategy name, exception) pairs in the order they were tried.
    """

    def __init__(self, failures: List[Tuple[str, BaseException]]) -> None:
        self.failures = list(failures)
        if self.failures:
            detail = "; ".join(f"{name}: {exc}" for name, exc in self.failures)
        else:
            detail = "no execution strategy available"
        super().__init__(f"Query engine initialization failed ({detail})")


class CapabilityInstallError(ArtifactSQLError):
    """An optional engine extension could not be installed or loaded."""


class ArtifactNotFoundError(ArtifactSQLError):
    """No artifact matches the requested id or name."""


class ArtifactListingError(ArtifactSQLError):
    """Listing the artifact collection failed."""


class DatasetFileNotFoundError(ArtifactSQLError):
    """Neither the default dataset file nor any declared candidate is reachable."""


class QueryExecutionError(ArtifactSQLError):
    """The engine rejected a SQL statement. The message is the engine's, verbatim."""


__all__ = [
    "ArtifactSQLError",
    "RuntimeInitializationError",
    "CapabilityInstallError",
    "ArtifactNotFoundError",
    "ArtifactListingError",
    "DatasetFileNotFoundError",
    "QueryExecutionError",
]
