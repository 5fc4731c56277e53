"""artifact-sql: query Hypha dataset artifacts with DuckDB SQL.

The package binds a remote CSV file of an artifact to a lazily evaluated
DuckDB view and exposes a small SQL service (docs, schema, query) over Hypha
and MCP. A `SessionContext` owns all per-session state.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
