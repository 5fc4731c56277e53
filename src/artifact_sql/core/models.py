"""Session data models.

This module defines the value types shared by the binding layer:
- ArtifactRef: one artifact record from a collection listing
- BoundTable: the live view over a remote dataset file
- QueryResult: normalized tabular result of one engine call
"""

from __future__ import annotations

import base64
import datetime as dt
import decimal
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd


@dataclass(frozen=True)
class ArtifactRef:
    """An artifact record as returned by a collection listing.

    Attributes:
        id: Opaque artifact identifier (e.g., "hypha-agents/my-dataset").
        display_name: Human name from the manifest, if any.
        files: Relative file paths declared by the manifest, in order.
        description: Manifest description, if any.

    Examples:
        >>> ArtifactRef.from_listing(
        ...     {"id": "ws/a1", "manifest": {"name": "Foo", "files": ["data.csv"]}}
        ... )
        ArtifactRef(id='ws/a1', display_name='Foo', files=('data.csv',), description=None)
    """

    id: str
    display_name: Optional[str] = None
    files: Tuple[str, ...] = ()
    description: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.id

    @classmethod
    def from_listing(cls, item: Mapping[str, Any]) -> "ArtifactRef":
        """Build a record from a `{id, manifest}` listing entry."""
        manifest = item.get("manifest") or {}
        name = manifest.get("name")
        description = manifest.get("description")
        return cls(
            id=str(item.get("id", "")),
            display_name=str(name) if name else None,
            files=tuple(_file_paths(manifest.get("files") or [])),
            description=str(description) if description else None,
        )


def _file_paths(entries: Iterable[Any]) -> List[str]:
    # Manifests list files either as plain strings or as {path|name: ...} objects
    out: List[str] = []
    for entry in entries:
        if isinstance(entry, str):
            path = entry
        elif isinstance(entry, Mapping):
            path = entry.get("path") or entry.get("name")
        else:
            path = None
        if path:
            out.append(str(path))
    return out


@dataclass(frozen=True)
class BoundTable:
    """The view currently bound under the session's logical table name.

    Attributes:
        logical_name: Fixed table name for the session (e.g., "dataset").
        source_url: Time-limited URL (or local path) the view reads from.
        artifact_id: Artifact the URL was obtained for; None for local files.
        file_path: Artifact-relative path of the dataset file.
    """

    logical_name: str
    source_url: str
    artifact_id: Optional[str] = None
    file_path: Optional[str] = None


@dataclass(frozen=True)
class QueryResult:
    """Columns and rows of one engine call.

    A statement without a result set yields no columns and no rows. A query
    matching nothing yields its column names and no rows.

    Attributes:
        columns: Unique column names in engine order.
        rows: One mapping per row, keyed by column name.
    """

    columns: Tuple[str, ...] = ()
    rows: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def from_records(
        cls, names: Sequence[str], records: Iterable[Sequence[Any]]
    ) -> "QueryResult":
        columns = unique_column_names(names)
        rows = tuple(dict(zip(columns, record)) for record in records)
        return cls(columns=columns, rows=rows)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def to_payload(self) -> Dict[str, Any]:
        """Return plain JSON-compatible values for transport."""
        return {
            "columns": list(self.columns),
            "rows": [{k: plain_value(v) for k, v in row.items()} for row in self.rows],
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.rows), columns=list(self.columns))


def unique_column_names(names: Sequence[str]) -> Tuple[str, ...]:
    """Suffix repeated names with _1, _2... so rows can be keyed by name.

    Examples:
        >>> unique_column_names(["a", "b", "a", "a"])
        ('a', 'b', 'a_1', 'a_2')
    """
    seen: Dict[str, int] = {}
    taken = set()
    out: List[str] = []
    for raw in names:
        name = str(raw)
        if name not in taken:
            seen.setdefault(name, 0)
            taken.add(name)
            out.append(name)
            continue
        n = seen.get(name, 0)
        candidate = name
        while candidate in taken:
            n += 1
            candidate = f"{name}_{n}"
        seen[name] = n
        taken.add(candidate)
        out.append(candidate)
    return tuple(out)


def plain_value(value: Any) -> Any:
    """Convert an engine scalar into a JSON-compatible value."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, decimal.Decimal):
        return float(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, dt.timedelta):
        return value.total_seconds()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): plain_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain_value(v) for v in value]
    return str(value)


__all__ = [
    "ArtifactRef",
    "BoundTable",
    "QueryResult",
    "unique_column_names",
    "plain_value",
]
