"""Session configuration.

This module centralizes the configuration surface and its defaults. Settings
are read once at startup and never re-validated afterwards.

Precedence (lowest to highest):
    - DEFAULT_* constants below
    - YAML file (config/settings.yaml when present, or an explicit path)
    - explicit overrides (CLI flags)

An override of None means "not given". An empty string disables the optional
features: capability_extension, local_bundle and token_cache.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

# ============================================================================
# CONNECTION DEFAULTS
# ============================================================================

DEFAULT_SERVER_URL = "https://hypha.aicell.io"
DEFAULT_WORKSPACE = "hypha-agents"
DEFAULT_COLLECTION = "biomni-dataset-collection"
DEFAULT_SERVICE_ID = "duckdb-sql-worker"
DEFAULT_VISIBILITY = "protected"
DEFAULT_METHOD_TIMEOUT = 20.0  # seconds, per remote method call
DEFAULT_HTTP_TIMEOUT = 30.0  # seconds, bundle probe and docs download
DEFAULT_TOKEN_CACHE = "~/.cache/artifact-sql/token"

ARTIFACT_MANAGER_SERVICE = "public/artifact-manager"

# ============================================================================
# DATASET CONVENTIONS
# ============================================================================

DEFAULT_TABLE_NAME = "dataset"
DEFAULT_DATASET_FILE = "dataset.csv"
DEFAULT_DATASET_EXTENSION = ".csv"
DEFAULT_DOCS_FILE = "README.md"
DEFAULT_PREVIEW_LIMIT = 50

# ============================================================================
# ENGINE
# ============================================================================

DEFAULT_CAPABILITY_EXTENSION = "httpfs"
DEFAULT_LOCAL_BUNDLE = "duckdb-extensions"

DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

_STRING_FIELDS = (
    "server_url",
    "workspace",
    "token",
    "collection",
    "service_id",
    "visibility",
    "token_cache",
    "table_name",
    "default_dataset_file",
    "dataset_extension",
    "docs_file",
    "capability_extension",
    "local_bundle",
)
_OPTIONAL_FIELDS = frozenset(
    {"workspace", "token", "collection", "token_cache", "capability_extension", "local_bundle"}
)


@dataclass(frozen=True)
class Settings:
    """Configuration surface of one session."""

    server_url: str = DEFAULT_SERVER_URL
    workspace: Optional[str] = DEFAULT_WORKSPACE
    token: Optional[str] = None
    collection: Optional[str] = DEFAULT_COLLECTION
    service_id: str = DEFAULT_SERVICE_ID
    visibility: str = DEFAULT_VISIBILITY
    method_timeout: float = DEFAULT_METHOD_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    token_cache: Optional[str] = DEFAULT_TOKEN_CACHE
    table_name: str = DEFAULT_TABLE_NAME
    default_dataset_file: str = DEFAULT_DATASET_FILE
    dataset_extension: str = DEFAULT_DATASET_EXTENSION
    docs_file: str = DEFAULT_DOCS_FILE
    preview_limit: int = DEFAULT_PREVIEW_LIMIT
    capability_extension: Optional[str] = DEFAULT_CAPABILITY_EXTENSION
    local_bundle: Optional[str] = DEFAULT_LOCAL_BUNDLE
    local_dev: bool = False

    def __post_init__(self) -> None:
        """Validate field types and constraints.

        Raises:
            ValueError: For any invalid value, including wrong types read from YAML.
        """
        if not isinstance(self.preview_limit, int) or isinstance(self.preview_limit, bool):
            raise ValueError(f"preview_limit must be an integer, got {self.preview_limit!r}")
        for name in ("method_timeout", "http_timeout"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")
        if not isinstance(self.local_dev, bool):
            raise ValueError(f"local_dev must be true or false, got {self.local_dev!r}")
        for name in _STRING_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) and not (value is None and name in _OPTIONAL_FIELDS):
                raise ValueError(f"{name} must be a string, got {value!r}")
        if not self.table_name.isidentifier():
            raise ValueError(f"Invalid table_name: {self.table_name!r}")
        if self.capability_extension and not self.capability_extension.isidentifier():
            raise ValueError(f"Invalid capability_extension: {self.capability_extension!r}")
        if self.preview_limit < 0:
            raise ValueError("preview_limit must be >= 0")

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    """Load the `settings:` mapping (or the top-level mapping) from YAML."""
    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Settings file must contain a mapping: {config_path}")
    section = data.get("settings", data)
    if not isinstance(section, Mapping):
        raise ValueError(f"'settings' must be a mapping in {config_path}")
    return dict(section)


def load_settings(
    config_path: Optional[Path] = None, **overrides: Any
) -> Settings:
    """Build settings from defaults, an optional YAML file and overrides.

    Args:
        config_path: Explicit YAML file. Must exist when given. When omitted,
            ``config/settings.yaml`` is used if present.
        **overrides: Field values that win over the file; None means "unset".

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        ValueError: If the file contains unknown keys or invalid values.

    Examples:
        >>> load_settings(workspace="my-ws").workspace
        'my-ws'
    """
    settings = Settings()
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Settings file not found: {config_path}")
        settings = settings.with_overrides(**_read_yaml(config_path))
    elif DEFAULT_CONFIG_PATH.exists():
        settings = settings.with_overrides(**_read_yaml(DEFAULT_CONFIG_PATH))
    return settings.with_overrides(**overrides)


__all__ = ["Settings", "load_settings", "ARTIFACT_MANAGER_SERVICE"]
