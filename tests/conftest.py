"""Shared pytest configuration, fixtures, and utilities for session testing."""

from pathlib import Path
from typing import Callable, Dict, List

import pandas as pd
import pytest

from artifact_sql.settings import Settings
from utils.fakes import FakeArtifactStore


@pytest.fixture
def settings() -> Settings:
    """Settings with no network side effects (no extension install, no bundle probe)."""
    return Settings(capability_extension="", local_bundle="", token_cache="")


@pytest.fixture
def csv_factory(tmp_path: Path) -> Callable[[str, Dict[str, List]], Path]:
    """Write a CSV with a header row under tmp_path and return its path."""

    def _write(name: str, data: Dict[str, List]) -> Path:
        path = tmp_path / name
        pd.DataFrame(data).to_csv(path, index=False)
        return path

    return _write


@pytest.fixture
def two_artifact_store(csv_factory) -> FakeArtifactStore:
    """Collection with artifact X (cities) and artifact Y (animals)."""
    x_csv = csv_factory("x.csv", {"city": ["Yerevan", "Gyumri"], "population": [1090000, 112000]})
    y_csv = csv_factory("y.csv", {"animal": ["cat", "dog", "owl"], "legs": [4, 4, 2]})
    return FakeArtifactStore(
        artifacts=[
            {"id": "ws/x", "manifest": {"name": "Cities", "files": ["dataset.csv"]}},
            {"id": "ws/y", "manifest": {"name": "Animals", "files": ["dataset.csv"]}},
        ],
        files={
            ("ws/x", "dataset.csv"): str(x_csv),
            ("ws/y", "dataset.csv"): str(y_csv),
        },
    )
