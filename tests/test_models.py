"""Tests for session value types and result normalization."""

import datetime as dt
import decimal
import math

import pandas as pd
import pytest

from artifact_sql.core.models import ArtifactRef, QueryResult, plain_value, unique_column_names


class TestArtifactRef:
    def test_from_listing_with_object_file_entries(self):
        ref = ArtifactRef.from_listing(
            {
                "id": "ws/a",
                "manifest": {
                    "name": "Expression",
                    "description": "RNA counts",
                    "files": [{"path": "README.md"}, {"name": "data.csv"}, 7, {}],
                },
            }
        )
        assert ref.files == ("README.md", "data.csv")
        assert ref.description == "RNA counts"
        assert ref.label == "Expression"

    def test_missing_manifest(self):
        ref = ArtifactRef.from_listing({"id": "ws/b", "manifest": None})
        assert ref.display_name is None
        assert ref.files == ()
        assert ref.label == "ws/b"


class TestQueryResult:
    def test_duplicate_columns_are_suffixed(self):
        result = QueryResult.from_records(["a", "a", "b"], [(1, 2, 3)])
        assert result.columns == ("a", "a_1", "b")
        assert result.rows == ({"a": 1, "a_1": 2, "b": 3},)

    def test_suffix_skips_existing_names(self):
        assert unique_column_names(["a_1", "a", "a"]) == ("a_1", "a", "a_2")

    def test_to_payload_is_json_compatible(self):
        result = QueryResult.from_records(
            ["n", "price", "day", "blob", "bad"],
            [(1, decimal.Decimal("2.50"), dt.date(2024, 1, 31), b"\x00\x01", math.nan)],
        )
        assert result.to_payload() == {
            "columns": ["n", "price", "day", "blob", "bad"],
            "rows": [{"n": 1, "price": 2.5, "day": "2024-01-31", "blob": "AAE=", "bad": None}],
        }

    def test_to_frame_keeps_column_order_when_empty(self):
        frame = QueryResult(columns=("x", "y")).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["x", "y"]
        assert frame.empty


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        (True, True),
        (math.inf, None),
        (dt.timedelta(minutes=1), 60.0),
        ([1, decimal.Decimal("0.5")], [1, 0.5]),
        ({"k": dt.datetime(2024, 5, 1, 12, 0)}, {"k": "2024-05-01T12:00:00"}),
    ],
)
def test_plain_value(value, expected):
    assert plain_value(value) == expected
