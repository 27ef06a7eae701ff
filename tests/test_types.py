"""Tests for column type mapping and cell value coercion."""

import json
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from bak_converter.errors import ExportFailed
from bak_converter.export.types import (
    DEFAULT_MAX_JSON_STRING_LENGTH,
    ExportFormat,
    TargetType,
    check_export_names,
    coerce_value,
    map_column_type,
)


# ============================================================================
# map_column_type
# ============================================================================


class TestMapColumnType:
    """Verify SQL Server types map to SQLite storage classes."""

    @pytest.mark.parametrize("source", ["varchar", "nvarchar", "char", "nchar", "text", "ntext"])
    def test_character_types_are_text(self, source: str) -> None:
        assert map_column_type(source) is TargetType.TEXT

    @pytest.mark.parametrize("source", ["bit", "tinyint", "smallint", "int", "bigint"])
    def test_boolean_and_integer_types_are_integer(self, source: str) -> None:
        assert map_column_type(source) is TargetType.INTEGER

    @pytest.mark.parametrize("source", ["float", "real", "decimal", "numeric", "money"])
    def test_floating_and_decimal_types_are_real(self, source: str) -> None:
        assert map_column_type(source) is TargetType.REAL

    @pytest.mark.parametrize("source", ["date", "datetime", "datetime2", "timestamp", "time"])
    def test_date_time_types_are_text(self, source: str) -> None:
        assert map_column_type(source) is TargetType.TEXT

    def test_case_insensitive(self) -> None:
        assert map_column_type("BIGINT") is TargetType.INTEGER
        assert map_column_type(" Decimal ") is TargetType.REAL

    @pytest.mark.parametrize(
        "source",
        ["geography", "sql_variant", "hierarchyid", "my_user_type", "", None, "int; DROP TABLE x"],
    )
    def test_unrecognized_types_default_to_text(self, source) -> None:
        """Unknown input never raises."""
        assert map_column_type(source) is TargetType.TEXT

    def test_every_result_is_one_of_three(self) -> None:
        for source in ["int", "float", "nvarchar", "xml", "image", "whatever"]:
            assert map_column_type(source) in {TargetType.TEXT, TargetType.INTEGER, TargetType.REAL}


# ============================================================================
# coerce_value
# ============================================================================


class TestCoerceValue:
    """Verify value coercion for both export targets."""

    @pytest.mark.parametrize("target", list(ExportFormat))
    def test_none_stays_none(self, target: ExportFormat) -> None:
        assert coerce_value(None, target) is None

    @pytest.mark.parametrize("value", [42, 2**62, 3.5, "hello"])
    def test_scalars_pass_through(self, value) -> None:
        assert coerce_value(value, ExportFormat.SQLITE) == value
        assert coerce_value(value, ExportFormat.JSON) == value

    def test_long_string_emptied_on_json_path(self) -> None:
        assert coerce_value("a" * 2000, ExportFormat.JSON) == ""

    def test_long_string_unchanged_on_sqlite_path(self) -> None:
        value = "a" * 2000
        assert coerce_value(value, ExportFormat.SQLITE) == value

    def test_threshold_is_inclusive(self) -> None:
        """A string of exactly the limit is kept; one more character is dropped."""
        at_limit = "b" * DEFAULT_MAX_JSON_STRING_LENGTH
        assert coerce_value(at_limit, ExportFormat.JSON) == at_limit
        assert coerce_value(at_limit + "b", ExportFormat.JSON) == ""

    def test_custom_string_limit(self) -> None:
        assert coerce_value("abcdef", ExportFormat.JSON, max_string_length=5) == ""
        assert coerce_value("abcde", ExportFormat.JSON, max_string_length=5) == "abcde"

    def test_binary_on_json_path_is_empty_string(self) -> None:
        assert coerce_value(b"\x00\x01\x02", ExportFormat.JSON) == ""
        assert coerce_value(bytearray(b"\xff"), ExportFormat.JSON) == ""

    def test_binary_on_sqlite_path_is_unchanged(self) -> None:
        assert coerce_value(b"\x00\x01\x02", ExportFormat.SQLITE) == b"\x00\x01\x02"
        assert coerce_value(memoryview(b"\xff"), ExportFormat.SQLITE) == b"\xff"

    def test_bool(self) -> None:
        assert coerce_value(True, ExportFormat.SQLITE) == 1
        assert coerce_value(True, ExportFormat.JSON) is True

    def test_decimal_becomes_float(self) -> None:
        assert coerce_value(Decimal("12.50"), ExportFormat.SQLITE) == 12.5
        assert isinstance(coerce_value(Decimal("1"), ExportFormat.JSON), float)

    def test_dates_become_iso_text(self) -> None:
        assert coerce_value(datetime(2024, 5, 1, 13, 30), ExportFormat.SQLITE) == "2024-05-01T13:30:00"
        assert coerce_value(date(2024, 5, 1), ExportFormat.JSON) == "2024-05-01"

    def test_uuid_becomes_string(self) -> None:
        value = UUID("12345678-1234-5678-1234-567812345678")
        assert coerce_value(value) == "12345678-1234-5678-1234-567812345678"

    def test_structured_values_fall_back_to_json_text(self) -> None:
        assert json.loads(coerce_value({"a": [1, 2]})) == {"a": [1, 2]}
        assert coerce_value([1, 2], ExportFormat.JSON) == "[1, 2]"

    def test_default_target_is_sqlite(self) -> None:
        assert coerce_value(b"x") == b"x"


# ============================================================================
# check_export_names
# ============================================================================


class TestCheckExportNames:
    def test_distinct_names_pass(self) -> None:
        check_export_names(["orders", "sales.orders", "hr.people"])

    def test_duplicate_rejected(self) -> None:
        with pytest.raises(ExportFailed, match="sales.orders"):
            check_export_names(["sales.orders", "t", "sales.orders"])

    def test_case_sensitive_by_default(self) -> None:
        check_export_names(["Orders", "orders"])

    def test_case_insensitive_mode(self) -> None:
        with pytest.raises(ExportFailed):
            check_export_names(["Orders", "orders"], case_sensitive=False)

    def test_accepts_generator(self) -> None:
        check_export_names(name for name in ["a", "b"])
