"""Tests for mapping of database types to Java types."""

import logging
import pytest
from sqlscaffold.errors import InvalidArgument
from sqlscaffold.type_mapping import (
    TYPE_TABLE,
    TypeMapping,
    is_known_type,
    java_import_for,
    normalize_type_name,
    result_getter_for,
    source_driver_type_for,
    target_type_for,
)


class TestNormalizeTypeName:
    """Test normalization of type names before lookup."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("varchar", "VARCHAR"),
            (" varchar (100) ", "VARCHAR"),
            ("VARCHAR(100)", "VARCHAR"),
            ("decimal(10, 2)", "DECIMAL"),
            ("double   precision", "DOUBLE PRECISION"),
            ("NUMERIC(10) UNSIGNED", "NUMERIC"),
            ("int(11) unsigned zerofill", "INT"),
            ("bigint signed", "BIGINT"),
            ("UNSIGNED", "UNSIGNED"),
            ("timestamp with time zone", "TIMESTAMP WITH TIME ZONE"),
        ],
    )
    def test_normalize(self, value, expected):
        assert normalize_type_name(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_type_name(self, value):
        """Test missing type name is rejected, not degraded."""
        with pytest.raises(InvalidArgument, match="Source type name cannot be null or empty"):
            normalize_type_name(value)


class TestTargetType:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("INT", "Integer"),
            ("integer", "Integer"),
            ("SMALLINT", "Integer"),
            ("BIGINT", "Long"),
            ("DECIMAL(10, 2)", "BigDecimal"),
            ("MONEY", "BigDecimal"),
            ("NUMERIC(18)", "BigDecimal"),
            ("FLOAT", "Double"),
            ("REAL", "Float"),
            ("BIT", "Boolean"),
            ("BOOLEAN", "Boolean"),
            ("NVARCHAR(50)", "String"),
            ("TEXT", "String"),
            ("VARBINARY(MAX)", "byte[]"),
            ("DATE", "Date"),
            ("TIME", "Time"),
            ("DATETIME2", "Timestamp"),
            ("SMALLDATETIME", "Timestamp"),
            ("DATETIMEOFFSET", "Timestamp"),
        ],
    )
    def test_known_types(self, source, expected):
        assert target_type_for(source) == expected

    @pytest.mark.parametrize(
        "source,expected",
        [("INT UNSIGNED", "Integer"), ("bigint(20) unsigned", "Long"), ("DOUBLE UNSIGNED ZEROFILL", "Double")],
    )
    def test_qualified_numeric_types(self, source, expected, caplog):
        """Test UNSIGNED and ZEROFILL do not make a numeric type unknown."""
        with caplog.at_level(logging.DEBUG):
            assert target_type_for(source) == expected
        assert "unknown" not in caplog.text.lower()

    def test_unknown_type_degrades(self):
        """Test unknown type name degrades to text instead of failing."""
        assert target_type_for("ORACLE_NUMBER") == "String"

    def test_missing_type_name(self):
        with pytest.raises(InvalidArgument):
            target_type_for(None)


class TestDriverType:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("INT", "INTEGER"),
            ("int4", "INTEGER"),
            ("BIGINT", "BIGINT"),
            ("MONEY", "DECIMAL"),
            ("NVARCHAR(50)", "NVARCHAR"),
            ("TEXT", "LONGVARCHAR"),
            ("DATETIME", "TIMESTAMP"),
            ("BIT", "BIT"),
        ],
    )
    def test_known_types(self, source, expected):
        assert source_driver_type_for(source) == expected

    def test_unknown_type_degrades(self, caplog):
        """Test unknown type name degrades to VARCHAR and is logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="sqlscaffold.type_mapping"):
            assert source_driver_type_for("ORACLE_NUMBER") == "VARCHAR"
        assert "ORACLE_NUMBER" in caplog.text
        assert not is_known_type("ORACLE_NUMBER")


class TestTypeTable:
    def test_table_is_immutable(self):
        with pytest.raises(TypeError):
            TYPE_TABLE["GEOGRAPHY"] = TypeMapping("String", "VARCHAR")

    def test_keys_are_normalized(self):
        """Test every key can be found through normalization."""
        for key in TYPE_TABLE:
            assert normalize_type_name(key) == key

    def test_result_getters(self):
        assert result_getter_for("Integer") == "getInt"
        assert result_getter_for("BigDecimal") == "getBigDecimal"
        assert result_getter_for("byte[]") == "getBytes"
        assert result_getter_for("Geometry") == "getString"

    def test_java_imports(self):
        assert java_import_for("BigDecimal") == "java.math.BigDecimal"
        assert java_import_for("Timestamp") == "java.sql.Timestamp"
        assert java_import_for("String") is None
