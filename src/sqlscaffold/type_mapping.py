"""Mapping of database column types to Java types and JDBC driver type labels.

Both lookups share one table, keyed by the normalized source type name. A type
name is normalized by trimming, upper-casing, collapsing inner whitespace and
dropping a trailing length/precision suffix, so ``" varchar (100) "``,
``"VARCHAR(100)"`` and ``"varchar"`` are the same key.
"""

import logging
import re
from types import MappingProxyType
from typing import NamedTuple, Mapping, Optional
from sqlscaffold.errors import InvalidArgument

log = logging.getLogger(__name__)

#: Java type used when a source type is not known.
FALLBACK_TARGET_TYPE = "String"
#: JDBC type label used when a source type is not known.
FALLBACK_DRIVER_TYPE = "VARCHAR"


class TypeMapping(NamedTuple):
    #: Java type of fields and bound parameters.
    target_type: str
    #: Name of ``java.sql.Types`` constant.
    driver_type: str


def _build_table() -> Mapping[str, TypeMapping]:
    table: dict[str, TypeMapping] = {}

    def add(target: str, driver: str, *names: str) -> None:
        for name in names:
            table[name] = TypeMapping(target, driver)

    # Exact integers, sqlglot names unsigned ones like UINT.
    add("Integer", "TINYINT", "TINYINT", "UTINYINT")
    add("Integer", "SMALLINT", "SMALLINT", "INT2", "USMALLINT")
    add("Integer", "INTEGER", "INT", "INTEGER", "INT4", "MEDIUMINT", "UMEDIUMINT", "UINT")
    add("Long", "BIGINT", "BIGINT", "INT8", "LONG", "UBIGINT")
    # Arbitrary precision.
    add("BigDecimal", "DECIMAL", "DECIMAL", "DEC", "MONEY", "SMALLMONEY")
    add("BigDecimal", "NUMERIC", "NUMERIC", "NUMBER")
    # Floating point.
    add("Double", "DOUBLE", "DOUBLE", "DOUBLE PRECISION", "FLOAT8")
    add("Double", "FLOAT", "FLOAT")
    add("Float", "REAL", "REAL", "FLOAT4")
    # Boolean.
    add("Boolean", "BOOLEAN", "BOOLEAN", "BOOL")
    add("Boolean", "BIT", "BIT")
    # Text.
    add("String", "VARCHAR", "VARCHAR", "VARCHAR2", "CHARACTER VARYING", "STRING", "UUID", "UNIQUEIDENTIFIER")
    add("String", "CHAR", "CHAR", "CHARACTER")
    add("String", "NVARCHAR", "NVARCHAR", "NATIONAL CHARACTER VARYING")
    add("String", "NCHAR", "NCHAR", "NATIONAL CHARACTER")
    add("String", "LONGVARCHAR", "TEXT", "NTEXT", "CLOB", "NCLOB", "LONGTEXT", "MEDIUMTEXT", "LONGVARCHAR", "XML")
    # Binary.
    add("byte[]", "BINARY", "BINARY", "IMAGE")
    add("byte[]", "VARBINARY", "VARBINARY", "BYTEA", "ROWVERSION")
    add("byte[]", "BLOB", "BLOB", "LONGBLOB", "LONGVARBINARY")
    # Date and time.
    add("Date", "DATE", "DATE")
    add("Time", "TIME", "TIME")
    add(
        "Timestamp",
        "TIMESTAMP",
        "TIMESTAMP",
        "DATETIME",
        "DATETIME2",
        "SMALLDATETIME",
        "DATETIMEOFFSET",
        "TIMESTAMP WITH TIME ZONE",
        "TIMESTAMP WITHOUT TIME ZONE",
        "TIMESTAMPTZ",
    )
    return MappingProxyType(table)


#: Normalized source type name to Java type and JDBC type label.
TYPE_TABLE: Mapping[str, TypeMapping] = _build_table()

#: ``ResultSet`` getter for each Java type.
RESULT_GETTERS: Mapping[str, str] = MappingProxyType(
    {
        "Integer": "getInt",
        "Long": "getLong",
        "String": "getString",
        "BigDecimal": "getBigDecimal",
        "Double": "getDouble",
        "Float": "getFloat",
        "Boolean": "getBoolean",
        "Date": "getDate",
        "Time": "getTime",
        "Timestamp": "getTimestamp",
        "byte[]": "getBytes",
    }
)

#: Java types which are not in ``java.lang``.
JAVA_IMPORTS: Mapping[str, str] = MappingProxyType(
    {
        "BigDecimal": "java.math.BigDecimal",
        "Date": "java.sql.Date",
        "Time": "java.sql.Time",
        "Timestamp": "java.sql.Timestamp",
    }
)

_PRECISION_RE = re.compile(r"\([^)]*\)")
_SPACE_RE = re.compile(r"\s+")
_QUALIFIER_RE = re.compile(r"(?: (?:UNSIGNED|SIGNED|ZEROFILL))+$")


def normalize_type_name(source_type_name: Optional[str]) -> str:
    """Normalize database type name for lookup.

    :param source_type_name: type name as reported by catalog or written in DDL
    :raises InvalidArgument: type name is missing or blank
    :return: normalized name, like ``DECIMAL`` for ``decimal(10, 2)`` or ``INT`` for ``int(11) unsigned``
    """
    if source_type_name is None or not source_type_name.strip():
        raise InvalidArgument("Source type name cannot be null or empty")
    # Precision may be followed by qualifiers, like "NUMERIC(10) UNSIGNED ZEROFILL"
    name = _PRECISION_RE.sub(" ", source_type_name.upper())
    name = _SPACE_RE.sub(" ", name).strip()
    return _QUALIFIER_RE.sub("", name)


def lookup(source_type_name: Optional[str]) -> Optional[TypeMapping]:
    return TYPE_TABLE.get(normalize_type_name(source_type_name))


def is_known_type(source_type_name: str) -> bool:
    return lookup(source_type_name) is not None


def target_type_for(source_type_name: Optional[str]) -> str:
    """Java type for a database type.

    Unknown type names degrade to ``String``.

    :param source_type_name: database type name
    :raises InvalidArgument: type name is missing or blank
    :return: Java type name
    """
    mapping = lookup(source_type_name)
    if mapping is None:
        log.debug("Unknown source type %s, using %s", source_type_name, FALLBACK_TARGET_TYPE)
        return FALLBACK_TARGET_TYPE
    return mapping.target_type


def source_driver_type_for(source_type_name: Optional[str]) -> str:
    """JDBC type label for a database type.

    Unknown type names degrade to ``VARCHAR``.

    :param source_type_name: database type name
    :raises InvalidArgument: type name is missing or blank
    :return: name of ``java.sql.Types`` constant
    """
    mapping = lookup(source_type_name)
    if mapping is None:
        log.debug("Unknown source type %s, using %s", source_type_name, FALLBACK_DRIVER_TYPE)
        return FALLBACK_DRIVER_TYPE
    return mapping.driver_type


def result_getter_for(target_type: str) -> str:
    getter = RESULT_GETTERS.get(target_type)
    if getter is None:
        log.warning("No ResultSet getter for %s, using getString", target_type)
        return "getString"
    return getter


def java_import_for(target_type: str) -> Optional[str]:
    return JAVA_IMPORTS.get(target_type)
