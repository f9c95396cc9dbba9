"""
Metadata sources.

A metadata source answers two questions: the types of the bind parameters of
a statement and the columns of a table. A generation request reads a source
through the view yielded by :meth:`SchemaMetadataSource.snapshot`, which reads
every table once and keeps its columns for that request only. One source may
serve concurrent requests.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Sequence
import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlscaffold import placeholders
from sqlscaffold.classify import check_dialect, parse
from sqlscaffold.errors import MetadataSourceError, ParameterTypeUnavailable
from sqlscaffold.model import CatalogColumn
from sqlscaffold.resolve import SET, VALUES, bindings, table_aliases, target_table

log = logging.getLogger(__name__)


class ParameterMetadata(Protocol):
    """Bind parameter metadata of a prepared statement."""

    @property
    def parameter_count(self) -> int: ...

    def parameter_type(self, position: int) -> str:
        """Driver type name of 1-based parameter, raises ``ParameterTypeUnavailable``."""
        ...


class MetadataSource(Protocol):
    def prepare(self, sql: str) -> ParameterMetadata: ...

    def table_columns(self, table: str) -> List[CatalogColumn]: ...


class StaticParameterMetadata:
    """Parameter metadata from a list of type names, ``None`` for unknown types."""

    def __init__(self, types: Sequence[Optional[str]]):
        self.types = list(types)

    @property
    def parameter_count(self) -> int:
        return len(self.types)

    def parameter_type(self, position: int) -> str:
        if position < 1 or position > len(self.types):
            raise ParameterTypeUnavailable(position, f"statement has {len(self.types)} parameters")
        type_name = self.types[position - 1]
        if type_name is None:
            raise ParameterTypeUnavailable(position, "parameter is not bound to a known column")
        return type_name


def infer_parameter_types(
    sql: str, table_columns: Callable[[str], Sequence[CatalogColumn]], dialect: Optional[str] = None
) -> List[Optional[str]]:
    """Infer types of ``?`` placeholders from the columns they are bound to.

    A placeholder compared with, assigned to or inserted into a column gets the
    type of that column. Other placeholders get ``None``.

    :param sql: SQL with positional placeholders
    :param table_columns: column lookup, failures are propagated
    :param dialect: sqlglot dialect name
    :return: one type name or None per placeholder
    """
    expected = placeholders.count_positional(sql)
    statement = parse(sql, dialect)
    if statement is None:
        log.warning("Cannot parse statement, types of %d parameters are unknown", expected)
        return [None] * expected
    found = bindings(statement)
    if len(found) != expected:
        log.warning("Parsed %d placeholders but found %d in text, types are unknown", len(found), expected)
        return [None] * expected

    aliases = table_aliases(statement)
    target = target_table(statement)
    tables = list(dict.fromkeys(aliases.values()))
    columns: Dict[str, Dict[str, CatalogColumn]] = {}

    def column(table: str, name: str) -> Optional[CatalogColumn]:
        if table.lower() not in columns:
            columns[table.lower()] = {item.name.lower(): item for item in table_columns(table)}
        return columns[table.lower()].get(name.lower())

    insert_columns: List[str] = []
    if isinstance(statement, exp.Insert) and isinstance(statement.this, exp.Schema):
        insert_columns = [item.name for item in statement.this.expressions]

    types: List[Optional[str]] = []
    for binding in found:
        name = binding.column
        if binding.clause == VALUES and binding.value_index is not None:
            name = insert_columns[binding.value_index] if binding.value_index < len(insert_columns) else None
        if name is None:
            types.append(None)
            continue
        if binding.qualifier:
            table = aliases.get(binding.qualifier.lower())
            candidates = [table] if table else []
        elif target is not None and (binding.clause in (SET, VALUES) or len(tables) <= 1):
            candidates = [target]
        else:
            candidates = tables
        matches = [found_column for found_column in (column(table, name) for table in candidates) if found_column]
        types.append(matches[0].type_name if len(matches) == 1 else None)
    return types


class SchemaSnapshot:
    """Columns of a source, each table read at most once.

    One snapshot serves one request. It is not shared between threads.
    """

    def __init__(self, source: "SchemaMetadataSource"):
        self.source = source
        self._tables: Dict[str, List[CatalogColumn]] = {}

    def table_columns(self, table: str) -> List[CatalogColumn]:
        key = table.lower()
        if key not in self._tables:
            self._tables[key] = self.source.load_columns(table)
        return self._tables[key]

    def prepare(self, sql: str) -> StaticParameterMetadata:
        return StaticParameterMetadata(infer_parameter_types(sql, self.table_columns, self.source.dialect))


class SchemaMetadataSource:
    """Base of metadata sources which know table schemas.

    Parameter types are inferred from the columns placeholders are bound to.
    """

    def __init__(self, dialect: Optional[str] = None):
        self.dialect = dialect

    def load_columns(self, table: str) -> List[CatalogColumn]:
        raise NotImplementedError()

    @contextmanager
    def snapshot(self) -> Iterator[SchemaSnapshot]:
        """Snapshot of this source, read every table at most once inside the block."""
        yield SchemaSnapshot(self)

    def table_columns(self, table: str) -> List[CatalogColumn]:
        return self.load_columns(table)

    def prepare(self, sql: str) -> StaticParameterMetadata:
        return StaticParameterMetadata(infer_parameter_types(sql, self.table_columns, self.dialect))


class CatalogMetadataSource(SchemaMetadataSource):
    """Metadata from a live database, read with SQLAlchemy reflection.

    Snapshots hold the lock of the source and one connection, so concurrent
    requests read the catalog one after another. Connection errors and unknown
    tables (``NoSuchTableError``) are propagated.
    """

    def __init__(self, engine: Engine, schema: Optional[str] = None, dialect: Optional[str] = None):
        super().__init__(dialect)
        self.engine = engine
        self.schema = schema
        self._lock = threading.RLock()
        self._inspector = None

    @classmethod
    def from_url(cls, database_url: str, schema: Optional[str] = None, dialect: Optional[str] = None):
        return cls(create_engine(database_url, echo=False), schema=schema, dialect=dialect)

    @contextmanager
    def snapshot(self) -> Iterator[SchemaSnapshot]:
        with self._lock, self.engine.connect() as connection:
            self._inspector = inspect(connection)
            try:
                with super().snapshot() as view:
                    yield view
            finally:
                self._inspector = None

    def load_columns(self, table: str) -> List[CatalogColumn]:
        with self._lock:
            inspector = self._inspector if self._inspector is not None else inspect(self.engine)
            reflected = inspector.get_columns(table, schema=self.schema)
        log.debug("Read %d columns of %s", len(reflected), table)
        return [
            CatalogColumn(column["name"], str(column["type"]), bool(column.get("nullable", True)))
            for column in reflected
        ]


def _column_type(kind: Optional[exp.DataType], dialect: Optional[str]) -> str:
    if kind is None:
        return "VARCHAR"
    if isinstance(kind.this, exp.DataType.Type) and kind.this != exp.DataType.Type.USERDEFINED:
        return kind.this.value
    return kind.sql(dialect=dialect)


def _is_nullable(column: exp.ColumnDef) -> bool:
    for constraint in column.args.get("constraints") or []:
        kind = constraint.args.get("kind")
        if isinstance(kind, exp.NotNullColumnConstraint) and not kind.args.get("allow_null"):
            return False
        if isinstance(kind, exp.PrimaryKeyColumnConstraint):
            return False
    return True


def parse_ddl(ddl: str, dialect: Optional[str] = None) -> Dict[str, List[CatalogColumn]]:
    """Columns of every ``CREATE TABLE`` statement in DDL text.

    :param ddl: DDL text, any number of statements
    :param dialect: sqlglot dialect name
    :raises MetadataSourceError: DDL cannot be parsed
    :return: table name to columns, keyed by lower cased table name
    """
    try:
        statements = sqlglot.parse(ddl, read=dialect)
    except SqlglotError as error:
        raise MetadataSourceError("DDL could not be parsed") from error
    tables: Dict[str, List[CatalogColumn]] = {}
    for statement in statements:
        if not isinstance(statement, exp.Create) or str(statement.args.get("kind", "")).upper() != "TABLE":
            continue
        schema = statement.this
        if not isinstance(schema, exp.Schema) or not isinstance(schema.this, exp.Table):
            continue
        columns = [
            CatalogColumn(column.name, _column_type(column.args.get("kind"), dialect), _is_nullable(column))
            for column in schema.expressions
            if isinstance(column, exp.ColumnDef)
        ]
        tables[schema.this.name.lower()] = columns
        log.debug("DDL of %s has %d columns", schema.this.name, len(columns))
    return tables


class DdlMetadataSource(SchemaMetadataSource):
    """Metadata from ``CREATE TABLE`` statements."""

    def __init__(self, ddl: str, dialect: Optional[str] = None):
        super().__init__(check_dialect(dialect))
        self.tables = parse_ddl(ddl, dialect)

    @classmethod
    def from_file(cls, path: str | Path, dialect: Optional[str] = None) -> "DdlMetadataSource":
        with open(path, encoding="UTF-8") as file:
            return cls(file.read(), dialect)

    def load_columns(self, table: str) -> List[CatalogColumn]:
        try:
            return list(self.tables[table.lower()])
        except KeyError:
            raise MetadataSourceError(f"Table {table} not found in DDL") from None
