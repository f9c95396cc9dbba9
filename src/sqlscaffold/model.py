"""
Statement metadata and code model.

Metadata records describe what a single SQL statement reads or writes, already
resolved against catalog metadata. The code model is derived from exactly one
metadata record and is what artifact emitters consume. All of them are frozen,
sequences are stored as tuples.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Sequence, Tuple, Union
from sqlscaffold.errors import InvalidArgument

log = logging.getLogger(__name__)


class StatementKind(str, Enum):
    """Kind of SQL statement."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNKNOWN = "UNKNOWN"


class ParameterStyle(str, Enum):
    """How a parameter reaches the generated endpoint."""

    PATH = "path"  # Path variable, /customer/{id}
    QUERY = "query"  # Request parameter, ?status=...
    BODY = "body"  # Field of request body


class CatalogColumn(NamedTuple):
    """Column as reported by a metadata source."""

    name: str
    #: Database type name, like ``VARCHAR(100)``.
    type_name: str
    nullable: bool = True


def _freeze(instance, name: str) -> None:
    object.__setattr__(instance, name, tuple(getattr(instance, name)))


def _require_text(value: Optional[str], message: str) -> None:
    if value is None or not value.strip():
        raise InvalidArgument(message)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Catalog or projected column."""

    source_name: str
    source_type_name: str
    is_nullable: bool = True
    alias: Optional[str] = None
    owning_table: Optional[str] = None
    #: Name was made up, the result set has no column labeled with it.
    generated_name: bool = False

    def __post_init__(self):
        _require_text(self.source_name, "Column name cannot be null or empty")
        _require_text(self.source_type_name, f"Type of column {self.source_name} cannot be null or empty")

    @property
    def output_name(self) -> str:
        """Name under which column appears in result set."""
        return self.alias if self.alias else self.source_name


@dataclass(frozen=True)
class BoundParameter:
    """Positional bind parameter."""

    #: 1-based position of ``?`` in SQL text.
    ordinal_position: int
    resolved_name: str
    target_type: str
    source_type_name: str

    def __post_init__(self):
        if self.ordinal_position < 1:
            raise InvalidArgument(f"Parameter position must be positive, got {self.ordinal_position}")
        _require_text(self.resolved_name, f"Name of parameter {self.ordinal_position} cannot be null or empty")


def _check_ordinals(parameters: Sequence[BoundParameter]) -> None:
    positions = [parameter.ordinal_position for parameter in parameters]
    if positions != list(range(1, len(positions) + 1)):
        raise InvalidArgument(f"Parameter positions must be 1..{len(positions)} in order, got {positions}")


@dataclass(frozen=True)
class SelectMetadata:
    projected_columns: Tuple[ColumnDescriptor, ...]
    parameters: Tuple[BoundParameter, ...] = ()
    raw_sql: str = ""

    def __post_init__(self):
        _freeze(self, "projected_columns")
        _freeze(self, "parameters")
        _check_ordinals(self.parameters)

    @property
    def kind(self) -> StatementKind:
        return StatementKind.SELECT


@dataclass(frozen=True)
class InsertMetadata:
    table: str
    inserted_columns: Tuple[ColumnDescriptor, ...]
    raw_sql: str

    def __post_init__(self):
        _freeze(self, "inserted_columns")
        _require_text(self.table, "Table name cannot be null or empty")
        if not self.inserted_columns:
            raise InvalidArgument("INSERT statement must specify column names")

    @property
    def kind(self) -> StatementKind:
        return StatementKind.INSERT


@dataclass(frozen=True)
class UpdateMetadata:
    """Metadata of UPDATE statement.

    Unlike DELETE, an UPDATE without WHERE columns is accepted. It is logged,
    since generated code will then update every row of the table.
    """

    table: str
    set_columns: Tuple[ColumnDescriptor, ...]
    where_columns: Tuple[ColumnDescriptor, ...]
    raw_sql: str

    def __post_init__(self):
        _freeze(self, "set_columns")
        _freeze(self, "where_columns")
        _require_text(self.table, "Table name cannot be null or empty")
        if not self.set_columns:
            raise InvalidArgument("UPDATE statement must set at least one column from a parameter")
        if not self.where_columns:
            log.warning("UPDATE of %s has no WHERE columns, every row will be updated", self.table)

    @property
    def kind(self) -> StatementKind:
        return StatementKind.UPDATE


@dataclass(frozen=True)
class DeleteMetadata:
    table: str
    where_columns: Tuple[ColumnDescriptor, ...]
    raw_sql: str

    def __post_init__(self):
        _freeze(self, "where_columns")
        _require_text(self.table, "Table name cannot be null or empty")
        if not self.where_columns:
            raise InvalidArgument("DELETE statement must have at least one WHERE column")

    @property
    def kind(self) -> StatementKind:
        return StatementKind.DELETE


StatementMetadata = Union[SelectMetadata, InsertMetadata, UpdateMetadata, DeleteMetadata]


@dataclass(frozen=True)
class CodeField:
    """Field of request or response record."""

    identifier: str
    target_type: str
    source_column: str
    nullable: bool = True
    #: Result set column label, when the column is aliased.
    label: Optional[str] = None
    #: 1-based result set column, when it has to be read by position.
    position: Optional[int] = None


@dataclass(frozen=True)
class CodeParameter:
    """Parameter of data access method and endpoint."""

    identifier: str
    target_type: str
    bind_name: str
    style: ParameterStyle = ParameterStyle.QUERY


@dataclass(frozen=True)
class CodeModel:
    """Fully resolved model of one generation request."""

    business_domain_name: str
    statement_kind: StatementKind
    fields: Tuple[CodeField, ...]
    parameters: Tuple[CodeParameter, ...]
    rewritten_sql: str
    #: Target table of INSERT, UPDATE and DELETE.
    table: Optional[str] = None
    #: WHERE parameters of UPDATE, they are not part of request body.
    where_fields: Tuple[CodeField, ...] = field(default=())

    def __post_init__(self):
        _freeze(self, "fields")
        _freeze(self, "parameters")
        _freeze(self, "where_fields")

    def parameters_with_style(self, style: ParameterStyle) -> Tuple[CodeParameter, ...]:
        return tuple(parameter for parameter in self.parameters if parameter.style == style)

    @property
    def bind_names(self) -> Tuple[str, ...]:
        """Bind names in placeholder order."""
        return tuple(parameter.bind_name for parameter in self.parameters)
