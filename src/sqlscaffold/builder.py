"""Code model builder.

Turns statement metadata into a :class:`CodeModel`: record fields, method
parameters and SQL with named placeholders.
"""

import logging
from collections import Counter
from typing import List, Optional, Sequence, Set, Tuple
from sqlscaffold import placeholders
from sqlscaffold.errors import InvalidArgument
from sqlscaffold.model import (
    CodeField,
    CodeModel,
    CodeParameter,
    ColumnDescriptor,
    DeleteMetadata,
    InsertMetadata,
    ParameterStyle,
    SelectMetadata,
    StatementMetadata,
    UpdateMetadata,
)
from sqlscaffold.naming import field_name, unique_name, validate_business_name
from sqlscaffold.type_mapping import target_type_for

log = logging.getLogger(__name__)


def _read_by_position(columns: Sequence[ColumnDescriptor]) -> List[bool]:
    labels = Counter(column.output_name.lower() for column in columns)
    return [column.generated_name or labels[column.output_name.lower()] > 1 for column in columns]


def _fields(columns: Sequence[ColumnDescriptor], result_set: bool = False) -> List[CodeField]:
    """Fields of columns, result set columns without a usable label are read by position."""
    taken: Set[str] = set()
    fields = []
    by_position = _read_by_position(columns) if result_set else [False] * len(columns)
    for position, column in enumerate(columns, start=1):
        name = field_name(column.source_name, column.alias)
        identifier = unique_name(name, taken)
        if identifier != name:
            log.warning("Field %s is not unique, renamed to %s", name, identifier)
        target_type = target_type_for(column.source_type_name)
        if by_position[position - 1]:
            log.debug("Column %s is read by position %d", column.output_name, position)
        fields.append(
            CodeField(
                identifier,
                target_type,
                column.source_name,
                column.is_nullable,
                column.alias,
                position if by_position[position - 1] else None,
            )
        )
    return fields


def where_style(where_count: int) -> ParameterStyle:
    """Single WHERE column identifies a resource by path, more are query filters."""
    return ParameterStyle.PATH if where_count == 1 else ParameterStyle.QUERY


def _parameters(fields: Sequence[CodeField], style: ParameterStyle, taken: Set[str]) -> List[CodeParameter]:
    parameters = []
    for field in fields:
        bind_name = unique_name(field.identifier, taken)
        parameters.append(CodeParameter(field.identifier, field.target_type, bind_name, style))
    return parameters


def rewrite_sql(raw_sql: str, parameters: Sequence[CodeParameter]) -> str:
    """Replace ``?`` placeholders with ``:bind_name`` of parameters, in order."""
    if raw_sql is None or not raw_sql.strip():
        raise InvalidArgument("SQL statement cannot be null or empty")
    return placeholders.to_named(raw_sql, [parameter.bind_name for parameter in parameters])


def _build_select(metadata: SelectMetadata, business_name: str) -> CodeModel:
    if not metadata.projected_columns:
        raise InvalidArgument("SELECT statement must project at least one column")
    fields = _fields(metadata.projected_columns, result_set=True)
    taken: Set[str] = set()
    parameters = []
    for bound in metadata.parameters:
        bind_name = unique_name(bound.resolved_name, taken)
        parameters.append(CodeParameter(bind_name, bound.target_type, bind_name, ParameterStyle.QUERY))
    return CodeModel(
        business_domain_name=business_name,
        statement_kind=metadata.kind,
        fields=tuple(fields),
        parameters=tuple(parameters),
        rewritten_sql=rewrite_sql(metadata.raw_sql, parameters),
    )


def _build_insert(metadata: InsertMetadata, business_name: str) -> CodeModel:
    fields = _fields(metadata.inserted_columns)
    parameters = _parameters(fields, ParameterStyle.BODY, set())
    return CodeModel(
        business_domain_name=business_name,
        statement_kind=metadata.kind,
        fields=tuple(fields),
        parameters=tuple(parameters),
        rewritten_sql=rewrite_sql(metadata.raw_sql, parameters),
        table=metadata.table,
    )


def _build_update(metadata: UpdateMetadata, business_name: str) -> CodeModel:
    fields = _fields(metadata.set_columns)
    where_fields = _fields(metadata.where_columns)
    taken: Set[str] = set()
    parameters = _parameters(fields, ParameterStyle.BODY, taken)
    parameters += _parameters(where_fields, where_style(len(where_fields)), taken)
    return CodeModel(
        business_domain_name=business_name,
        statement_kind=metadata.kind,
        fields=tuple(fields),
        parameters=tuple(parameters),
        rewritten_sql=rewrite_sql(metadata.raw_sql, parameters),
        table=metadata.table,
        where_fields=tuple(where_fields),
    )


def _build_delete(metadata: DeleteMetadata, business_name: str) -> CodeModel:
    if not metadata.where_columns:
        raise InvalidArgument("DELETE statement must have at least one WHERE column")
    fields = _fields(metadata.where_columns)
    parameters = _parameters(fields, where_style(len(fields)), set())
    return CodeModel(
        business_domain_name=business_name,
        statement_kind=metadata.kind,
        fields=tuple(fields),
        parameters=tuple(parameters),
        rewritten_sql=rewrite_sql(metadata.raw_sql, parameters),
        table=metadata.table,
        where_fields=tuple(fields),
    )


_BUILDERS = {
    SelectMetadata: _build_select,
    InsertMetadata: _build_insert,
    UpdateMetadata: _build_update,
    DeleteMetadata: _build_delete,
}


def build(metadata: Optional[StatementMetadata], business_domain_name: Optional[str]) -> CodeModel:
    """Build code model of a statement.

    :param metadata: resolved statement metadata
    :param business_domain_name: name used for packages and classes, like ``Customer``
    :raises InvalidArgument: invalid business name, missing metadata, statement
        without columns, placeholders not matching parameters
    :return: code model
    """
    validate_business_name(business_domain_name)
    if metadata is None:
        raise InvalidArgument("Statement metadata cannot be null")
    builder = _BUILDERS.get(type(metadata))
    if builder is None:
        raise InvalidArgument(f"Unsupported statement metadata {type(metadata).__name__}")
    model = builder(metadata, business_domain_name)
    log.debug(
        "Built %s model with %d fields and %d parameters",
        model.statement_kind.value,
        len(model.fields),
        len(model.parameters),
    )
    return model


def positional_bind_names(model: CodeModel) -> Tuple[str, List[str]]:
    """SQL of the model with positional placeholders and bind names in order."""
    return placeholders.to_positional(model.rewritten_sql)
