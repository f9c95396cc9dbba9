"""
Resolution of statement columns against table schemas.

SELECT projections are correlated with the tables of FROM and JOIN clauses,
INSERT, UPDATE and DELETE column lists are enriched from their target table.
Items which cannot be resolved are degraded (unqualified descriptor, generic
type) and logged, they never fail the whole statement.
"""

import logging
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Union
from sqlglot import exp
from sqlscaffold.classify import parse
from sqlscaffold.errors import InvalidArgument
from sqlscaffold.model import (
    CatalogColumn,
    ColumnDescriptor,
    DeleteMetadata,
    InsertMetadata,
    UpdateMetadata,
)
from sqlscaffold.type_mapping import FALLBACK_DRIVER_TYPE

log = logging.getLogger(__name__)

#: Type of ``COUNT(...)`` projections.
COUNT_TYPE = "BIGINT"

SET = "set"
VALUES = "values"
WHERE = "where"
OTHER = "other"

_COMPARISONS = (exp.EQ, exp.NEQ, exp.GT, exp.GTE, exp.LT, exp.LTE, exp.Like, exp.ILike)
_STATEMENTS = (exp.Select, exp.Insert, exp.Update, exp.Delete)

Statement = Union[str, exp.Expression]


class Binding(NamedTuple):
    """What a single ``?`` placeholder is bound to."""

    #: 1-based position of placeholder.
    ordinal: int
    #: Clause of placeholder, one of ``set``, ``values``, ``where``, ``other``.
    clause: str
    #: Column the placeholder is assigned to or compared with.
    column: Optional[str] = None
    #: Table name or alias qualifying the column.
    qualifier: Optional[str] = None
    #: Index in VALUES row, for INSERT.
    value_index: Optional[int] = None


class SchemaIndex:
    """Columns of several tables, indexed by lower cased names.

    Built once per statement, so resolving a projection costs the same
    regardless of the number of tables.
    """

    def __init__(self, schema: Mapping[str, Sequence[CatalogColumn]]):
        self.tables: Dict[str, str] = {}
        self._columns: Dict[str, Dict[str, CatalogColumn]] = {}
        self._owners: Dict[str, List[str]] = {}
        self._ordered: Dict[str, List[CatalogColumn]] = {}
        for table, columns in schema.items():
            key = table.lower()
            self.tables[key] = table
            self._ordered[key] = list(columns)
            by_name = self._columns.setdefault(key, {})
            for column in columns:
                column_key = column.name.lower()
                if column_key not in by_name:
                    by_name[column_key] = column
                    self._owners.setdefault(column_key, []).append(key)

    def has_table(self, table: str) -> bool:
        return table.lower() in self._columns

    def columns(self, table: str) -> List[CatalogColumn]:
        return self._ordered.get(table.lower(), [])

    def column(self, table: str, name: str) -> Optional[CatalogColumn]:
        return self._columns.get(table.lower(), {}).get(name.lower())

    def owners(self, name: str, among: Iterable[str]) -> List[str]:
        """Tables from ``among`` which declare column ``name``."""
        wanted = {table.lower() for table in among}
        return [self.tables[key] for key in self._owners.get(name.lower(), []) if key in wanted]

    def any_column(self, name: str) -> Optional[CatalogColumn]:
        """Column ``name`` of the first table declaring it."""
        owners = self._owners.get(name.lower())
        if not owners:
            return None
        return self._columns[owners[0]][name.lower()]


def _parse_statement(sql: Statement, dialect: Optional[str], what: str) -> exp.Expression:
    if isinstance(sql, exp.Expression):
        return sql
    if sql is None or not sql.strip():
        raise InvalidArgument("SQL statement cannot be null or empty")
    statement = parse(sql, dialect)
    if statement is None:
        raise InvalidArgument(f"{what} statement could not be parsed")
    return statement


def _owner(node: exp.Expression) -> Optional[exp.Expression]:
    return node.find_ancestor(*_STATEMENTS)


def leading_select(query: exp.Expression) -> Optional[exp.Select]:
    """First SELECT of a query, unwrapping set operations and parentheses."""
    while not isinstance(query, exp.Select):
        inner = query.this if isinstance(query, exp.Query) else None
        if not isinstance(inner, exp.Expression):
            return None
        query = inner
    return query


def statement_tables(statement: exp.Expression) -> List[exp.Table]:
    """Tables referenced directly by a statement, not by its subqueries or CTEs."""
    cte_names = {cte.alias.lower() for cte in statement.find_all(exp.CTE) if cte.alias}
    tables = []
    for table in statement.find_all(exp.Table, bfs=False):
        if not table.name or table.name.lower() in cte_names:
            continue
        if _owner(table) is statement:
            tables.append(table)
    return tables


def table_aliases(statement: exp.Expression) -> Dict[str, str]:
    """Map of lower cased alias and table name to table name."""
    aliases: Dict[str, str] = {}
    for table in statement_tables(statement):
        aliases.setdefault(table.name.lower(), table.name)
        if table.alias:
            aliases[table.alias.lower()] = table.name
    return aliases


def referenced_tables(sql: Statement, dialect: Optional[str] = None) -> List[str]:
    """Names of tables a statement reads or writes, in order of appearance."""
    statement = _parse_statement(sql, dialect, "SQL")
    scope = leading_select(statement) if isinstance(statement, exp.Query) else statement
    if scope is None:
        return []
    names: List[str] = []
    for table in statement_tables(scope):
        if table.name.lower() not in {name.lower() for name in names}:
            names.append(table.name)
    return names


def target_table(statement: exp.Expression) -> Optional[str]:
    """Table written by INSERT, UPDATE or DELETE."""
    if not isinstance(statement, (exp.Insert, exp.Update, exp.Delete)):
        return None
    target = statement.this
    if isinstance(target, exp.Schema):
        target = target.this
    if not isinstance(target, exp.Table) or not target.name:
        return None
    # UPDATE c SET ... FROM customers c
    return table_aliases(statement).get(target.name.lower(), target.name)


def _compared_column(placeholder: exp.Placeholder) -> Optional[exp.Column]:
    parent = placeholder.parent
    if not isinstance(parent, _COMPARISONS):
        return None
    other = parent.this if parent.args.get("expression") is placeholder else parent.args.get("expression")
    return other if isinstance(other, exp.Column) else None


def _value_index(placeholder: exp.Placeholder) -> Optional[int]:
    child: exp.Expression = placeholder
    while child.parent is not None:
        parent = child.parent
        if isinstance(parent, exp.Tuple) and isinstance(parent.parent, exp.Values):
            for index, value in enumerate(parent.expressions):
                if value is child:
                    return index
            return None
        child = parent
    return None


def _bind(statement: exp.Expression, ordinal: int, placeholder: exp.Placeholder) -> Binding:
    clause_node: exp.Expression = placeholder
    while clause_node.parent is not None and clause_node.parent is not statement:
        clause_node = clause_node.parent
    if clause_node.parent is None:
        return Binding(ordinal, OTHER)
    key = clause_node.arg_key
    if isinstance(statement, exp.Update) and key == "expressions" and isinstance(clause_node, exp.EQ):
        return Binding(ordinal, SET, clause_node.this.name or None)
    if isinstance(statement, exp.Insert) and key == "expression" and isinstance(clause_node, exp.Values):
        return Binding(ordinal, VALUES, value_index=_value_index(placeholder))
    if key == "where":
        column = _compared_column(placeholder)
        if column is not None and _owner(placeholder) is statement:
            return Binding(ordinal, WHERE, column.name, column.table or None)
        return Binding(ordinal, WHERE)
    return Binding(ordinal, OTHER)


def bindings(statement: exp.Expression) -> List[Binding]:
    """Bindings of ``?`` placeholders, in textual order."""
    found = [node for node in statement.find_all(exp.Placeholder, bfs=False) if not node.this]
    return [_bind(statement, ordinal, placeholder) for ordinal, placeholder in enumerate(found, start=1)]


def _expression_type(expression: exp.Expression, index: SchemaIndex, aliases: Mapping[str, str]) -> Optional[str]:
    if isinstance(expression, exp.Count):
        return COUNT_TYPE
    if isinstance(expression, (exp.Cast, exp.TryCast)):
        return expression.to.sql()
    if isinstance(expression, exp.Literal):
        if expression.is_string:
            return "VARCHAR"
        return "INTEGER" if expression.is_int else "DECIMAL"
    if isinstance(expression, (exp.Min, exp.Max, exp.Sum)) and isinstance(expression.this, exp.Column):
        column = expression.this
        table = aliases.get(column.table.lower()) if column.table else None
        found = index.column(table, column.name) if table else index.any_column(column.name)
        return found.type_name if found else None
    return None


class _Projection:
    """Resolves projected expressions of one SELECT."""

    def __init__(self, select: exp.Select, index: SchemaIndex):
        self.index = index
        self.aliases = table_aliases(select)
        self.tables = list(dict.fromkeys(self.aliases.values()))

    def expand(self, table: str) -> List[ColumnDescriptor]:
        if not self.index.has_table(table):
            log.warning("No columns known for table %s, cannot expand *", table)
            return []
        return [
            ColumnDescriptor(column.name, column.type_name, column.nullable, owning_table=table)
            for column in self.index.columns(table)
        ]

    def star(self) -> List[ColumnDescriptor]:
        result = []
        for table in self.tables:
            result.extend(self.expand(table))
        return result

    def column(self, column: exp.Column, alias: Optional[str]) -> ColumnDescriptor:
        name = column.name
        if column.table:
            table = self.aliases.get(column.table.lower())
            if table is None:
                log.warning("Unknown table or alias %s of column %s", column.table, name)
                return self.unqualified(name, alias)
            found = self.index.column(table, name)
            if found is None:
                log.warning("Column %s not found in table %s", name, table)
                fallback = self.index.any_column(name)
                type_name = fallback.type_name if fallback else FALLBACK_DRIVER_TYPE
                return ColumnDescriptor(name, type_name, True, alias, table)
            return ColumnDescriptor(found.name, found.type_name, found.nullable, alias, table)
        owners = self.index.owners(name, self.tables)
        if len(owners) == 1:
            found = self.index.column(owners[0], name)
            return ColumnDescriptor(found.name, found.type_name, found.nullable, alias, owners[0])
        if owners:
            log.warning("Column %s is ambiguous, it is declared by %s", name, ", ".join(owners))
        else:
            log.warning("Column %s is not declared by any of %s", name, ", ".join(self.tables) or "no tables")
        return self.unqualified(name, alias)

    def unqualified(self, name: str, alias: Optional[str]) -> ColumnDescriptor:
        found = self.index.any_column(name)
        type_name = found.type_name if found else FALLBACK_DRIVER_TYPE
        return ColumnDescriptor(name, type_name, True, alias)

    def expression(self, expression: exp.Expression, alias: Optional[str], position: int) -> ColumnDescriptor:
        name = alias or f"column{position}"
        if not alias:
            log.warning("Projection %s has no alias, named %s", expression.sql(), name)
        type_name = _expression_type(expression, self.index, self.aliases)
        if type_name is None:
            log.warning("Cannot infer type of projection %s, using %s", expression.sql(), FALLBACK_DRIVER_TYPE)
            type_name = FALLBACK_DRIVER_TYPE
        return ColumnDescriptor(name, type_name, True, alias, generated_name=not alias)


def resolve_projection(
    sql: Statement, schema: Mapping[str, Sequence[CatalogColumn]], dialect: Optional[str] = None
) -> List[ColumnDescriptor]:
    """Resolve projected columns of a SELECT statement.

    A column qualified by a table name or alias belongs to that table. An
    unqualified column belongs to the only referenced table which declares it.
    Ambiguous and unknown columns get an unqualified descriptor, typed from any
    table declaring a column of that name, or as ``VARCHAR``.

    :param sql: SELECT statement, text or parsed
    :param schema: columns of each referenced table
    :param dialect: sqlglot dialect name
    :raises InvalidArgument: SQL is empty, cannot be parsed or is not a query
    :return: projected columns, in order
    """
    statement = _parse_statement(sql, dialect, "SELECT")
    select = leading_select(statement) if isinstance(statement, exp.Query) else None
    if select is None:
        raise InvalidArgument("SQL statement is not a SELECT")
    projection = _Projection(select, SchemaIndex(schema))
    result: List[ColumnDescriptor] = []
    for position, item in enumerate(select.expressions, start=1):
        if isinstance(item, exp.Star):
            result.extend(projection.star())
        elif isinstance(item, exp.Column) and isinstance(item.this, exp.Star):
            table = projection.aliases.get(item.table.lower(), item.table)
            result.extend(projection.expand(table))
        elif isinstance(item, exp.Alias):
            inner = item.this
            if isinstance(inner, exp.Column) and not isinstance(inner.this, exp.Star):
                result.append(projection.column(inner, item.alias))
            else:
                result.append(projection.expression(inner, item.alias, position))
        elif isinstance(item, exp.Column):
            result.append(projection.column(item, None))
        else:
            result.append(projection.expression(item, None, position))
    log.debug("Resolved %d projected columns from %d tables", len(result), len(projection.tables))
    return result


def _enrich(name: str, table: str, index: Mapping[str, CatalogColumn]) -> ColumnDescriptor:
    found = index.get(name.lower())
    if found is None:
        log.warning("Column %s not found in table %s, using %s", name, table, FALLBACK_DRIVER_TYPE)
        return ColumnDescriptor(name, FALLBACK_DRIVER_TYPE, True, owning_table=table)
    return ColumnDescriptor(found.name, found.type_name, found.nullable, owning_table=table)


def _synthetic(binding: Binding) -> ColumnDescriptor:
    name = f"param{binding.ordinal}"
    log.warning("Placeholder %d is not compared with a column, named %s", binding.ordinal, name)
    return ColumnDescriptor(name, FALLBACK_DRIVER_TYPE, True, generated_name=True)


def _where_columns(found: Sequence[Binding], table: str, index: Mapping[str, CatalogColumn]) -> List[ColumnDescriptor]:
    columns = []
    for binding in found:
        if binding.column is None:
            columns.append(_synthetic(binding))
        else:
            columns.append(_enrich(binding.column, table, index))
    return columns


def _column_index(columns: Sequence[CatalogColumn]) -> Dict[str, CatalogColumn]:
    return {column.name.lower(): column for column in columns}


def resolve_insert(
    sql: Statement, table_columns: Sequence[CatalogColumn], dialect: Optional[str] = None
) -> InsertMetadata:
    """Resolve columns of INSERT statement bound to placeholders.

    :param sql: INSERT statement with column list and one VALUES row
    :param table_columns: columns of target table
    :param dialect: sqlglot dialect name
    :raises InvalidArgument: not an INSERT, no column list, no VALUES row
    :return: INSERT metadata
    """
    statement = _parse_statement(sql, dialect, "INSERT")
    if not isinstance(statement, exp.Insert):
        raise InvalidArgument("SQL statement is not an INSERT")
    table = target_table(statement)
    if table is None:
        raise InvalidArgument("INSERT statement must specify a table")
    if not isinstance(statement.this, exp.Schema) or not statement.this.expressions:
        raise InvalidArgument("INSERT statement must specify column names")
    names = [column.name for column in statement.this.expressions]
    values = statement.args.get("expression")
    if not isinstance(values, exp.Values) or not values.expressions:
        raise InvalidArgument("INSERT statement must have a VALUES row")
    if len(values.expressions) > 1:
        raise InvalidArgument("INSERT statement with more than one VALUES row is not supported")
    row = values.expressions[0]
    if len(row.expressions) != len(names):
        raise InvalidArgument(f"INSERT statement has {len(names)} columns but {len(row.expressions)} values")
    index = _column_index(table_columns)
    inserted = []
    for binding in bindings(statement):
        if binding.clause != VALUES or binding.value_index is None:
            inserted.append(_synthetic(binding))
        else:
            inserted.append(_enrich(names[binding.value_index], table, index))
    if not inserted:
        raise InvalidArgument("INSERT statement must specify column names bound to parameters")
    raw_sql = sql if isinstance(sql, str) else statement.sql(dialect=dialect)
    return InsertMetadata(table, tuple(inserted), raw_sql)


def resolve_update(
    sql: Statement, table_columns: Sequence[CatalogColumn], dialect: Optional[str] = None
) -> UpdateMetadata:
    """Resolve SET and WHERE columns of UPDATE statement.

    Only SET items with a placeholder take part, ``updated_at = CURRENT_TIMESTAMP``
    is not a request field. Placeholders after the SET list are WHERE columns.
    """
    statement = _parse_statement(sql, dialect, "UPDATE")
    if not isinstance(statement, exp.Update):
        raise InvalidArgument("SQL statement is not an UPDATE")
    table = target_table(statement)
    if table is None:
        raise InvalidArgument("UPDATE statement must specify a table")
    index = _column_index(table_columns)
    set_columns = []
    where = []
    for binding in bindings(statement):
        if binding.clause == SET and binding.column is not None:
            set_columns.append(_enrich(binding.column, table, index))
        else:
            where.append(binding)
    raw_sql = sql if isinstance(sql, str) else statement.sql(dialect=dialect)
    return UpdateMetadata(table, tuple(set_columns), tuple(_where_columns(where, table, index)), raw_sql)


def resolve_delete(
    sql: Statement, table_columns: Sequence[CatalogColumn], dialect: Optional[str] = None
) -> DeleteMetadata:
    statement = _parse_statement(sql, dialect, "DELETE")
    if not isinstance(statement, exp.Delete):
        raise InvalidArgument("SQL statement is not a DELETE")
    table = target_table(statement)
    if table is None:
        raise InvalidArgument("DELETE statement must specify a table")
    where = _where_columns(bindings(statement), table, _column_index(table_columns))
    raw_sql = sql if isinstance(sql, str) else statement.sql(dialect=dialect)
    return DeleteMetadata(table, tuple(where), raw_sql)
