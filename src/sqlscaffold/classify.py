"""Statement classification.

SQL is parsed with sqlglot first. When it cannot be parsed, the kind is guessed
from the leading keyword.
"""

import logging
from typing import Optional
import sqlglot
from sqlglot import exp
from sqlglot.dialects.dialect import Dialect
from sqlglot.errors import SqlglotError
from sqlscaffold.errors import InvalidArgument
from sqlscaffold.model import StatementKind

log = logging.getLogger(__name__)

_KEYWORDS = {
    "SELECT": StatementKind.SELECT,
    "INSERT": StatementKind.INSERT,
    "UPDATE": StatementKind.UPDATE,
    "DELETE": StatementKind.DELETE,
}


def check_dialect(dialect: Optional[str]) -> Optional[str]:
    """Raise ``InvalidArgument`` unless sqlglot knows the dialect, None is generic SQL."""
    if dialect is None:
        return None
    try:
        Dialect.get_or_raise(dialect)
    except ValueError as error:
        raise InvalidArgument(f"Unknown SQL dialect {dialect}") from error
    return dialect


def parse(sql: str, dialect: Optional[str] = None) -> Optional[exp.Expression]:
    """Parse single statement.

    :param sql: SQL text
    :param dialect: sqlglot dialect name, like ``tsql``
    :return: parsed statement or None if sqlglot could not parse it or does not know the dialect
    """
    try:
        expression = sqlglot.parse_one(sql, read=dialect)
    except SqlglotError as error:
        log.debug("Parsing failed: %s", error)
        return None
    except ValueError as error:
        log.warning("Cannot parse with dialect %s: %s", dialect, error)
        return None
    # Unsupported syntax is kept as an opaque command.
    if expression is None or isinstance(expression, exp.Command):
        return None
    return expression


def kind_of(expression: exp.Expression) -> StatementKind:
    """Kind of parsed statement."""
    if isinstance(expression, exp.Query):
        return StatementKind.SELECT
    if isinstance(expression, exp.Insert):
        return StatementKind.INSERT
    if isinstance(expression, exp.Update):
        return StatementKind.UPDATE
    if isinstance(expression, exp.Delete):
        return StatementKind.DELETE
    return StatementKind.UNKNOWN


def classify_by_keyword(sql: str) -> StatementKind:
    words = sql.strip().split(None, 1)
    if not words:
        return StatementKind.UNKNOWN
    return _KEYWORDS.get(words[0].upper().rstrip("("), StatementKind.UNKNOWN)


def classify(sql: Optional[str], dialect: Optional[str] = None) -> StatementKind:
    """Kind of SQL statement.

    Never raises, empty or unrecognized statements are ``UNKNOWN``.

    :param sql: SQL text
    :param dialect: sqlglot dialect name
    :return: statement kind
    """
    if sql is None or not sql.strip():
        return StatementKind.UNKNOWN
    expression = parse(sql, dialect)
    if expression is not None:
        return kind_of(expression)
    kind = classify_by_keyword(sql)
    log.debug("Classified by leading keyword as %s", kind.value)
    return kind
