"""
Bind parameter extraction.

Types come from the metadata source, names from the WHERE clause text. Both
are resolved per parameter, a parameter whose type is unavailable is typed as
text and does not fail the others.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple
from sqlscaffold import placeholders
from sqlscaffold.errors import InvalidArgument, ParameterTypeUnavailable
from sqlscaffold.model import BoundParameter
from sqlscaffold.naming import to_identifier
from sqlscaffold.source import MetadataSource, ParameterMetadata
from sqlscaffold.type_mapping import FALLBACK_DRIVER_TYPE, source_driver_type_for, target_type_for

log = logging.getLogger(__name__)

#: Longest SQL text accepted.
MAX_SQL_LENGTH = 10_000

# Literals, quoted identifiers and comments, masked before scanning.
_MASK_RE = re.compile(
    r"""
    '(?:[^'\\]|\\.|'')*' |
    "(?:[^"\\]|\\.)*" |
    \[[^\]]*\] |
    --[^\r\n]* |
    /\*(?:[^*]|\*(?!/))*\*/
    """,
    re.VERBOSE | re.DOTALL,
)
_WHERE_RE = re.compile(r"\bwhere\b", re.IGNORECASE)
_WHERE_END_RE = re.compile(r"\b(?:group\s+by|order\s+by|having|limit|offset)\b", re.IGNORECASE)
_COMPARED_RE = re.compile(
    r"(?<![\w.])(?:[A-Za-z0-9_]+\.)?([A-Za-z0-9_]+)\s*(?:<>|!=|<=|>=|=|<|>|\blike\b)\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class TypeResolution:
    """Outcome of looking up type of one parameter."""

    position: int
    source_type_name: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_type(metadata: ParameterMetadata, position: int) -> TypeResolution:
    try:
        type_name = metadata.parameter_type(position)
    except ParameterTypeUnavailable as error:
        return TypeResolution(position, error=error)
    if type_name is None or not type_name.strip():
        return TypeResolution(position, error=ParameterTypeUnavailable(position, "driver reported no type"))
    return TypeResolution(position, type_name)


def mask(sql: str) -> str:
    """Replace literals, quoted identifiers and comments with ``#``, keeping offsets."""
    return _MASK_RE.sub(lambda match: "#" * len(match.group(0)), sql)


def _structure(masked: str) -> Tuple[List[int], List[Tuple[int, int]]]:
    """Parenthesis depth at every offset and spans of parenthesized SELECTs."""
    depth = []
    current = 0
    opened: List[int] = []
    subqueries = []
    for offset, char in enumerate(masked):
        if char == "(":
            opened.append(offset)
            current += 1
        elif char == ")" and opened:
            start = opened.pop()
            current -= 1
            if masked[start + 1 : offset].lstrip()[:6].lower() == "select":
                subqueries.append((start, offset))
        depth.append(current)
    return depth, subqueries


def where_clause_span(sql: str) -> Optional[Tuple[int, int]]:
    """Offsets of the top level WHERE clause, without GROUP BY and what follows."""
    masked = mask(sql)
    depth, _ = _structure(masked)
    return _where_span(masked, depth)


def _where_span(masked: str, depth: List[int]) -> Optional[Tuple[int, int]]:
    start = next((match.end() for match in _WHERE_RE.finditer(masked) if depth[match.start()] == 0), None)
    if start is None:
        return None
    end = next(
        (match.start() for match in _WHERE_END_RE.finditer(masked, start) if depth[match.start()] == 0),
        len(masked),
    )
    return start, end


def parameter_names(sql: str, count: int) -> List[str]:
    """Names of ``count`` positional parameters.

    A placeholder of the top level WHERE clause preceded by ``column op`` or
    ``alias.column op`` is named after the column. Every other placeholder is
    named ``param<N>``.
    """
    names = [f"param{position}" for position in range(1, count + 1)]
    masked = mask(sql)
    depth, subqueries = _structure(masked)
    span = _where_span(masked, depth)
    if span is None:
        log.debug("No WHERE clause, parameters are named by position")
        return names
    start, end = span
    for index, placeholder in enumerate(placeholders.positional(sql)[:count]):
        offset = placeholder.position
        if not start <= offset < end:
            continue
        if any(first < offset < last for first, last in subqueries):
            log.debug("Parameter %d is in a subquery, named by position", index + 1)
            continue
        match = _COMPARED_RE.search(masked[start:offset])
        if match is None:
            continue
        name = to_identifier(match.group(1))
        if name.isidentifier():
            names[index] = name
    return names


def extract(sql: str, source: MetadataSource, max_length: int = MAX_SQL_LENGTH) -> List[BoundParameter]:
    """Extract bind parameters of a statement.

    :param sql: SQL with ``?`` placeholders
    :param source: metadata source, its failures are propagated
    :param max_length: longest accepted SQL
    :raises InvalidArgument: SQL is empty or too long
    :return: parameters ordered by position
    """
    if sql is None or not sql.strip():
        raise InvalidArgument("SQL statement cannot be null or empty")
    if len(sql) > max_length:
        raise InvalidArgument(f"SQL statement is longer than {max_length} characters")
    metadata = source.prepare(sql)
    count = metadata.parameter_count
    if count <= 0:
        return []
    names = parameter_names(sql, count)
    parameters = []
    for position in range(1, count + 1):
        resolution = resolve_type(metadata, position)
        if resolution.ok:
            source_type_name = resolution.source_type_name
        else:
            log.warning("%s, using %s", resolution.error, FALLBACK_DRIVER_TYPE)
            source_type_name = FALLBACK_DRIVER_TYPE
        parameters.append(
            BoundParameter(
                ordinal_position=position,
                resolved_name=names[position - 1],
                target_type=target_type_for(source_type_name),
                source_type_name=source_driver_type_for(source_type_name),
            )
        )
    log.debug("Extracted %d parameters", len(parameters))
    return parameters
