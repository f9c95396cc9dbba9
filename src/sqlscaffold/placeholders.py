"""Scanning and rewriting of bind placeholders in SQL text.

Positional (``?``) and named (``:name``) placeholders are recognized outside
of string literals, quoted identifiers and comments.
"""

import re
from typing import List, NamedTuple, Sequence, Tuple
from sqlscaffold.errors import InvalidArgument

_PLACEHOLDER_RE = re.compile(
    r"""
    (?P<dquote>"(?:[^"\\]|\\.)*") |
    (?P<squote>'(?:[^'\\]|\\.)*') |
    (?P<bracket>\[[^\]]*\]) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    (?P<pg_q_operator>\?\?|\?\||\?&) |
    (?P<pg_cast>::(?P<cast_type>\w+)) |
    (?P<named_colon>(?<![\w:]):(?P<colon_name>[A-Za-z_]\w*)) |
    (?P<qmark>\?)
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)

_SKIP_GROUPS = ("dquote", "squote", "bracket", "line_comment", "block_comment", "pg_q_operator", "pg_cast")


class Placeholder(NamedTuple):
    #: Offset of placeholder in SQL text.
    position: int
    #: Length of placeholder text.
    length: int
    #: Name for named placeholders, None for ``?``.
    name: str | None


def scan(sql: str) -> List[Placeholder]:
    """Find placeholders in SQL text, in textual order."""
    found = []
    for match in _PLACEHOLDER_RE.finditer(sql):
        if any(match.group(group) for group in _SKIP_GROUPS):
            continue
        if match.group("qmark"):
            found.append(Placeholder(match.start(), 1, None))
        elif match.group("named_colon"):
            found.append(Placeholder(match.start(), len(match.group(0)), match.group("colon_name")))
    return found


def positional(sql: str) -> List[Placeholder]:
    return [placeholder for placeholder in scan(sql) if placeholder.name is None]


def count_positional(sql: str) -> int:
    return len(positional(sql))


def to_named(sql: str, names: Sequence[str]) -> str:
    """Replace every ``?`` with ``:name``, in order.

    :param sql: SQL with positional placeholders
    :param names: one bind name per placeholder
    :raises InvalidArgument: number of placeholders differs from number of names
    :return: SQL with named placeholders
    """
    found = positional(sql)
    if len(found) != len(names):
        raise InvalidArgument(
            f"Parameter count mismatch: SQL has {len(found)} placeholders but {len(names)} parameters provided"
        )
    # Replace from the end so earlier offsets stay valid.
    result = sql
    for placeholder, name in reversed(list(zip(found, names))):
        result = result[: placeholder.position] + f":{name}" + result[placeholder.position + placeholder.length :]
    return result


def to_positional(sql: str) -> Tuple[str, List[str]]:
    """Replace every ``:name`` with ``?``.

    :return: SQL with positional placeholders and names in order of appearance
    """
    found = [placeholder for placeholder in scan(sql) if placeholder.name is not None]
    result = sql
    for placeholder in reversed(found):
        result = result[: placeholder.position] + "?" + result[placeholder.position + placeholder.length :]
    return result, [placeholder.name for placeholder in found if placeholder.name is not None]
