"""
Column extraction from MySQL ``CREATE TABLE`` statements.

``SHOW CREATE TABLE`` returns the table definition as a single statement.
This module pulls the ordered column clauses out of its body so that missing
columns can be replayed verbatim on the destination. Index and constraint
clauses (``PRIMARY KEY``, ``KEY``, ``CONSTRAINT``, ...) start with a keyword
rather than a backtick-quoted name and are skipped.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

_CREATE_TABLE_PREFIX = re.compile(r"^\s*CREATE\s+TABLE\s+", re.IGNORECASE)
_IF_NOT_EXISTS = re.compile(r"^\s*CREATE\s+TABLE\s+IF\s+NOT\s+EXISTS\s", re.IGNORECASE)


@dataclass(frozen=True)
class ColumnDefinition:
    """A column name and the verbatim clause that declares it."""

    name: str
    raw_definition: str


class _ScanState(Enum):
    NORMAL = "normal"
    IDENTIFIER = "identifier"
    SINGLE_QUOTED = "single_quoted"
    DOUBLE_QUOTED = "double_quoted"


_OPENING_QUOTES = {
    "`": _ScanState.IDENTIFIER,
    "'": _ScanState.SINGLE_QUOTED,
    '"': _ScanState.DOUBLE_QUOTED,
}

_CLOSING_QUOTES = {state: quote for quote, state in _OPENING_QUOTES.items()}


def _scan(text: str, start: int = 0):
    """
    Walk ``text`` from ``start`` yielding ``(index, char, state, depth)``.

    ``state`` and ``depth`` describe the context *before* the character is
    consumed. Doubled quotes (``''``, ``""``, doubled backticks) need no special
    casing: closing and immediately reopening the same quote leaves the scanner
    in the quoted state. Backslash escapes are honoured inside string literals
    but not inside identifiers, where MySQL treats the backslash literally.
    """
    state = _ScanState.NORMAL
    depth = 0
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        yield index, char, state, depth

        if state is _ScanState.NORMAL:
            if char in _OPENING_QUOTES:
                state = _OPENING_QUOTES[char]
            elif char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            continue

        if escaped:
            escaped = False
        elif char == "\\" and state is not _ScanState.IDENTIFIER:
            escaped = True
        elif char == _CLOSING_QUOTES[state]:
            state = _ScanState.NORMAL


def _extract_body(create_statement: str) -> str | None:
    """Return the text between the first ``(`` and its matching ``)``."""
    open_index = None
    for index, char, state, depth in _scan(create_statement):
        if state is not _ScanState.NORMAL:
            continue
        if char == "(":
            if open_index is None:
                open_index = index
        elif char == ")" and open_index is not None and depth == 1:
            return create_statement[open_index + 1:index]

    return None


def _split_top_level(body: str) -> list[str]:
    """Split on commas that sit outside quotes and nested parentheses."""
    clauses = []
    clause_start = 0

    for index, char, state, depth in _scan(body):
        if char == "," and state is _ScanState.NORMAL and depth == 0:
            clauses.append(body[clause_start:index])
            clause_start = index + 1

    clauses.append(body[clause_start:])
    return clauses


def _leading_identifier(clause: str) -> str | None:
    """Name inside the leading backtick pair, with doubled backticks unescaped."""
    index = 1
    name = []
    while index < len(clause):
        char = clause[index]
        if char == "`":
            if clause[index + 1:index + 2] == "`":
                name.append("`")
                index += 2
                continue
            return "".join(name)
        name.append(char)
        index += 1

    return None


def parse_create_table_columns(create_statement: str) -> list[ColumnDefinition]:
    """
    Parse the column list of a ``CREATE TABLE`` statement

    Args:
        create_statement: Full statement text, as returned by SHOW CREATE TABLE

    Returns:
        Column definitions in declaration order. An empty list when the
        statement has no parenthesized body or declares no quoted columns.

    Example:
        >>> parse_create_table_columns(
        ...     "CREATE TABLE `t` (`id` int NOT NULL, `tag` enum('a,b','c'), "
        ...     "PRIMARY KEY (`id`))"
        ... )
        [ColumnDefinition(name='id', raw_definition='`id` int NOT NULL'),
         ColumnDefinition(name='tag', raw_definition="`tag` enum('a,b','c')")]
    """
    body = _extract_body(create_statement)
    if body is None:
        logger.warning(
            "Could not locate a column list in CREATE TABLE statement: "
            f"{create_statement[:80]!r}"
        )
        return []

    columns = []
    for clause in _split_top_level(body):
        clause = clause.strip()
        if not clause.startswith("`"):
            continue

        name = _leading_identifier(clause)
        if name is None:
            logger.warning(f"Unterminated column identifier in clause: {clause!r}")
            continue

        columns.append(ColumnDefinition(name=name, raw_definition=clause))

    return columns


def reconstruct_create_table(table: str, columns: list[ColumnDefinition]) -> str:
    """Build a minimal CREATE TABLE statement from parsed column definitions."""
    quoted_table = "`" + table.replace("`", "``") + "`"
    body = ",\n  ".join(column.raw_definition for column in columns)
    return f"CREATE TABLE {quoted_table} (\n  {body}\n)"


def add_if_not_exists(create_statement: str) -> str:
    """
    Rewrite a leading ``CREATE TABLE`` into ``CREATE TABLE IF NOT EXISTS``

    Statements that already carry IF NOT EXISTS, or do not start with
    CREATE TABLE, are returned unchanged.
    """
    if _IF_NOT_EXISTS.match(create_statement):
        return create_statement

    return _CREATE_TABLE_PREFIX.sub("CREATE TABLE IF NOT EXISTS ", create_statement, count=1)
