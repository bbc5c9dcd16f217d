"""SQL DDL parser for installation schema files.

Extracts CREATE TABLE statements (columns, keys, table options) from MySQL
flavoured DDL. Pattern based: statements are located with a header regex and
a parenthesis-depth scan rather than a full SQL grammar, so exotic nesting
around the outer ``CREATE TABLE (...)`` wrapper may be misread.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .languages import SQL_EXTENSIONS
from .models import Column, IndexDef, SchemaIndex, TableSchema
from .walker import walk_files

logger = logging.getLogger("phpscope.sql_schema")

TABLE_PREFIX = "#__"

_CREATE_TABLE = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[`\"]?([^`\"\s(]+)[`\"]?\s*\(",
    re.IGNORECASE,
)

_PRIMARY_KEY = re.compile(r"^PRIMARY\s+KEY\b", re.IGNORECASE)
_NAMED_KEYS = [
    ("unique", re.compile(r"^UNIQUE\s+(?:KEY|INDEX)\s+[`\"]?(\w+)[`\"]?\s*\(", re.IGNORECASE)),
    ("fulltext", re.compile(r"^FULLTEXT\s+(?:KEY|INDEX)\s+[`\"]?(\w+)[`\"]?\s*\(", re.IGNORECASE)),
    ("index", re.compile(r"^(?:KEY|INDEX)\s+[`\"]?(\w+)[`\"]?\s*\(", re.IGNORECASE)),
]

_COLUMN = re.compile(
    r"^[`\"]?(\w+)[`\"]?\s+(\w+(?:\s*\([^)]*\))?(?:\s+(?:unsigned|signed))?)",
    re.IGNORECASE,
)
_NOT_NULL = re.compile(r"\bNOT\s+NULL\b", re.IGNORECASE)
_AUTO_INCREMENT = re.compile(r"\bAUTO_INCREMENT\b", re.IGNORECASE)
_DEFAULT = re.compile(
    r"\bDEFAULT\s+('(?:[^'\\]|\\.|'')*'|NULL|-?\d+(?:\.\d+)?|CURRENT_TIMESTAMP(?:\(\d*\))?)",
    re.IGNORECASE,
)
_COLUMN_COMMENT = re.compile(r"\bCOMMENT\s+'((?:[^'\\]|\\.|'')*)'", re.IGNORECASE)
_SIZE_QUALIFIER = re.compile(r"\(\d+\)$")
_SORT_ORDER = re.compile(r"\s+(?:ASC|DESC)$", re.IGNORECASE)

_ENGINE = re.compile(r"ENGINE\s*=\s*(\w+)", re.IGNORECASE)
_CHARSET = re.compile(r"(?:DEFAULT\s+)?(?:CHARSET|CHARACTER\s+SET)\s*=?\s*(\w+)", re.IGNORECASE)
_TABLE_COMMENT = re.compile(r"COMMENT\s*=\s*'([^']*)'", re.IGNORECASE)

# Leading tokens that mark a constraint clause, never a column
RESERVED_LEADERS = {
    "PRIMARY", "KEY", "INDEX", "UNIQUE", "FULLTEXT", "CONSTRAINT", "FOREIGN", "CHECK",
}


def short_table_name(name: str) -> str:
    """Strip the table-name placeholder prefix. Idempotent."""
    while name.startswith(TABLE_PREFIX):
        name = name[len(TABLE_PREFIX):]
    return name


def _scan_balanced(text: str, start: int) -> int:
    """Return the index of the ``)`` closing the group opened just before ``start``.

    Quoted strings are skipped. Returns -1 when the group never closes.
    """
    depth = 1
    quote: str | None = None
    i = start
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _find_statement_end(text: str, start: int) -> int:
    """Index of the terminating ``;`` (outside quotes), or len(text)."""
    quote: str | None = None
    i = start
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == ";":
            return i
        i += 1
    return len(text)


def split_table_body(body: str) -> list[str]:
    """Split a CREATE TABLE body on commas at parenthesis depth 0."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    escaped = False

    for ch in body:
        if quote is not None:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in ("'", '"', "`"):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)

    if "".join(current).strip():
        parts.append("".join(current))
    return parts


def _parse_index_columns(column_list: str) -> list[str]:
    columns = []
    for raw in split_table_body(column_list):
        col = raw.strip().replace("`", "").replace('"', "")
        col = _SORT_ORDER.sub("", col)
        col = _SIZE_QUALIFIER.sub("", col).strip()
        if col:
            columns.append(col)
    return columns


def _column_group(definition: str, open_paren: int) -> str | None:
    close = _scan_balanced(definition, open_paren + 1)
    if close == -1:
        return None
    return definition[open_paren + 1:close]


def parse_index(definition: str) -> IndexDef | None:
    """Interpret one body part as a key definition, or return None."""
    if _PRIMARY_KEY.match(definition):
        open_paren = definition.find("(")
        if open_paren == -1:
            return None
        group = _column_group(definition, open_paren)
        if group is None:
            return None
        return IndexDef(name="PRIMARY", kind="primary", columns=_parse_index_columns(group))

    for kind, pattern in _NAMED_KEYS:
        m = pattern.match(definition)
        if m:
            group = _column_group(definition, m.end() - 1)
            if group is None:
                return None
            return IndexDef(name=m.group(1), kind=kind, columns=_parse_index_columns(group))
    return None


def parse_column(definition: str) -> Column | None:
    """Interpret one body part as a column definition, or return None."""
    m = _COLUMN.match(definition)
    if not m:
        return None

    name = m.group(1)
    if name.upper() in RESERVED_LEADERS:
        return None

    comment = None
    attributes = definition[m.end():]
    comment_match = _COLUMN_COMMENT.search(attributes)
    if comment_match:
        comment = comment_match.group(1)
        attributes = attributes[:comment_match.start()]

    default_match = _DEFAULT.search(attributes)
    return Column(
        name=name,
        type=m.group(2),
        nullable=not _NOT_NULL.search(attributes),
        default_value=default_match.group(1) if default_match else None,
        auto_increment=bool(_AUTO_INCREMENT.search(attributes)),
        comment=comment,
    )


class SqlSchemaParser:
    """Parses CREATE TABLE statements from SQL text or a directory of .sql files."""

    def parse_sql(self, content: str) -> list[TableSchema]:
        tables: list[TableSchema] = []
        pos = 0

        while True:
            header = _CREATE_TABLE.search(content, pos)
            if header is None:
                break

            body_start = header.end()
            body_end = _scan_balanced(content, body_start)
            if body_end == -1:
                logger.debug("Unterminated CREATE TABLE %s skipped", header.group(1))
                pos = body_start
                continue

            stmt_end = _find_statement_end(content, body_end + 1)
            table = self._build_table(
                header.group(1),
                content[body_start:body_end],
                content[body_end + 1:stmt_end],
            )
            tables.append(table)
            pos = stmt_end + 1

        return tables

    def _build_table(self, name: str, body: str, suffix: str) -> TableSchema:
        columns: list[Column] = []
        indexes: list[IndexDef] = []

        for part in split_table_body(body):
            trimmed = part.strip()
            if not trimmed:
                continue

            idx = parse_index(trimmed)
            if idx is not None:
                indexes.append(idx)
                continue

            col = parse_column(trimmed)
            if col is not None:
                columns.append(col)

        engine = _ENGINE.search(suffix)
        charset = _CHARSET.search(suffix)
        comment = _TABLE_COMMENT.search(suffix)

        return TableSchema(
            name=name,
            short_name=short_table_name(name),
            columns=columns,
            indexes=indexes,
            engine=engine.group(1) if engine else None,
            charset=charset.group(1) if charset else None,
            comment=comment.group(1) if comment else None,
        )

    def parse_directory(self, sql_dir: Path) -> SchemaIndex:
        """Parse every .sql file directly under ``sql_dir`` (non-recursive)."""
        tables: list[TableSchema] = []
        for path in walk_files(sql_dir, SQL_EXTENSIONS, recursive=False):
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.error("Error reading %s: %s", path, e)
                continue
            parsed = self.parse_sql(content)
            logger.debug("%s: %d tables", path.name, len(parsed))
            tables.extend(parsed)

        return SchemaIndex.from_tables(tables)
