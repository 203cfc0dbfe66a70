"""
Parses a PostgreSQL data-definition file into strongly-typed objects and
renders it as prompt text for the report generator.

Two passes over the DDL text:
  - enum types    (CREATE TYPE name AS ENUM (...))
  - tables        (CREATE TABLE name (...) -- balanced parenthesis block)

Column definitions are split on top-level commas so that types such as
``numeric(10,2)`` survive intact.  Table-level constraint lines are skipped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class ForeignKey:
    table: str
    column: str


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type: str
    nullable: bool
    is_primary_key: bool
    foreign_key: ForeignKey | None = None
    default_value: str | None = None


@dataclass(frozen=True)
class TableInfo:
    name: str
    columns: list[ColumnInfo] = field(default_factory=list)

    def column(self, name: str) -> ColumnInfo | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None


@dataclass(frozen=True)
class EnumInfo:
    name: str
    values: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Relationship:
    from_table: str
    from_column: str
    to_table: str
    to_column: str


@dataclass
class ParsedSchema:
    """Ordered tables and enums, as declared in the source."""

    tables: list[TableInfo]
    enums: list[EnumInfo]

    def table(self, name: str) -> TableInfo | None:
        for t in self.tables:
            if t.name == name:
                return t
        return None

    def get_table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def relationships(self) -> list[Relationship]:
        """Every foreign-key edge, in table order then column order."""
        rels: list[Relationship] = []
        for t in self.tables:
            for col in t.columns:
                if col.foreign_key:
                    rels.append(Relationship(t.name, col.name, col.foreign_key.table, col.foreign_key.column))
        return rels


# ── Compiled patterns ────────────────────────────────────

_ENUM_RE = re.compile(
    r"CREATE\s+TYPE\s+(?:\"?\w+\"?\.)?\"?(\w+)\"?\s+AS\s+ENUM\s*\(([^)]*)\)",
    re.IGNORECASE,
)

_TABLE_RE = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:\"?\w+\"?\.)?\"?(\w+)\"?\s*\(",
    re.IGNORECASE,
)

_COLUMN_RE = re.compile(r"^\"?(\w+)\"?\s+(.+)$", re.DOTALL)

_TYPE_RE = re.compile(
    r"^([\w\s(),.]+?)(?:\s+(?:PRIMARY|NOT|NULL|DEFAULT|REFERENCES|UNIQUE|CHECK)\b|$)",
    re.IGNORECASE,
)

_DEFAULT_RE = re.compile(r"DEFAULT\s+([^,\s]+(?:\([^)]*\))?)", re.IGNORECASE)

_FK_RE = re.compile(
    r"REFERENCES\s+(?:\"?\w+\"?\.)?\"?(\w+)\"?\s*\(\s*\"?(\w+)\"?\s*\)",
    re.IGNORECASE,
)

_PK_RE = re.compile(r"PRIMARY\s+KEY", re.IGNORECASE)
_NOT_NULL_RE = re.compile(r"NOT\s+NULL", re.IGNORECASE)

_CONSTRAINT_LINE_RE = re.compile(r"(?:CONSTRAINT|PRIMARY\s+KEY|FOREIGN\s+KEY|UNIQUE|CHECK)\b", re.IGNORECASE)


# ── Parsing ──────────────────────────────────────────────

def _parse_enums(sql: str) -> list[EnumInfo]:
    enums: list[EnumInfo] = []
    for m in _ENUM_RE.finditer(sql):
        values = [v.strip().strip("'") for v in m.group(2).split(",") if v.strip()]
        enums.append(EnumInfo(name=m.group(1), values=values))
    return enums


def _balanced_block(sql: str, open_idx: int) -> str | None:
    """Return the text between ``sql[open_idx]`` == '(' and its matching ')'."""
    depth = 0
    for i in range(open_idx, len(sql)):
        ch = sql[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return sql[open_idx + 1:i]
    return None


def split_column_definitions(block: str) -> list[str]:
    """Split a column block on commas that are not nested inside parentheses."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in block:
        if ch == "(":
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


def parse_column_definition(line: str) -> ColumnInfo | None:
    m = _COLUMN_RE.match(line.strip())
    if not m:
        return None

    name, rest = m.group(1), m.group(2).strip()

    type_match = _TYPE_RE.match(rest)
    col_type = type_match.group(1).strip() if type_match else rest.split()[0]
    col_type = re.sub(r"\s+", " ", col_type)

    is_pk = bool(_PK_RE.search(rest))
    nullable = not (is_pk or _NOT_NULL_RE.search(rest))

    default_match = _DEFAULT_RE.search(rest)
    fk_match = _FK_RE.search(rest)

    return ColumnInfo(
        name=name,
        type=col_type,
        nullable=nullable,
        is_primary_key=is_pk,
        foreign_key=ForeignKey(fk_match.group(1), fk_match.group(2)) if fk_match else None,
        default_value=default_match.group(1) if default_match else None,
    )


def _parse_columns(block: str) -> list[ColumnInfo]:
    columns: list[ColumnInfo] = []
    for raw in split_column_definitions(block):
        line = raw.strip()
        if not line or _CONSTRAINT_LINE_RE.match(line):
            continue
        col = parse_column_definition(line)
        if col is not None:
            columns.append(col)
    return columns


def _parse_tables(sql: str) -> list[TableInfo]:
    tables: list[TableInfo] = []
    for m in _TABLE_RE.finditer(sql):
        block = _balanced_block(sql, m.end() - 1)
        if block is None:
            continue
        tables.append(TableInfo(name=m.group(1), columns=_parse_columns(block)))
    return tables


def _strip_comments(sql: str) -> str:
    sql = re.sub(r"--.*$", "", sql, flags=re.MULTILINE)
    return re.sub(r"/\*.*?\*/", "", sql, flags=re.DOTALL)


def parse_schema_sql(source: str) -> ParsedSchema:
    """Parse DDL text into a ParsedSchema."""
    sql = _strip_comments(source)
    return ParsedSchema(tables=_parse_tables(sql), enums=_parse_enums(sql))


def load_schema(path: str | Path) -> ParsedSchema:
    """Read and parse a DDL file from disk."""
    return parse_schema_sql(Path(path).read_text(encoding="utf-8"))


# ── Rendering ────────────────────────────────────────────

def format_schema_for_prompt(schema: ParsedSchema) -> str:
    """Render the schema as deterministic markdown for the model prompt."""
    out: list[str] = ["## Database Schema", ""]

    if schema.enums:
        out.append("### Enums")
        for e in schema.enums:
            out.append(f"- **{e.name}**: " + ", ".join(f"'{v}'" for v in e.values))
        out.append("")

    out.append("### Tables")
    out.append("")
    for t in schema.tables:
        out.append(f"#### {t.name}")
        out.append("| Column | Type | Nullable | Notes |")
        out.append("|--------|------|----------|-------|")
        for col in t.columns:
            notes: list[str] = []
            if col.is_primary_key:
                notes.append("PK")
            if col.foreign_key:
                notes.append(f"FK → {col.foreign_key.table}.{col.foreign_key.column}")
            if col.default_value:
                notes.append(f"default: {col.default_value}")
            nullable = "yes" if col.nullable else "no"
            out.append(f"| {col.name} | {col.type} | {nullable} | {', '.join(notes)} |")
        out.append("")

    rels = schema.relationships()
    if rels:
        out.append("### Relationships")
        for r in rels:
            out.append(f"- {r.from_table}.{r.from_column} → {r.to_table}.{r.to_column}")
        out.append("")

    return "\n".join(out) + "\n"
