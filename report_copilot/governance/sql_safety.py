"""
Deterministic read-only SQL gate (non-LLM).

Every query produced by the model passes through here before it reaches the
database.  The gate classifies statements; it does not parameterise values.

Checks performed (in order):
  1. Input is a non-empty string
  2. Something is left after stripping -- and /* */ comments
  3. Statement starts with SELECT or WITH (CTE)
  4. No denylisted keyword appears as a whole word anywhere
  5. At most one statement (a trailing semicolon is tolerated)

The keyword scan is a denylist, not a parser: a column that happens to be
named like a keyword is rejected too.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from report_copilot.core.errors import SQLValidationError
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)

FORBIDDEN_KEYWORDS: tuple[str, ...] = (
    "INSERT", "UPDATE", "DELETE", "DROP", "ALTER", "TRUNCATE", "CREATE",
    "REPLACE", "GRANT", "REVOKE", "EXECUTE", "EXEC", "CALL", "BEGIN",
    "COMMIT", "ROLLBACK", "SAVEPOINT", "SET ", "COPY", "VACUUM", "ANALYZE",
    "CLUSTER", "REINDEX", "LOCK", "UNLOCK", "LOAD", "UNLOAD",
)

# ── Compiled patterns ────────────────────────────────────

_LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")

_KEYWORD_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (kw.strip(), re.compile(rf"\b{re.escape(kw)}\b", re.IGNORECASE))
    for kw in FORBIDDEN_KEYWORDS
]


@dataclass(frozen=True)
class SafetyVerdict:
    is_valid: bool
    error: str | None = None


def _strip_comments(query: str) -> str:
    """Remove comments until none remain (``-/**/-`` becomes ``--`` after one pass)."""
    while True:
        stripped = _BLOCK_COMMENT.sub("", _LINE_COMMENT.sub("", query))
        if stripped == query:
            return stripped
        query = stripped


def normalize_sql(query: str) -> str:
    """Comment-free, single-spaced, upper-cased form used for classification."""
    return _WHITESPACE.sub(" ", _strip_comments(query)).strip().upper()


def validate_read_only_sql(query: str) -> SafetyVerdict:
    """Classify *query*; ``is_valid`` is True only for a single read-only statement."""
    if not isinstance(query, str) or not query:
        return SafetyVerdict(False, "Query must be a non-empty string")

    normalized = normalize_sql(query)
    if not normalized:
        return SafetyVerdict(False, "Query is empty after removing comments")

    if not (normalized.startswith("SELECT") or normalized.startswith("WITH")):
        return SafetyVerdict(
            False,
            "Query must start with SELECT or WITH (for CTEs). Only read-only queries are allowed.",
        )

    for keyword, pattern in _KEYWORD_PATTERNS:
        if pattern.search(normalized):
            return SafetyVerdict(
                False,
                f"Forbidden SQL keyword detected: {keyword}. Only SELECT queries are allowed.",
            )

    semicolon = normalized.find(";")
    if semicolon != -1 and normalized[semicolon + 1:].strip():
        return SafetyVerdict(
            False,
            "Multiple SQL statements detected. Only single SELECT queries are allowed.",
        )

    return SafetyVerdict(True)


def sanitize_sql(query: str) -> str:
    """Strip comments and surrounding whitespace; the result is what gets executed."""
    return _strip_comments(query).strip()


def ensure_read_only(query: str) -> str:
    """Validate *query* and return its sanitised form.

    Raises
    ------
    SQLValidationError
        If the gate rejects the query.  The caller must not execute it.
    """
    verdict = validate_read_only_sql(query)
    if not verdict.is_valid:
        logger.warning("SQL rejected by safety gate: %s", verdict.error)
        raise SQLValidationError(verdict.error or "invalid query")
    return sanitize_sql(query)
