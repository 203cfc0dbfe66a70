"""
Unit tests -- read-only SQL gate.
"""
import pytest

from report_copilot.core.errors import SQLValidationError
from report_copilot.governance.sql_safety import (
    ensure_read_only,
    normalize_sql,
    sanitize_sql,
    validate_read_only_sql,
)

_SAFE_SQL = """\
SELECT DATE("timestamp") AS date, COUNT(DISTINCT user_id) AS value
FROM events
WHERE "timestamp" >= CURRENT_DATE - INTERVAL '30 days'
GROUP BY DATE("timestamp")
ORDER BY date"""


def test_safe_sql_passes():
    verdict = validate_read_only_sql(_SAFE_SQL)
    assert verdict.is_valid, verdict.error
    assert verdict.error is None


def test_cte_passes():
    sql = "WITH t AS (SELECT user_id FROM events) SELECT COUNT(*) AS value FROM t"
    assert validate_read_only_sql(sql).is_valid


def test_lowercase_select_passes():
    assert validate_read_only_sql("select count(*) as value from users").is_valid


def test_trailing_semicolon_allowed():
    assert validate_read_only_sql("SELECT 1 AS value;").is_valid
    assert validate_read_only_sql("SELECT 1 AS value;   \n").is_valid


# ── Empty / non-string input ────────────────────────────

@pytest.mark.parametrize("query", ["", None, 42])
def test_non_string_or_empty_rejected(query):
    verdict = validate_read_only_sql(query)
    assert not verdict.is_valid
    assert "non-empty string" in verdict.error


def test_comment_only_rejected():
    verdict = validate_read_only_sql("-- just a comment\n/* and another */")
    assert not verdict.is_valid
    assert "empty after removing comments" in verdict.error


# ── Statement kind ──────────────────────────────────────

def test_insert_rejected_as_not_select():
    verdict = validate_read_only_sql("INSERT INTO users (email) VALUES ('a@b.c')")
    assert not verdict.is_valid
    assert "SELECT or WITH" in verdict.error


# ── Denylist ────────────────────────────────────────────

@pytest.mark.parametrize("sql, keyword", [
    ("SELECT 1 AS value FROM users WHERE id IN (DELETE FROM users RETURNING id)", "DELETE"),
    ("WITH x AS (UPDATE users SET email = 'x' RETURNING id) SELECT * FROM x", "UPDATE"),
    ("SELECT pg_sleep(1); DROP TABLE users", "DROP"),
    ("SELECT * FROM users FOR UPDATE", "UPDATE"),
    ("select 1 as value from users lock", "LOCK"),
])
def test_forbidden_keyword_rejected(sql, keyword):
    verdict = validate_read_only_sql(sql)
    assert not verdict.is_valid
    assert f"Forbidden SQL keyword detected: {keyword}" in verdict.error


def test_keyword_inside_identifier_allowed():
    # whole-word match only: "created_at" and "updated_at" are fine
    sql = "SELECT created_at, updated_at FROM subscriptions"
    assert validate_read_only_sql(sql).is_valid


def test_keyword_hidden_in_comment_ignored():
    sql = "SELECT COUNT(*) AS value FROM users -- DROP TABLE users"
    assert validate_read_only_sql(sql).is_valid


def test_offset_is_not_set():
    assert validate_read_only_sql("SELECT id FROM users LIMIT 10 OFFSET 5").is_valid


# ── Multiple statements ─────────────────────────────────

def test_multiple_statements_rejected():
    verdict = validate_read_only_sql("SELECT 1 AS value; SELECT 2 AS value")
    assert not verdict.is_valid
    assert "Multiple SQL statements" in verdict.error


def test_statement_after_comment_semicolon_rejected():
    verdict = validate_read_only_sql("SELECT 1 AS value; /* c */ SELECT 2")
    assert not verdict.is_valid


# ── Normalisation & sanitisation ────────────────────────

def test_normalize_sql_strips_and_uppercases():
    sql = "select  id\n  -- note\nfrom /* block */ users"
    assert normalize_sql(sql) == "SELECT ID FROM USERS"


def test_sanitize_sql_strips_comments_keeps_case():
    sql = "  -- header\nSELECT id FROM users /* trailing */  "
    assert sanitize_sql(sql) == "SELECT id FROM users"


def test_ensure_read_only_returns_sanitised():
    assert ensure_read_only("/* hi */ SELECT 1 AS value") == "SELECT 1 AS value"


def test_ensure_read_only_raises_with_reason():
    with pytest.raises(SQLValidationError) as excinfo:
        ensure_read_only("DROP TABLE users")
    assert "SELECT or WITH" in excinfo.value.reason
    assert str(excinfo.value).startswith("SQL validation failed:")


def test_comment_spliced_line_comment_stripped():
    assert sanitize_sql("SELECT 1 -/**/- x; DROP TABLE t") == "SELECT 1"


@pytest.mark.parametrize("sql", [
    _SAFE_SQL,
    "SELECT 1 -/**/- x",
    "SELECT 1 -/**/- x; DROP TABLE t",
    "SELECT '/*', 1 /* x */",
    "SELECT 1; -- c",
    "SELECT 1 AS value; /* c */ SELECT 2",
    "/* -- */ SELECT 1",
    "-- only a comment",
    "  /* lead */ WITH t AS (SELECT 1) SELECT * FROM t",
    "SELECT id FROM users /* DELETE */ WHERE id = 1",
    "UPDATE users SET x = 1 -- SELECT",
])
def test_gate_verdict_stable_under_sanitize(sql):
    assert validate_read_only_sql(sanitize_sql(sql)).is_valid == validate_read_only_sql(sql).is_valid
    assert sanitize_sql(sanitize_sql(sql)) == sanitize_sql(sql)
