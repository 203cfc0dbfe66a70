"""
Read-only SQL executor -- the default ``sql -> rows`` callable used by the
query engine.

``execute_readonly``:
  1. Opens a READ ONLY transaction with a statement_timeout
  2. Sends the SQL to the driver as-is (no bind-parameter parsing, so
     ``::date`` casts and literal colons survive)
  3. Converts Decimal/date/datetime to JSON-safe Python types

The SQL must already have passed the safety gate.
"""
from __future__ import annotations

import datetime
import decimal
import uuid
from typing import Any

from report_copilot.core.logging import get_logger
from report_copilot.core.utils import timer
from report_copilot.db.connection import readonly_connection

logger = get_logger(__name__)


def _serialise_value(val: Any) -> Any:
    """Convert DB types to JSON-serialisable Python types."""
    if isinstance(val, decimal.Decimal):
        return float(val)
    if isinstance(val, (datetime.date, datetime.datetime)):
        return val.isoformat()
    if isinstance(val, datetime.timedelta):
        return str(val)
    if isinstance(val, uuid.UUID):
        return str(val)
    return val


def execute_readonly(sql: str, timeout_ms: int | None = None) -> list[dict[str, Any]]:
    """Execute one read-only statement and return rows as serialisable dicts.

    Raises
    ------
    sqlalchemy.exc.SQLAlchemyError
        If the driver rejects or fails the query.
    """
    logger.info("Executing SQL (%d chars)", len(sql))

    with timer() as t:
        with readonly_connection(timeout_ms) as conn:
            result = conn.execution_options(no_parameters=True).exec_driver_sql(sql)
            columns = list(result.keys())
            rows = [
                {col: _serialise_value(val) for col, val in zip(columns, row)}
                for row in result.fetchall()
            ]

    logger.info("Returned %d rows in %d ms", len(rows), t["elapsed_ms"])
    return rows
