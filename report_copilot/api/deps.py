"""
Shared API dependencies and response helpers.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi.responses import JSONResponse

from report_copilot.copilot.components import ValidationIssue
from report_copilot.core.config import get_settings
from report_copilot.governance.schema_cache import SchemaPromptCache


@lru_cache
def get_schema_cache() -> SchemaPromptCache:
    """The application's single schema cache (override in tests)."""
    return SchemaPromptCache.from_path(get_settings().schema_path)


def error_response(status_code: int, error: str, **extra: Any) -> JSONResponse:
    """Structured ``{error, ...}`` body; ``ValidationIssue`` lists are serialised."""
    body: dict[str, Any] = {"error": error}
    for key, value in extra.items():
        if isinstance(value, list) and value and isinstance(value[0], ValidationIssue):
            value = [i.to_dict() for i in value]
        body[key] = value
    return JSONResponse(status_code=status_code, content=body)
