"""
Schema prompt cache.

Holds the parsed data-definition file and its rendered prompt text.  The
first ``get_prompt()`` / ``get_schema()`` call parses the source; every later
call returns the memoised value until ``invalidate()`` is called.  There is no
TTL -- invalidation is the only way to force a re-parse.

The cache is an ordinary object: the API layer owns one instance and passes
it to the prompt builder, and tests build their own.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

from report_copilot.governance.schema_parser import (
    ParsedSchema,
    format_schema_for_prompt,
    load_schema,
    parse_schema_sql,
)
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)


class SchemaPromptCache:
    """Thread-safe, lazily-initialised, invalidable schema cache.

    Parameters
    ----------
    loader : callable
        Zero-argument function returning a ``ParsedSchema``.  Use
        :meth:`from_path` or :meth:`from_sql` for the common cases.
    """

    def __init__(self, loader: Callable[[], ParsedSchema]):
        self._loader = loader
        self._lock = threading.Lock()
        self._schema: ParsedSchema | None = None
        self._prompt: str | None = None
        self._loads = 0
        self._hits = 0

    @classmethod
    def from_path(cls, path: str | Path) -> "SchemaPromptCache":
        return cls(lambda: load_schema(path))

    @classmethod
    def from_sql(cls, source: str) -> "SchemaPromptCache":
        return cls(lambda: parse_schema_sql(source))

    # ── Public API ──────────────────────────────────────

    def get_schema(self) -> ParsedSchema:
        with self._lock:
            self._ensure_loaded()
            return self._schema  # type: ignore[return-value]

    def get_prompt(self) -> str:
        """Rendered schema text for the system prompt."""
        with self._lock:
            self._ensure_loaded()
            return self._prompt  # type: ignore[return-value]

    def invalidate(self) -> bool:
        """Drop the cached value.  Returns True if something was cached."""
        with self._lock:
            was_loaded = self._schema is not None
            self._schema = None
            self._prompt = None
        if was_loaded:
            logger.info("Schema cache invalidated")
        return was_loaded

    @property
    def is_loaded(self) -> bool:
        return self._schema is not None

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "loaded": self._schema is not None,
                "loads": self._loads,
                "hits": self._hits,
                "tables": len(self._schema.tables) if self._schema else 0,
            }

    # ── Internals ───────────────────────────────────────

    def _ensure_loaded(self) -> None:
        if self._schema is not None:
            self._hits += 1
            return
        schema = self._loader()
        self._schema = schema
        self._prompt = format_schema_for_prompt(schema)
        self._loads += 1
        logger.info("Schema parsed: %d tables, %d enums", len(schema.tables), len(schema.enums))
