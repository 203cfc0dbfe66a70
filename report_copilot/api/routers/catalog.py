"""
GET /schema, POST /schema/invalidate, GET /components/catalog -- metadata endpoints.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from report_copilot.api.deps import get_schema_cache
from report_copilot.copilot.catalog import load_catalog
from report_copilot.governance.schema_cache import SchemaPromptCache

router = APIRouter()


class InvalidateResponse(BaseModel):
    invalidated: bool


@router.get("/schema")
def get_schema(schema_cache: SchemaPromptCache = Depends(get_schema_cache)) -> dict:
    """Parsed tables/enums plus the exact text injected into the generation prompt."""
    schema = schema_cache.get_schema()
    return {
        "prompt": schema_cache.get_prompt(),
        "tables": [asdict(t) for t in schema.tables],
        "enums": [asdict(e) for e in schema.enums],
        "relationships": [asdict(r) for r in schema.relationships()],
        "cache": schema_cache.stats(),
    }


@router.post("/schema/invalidate", response_model=InvalidateResponse)
def invalidate_schema(schema_cache: SchemaPromptCache = Depends(get_schema_cache)) -> InvalidateResponse:
    """Drop the cached schema; the next request re-reads the definition file."""
    return InvalidateResponse(invalidated=schema_cache.invalidate())


@router.get("/components/catalog")
def components_catalog() -> dict:
    """Component kinds, their query contracts and default sizes."""
    catalog = load_catalog()
    return {
        "version": catalog.version,
        "components": catalog.get_kinds_list(),
        "guidelines": catalog.guidelines,
    }
