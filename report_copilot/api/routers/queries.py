"""POST /execute-query -- run persisted components and merge their results."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body

from report_copilot.api.deps import error_response
from report_copilot.copilot.components import validate_components_payload
from report_copilot.copilot.query_engine import execute_components
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/execute-query")
def execute_query_endpoint(payload: Any = Body(...)):
    """Validate ``{components}`` against the contracts, then execute each one.

    A component whose query fails or is rejected comes back with an ``error``
    field; the rest of the report is unaffected.
    """
    parsed, issues = validate_components_payload(payload)
    if parsed is None:
        logger.warning("Component validation errors: %s", [i.to_dict() for i in issues])
        return error_response(400, "Invalid components provided", details=issues)

    try:
        components: list[dict[str, Any]] = execute_components(parsed.components)
    except Exception as exc:
        logger.exception("Query execution failed")
        return error_response(500, "Failed to execute queries", message=str(exc))

    return {"components": components}
