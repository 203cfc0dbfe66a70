"""
POST /generate-report, /modify-report, /apply-modification -- report
creation and edit endpoints.
"""
from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, StrictFloat

from report_copilot.api.deps import error_response, get_schema_cache
from report_copilot.copilot.generator import generate_report
from report_copilot.copilot.modifier import (
    apply_modification,
    parse_modification,
    resolve_action,
    validate_action,
)
from report_copilot.core.config import get_settings
from report_copilot.core.errors import (
    InvalidModification,
    MissingActionField,
    ModelCallFailure,
    ResolutionFailure,
    StructuralValidationError,
)
from report_copilot.core.logging import get_logger
from report_copilot.governance.schema_cache import SchemaPromptCache

logger = get_logger(__name__)
router = APIRouter()


class GenerateReportRequest(BaseModel):
    prompt: str | None = Field(None, description="Natural-language report request")


class ModifyReportRequest(BaseModel):
    reportId: str | None = None
    prompt: str | None = Field(None, description="Free-text edit request")
    components: list[dict[str, Any]] | None = None


class ApplyModificationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    components: list[dict[str, Any]] = Field(..., min_length=1)
    action: Literal["rename", "resize", "move"]
    componentTitle: str
    newTitle: str | None = None
    newSize: dict[str, StrictFloat] | None = None
    direction: Literal["up", "down"] | None = None


@router.post("/generate-report")
def generate_report_endpoint(
    req: GenerateReportRequest,
    schema_cache: SchemaPromptCache = Depends(get_schema_cache),
):
    """Request text -> validated report configuration (bounded retry)."""
    if not req.prompt or not req.prompt.strip():
        return error_response(400, "Prompt is required")

    try:
        outcome = generate_report(
            req.prompt, schema_cache=schema_cache, verify=get_settings().verify_reports,
        )
    except ModelCallFailure as exc:
        logger.error("Report generation failed: %s", exc)
        return error_response(500, "Failed to generate report", message=str(exc))
    except Exception as exc:
        logger.exception("Report generation failed")
        return error_response(500, "Failed to generate report", message=str(exc))

    if outcome.success:
        return outcome.to_response()
    return error_response(outcome.status_code, **outcome.to_response())


@router.post("/modify-report")
def modify_report_endpoint(req: ModifyReportRequest):
    """Free-text edit -> one resolved rename / resize / move action."""
    if not req.prompt or not req.prompt.strip():
        return error_response(400, "Prompt is required")
    if not req.components:
        return error_response(400, "Components array is required")

    try:
        resolved = parse_modification(req.prompt, req.components)
    except StructuralValidationError as exc:
        return error_response(422, "Invalid action data", details=exc.issues)
    except MissingActionField as exc:
        return error_response(422, str(exc))
    except ResolutionFailure as exc:
        return error_response(404, str(exc), availableComponents=exc.available_titles)
    except Exception:
        logger.exception("Modification parsing failed (report=%s)", req.reportId)
        return error_response(500, "Failed to parse modification action")

    return resolved.to_response()


@router.post("/apply-modification")
def apply_modification_endpoint(req: ApplyModificationRequest):
    """Apply one structured action to a component list and return the new list."""
    raw_action = req.model_dump(exclude={"components"}, exclude_none=True)
    try:
        resolved = resolve_action(validate_action(raw_action), req.components)
        components = apply_modification(req.components, resolved)
    except StructuralValidationError as exc:
        return error_response(400, "Invalid action data", details=exc.issues)
    except (MissingActionField, InvalidModification) as exc:
        return error_response(400, str(exc))
    except ResolutionFailure as exc:
        return error_response(404, str(exc), availableComponents=exc.available_titles)

    return {"components": components, "message": resolved.message}
