"""
Semantic verification -- a second, independent model call that judges
whether a structurally valid report actually answers the user's request.

This is a quality gate, not a safety gate: if the verifier itself fails
(transport error, malformed reply) the configuration is accepted.  A reply
that omits ``isValid`` counts as a rejection.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, StrictBool, StrictStr

from report_copilot.copilot.llm_client import StructuredCall, call_structured
from report_copilot.copilot.prompts import VERIFICATION_PROMPT, build_verification_message
from report_copilot.copilot.tool_schemas import VERIFICATION_TOOL
from report_copilot.core.config import get_settings
from report_copilot.core.errors import SemanticVerificationFailure
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)


class _VerificationReply(BaseModel):
    isValid: StrictBool = False
    feedback: StrictStr = "No feedback provided"
    suggestions: list[StrictStr] = Field(default_factory=list)


@dataclass
class VerificationResult:
    is_valid: bool
    feedback: str
    suggestions: list[str] = field(default_factory=list)
    skipped: bool = False

    def raise_for_verdict(self) -> None:
        if not self.is_valid:
            raise SemanticVerificationFailure(self.feedback, self.suggestions)


def verify_report_config(
    prompt: str,
    config: dict[str, Any],
    llm_call: StructuredCall | None = None,
) -> VerificationResult:
    """Ask the QA model whether *config* answers *prompt*.  Never raises."""
    llm_call = llm_call or call_structured
    try:
        raw = llm_call(
            VERIFICATION_PROMPT,
            [{"role": "user", "content": build_verification_message(prompt, config)}],
            VERIFICATION_TOOL,
            model=get_settings().verification_model or None,
        )
        reply = _VerificationReply.model_validate(raw)
    except Exception as exc:
        logger.warning("Verification failed, accepting config: %s", exc)
        return VerificationResult(
            is_valid=True,
            feedback="Verification step skipped due to error",
            suggestions=[],
            skipped=True,
        )

    return VerificationResult(
        is_valid=reply.isValid,
        feedback=reply.feedback,
        suggestions=list(reply.suggestions),
    )
