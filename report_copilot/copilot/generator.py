"""
Report generation orchestrator -- request text -> validated ReportConfig.

Per request this runs a bounded state machine (attempt counter plus the last
round's issues carried forward):

  1. build messages: the request, plus a corrective turn listing the previous
     attempt's issues
  2. forced structured-output call (tool ``generate_report_config``)
  3. structural validation against the component contracts
  4. semantic verification by a second model call (fails open)

Failures at 3 or 4 feed their issues into the next attempt.  After
``MAX_RETRIES`` attempts the last failure is returned with full detail.
A model-call failure counts as an attempt and propagates on the final one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from report_copilot.copilot.components import (
    ReportConfig,
    ValidationIssue,
    dump_component,
    dump_config,
    format_issues,
    validate_report_config,
)
from report_copilot.copilot.llm_client import StructuredCall, call_structured
from report_copilot.copilot.prompts import build_retry_messages, build_system_prompt
from report_copilot.copilot.tool_schemas import report_config_tool
from report_copilot.copilot.verifier import verify_report_config
from report_copilot.governance.schema_cache import SchemaPromptCache
from report_copilot.core.config import get_settings
from report_copilot.core.errors import ModelCallFailure, SemanticVerificationFailure
from report_copilot.core.logging import get_logger, kv
from report_copilot.core.utils import timer

logger = get_logger(__name__)

MAX_RETRIES = 3


@dataclass
class GenerationOutcome:
    success: bool
    attempts: int
    config: ReportConfig | None = None
    verified: bool = False
    verification_feedback: str = ""
    error: str = ""
    details: list[ValidationIssue] = field(default_factory=list)
    feedback: str | None = None
    suggestions: list[str] = field(default_factory=list)
    latency_ms: int = 0

    @property
    def status_code(self) -> int:
        return 200 if self.success else 422

    def to_response(self) -> dict[str, Any]:
        if self.success and self.config is not None:
            return {
                "config": {"components": [dump_component(c) for c in self.config.components]},
                "reportName": self.config.reportName,
                "message": f"Created report: {self.config.reportName}",
                "attempts": self.attempts,
                "verified": self.verified,
                "verificationFeedback": self.verification_feedback,
            }
        body: dict[str, Any] = {"error": self.error, "attempts": self.attempts}
        if self.feedback is not None:
            body["feedback"] = self.feedback
            body["suggestions"] = self.suggestions
        else:
            body["details"] = [i.to_dict() for i in self.details]
        return body



def _run_attempts(
    prompt: str,
    system_prompt: str,
    llm_call: StructuredCall,
    verify_call: StructuredCall | None,
    verify: bool,
    max_retries: int,
) -> GenerationOutcome:
    settings = get_settings()
    tool = report_config_tool()

    attempt = 0
    last_issues: list[ValidationIssue] | None = None

    while attempt < max_retries:
        is_last = attempt == max_retries - 1
        feedback = format_issues(last_issues) if last_issues else None
        messages = build_retry_messages(prompt, feedback)
        logger.info("Generation attempt %d/%d", attempt + 1, max_retries)

        # ── 1. Forced structured-output call ───────────
        try:
            raw = llm_call(
                system_prompt, messages, tool,
                model=settings.generation_model or None,
            )
        except ModelCallFailure as exc:
            logger.warning("Attempt %d/%d model call failed: %s", attempt + 1, max_retries, exc)
            if is_last:
                raise
            attempt += 1
            continue

        # ── 2. Structural validation ───────────────────
        config, issues = validate_report_config(raw)
        if config is None:
            last_issues = issues
            logger.warning(
                "Validation failed on attempt %d/%d: %s",
                attempt + 1, max_retries, [i.to_dict() for i in issues],
            )
            if is_last:
                return GenerationOutcome(
                    success=False,
                    attempts=max_retries,
                    error="Generated configuration is invalid after multiple attempts",
                    details=issues,
                )
            attempt += 1
            continue

        if not verify:
            logger.info("Report generated on attempt %d (verification disabled)", attempt + 1)
            return GenerationOutcome(
                success=True,
                attempts=attempt + 1,
                config=config,
                verified=False,
                verification_feedback="Verification disabled",
            )

        # ── 3. Semantic verification (fail-open) ───────
        verification = verify_report_config(prompt, dump_config(config), verify_call)
        try:
            verification.raise_for_verdict()
        except SemanticVerificationFailure as exc:
            logger.warning(
                "Semantic verification failed on attempt %d/%d: %s",
                attempt + 1, max_retries, exc.feedback,
            )
            if is_last:
                return GenerationOutcome(
                    success=False,
                    attempts=max_retries,
                    error="Generated configuration did not pass quality verification",
                    feedback=exc.feedback,
                    suggestions=exc.suggestions,
                )
            last_issues = [
                ValidationIssue(
                    path="verification",
                    message=(
                        f"Verification failed: {exc.feedback}. "
                        f"Suggestions: {', '.join(exc.suggestions)}"
                    ),
                )
            ]
            attempt += 1
            continue

        return GenerationOutcome(
            success=True,
            attempts=attempt + 1,
            config=config,
            verified=True,
            verification_feedback=verification.feedback,
        )

    raise ModelCallFailure("Failed to generate valid configuration")


def generate_report(
    prompt: str,
    *,
    schema_cache: SchemaPromptCache | None = None,
    llm_call: StructuredCall | None = None,
    verify_call: StructuredCall | None = None,
    verify: bool = True,
    today: date | None = None,
    max_retries: int = MAX_RETRIES,
) -> GenerationOutcome:
    """Turn a natural-language request into a validated report configuration.

    Parameters
    ----------
    prompt : str
        The user's request.
    schema_cache : SchemaPromptCache, optional
        Source of the schema text injected into the system prompt; a fresh
        cache over ``settings.schema_path`` when omitted.
    llm_call, verify_call : callable, optional
        Structured-output callables for generation and verification; both
        default to :func:`call_structured`.
    verify : bool
        Run the semantic verification step.
    today : date, optional
        Date injected into the prompt (defaults to today).

    Raises
    ------
    ValueError
        If *prompt* is empty.
    ModelCallFailure
        If the model call fails on the final attempt.
    """
    if not prompt or not prompt.strip():
        raise ValueError("Prompt is required")

    if schema_cache is None:
        schema_cache = SchemaPromptCache.from_path(get_settings().schema_path)
    system_prompt = build_system_prompt(schema_cache.get_prompt(), today)

    with timer() as t:
        outcome = _run_attempts(
            prompt, system_prompt, llm_call or call_structured,
            verify_call, verify, max_retries,
        )
    outcome.latency_ms = t["elapsed_ms"]

    logger.info(
        "generate_report | %s",
        kv(success=outcome.success, attempts=outcome.attempts, latency_ms=outcome.latency_ms),
    )
    return outcome
