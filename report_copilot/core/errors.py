"""
Error taxonomy for the report pipeline.

  StructuralValidationError   -- output does not match the component contract (retried)
  SemanticVerificationFailure -- valid shape, wrong intent (retried, verifier fails open)
  SQLValidationError          -- query is not a single read-only statement (never retried)
  ModelCallFailure            -- no structured block / transport error (counts as an attempt)
  ResolutionFailure           -- modification target title does not exist (terminal)
  MissingActionField          -- action chosen without the field it requires (terminal)
  InvalidModification         -- action cannot be applied to the component list
"""
from __future__ import annotations

from typing import Any


class ReportCopilotError(Exception):
    """Base class for every error raised by the pipeline."""


class StructuralValidationError(ReportCopilotError):
    def __init__(self, issues: list[Any]):
        self.issues = list(issues)
        super().__init__(f"{len(self.issues)} validation issue(s)")


class SemanticVerificationFailure(ReportCopilotError):
    def __init__(self, feedback: str, suggestions: list[str] | None = None):
        self.feedback = feedback
        self.suggestions = suggestions or []
        super().__init__(feedback)


class SQLValidationError(ReportCopilotError):
    """Raised by the safety gate; the query must not be executed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"SQL validation failed: {reason}")


class ModelCallFailure(ReportCopilotError):
    pass


class ResolutionFailure(ReportCopilotError):
    def __init__(self, title: str, available_titles: list[str], reason: str = "not found"):
        self.title = title
        self.available_titles = list(available_titles)
        self.reason = reason
        super().__init__(f'Component "{title}" {reason}')


class MissingActionField(ReportCopilotError):
    def __init__(self, action: str, field: str):
        self.action = action
        self.field = field
        super().__init__(f"{field} is required for {action} action")


class InvalidModification(ReportCopilotError):
    pass
