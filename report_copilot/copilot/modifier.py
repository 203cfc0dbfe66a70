"""
Modification intent parser -- maps a free-text edit request onto one
discrete action (rename / resize / move) against a live component list,
and applies resolved actions to that list.

Flow:
  1. Render the current components as a numbered listing
  2. Forced structured call (tool ``modify_component``)
  3. Validate the action shape, then the per-action required field
  4. Resolve ``componentTitle`` against the real titles
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictStr,
    ValidationError,
    field_validator,
)

from report_copilot.copilot.components import issues_from_error
from report_copilot.copilot.llm_client import StructuredCall, call_structured
from report_copilot.copilot.prompts import MODIFICATION_PROMPT, build_modification_message
from report_copilot.copilot.tool_schemas import MODIFY_COMPONENT_TOOL
from report_copilot.core.config import get_settings
from report_copilot.core.errors import (
    InvalidModification,
    MissingActionField,
    ResolutionFailure,
    StructuralValidationError,
)
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LAYOUT: dict[str, int] = {"x": 0, "y": 0, "w": 2, "h": 2}
MAX_WIDTH = 4
MAX_HEIGHT = 10

_REQUIRED_FIELD = {"rename": "newTitle", "resize": "newSize", "move": "direction"}


class NewSize(BaseModel):
    model_config = ConfigDict(extra="ignore")

    w: StrictFloat = Field(ge=1, le=MAX_WIDTH)
    h: StrictFloat = Field(ge=1)


class ModificationAction(BaseModel):
    """One structured edit as emitted by the model.  ``null`` optionals mean absent."""

    model_config = ConfigDict(extra="ignore")

    action: Literal["rename", "resize", "move"]
    componentTitle: StrictStr
    newTitle: StrictStr | None = None
    newSize: NewSize | None = None
    direction: Literal["up", "down"] | None = None

    @field_validator("newTitle")
    @classmethod
    def _blank_title_is_absent(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


@dataclass(frozen=True)
class ResolvedModification:
    action: str
    component_title: str
    component_index: int
    new_title: str | None = None
    new_size: dict[str, float] | None = None
    direction: str | None = None

    @property
    def message(self) -> str:
        return f'Action parsed: {self.action} on "{self.component_title}"'

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "action": self.action,
            "componentTitle": self.component_title,
            "componentIndex": self.component_index,
        }
        if self.new_title is not None:
            body["newTitle"] = self.new_title
        if self.new_size is not None:
            body["newSize"] = self.new_size
        if self.direction is not None:
            body["direction"] = self.direction
        body["message"] = self.message
        return body


# ── Context & resolution ─────────────────────────────────


def build_components_context(components: list[dict[str, Any]]) -> str:
    lines = []
    for i, comp in enumerate(components, 1):
        layout = comp.get("layout")
        where = ""
        if layout:
            where = (
                f" (position: {layout.get('x')},{layout.get('y')}, "
                f"size: {layout.get('w')}x{layout.get('h')})"
            )
        lines.append(f'{i}. "{comp.get("title", "")}" - Type: {comp.get("type", "unknown")}{where}')
    return "\n".join(lines)


def resolve_component_title(title: str, titles: list[str]) -> int:
    """Resolve *title* to an index: exact, then case-insensitive, then substring.

    The first pass that yields exactly one candidate wins.

    Raises
    ------
    ResolutionFailure
        Nothing matched, or every pass that matched was ambiguous.
    """
    wanted = title.strip().lower()
    passes = (
        lambda t: t == title,
        lambda t: t.lower() == wanted,
        lambda t: bool(wanted) and (wanted in t.lower() or t.lower() in wanted),
    )
    ambiguous = False
    for matches in passes:
        candidates = [i for i, t in enumerate(titles) if matches(t)]
        if len(candidates) == 1:
            return candidates[0]
        if candidates:
            ambiguous = True

    reason = "is ambiguous" if ambiguous else "not found"
    logger.warning('Could not resolve component title "%s" (%s)', title, reason)
    raise ResolutionFailure(title, titles, reason=reason)


def validate_action(raw: Any) -> ModificationAction:
    """Validate the action shape and the field its action requires."""
    try:
        action = ModificationAction.model_validate(raw)
    except ValidationError as exc:
        raise StructuralValidationError(issues_from_error(exc)) from exc

    required = _REQUIRED_FIELD[action.action]
    if getattr(action, required) is None:
        raise MissingActionField(action.action, required)
    return action


def resolve_action(action: ModificationAction, components: list[dict[str, Any]]) -> ResolvedModification:
    titles = [str(c.get("title", "")) for c in components]
    index = resolve_component_title(action.componentTitle, titles)
    return ResolvedModification(
        action=action.action,
        component_title=titles[index],
        component_index=index,
        new_title=action.newTitle,
        new_size=action.newSize.model_dump() if action.newSize else None,
        direction=action.direction,
    )


def parse_modification(
    prompt: str,
    components: list[dict[str, Any]],
    *,
    llm_call: StructuredCall | None = None,
) -> ResolvedModification:
    """Ask the model which edit *prompt* describes and resolve its target.

    Raises
    ------
    ValueError
        Empty prompt or component list.
    ModelCallFailure
        The model returned no structured action.
    StructuralValidationError
        The action object does not match the tool schema.
    MissingActionField
        The chosen action lacks the field it needs.
    ResolutionFailure
        The target title matches no component.
    """
    if not prompt or not prompt.strip():
        raise ValueError("Prompt is required")
    if not components:
        raise ValueError("Components array is required")

    llm_call = llm_call or call_structured
    message = build_modification_message(prompt, build_components_context(components))
    raw = llm_call(
        MODIFICATION_PROMPT,
        [{"role": "user", "content": message}],
        MODIFY_COMPONENT_TOOL,
        model=get_settings().modification_model or None,
    )
    logger.info("Model returned modification action: %s", raw)

    resolved = resolve_action(validate_action(raw), components)
    logger.info(resolved.message)
    return resolved


# ── Application ──────────────────────────────────────────


def _clamp(value: float, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def apply_modification(
    components: list[dict[str, Any]],
    resolved: ResolvedModification,
) -> list[dict[str, Any]]:
    """Return a new component list with *resolved* applied; the input is untouched.

    Raises
    ------
    InvalidModification
        Index out of range, blank new title, or a move past either end.
    """
    index = resolved.component_index
    if not 0 <= index < len(components):
        raise InvalidModification(f"Component index {index} is out of range")

    updated = copy.deepcopy(components)
    target = updated[index]

    if resolved.action == "rename":
        new_title = (resolved.new_title or "").strip()
        if not new_title:
            raise InvalidModification("newTitle must not be empty")
        target["title"] = new_title

    elif resolved.action == "resize":
        if not resolved.new_size:
            raise InvalidModification("newSize is required for resize action")
        layout = dict(target.get("layout") or DEFAULT_LAYOUT)
        layout["w"] = _clamp(resolved.new_size["w"], 1, MAX_WIDTH)
        layout["h"] = _clamp(resolved.new_size["h"], 1, MAX_HEIGHT)
        target["layout"] = layout

    elif resolved.action == "move":
        offset = -1 if resolved.direction == "up" else 1
        other = index + offset
        if not 0 <= other < len(updated):
            edge = "first" if offset < 0 else "last"
            raise InvalidModification(
                f'Cannot move "{resolved.component_title}" {resolved.direction}: it is already {edge}'
            )
        updated[index], updated[other] = updated[other], updated[index]

    else:
        raise InvalidModification(f"Unknown action: {resolved.action}")

    logger.info("Applied %s to component %d", resolved.action, index)
    return updated
