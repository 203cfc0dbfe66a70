"""
Unit tests -- modification intent parser, title resolution and application.
"""
import pytest

from report_copilot.copilot.modifier import (
    ResolvedModification,
    apply_modification,
    build_components_context,
    parse_modification,
    resolve_component_title,
    validate_action,
)
from report_copilot.core.errors import (
    InvalidModification,
    MissingActionField,
    ResolutionFailure,
    StructuralValidationError,
)

_COMPONENTS = [
    {"type": "kpi", "title": "Daily Active Users", "query": "SELECT 1", "layout": {"x": 0, "y": 0, "w": 1, "h": 1}},
    {"type": "line_chart", "title": "Signups Over Time", "query": "SELECT 1"},
    {"type": "table", "title": "Top Accounts", "query": "SELECT 1", "columns": ["email"]},
]


def _stub(reply):
    calls = []

    def call(system, messages, tool, *, model=None):
        calls.append(messages)
        return reply

    call.calls = calls
    return call


# ── Title resolution ────────────────────────────────────

def test_resolve_exact():
    assert resolve_component_title("Daily Active Users", ["Daily Active Users"]) == 0


def test_resolve_case_insensitive():
    assert resolve_component_title("daily active users", ["Daily Active Users"]) == 0


def test_resolve_substring():
    assert resolve_component_title("Active Users", ["Daily Active Users"]) == 0


def test_resolve_substring_either_direction():
    assert resolve_component_title("the Top Accounts table", ["Signups", "Top Accounts"]) == 1


def test_resolve_not_found_lists_titles():
    with pytest.raises(ResolutionFailure) as excinfo:
        resolve_component_title("Nonexistent", ["Daily Active Users"])
    assert excinfo.value.available_titles == ["Daily Active Users"]
    assert "not found" in str(excinfo.value)


def test_resolve_exact_beats_substring():
    assert resolve_component_title("Users", ["Active Users", "Users"]) == 1


def test_resolve_ambiguous_substring_fails():
    with pytest.raises(ResolutionFailure) as excinfo:
        resolve_component_title("users", ["Active Users", "Paying Users"])
    assert excinfo.value.reason == "is ambiguous"


# ── Context listing ─────────────────────────────────────

def test_components_context():
    text = build_components_context(_COMPONENTS)
    lines = text.splitlines()
    assert lines[0] == '1. "Daily Active Users" - Type: kpi (position: 0,0, size: 1x1)'
    assert lines[1] == '2. "Signups Over Time" - Type: line_chart'


# ── Action validation ───────────────────────────────────

def test_resize_accepts_int_and_float_sizes():
    action = validate_action({"action": "resize", "componentTitle": "x", "newSize": {"w": 3, "h": 2.5}})
    assert action.newSize.w == 3
    assert action.newSize.h == 2.5


def test_null_optionals_are_absent():
    action = validate_action(
        {"action": "move", "componentTitle": "x", "direction": "up", "newTitle": None, "newSize": None}
    )
    assert action.newTitle is None and action.newSize is None


@pytest.mark.parametrize("raw, field", [
    ({"action": "rename", "componentTitle": "x"}, "newTitle"),
    ({"action": "rename", "componentTitle": "x", "newTitle": "  "}, "newTitle"),
    ({"action": "resize", "componentTitle": "x"}, "newSize"),
    ({"action": "move", "componentTitle": "x", "direction": None}, "direction"),
])
def test_missing_action_field(raw, field):
    with pytest.raises(MissingActionField) as excinfo:
        validate_action(raw)
    assert str(excinfo.value) == f"{field} is required for {raw['action']} action"


@pytest.mark.parametrize("raw", [
    {"action": "delete", "componentTitle": "x"},
    {"action": "resize", "componentTitle": "x", "newSize": {"w": 5, "h": 1}},
    {"action": "resize", "componentTitle": "x", "newSize": {"w": 2, "h": 0}},
    {"action": "resize", "componentTitle": "x", "newSize": {"w": "3", "h": True}},
    {"action": "resize", "componentTitle": "x", "newSize": {"w": 2, "h": "4"}},
    {"action": "move", "componentTitle": "x", "direction": "left"},
    {"action": "move", "direction": "up"},
])
def test_invalid_action_shape(raw):
    with pytest.raises(StructuralValidationError):
        validate_action(raw)


# ── Parsing end-to-end ──────────────────────────────────

def test_parse_modification_resolves_title():
    stub = _stub({"action": "rename", "componentTitle": "daily active users", "newTitle": "DAU"})
    resolved = parse_modification("rename daily active users to DAU", _COMPONENTS, llm_call=stub)
    assert resolved.component_index == 0
    assert resolved.component_title == "Daily Active Users"
    body = resolved.to_response()
    assert body == {
        "action": "rename",
        "componentTitle": "Daily Active Users",
        "componentIndex": 0,
        "newTitle": "DAU",
        "message": 'Action parsed: rename on "Daily Active Users"',
    }
    assert '1. "Daily Active Users" - Type: kpi' in stub.calls[0][0]["content"]


def test_parse_modification_with_mock_provider():
    resolved = parse_modification("resize Top Accounts to 4x3", _COMPONENTS)
    assert resolved.component_index == 2
    assert resolved.new_size == {"w": 4, "h": 3}


def test_parse_modification_requires_prompt():
    with pytest.raises(ValueError):
        parse_modification("", _COMPONENTS, llm_call=_stub({}))


# ── Application ─────────────────────────────────────────

def _resolved(action, index, **kw):
    return ResolvedModification(action=action, component_title=_COMPONENTS[index]["title"], component_index=index, **kw)


def test_apply_rename_trims_and_copies():
    out = apply_modification(_COMPONENTS, _resolved("rename", 1, new_title="  Signups  "))
    assert out[1]["title"] == "Signups"
    assert _COMPONENTS[1]["title"] == "Signups Over Time"


def test_apply_resize_clamps():
    out = apply_modification(_COMPONENTS, _resolved("resize", 0, new_size={"w": 4.0, "h": 40.0}))
    assert out[0]["layout"] == {"x": 0, "y": 0, "w": 4, "h": 10}
    assert _COMPONENTS[0]["layout"]["w"] == 1


def test_apply_resize_default_layout():
    out = apply_modification(_COMPONENTS, _resolved("resize", 1, new_size={"w": 3, "h": 1}))
    assert out[1]["layout"] == {"x": 0, "y": 0, "w": 3, "h": 1}


def test_apply_move_swaps_neighbours():
    out = apply_modification(_COMPONENTS, _resolved("move", 1, direction="up"))
    assert [c["title"] for c in out] == ["Signups Over Time", "Daily Active Users", "Top Accounts"]
    out = apply_modification(_COMPONENTS, _resolved("move", 1, direction="down"))
    assert [c["title"] for c in out] == ["Daily Active Users", "Top Accounts", "Signups Over Time"]


@pytest.mark.parametrize("index, direction", [(0, "up"), (2, "down")])
def test_apply_move_past_edge_rejected(index, direction):
    with pytest.raises(InvalidModification):
        apply_modification(_COMPONENTS, _resolved("move", index, direction=direction))


def test_apply_index_out_of_range():
    bad = ResolvedModification(action="rename", component_title="x", component_index=9, new_title="y")
    with pytest.raises(InvalidModification):
        apply_modification(_COMPONENTS, bad)
