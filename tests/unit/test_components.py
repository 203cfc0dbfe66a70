"""
Unit tests -- component contracts and issue formatting.
"""
import pytest
from pydantic import ValidationError

from report_copilot.copilot.components import (
    COMPONENT_TYPES,
    KpiComponent,
    MetricsGridComponent,
    ValidationIssue,
    dump_component,
    dump_config,
    format_issues,
    format_loc,
    validate_component,
    validate_components_payload,
    validate_report_config,
)

_KPI = {"type": "kpi", "title": "Total Users", "query": "SELECT COUNT(*) AS value FROM users"}
_LINE = {
    "type": "line_chart",
    "title": "Signups",
    "dateRange": "last_30_days",
    "query": "SELECT DATE(created_at) AS date, COUNT(*) AS value FROM users GROUP BY 1 ORDER BY 1",
}


def _paths(issues):
    return [i.path for i in issues]


# ── Valid configurations ────────────────────────────────

def test_valid_report_config():
    config, issues = validate_report_config({"reportName": "Users", "components": [_KPI, _LINE]})
    assert issues == []
    assert config.reportName == "Users"
    assert isinstance(config.components[0], KpiComponent)
    assert config.components[1].dateRange == "last_30_days"


def test_every_kind_accepted():
    for kind in COMPONENT_TYPES:
        if kind == "metrics_grid":
            raw = {"type": kind, "title": "G", "metrics": [{"label": "A", "query": "SELECT 1"}]}
        elif kind == "table":
            raw = {"type": kind, "title": "T", "query": "SELECT 1", "columns": ["a"]}
        else:
            raw = {"type": kind, "title": "C", "query": "SELECT 1"}
        assert validate_component(raw).type == kind


def test_custom_date_range_accepted():
    raw = dict(_KPI, dateRange={"start": "2024-01-01", "end": "2024-03-31"})
    comp = validate_component(raw)
    assert comp.dateRange.start == "2024-01-01"


def test_extra_keys_dropped():
    comp = validate_component(dict(_KPI, colour="blue"))
    assert "colour" not in dump_component(comp)


# ── Structural failures ─────────────────────────────────

def test_empty_components_rejected():
    config, issues = validate_report_config({"reportName": "x", "components": []})
    assert config is None
    assert "components" in _paths(issues)


def test_missing_report_name():
    _, issues = validate_report_config({"components": [_KPI]})
    assert "reportName" in _paths(issues)


def test_empty_query_rejected_with_dotted_path():
    bad = dict(_LINE, query="")
    _, issues = validate_report_config({"reportName": "x", "components": [_KPI, bad]})
    assert _paths(issues) == ["components.1.query"]


def test_missing_query_on_kpi():
    _, issues = validate_report_config({"reportName": "x", "components": [{"type": "kpi", "title": "t"}]})
    assert "components.0.query" in _paths(issues)


def test_unknown_type_rejected():
    _, issues = validate_report_config(
        {"reportName": "x", "components": [{"type": "gauge", "title": "t", "query": "SELECT 1"}]}
    )
    assert _paths(issues) == ["components.0"]


def test_table_requires_columns():
    raw = {"type": "table", "title": "T", "query": "SELECT 1", "columns": []}
    with pytest.raises(ValidationError):
        validate_component(raw)


def test_metrics_grid_requires_metrics():
    _, issues = validate_report_config(
        {"reportName": "x", "components": [{"type": "metrics_grid", "title": "G", "metrics": []}]}
    )
    assert "components.0.metrics" in _paths(issues)


def test_metrics_grid_has_no_query_field():
    grid = validate_component(
        {"type": "metrics_grid", "title": "G", "query": "SELECT 1", "metrics": [{"label": "A", "query": "SELECT 1"}]}
    )
    assert isinstance(grid, MetricsGridComponent)
    assert "query" not in dump_component(grid)


def test_custom_range_start_after_end():
    raw = dict(_KPI, dateRange={"start": "2024-03-01", "end": "2024-01-01"})
    _, issues = validate_report_config({"reportName": "x", "components": [raw]})
    assert any(
        i.path == "components.0.dateRange" and "Start date must be before or equal to end date" in i.message
        for i in issues
    )


def test_custom_range_bad_format():
    raw = dict(_KPI, dateRange={"start": "01/01/2024", "end": "2024-01-31"})
    with pytest.raises(ValidationError):
        validate_component(raw)


def test_unknown_predefined_range():
    with pytest.raises(ValidationError):
        validate_component(dict(_KPI, dateRange="yesterday"))


def test_no_coercion():
    with pytest.raises(ValidationError):
        validate_component(dict(_KPI, title=123))
    with pytest.raises(ValidationError):
        validate_component(dict(_KPI, layout={"x": "0", "y": 0, "w": 1, "h": 1}))


# ── Payload validation ──────────────────────────────────

def test_components_payload_keeps_results():
    payload, issues = validate_components_payload({"components": [dict(_KPI, value=10)]})
    assert issues == []
    assert payload.components[0].value == 10


def test_components_payload_rejects_bad_component():
    payload, issues = validate_components_payload({"components": [{"type": "kpi"}]})
    assert payload is None
    assert set(_paths(issues)) == {"components.0.title", "components.0.query"}


# ── Formatting ──────────────────────────────────────────

def test_format_loc_strips_union_tags():
    assert format_loc(("components", 1, "kpi", "query")) == "components.1.query"
    assert format_loc(("components", 0, "kpi", "dateRange", "CustomDateRange", "start")) == (
        "components.0.dateRange.start"
    )


def test_format_issues():
    text = format_issues([ValidationIssue("a.b", "bad"), ValidationIssue("c", "worse")])
    assert text == "- a.b: bad\n- c: worse"


def test_dump_config_omits_unset_optionals():
    config, _ = validate_report_config({"reportName": "R", "components": [_KPI]})
    dumped = dump_config(config)
    assert dumped == {"reportName": "R", "components": [_KPI]}


# ── Round-trip ──────────────────────────────────────────

_RICH_CONFIG = {
    "reportName": "Quarterly Overview",
    "components": [
        {
            "type": "line_chart",
            "title": "Signups",
            "dateRange": {"start": "2024-01-01", "end": "2024-03-31"},
            "filters": [{"field": "plan", "operator": "eq", "value": "pro"}],
            "layout": {"x": 0, "y": 0, "w": 4, "h": 3},
            "query": "SELECT DATE(created_at) AS date, COUNT(*) AS value FROM users GROUP BY 1 ORDER BY 1",
        },
        {
            "type": "metrics_grid",
            "title": "Headline",
            "dateRange": "this_month",
            "metrics": [
                {"label": "Users", "query": "SELECT COUNT(*) AS value FROM users"},
                {"label": "Events", "query": "SELECT COUNT(*) AS value FROM events"},
            ],
        },
    ],
}


def test_dumped_config_revalidates():
    config, issues = validate_report_config(_RICH_CONFIG)
    assert issues == []
    dumped = dump_config(config)
    again, issues = validate_report_config(dumped)
    assert issues == []
    assert dump_config(again) == dumped == _RICH_CONFIG


def test_dumped_config_with_unknown_type_is_invalid():
    config, _ = validate_report_config(_RICH_CONFIG)
    dumped = dump_config(config)
    dumped["components"][0]["type"] = "gauge"
    again, issues = validate_report_config(dumped)
    assert again is None
    assert issues


def test_null_filter_value_survives_dump():
    raw = dict(_KPI, filters=[{"field": "plan", "operator": "eq", "value": None}])
    assert dump_component(validate_component(raw))["filters"] == raw["filters"]
