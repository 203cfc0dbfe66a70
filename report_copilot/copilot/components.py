"""
Component contracts -- the closed set of visualisation kinds a report may
contain, and the validators that check model output and stored payloads
against them.

Each kind is its own pydantic model selected by the ``type`` discriminator;
there is no shared optional-everything base.  Validation errors come back as
``ValidationIssue(path, message)`` lists whose text is reused verbatim as
retry feedback for the model.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    model_validator,
)

COMPONENT_TYPES: tuple[str, ...] = (
    "kpi",
    "line_chart",
    "bar_chart",
    "area_chart",
    "scatter_chart",
    "horizontal_bar_chart",
    "pie_chart",
    "donut_chart",
    "table",
    "metrics_grid",
)

PREDEFINED_DATE_RANGES: tuple[str, ...] = (
    "last_7_days",
    "last_30_days",
    "last_90_days",
    "this_month",
    "last_month",
)

_ISO_DATE = r"^\d{4}-\d{2}-\d{2}$"

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
SqlQuery = Annotated[StrictStr, Field(min_length=1, description="Read-only SQL query")]
Scalar = Union[StrictInt, StrictFloat, StrictStr, StrictBool, None]


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── Shared fields ────────────────────────────────────────


class CustomDateRange(_Model):
    start: Annotated[StrictStr, Field(pattern=_ISO_DATE)]
    end: Annotated[StrictStr, Field(pattern=_ISO_DATE)]

    @model_validator(mode="after")
    def _start_before_end(self) -> "CustomDateRange":
        try:
            start = date.fromisoformat(self.start)
            end = date.fromisoformat(self.end)
        except ValueError as exc:
            raise ValueError(f"Invalid calendar date: {exc}") from exc
        if start > end:
            raise ValueError("Start date must be before or equal to end date")
        return self


PredefinedDateRange = Literal[
    "last_7_days", "last_30_days", "last_90_days", "this_month", "last_month"
]

DateRange = Union[PredefinedDateRange, CustomDateRange]


class Filter(_Model):
    field: StrictStr
    operator: StrictStr
    value: Any = None


class Layout(_Model):
    x: StrictInt
    y: StrictInt
    w: StrictInt
    h: StrictInt


class _BaseComponent(_Model):
    title: NonEmptyStr
    dateRange: DateRange | None = None
    filters: list[Filter] | None = None
    layout: Layout | None = None


class _QueryComponent(_BaseComponent):
    query: SqlQuery


class _SeriesComponent(_QueryComponent):
    data: list[dict[str, Any]] | None = None


# ── Component kinds ──────────────────────────────────────


class KpiComponent(_QueryComponent):
    type: Literal["kpi"]
    value: Scalar = None


class LineChartComponent(_SeriesComponent):
    type: Literal["line_chart"]


class BarChartComponent(_SeriesComponent):
    type: Literal["bar_chart"]


class AreaChartComponent(_SeriesComponent):
    type: Literal["area_chart"]


class ScatterChartComponent(_SeriesComponent):
    type: Literal["scatter_chart"]


class HorizontalBarChartComponent(_SeriesComponent):
    type: Literal["horizontal_bar_chart"]


class PieChartComponent(_SeriesComponent):
    type: Literal["pie_chart"]


class DonutChartComponent(_SeriesComponent):
    type: Literal["donut_chart"]


class TableComponent(_SeriesComponent):
    type: Literal["table"]
    columns: Annotated[list[NonEmptyStr], Field(min_length=1)]


class GridMetric(_Model):
    label: NonEmptyStr
    query: SqlQuery
    value: Scalar = None


class MetricsGridComponent(_BaseComponent):
    type: Literal["metrics_grid"]
    metrics: Annotated[list[GridMetric], Field(min_length=1)]


Component = Annotated[
    Union[
        KpiComponent,
        LineChartComponent,
        BarChartComponent,
        AreaChartComponent,
        ScatterChartComponent,
        HorizontalBarChartComponent,
        PieChartComponent,
        DonutChartComponent,
        TableComponent,
        MetricsGridComponent,
    ],
    Field(discriminator="type"),
]


class ReportConfig(_Model):
    reportName: NonEmptyStr
    components: Annotated[list[Component], Field(min_length=1)]


class ComponentsPayload(_Model):
    components: Annotated[list[Component], Field(min_length=1)]


_COMPONENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(Component)


# ── Validation results ───────────────────────────────────


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}


# Location segments pydantic inserts for union members; they are not field names.
_UNION_TAGS = set(COMPONENT_TYPES) | {"CustomDateRange"}


def format_loc(loc: tuple[Any, ...]) -> str:
    """``('components', 1, 'kpi', 'query')`` -> ``'components.1.query'``."""
    parts: list[str] = []
    for segment in loc:
        if isinstance(segment, str) and (segment in _UNION_TAGS or segment.startswith(("literal[", "function-"))):
            continue
        parts.append(str(segment))
    return ".".join(parts)


def issues_from_errors(errors: Any, skip_prefix: tuple[str, ...] = ()) -> list[ValidationIssue]:
    """Convert pydantic error dicts into de-duplicated ``ValidationIssue``s."""
    issues: list[ValidationIssue] = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        if skip_prefix and loc[: len(skip_prefix)] == skip_prefix:
            loc = loc[len(skip_prefix):]
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        issue = ValidationIssue(path=format_loc(loc), message=message)
        if issue not in issues:
            issues.append(issue)
    return issues


def issues_from_error(exc: ValidationError, skip_prefix: tuple[str, ...] = ()) -> list[ValidationIssue]:
    return issues_from_errors(exc.errors(), skip_prefix)


def format_issues(issues: list[ValidationIssue]) -> str:
    """Render issues as ``- path: message`` lines (used as model feedback)."""
    return "\n".join(f"- {i.path}: {i.message}" for i in issues)


def validate_report_config(candidate: Any) -> tuple[ReportConfig | None, list[ValidationIssue]]:
    """Validate a raw ``{reportName, components}`` object."""
    try:
        return ReportConfig.model_validate(candidate), []
    except ValidationError as exc:
        return None, issues_from_error(exc)


def validate_components_payload(candidate: Any) -> tuple[ComponentsPayload | None, list[ValidationIssue]]:
    """Validate a raw ``{components}`` object (re-running persisted components)."""
    try:
        return ComponentsPayload.model_validate(candidate), []
    except ValidationError as exc:
        return None, issues_from_error(exc)


def validate_component(candidate: Any) -> Any:
    """Validate a single component dict; raises ``pydantic.ValidationError``."""
    return _COMPONENT_ADAPTER.validate_python(candidate)


def dump_component(component: BaseModel) -> dict[str, Any]:
    """Serialise a component as received, omitting fields it never set (results included)."""
    return component.model_dump(mode="json", exclude_unset=True)


def dump_config(config: ReportConfig) -> dict[str, Any]:
    return {
        "reportName": config.reportName,
        "components": [dump_component(c) for c in config.components],
    }
