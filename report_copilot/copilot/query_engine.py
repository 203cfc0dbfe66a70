"""
Query execution engine -- runs each component's SQL through the safety gate
and shapes the rows into the result field its kind expects.

  kpi                         -> scalar ``value``
  line_chart / area_chart     -> ``[{date, value}]``
  bar / horizontal_bar_chart  -> ``[{label, value}]``
  pie_chart / donut_chart     -> ``[{name, value}]``
  scatter_chart               -> ``[{x, y}]``
  table                       -> raw rows
  metrics_grid                -> one KPI per entry, concurrently, input order kept

Column aliasing is tolerant (``value`` falls back to ``count``); row order is
whatever the SQL's ORDER BY produced.  Failures are attributed to the one
component that raised them.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from pydantic import BaseModel

from report_copilot.copilot.components import dump_component, validate_component
from report_copilot.core.config import get_settings
from report_copilot.core.errors import SQLValidationError
from report_copilot.core.logging import get_logger, kv
from report_copilot.governance.sql_safety import ensure_read_only

logger = get_logger(__name__)

Row = dict[str, Any]
SqlExecutor = Callable[[str], list[Row]]


def _default_executor() -> SqlExecutor:
    from report_copilot.db.executor import execute_readonly

    return execute_readonly


def _first_present(row: Row, *keys: str, default: Any = None) -> Any:
    """First value among *keys* that is present and not None."""
    for key in keys:
        val = row.get(key)
        if val is not None:
            return val
    return default


def run_sql(sql: str, executor: SqlExecutor) -> list[Row]:
    """Gate *sql* and hand the sanitised statement to *executor*."""
    return executor(ensure_read_only(sql))


# ── Shapers ──────────────────────────────────────────────


def shape_kpi(rows: list[Row]) -> Any:
    if not rows:
        return 0
    row = rows[0]
    if "value" in row:
        return row["value"]
    if not row:
        return 0
    return next(iter(row.values()))


def shape_time_series(rows: list[Row]) -> list[Row]:
    return [
        {"date": row.get("date"), "value": _first_present(row, "value", "count", default=0)}
        for row in rows
    ]


def shape_bar(rows: list[Row]) -> list[Row]:
    return [
        {
            "label": _first_present(row, "label", "name", default=""),
            "value": _first_present(row, "value", "count", default=0),
        }
        for row in rows
    ]


def shape_pie(rows: list[Row]) -> list[Row]:
    return [
        {
            "name": _first_present(row, "name", "label", default=""),
            "value": _first_present(row, "value", "count", default=0),
        }
        for row in rows
    ]


def shape_scatter(rows: list[Row]) -> list[Row]:
    return [
        {"x": _first_present(row, "x", default=0), "y": _first_present(row, "y", default=0)}
        for row in rows
    ]


def shape_table(rows: list[Row]) -> list[Row]:
    return list(rows)


_SERIES_SHAPERS: dict[str, Callable[[list[Row]], list[Row]]] = {
    "line_chart": shape_time_series,
    "area_chart": shape_time_series,
    "bar_chart": shape_bar,
    "horizontal_bar_chart": shape_bar,
    "pie_chart": shape_pie,
    "donut_chart": shape_pie,
    "scatter_chart": shape_scatter,
    "table": shape_table,
}


# ── Execution ────────────────────────────────────────────


def _as_component(component: BaseModel | dict[str, Any]) -> BaseModel:
    if isinstance(component, BaseModel):
        return component
    return validate_component(component)


def _max_workers(n: int) -> int:
    return max(1, min(n, get_settings().query_max_workers))


def execute_metrics_grid(metrics: list[Any], executor: SqlExecutor) -> list[Row]:
    """Run one KPI query per grid entry; results keep the entries' order."""
    if not metrics:
        return []

    def _one(metric: Any) -> Row:
        return {"label": metric.label, "value": shape_kpi(run_sql(metric.query, executor))}

    with ThreadPoolExecutor(max_workers=_max_workers(len(metrics))) as pool:
        return list(pool.map(_one, metrics))


def execute_component(
    component: BaseModel | dict[str, Any],
    executor: SqlExecutor | None = None,
) -> Any:
    """Execute one component and return its shaped result.

    Raises
    ------
    SQLValidationError
        If any of the component's queries fails the safety gate.
    """
    executor = executor or _default_executor()
    component = _as_component(component)
    kind = component.type

    if kind == "kpi":
        return shape_kpi(run_sql(component.query, executor))
    if kind == "metrics_grid":
        return execute_metrics_grid(component.metrics, executor)
    shaper = _SERIES_SHAPERS.get(kind)
    if shaper is None:
        raise ValueError(f"Unsupported component type: {kind}")
    return shaper(run_sql(component.query, executor))


def _merge_result(component: BaseModel, result: Any) -> dict[str, Any]:
    merged = dump_component(component)
    if component.type == "kpi":
        merged["value"] = result
    elif component.type == "metrics_grid":
        merged["metrics"] = [
            {**entry, "value": res["value"]}
            for entry, res in zip(merged["metrics"], result)
        ]
    else:
        merged["data"] = result
    return merged


def execute_components(
    components: list[BaseModel | dict[str, Any]],
    executor: SqlExecutor | None = None,
) -> list[dict[str, Any]]:
    """Execute every component concurrently and merge the results in.

    Returns new component dicts in input order.  A component whose query is
    rejected or fails carries an ``error`` string instead of a result; the
    others are unaffected.
    """
    executor = executor or _default_executor()
    models = [_as_component(c) for c in components]
    if not models:
        return []

    def _run(component: BaseModel) -> dict[str, Any]:
        try:
            result = execute_component(component, executor)
        except SQLValidationError as exc:
            logger.warning("Component '%s' rejected by SQL gate: %s", component.title, exc.reason)
            return {**dump_component(component), "error": str(exc)}
        except Exception as exc:
            logger.exception("Component '%s' failed to execute", component.title)
            return {**dump_component(component), "error": f"Query execution failed: {exc}"}
        return _merge_result(component, result)

    with ThreadPoolExecutor(max_workers=_max_workers(len(models))) as pool:
        enriched = list(pool.map(_run, models))

    failed = sum(1 for c in enriched if "error" in c)
    logger.info("execute_components | %s", kv(components=len(enriched), failed=failed))
    return enriched
