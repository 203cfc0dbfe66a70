"""
JSON schemas for the forced structured-output tool calls.

The model is never allowed to answer in free text: each call declares one
tool and forces the model to invoke it, so the reply is a single object
matching one of these schemas.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from report_copilot.copilot.catalog import ComponentCatalog, load_catalog
from report_copilot.copilot.components import PREDEFINED_DATE_RANGES


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_schema: dict[str, Any]


_DATE_RANGE_SCHEMA: dict[str, Any] = {
    "oneOf": [
        {"type": "string", "enum": list(PREDEFINED_DATE_RANGES)},
        {
            "type": "object",
            "required": ["start", "end"],
            "properties": {
                "start": {"type": "string", "pattern": r"^\d{4}-\d{2}-\d{2}$",
                          "description": "Start date in YYYY-MM-DD format"},
                "end": {"type": "string", "pattern": r"^\d{4}-\d{2}-\d{2}$",
                        "description": "End date in YYYY-MM-DD format"},
            },
            "additionalProperties": False,
        },
    ]
}


def _component_schema(type_name: str, query_contract: str) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "type": {"type": "string", "enum": [type_name]},
        "title": {"type": "string"},
        "dateRange": _DATE_RANGE_SCHEMA,
    }
    required = ["type", "title"]

    if type_name == "metrics_grid":
        properties["metrics"] = {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["label", "query"],
                "properties": {
                    "label": {"type": "string"},
                    "query": {"type": "string", "description": f"SQL query that {query_contract}"},
                },
                "additionalProperties": False,
            },
        }
        required.append("metrics")
    else:
        if type_name == "table":
            properties["columns"] = {"type": "array", "items": {"type": "string"}, "minItems": 1}
            required.append("columns")
        properties["query"] = {"type": "string", "description": f"SQL query that {query_contract}"}
        required.append("query")

    return {
        "type": "object",
        "required": required,
        "properties": properties,
        "additionalProperties": False,
    }


def report_config_tool(catalog: ComponentCatalog | None = None) -> ToolSpec:
    catalog = catalog or load_catalog()
    return ToolSpec(
        name="generate_report_config",
        description="Generate a valid report configuration with components",
        input_schema={
            "type": "object",
            "properties": {
                "reportName": {"type": "string", "description": "Descriptive name for the report"},
                "components": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "oneOf": [
                            _component_schema(k.type, k.query_contract)
                            for k in catalog.kinds.values()
                        ]
                    },
                },
            },
            "required": ["reportName", "components"],
            "additionalProperties": False,
        },
    )


VERIFICATION_TOOL = ToolSpec(
    name="report_verification",
    description="Report whether the configuration answers the user's request",
    input_schema={
        "type": "object",
        "properties": {
            "isValid": {"type": "boolean"},
            "feedback": {"type": "string", "description": "Issues if invalid, or a confirmation if valid"},
            "suggestions": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["isValid", "feedback", "suggestions"],
        "additionalProperties": False,
    },
)


MODIFY_COMPONENT_TOOL = ToolSpec(
    name="modify_component",
    description="Modify a dashboard component",
    input_schema={
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": ["rename", "resize", "move"],
                "description": "The type of modification to perform",
            },
            "componentTitle": {
                "type": "string",
                "description": "The exact title of the component to modify "
                               "(must match one of the component titles provided)",
            },
            "newTitle": {
                "type": "string",
                "description": "The new title for the component (required only for rename action)",
            },
            "newSize": {
                "type": "object",
                "properties": {
                    "w": {"type": "number", "description": "New width in grid units (1-4)"},
                    "h": {"type": "number", "description": "New height in grid units (minimum 1)"},
                },
                "required": ["w", "h"],
                "description": "New size for the component (required only for resize action)",
            },
            "direction": {
                "type": "string",
                "enum": ["up", "down"],
                "description": "Direction to move the component (required only for move action)",
            },
        },
        "required": ["action", "componentTitle"],
        "additionalProperties": False,
    },
)
