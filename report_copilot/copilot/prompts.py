"""
Prompt construction for the three model calls: report generation,
semantic verification and modification parsing.
"""
from __future__ import annotations

import json
from datetime import date
from typing import Any

from report_copilot.copilot.catalog import ComponentCatalog, load_catalog
from report_copilot.core.utils import today_iso


_GENERATION_HEADER = """\
You are an analytics report configuration generator. Your job is to convert \
user requests into report configurations made of predefined analytics \
components. Every component carries the PostgreSQL query that feeds it.

Current date: {today}
Use this date to calculate relative date ranges and understand time-based requests.
"""

_DATE_RANGES = """\
Date ranges:
- Predefined: last_7_days, last_30_days, last_90_days, this_month, last_month
- Custom: {"start": "YYYY-MM-DD", "end": "YYYY-MM-DD"} with start <= end
"""


def _render_catalog(catalog: ComponentCatalog) -> str:
    lines = ["Available components:"]
    for i, k in enumerate(catalog.kinds.values(), 1):
        lines.append(f'{i}. "{k.type}" - {k.description}')
        lines.append(f"   - Use for: {k.use_for}")
        lines.append(f"   - Query: {k.query_contract}")
    return "\n".join(lines) + "\n"


def _render_examples(catalog: ComponentCatalog) -> str:
    lines = ["Examples:"]
    for ex in catalog.examples:
        lines.append("")
        lines.append(f'User: "{ex.request}"')
        lines.append("Response:")
        lines.append(json.dumps(ex.response, indent=2))
    return "\n".join(lines) + "\n"


def build_system_prompt(
    schema_text: str,
    today: date | None = None,
    catalog: ComponentCatalog | None = None,
) -> str:
    """Schema text + current date + component catalog + few-shot examples."""
    catalog = catalog or load_catalog()
    sections = [
        _GENERATION_HEADER.format(today=today_iso(today)),
        schema_text.rstrip() + "\n",
        _render_catalog(catalog),
        _DATE_RANGES,
        _render_examples(catalog),
        "Guidelines:\n" + "\n".join(f"- {g}" for g in catalog.guidelines) + "\n",
    ]
    return "\n".join(sections)


def build_retry_messages(prompt: str, feedback: str | None) -> list[dict[str, str]]:
    """The user request, followed by a corrective turn when a previous attempt failed."""
    messages = [{"role": "user", "content": prompt}]
    if feedback:
        messages.append({"role": "assistant", "content": "Let me try again with the correct format."})
        messages.append({
            "role": "user",
            "content": (
                "The previous configuration had validation errors. "
                "Please fix these issues and regenerate:\n\n"
                f"{feedback}\n\n"
                "Generate a valid configuration that addresses all these errors."
            ),
        })
    return messages


# ── Verification ─────────────────────────────────────────

VERIFICATION_PROMPT = """\
You are a quality assurance agent reviewing analytics report configurations.

Your job is to verify that the generated report configuration correctly \
answers the user's original request.

Evaluate:
1. Does the report include all components needed to answer the user's question?
2. Do the SQL queries compute what the user asked for?
3. Are the date ranges sensible for the user's request?
4. Are the visualization types appropriate for the data being shown?
5. Is the report name descriptive and accurate?

Answer with the report_verification tool: isValid, feedback, and a list of \
specific suggestions (empty when the configuration is fine)."""


def build_verification_message(prompt: str, config: dict[str, Any]) -> str:
    return (
        f'Original user request: "{prompt}"\n\n'
        "Generated configuration:\n"
        f"{json.dumps(config, indent=2)}\n\n"
        "Is this configuration correct and appropriate for the user's request?"
    )


# ── Modification ─────────────────────────────────────────

MODIFICATION_PROMPT = """\
You are a dashboard modification assistant. Your job is to understand user \
requests to modify dashboard components and return structured actions.

Available actions:
1. "rename" - Change the title of a component
   - Requires: componentTitle (current title), newTitle (new title)
   - Example: "rename Daily Active Users to DAU"

2. "resize" - Change the size of a component
   - Requires: componentTitle, newSize with w (width 1-4) and h (height minimum 1)
   - Example: "make the User Growth chart bigger" or "resize Daily Active Users to 2x3"
   - Default sizes: KPI (1x1), Charts (2x2), Table (4x2), Metrics Grid (4x1)

3. "move" - Move a component up or down in the layout
   - Requires: componentTitle, direction ('up' or 'down')
   - Example: "move Daily Active Users up" or "move the first chart down"

IMPORTANT:
- You must identify components by their EXACT title as provided in the components list
- For resize, if user says "bigger" or "smaller", infer reasonable new dimensions
- For move, "up" means earlier in the list (lower index), "down" means later (higher index)
- Grid layout: width is 1-4 units, height is minimum 1 unit
- Always return valid action types and required fields"""


def build_modification_message(prompt: str, components_context: str) -> str:
    return (
        f'User request: "{prompt}"\n\n'
        "Current dashboard components:\n"
        f"{components_context}\n\n"
        "What action should be performed? Identify the component by its exact "
        "title and return the appropriate action."
    )
