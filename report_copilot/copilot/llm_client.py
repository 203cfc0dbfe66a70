"""
LLM client abstraction -- provider-agnostic structured-output calls.

Every call forces the model to invoke exactly one tool, so the reply is a
single JSON object matching the tool's input schema.  A reply without that
structured block is a ``ModelCallFailure``; there is no free-text fallback.

Supported providers:
  mock      -- deterministic keyword-based replies (for tests / offline dev)
  anthropic -- Anthropic Messages API with tool_choice={"type": "tool"}
  openai    -- OpenAI ChatCompletion with a forced function call

Configuration is read from Settings (env / .env).
"""
from __future__ import annotations

import json
import re
from typing import Any, Callable

import anthropic
import openai

from report_copilot.copilot.tool_schemas import ToolSpec
from report_copilot.core.config import get_settings
from report_copilot.core.errors import ModelCallFailure
from report_copilot.core.logging import get_logger

logger = get_logger(__name__)


_ANTHROPIC_DEFAULT_MODEL = "claude-sonnet-4-5"
_OPENAI_DEFAULT_MODEL = "gpt-4o-mini"

Message = dict[str, str]
StructuredCall = Callable[..., dict[str, Any]]


# ── Mock provider ────────────────────────────────────────

_MOCK_RENAME_RE = re.compile(r"rename\s+(?:the\s+)?(.+?)\s+to\s+(.+)", re.IGNORECASE)
_MOCK_RESIZE_RE = re.compile(
    r"(?:resize|make)\s+(?:the\s+)?(.+?)\s+(?:to\s+)?(\d+)\s*x\s*(\d+)", re.IGNORECASE
)
_MOCK_MOVE_RE = re.compile(r"move\s+(?:the\s+)?(.+?)\s+(up|down)\b", re.IGNORECASE)
_MOCK_REQUEST_RE = re.compile(r'User request: "(.*)"')


def _mock_report(messages: list[Message]) -> dict[str, Any]:
    request = messages[0]["content"].strip() if messages else "Report"
    return {
        "reportName": request[:60] or "Report",
        "components": [
            {
                "type": "kpi",
                "title": "Total Events",
                "dateRange": "last_30_days",
                "query": (
                    "SELECT COUNT(*) AS value FROM events "
                    "WHERE \"timestamp\" >= CURRENT_DATE - INTERVAL '30 days'"
                ),
            },
            {
                "type": "line_chart",
                "title": "Events Over Time",
                "dateRange": "last_30_days",
                "query": (
                    "SELECT DATE(\"timestamp\") AS date, COUNT(*) AS value FROM events "
                    "WHERE \"timestamp\" >= CURRENT_DATE - INTERVAL '30 days' "
                    "GROUP BY DATE(\"timestamp\") ORDER BY date"
                ),
            },
        ],
    }


def _mock_modification(messages: list[Message]) -> dict[str, Any]:
    content = messages[-1]["content"] if messages else ""
    m = _MOCK_REQUEST_RE.search(content)
    request = (m.group(1) if m else content).strip().rstrip(".")

    m = _MOCK_RENAME_RE.search(request)
    if m:
        return {"action": "rename", "componentTitle": m.group(1).strip(), "newTitle": m.group(2).strip()}

    m = _MOCK_RESIZE_RE.search(request)
    if m:
        return {
            "action": "resize",
            "componentTitle": m.group(1).strip(),
            "newSize": {"w": int(m.group(2)), "h": int(m.group(3))},
        }

    m = _MOCK_MOVE_RE.search(request)
    if m:
        return {"action": "move", "componentTitle": m.group(1).strip(), "direction": m.group(2).lower()}
    raise ModelCallFailure(f"Mock provider could not interpret modification request: {request!r}")


def _call_mock(system: str, messages: list[Message], tool: ToolSpec, model: str) -> dict[str, Any]:
    logger.info("LLM mock mode -- tool=%s", tool.name)
    if tool.name == "generate_report_config":
        return _mock_report(messages)
    if tool.name == "report_verification":
        return {"isValid": True, "feedback": "Mock verification passed", "suggestions": []}
    if tool.name == "modify_component":
        return _mock_modification(messages)
    raise ModelCallFailure(f"Mock provider has no reply for tool '{tool.name}'")


# ── Anthropic ────────────────────────────────────────────

def _call_anthropic(system: str, messages: list[Message], tool: ToolSpec, model: str) -> dict[str, Any]:
    """Call the Anthropic Messages API with a forced tool invocation."""
    settings = get_settings()
    api_key = settings.anthropic_api_key
    if not api_key:
        raise ModelCallFailure(
            "anthropic_api_key is not set.  "
            "Set ANTHROPIC_API_KEY in your .env file or environment."
        )

    client = anthropic.Anthropic(api_key=api_key)
    response = client.messages.create(
        model=model or _ANTHROPIC_DEFAULT_MODEL,
        max_tokens=settings.llm_max_tokens,
        system=system,
        messages=messages,
        tools=[{
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.input_schema,
        }],
        tool_choice={"type": "tool", "name": tool.name},
    )
    block = next((b for b in response.content if getattr(b, "type", None) == "tool_use"), None)
    if block is None:
        raise ModelCallFailure("No tool use block found in response")
    logger.info("Anthropic tool_use received (tool=%s)", tool.name)
    return dict(block.input)


# ── OpenAI ───────────────────────────────────────────────

def _call_openai(system: str, messages: list[Message], tool: ToolSpec, model: str) -> dict[str, Any]:
    """Call OpenAI ChatCompletion with a forced function call."""
    settings = get_settings()
    api_key = settings.openai_api_key
    if not api_key:
        raise ModelCallFailure(
            "openai_api_key is not set.  "
            "Set OPENAI_API_KEY in your .env file or environment."
        )

    client = openai.OpenAI(api_key=api_key)
    response = client.chat.completions.create(
        model=model or _OPENAI_DEFAULT_MODEL,
        messages=[{"role": "system", "content": system}, *messages],
        tools=[{
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }],
        tool_choice={"type": "function", "function": {"name": tool.name}},
        temperature=0.0,
        max_tokens=settings.llm_max_tokens,
    )
    tool_calls = response.choices[0].message.tool_calls or []
    if not tool_calls:
        raise ModelCallFailure("No tool call found in response")
    try:
        data = json.loads(tool_calls[0].function.arguments)
    except json.JSONDecodeError as exc:
        raise ModelCallFailure(f"Tool call arguments are not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ModelCallFailure("Tool call arguments are not a JSON object")
    logger.info("OpenAI tool call received (tool=%s)", tool.name)
    return data


_PROVIDERS: dict[str, Any] = {
    "mock": _call_mock,
    "anthropic": _call_anthropic,
    "openai": _call_openai,
}


def call_structured(
    system: str,
    messages: list[Message],
    tool: ToolSpec,
    *,
    model: str | None = None,
    provider: str | None = None,
) -> dict[str, Any]:
    """Send a forced tool call to the configured (or overridden) provider.

    Parameters
    ----------
    system : str
        System prompt.
    messages : list[dict]
        Ordered ``{"role": "user" | "assistant", "content": str}`` history.
    tool : ToolSpec
        The single tool the model must invoke.
    model : str, optional
        Model name; the provider default is used when empty.
    provider : str, optional
        Override the provider from settings.  One of: mock, anthropic, openai.

    Raises
    ------
    ModelCallFailure
        No structured object came back, or the transport failed.
    """
    if provider is None:
        provider = get_settings().llm_provider.lower()

    fn = _PROVIDERS.get(provider)
    if fn is None:
        raise NotImplementedError(
            f"LLM provider '{provider}' is not supported.  "
            f"Choose from: {', '.join(_PROVIDERS)}"
        )

    logger.info("Calling LLM provider=%s tool=%s messages=%d", provider, tool.name, len(messages))
    try:
        return fn(system, messages, tool, model or "")
    except ModelCallFailure:
        raise
    except (anthropic.APIError, openai.OpenAIError) as exc:
        raise ModelCallFailure(f"{provider} call failed: {exc}") from exc
