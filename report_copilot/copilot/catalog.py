"""
Loads and caches the component catalog YAML.

The catalog is the single source of truth for:
  - the component kinds offered to the model (description, use, query contract)
  - default grid sizes per kind
  - prompt guidelines
  - few-shot request -> report examples
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

_CATALOG_PATH = Path(__file__).resolve().parents[2] / "prompt_catalog" / "component_catalog.yml"


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class ComponentKind:
    type: str
    description: str
    use_for: str
    query_contract: str
    default_w: int = 2
    default_h: int = 2


@dataclass(frozen=True)
class FewShotExample:
    request: str
    response: dict[str, Any]


@dataclass
class ComponentCatalog:
    version: int
    kinds: dict[str, ComponentKind]      # keyed by type, catalog order
    guidelines: list[str] = field(default_factory=list)
    examples: list[FewShotExample] = field(default_factory=list)

    def kind(self, type_name: str) -> ComponentKind | None:
        return self.kinds.get(type_name)

    def get_type_names(self) -> list[str]:
        return list(self.kinds.keys())

    def get_kinds_list(self) -> list[dict[str, Any]]:
        """Return kinds as a list of dicts (for API responses)."""
        return [
            {
                "type": k.type,
                "description": k.description,
                "use_for": k.use_for,
                "query_contract": k.query_contract,
                "default_size": {"w": k.default_w, "h": k.default_h},
            }
            for k in self.kinds.values()
        ]


# ── Parsing ──────────────────────────────────────────────

def _parse_kind(raw: dict[str, Any]) -> ComponentKind:
    size = raw.get("default_size") or {}
    return ComponentKind(
        type=raw["type"],
        description=raw.get("description", ""),
        use_for=raw.get("use_for", ""),
        query_contract=raw.get("query_contract", ""),
        default_w=size.get("w", 2),
        default_h=size.get("h", 2),
    )


def _parse_catalog(raw_yaml: dict[str, Any]) -> ComponentCatalog:
    kinds = {k["type"]: _parse_kind(k) for k in raw_yaml.get("components", [])}
    examples = [
        FewShotExample(request=e["request"], response=e["response"])
        for e in raw_yaml.get("examples", [])
    ]
    return ComponentCatalog(
        version=raw_yaml.get("version", 1),
        kinds=kinds,
        guidelines=list(raw_yaml.get("guidelines") or []),
        examples=examples,
    )


# ── Public API ───────────────────────────────────────────

@lru_cache
def load_catalog() -> ComponentCatalog:
    """Load and cache the component catalog from YAML."""
    with open(_CATALOG_PATH, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return _parse_catalog(raw)
