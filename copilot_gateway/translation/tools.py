"""Normalization of caller tool declarations into the upstream function shape.

Callers send tools in several dialects. Each entry is classified once into a
closed set of variants, then the usable ones are rendered as
``{"type": "function", "function": {...}}``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..types.chat import FunctionToolSpec

logger = logging.getLogger("copilot-gateway")

# Server-side tools of the Responses API that the upstream cannot execute.
HOSTED_TOOL_TYPES = frozenset({"web_search_preview", "code_interpreter", "file_search"})


def _default_parameters() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=_default_parameters)
    strict: Optional[bool] = None

    def to_dict(self) -> FunctionToolSpec:
        function: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
        if self.strict is not None:
            function["strict"] = self.strict
        return {"type": "function", "function": function}  # type: ignore[typeddict-item]


@dataclass(frozen=True)
class FunctionTool:
    """``{"type": "function", "function": {...}}``"""

    spec: dict[str, Any]


@dataclass(frozen=True)
class CustomTool:
    """``{"type": "custom", "custom": {...}}``"""

    spec: dict[str, Any]


@dataclass(frozen=True)
class LegacyTool:
    """A bare ``{name, description?, parameters?}`` entry.

    The Responses API's flattened ``{"type": "function", "name": ...}`` lands
    here too.
    """

    spec: dict[str, Any]


@dataclass(frozen=True)
class UnsupportedTool:
    tool_type: str


@dataclass(frozen=True)
class UnrecognizedTool:
    raw: Any
    reason: str


ClassifiedTool = Union[FunctionTool, CustomTool, LegacyTool, UnsupportedTool, UnrecognizedTool]


def classify_tool(raw: Any) -> ClassifiedTool:
    if not isinstance(raw, dict):
        return UnrecognizedTool(raw, "not an object")
    tool_type = raw.get("type")
    if tool_type in HOSTED_TOOL_TYPES:
        return UnsupportedTool(tool_type)
    if tool_type == "function" and isinstance(raw.get("function"), dict):
        return FunctionTool(raw["function"])
    if tool_type == "custom" and isinstance(raw.get("custom"), dict):
        return CustomTool(raw["custom"])
    if tool_type in (None, "function", "custom"):
        if "name" in raw:
            return LegacyTool(raw)
        return UnrecognizedTool(raw, "missing name")
    return UnrecognizedTool(raw, f"unknown tool type '{tool_type}'")


def _definition_from_spec(spec: dict[str, Any]) -> Optional[ToolDefinition]:
    name = spec.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    description = spec.get("description")
    parameters = spec.get("parameters")
    if not isinstance(parameters, dict):
        # custom tools may carry their schema under input_schema
        parameters = spec.get("input_schema")
    strict = spec.get("strict")
    return ToolDefinition(
        name=name,
        description=description if isinstance(description, str) else "",
        parameters=parameters if isinstance(parameters, dict) else _default_parameters(),
        strict=strict if isinstance(strict, bool) else None,
    )


def normalize_tools(tools: Any) -> Optional[list[ToolDefinition]]:
    """Return the usable tools in their original order, or None if none remain.

    Never raises: malformed entries are logged and dropped.
    """
    if not tools or not isinstance(tools, list):
        return None

    normalized: list[ToolDefinition] = []
    for index, raw in enumerate(tools):
        classified = classify_tool(raw)
        if isinstance(classified, UnsupportedTool):
            logger.debug("Skipping hosted tool type '%s'", classified.tool_type)
            continue
        if isinstance(classified, UnrecognizedTool):
            logger.warning("Skipping tool #%d: %s", index, classified.reason)
            continue
        definition = _definition_from_spec(classified.spec)
        if definition is None:
            logger.warning("Skipping tool #%d: missing or empty name", index)
            continue
        normalized.append(definition)

    return normalized or None


def tools_to_dicts(tools: Optional[list[ToolDefinition]]) -> Optional[list[FunctionToolSpec]]:
    if not tools:
        return None
    return [tool.to_dict() for tool in tools]
