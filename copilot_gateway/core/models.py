"""Model alias table and the catalog served by /v1/models."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

logger = logging.getLogger("copilot-gateway")

DEFAULT_ALIAS_KEY = "default"

# Requested id (lower-cased) -> canonical upstream id.
_BUILTIN_ALIASES: dict[str, str] = {
    # Anthropic
    "claude-4.5-opus": "claude-opus-4.5",
    "claude-opus-4.5": "claude-opus-4.5",
    "claude-4-opus": "claude-opus-4.5",
    "claude-opus-4": "claude-opus-4.5",
    "claude-4.5-sonnet": "claude-sonnet-4.5",
    "claude-sonnet-4.5": "claude-sonnet-4.5",
    "claude-4-sonnet": "claude-sonnet-4",
    "claude-sonnet-4": "claude-sonnet-4",
    "claude-4.5-haiku": "claude-haiku-4.5",
    "claude-haiku-4.5": "claude-haiku-4.5",
    # retired Claude generations
    "claude-3.5-sonnet": "claude-sonnet-4",
    "claude-3-sonnet": "claude-sonnet-4",
    "claude-3-opus": "claude-opus-4.5",
    # OpenAI
    "gpt-4o": "gpt-4o",
    "gpt-4o-mini": "gpt-4o-mini",
    "gpt-4.1": "gpt-4.1",
    "gpt-4-turbo": "gpt-4-0125-preview",
    "gpt-4-0125-preview": "gpt-4-0125-preview",
    "gpt-4": "gpt-4",
    "gpt-3.5-turbo": "gpt-3.5-turbo",
    "gpt-5.2": "gpt-5.2",
    "gpt-5-codex": "gpt-5-codex",
    "gpt-5.1-codex-max": "gpt-5.1-codex-max",
    "o1": "o1-preview",
    "o1-preview": "o1-preview",
    "o1-mini": "o1-mini",
    "o3-mini": "o3-mini",
    # Google
    "gemini-2.5-pro": "gemini-2.5-pro",
    "gemini-3-pro": "gemini-3-pro-preview",
    "gemini-3-pro-preview": "gemini-3-pro-preview",
    "gemini-3-flash": "gemini-3-flash-preview",
    "gemini-3-flash-preview": "gemini-3-flash-preview",
    DEFAULT_ALIAS_KEY: "gpt-4o",
}

# (model id, owned_by)
MODEL_CATALOG: tuple[tuple[str, str], ...] = (
    ("claude-haiku-4.5", "anthropic"),
    ("claude-opus-4.5", "anthropic"),
    ("claude-opus-4.6", "anthropic"),
    ("claude-opus-4.6-fast", "anthropic"),
    ("claude-sonnet-4", "anthropic"),
    ("claude-sonnet-4.5", "anthropic"),
    ("claude-sonnet-4.6", "anthropic"),
    ("gpt-4o", "openai"),
    ("gpt-4.1", "openai"),
    ("gpt-5-mini", "openai"),
    ("gpt-5.1", "openai"),
    ("gpt-5.1-codex", "openai"),
    ("gpt-5.1-codex-mini", "openai"),
    ("gpt-5.1-codex-max", "openai"),
    ("gpt-5.2", "openai"),
    ("gpt-5.2-codex", "openai"),
    ("gpt-5.3-codex", "openai"),
    ("gemini-2.5-pro", "google"),
    ("gemini-3-flash", "google"),
    ("gemini-3-pro", "google"),
    ("gemini-3.1-pro", "google"),
    ("grok-code-fast-1", "xai"),
    ("raptor-mini", "github"),
    ("goldeneye", "github"),
)


def build_alias_table(
    overrides: Optional[Mapping[str, Any]] = None,
) -> Mapping[str, str]:
    """Build the frozen alias table, merging optional config overrides.

    Override keys are lower-cased; entries whose target is not a non-empty
    string are ignored with a warning.
    """
    table = dict(_BUILTIN_ALIASES)
    for key, value in (overrides or {}).items():
        if not isinstance(key, str) or not key.strip():
            logger.warning("Ignoring model alias with invalid name: %r", key)
            continue
        if not isinstance(value, str) or not value.strip():
            logger.warning("Ignoring model alias '%s' with invalid target: %r", key, value)
            continue
        table[key.strip().lower()] = value.strip()
    return MappingProxyType(table)


class ModelAliasResolver:
    """Maps requested model ids onto upstream ids.

    Lookups are case-insensitive. Unknown names are passed through unchanged
    so newly released upstream models work without a table update.
    """

    def __init__(self, table: Optional[Mapping[str, str]] = None) -> None:
        self._table = table if table is not None else build_alias_table()

    @property
    def table(self) -> Mapping[str, str]:
        return self._table

    def resolve(self, requested: Optional[str]) -> str:
        if not requested or not str(requested).strip():
            return self._table.get(DEFAULT_ALIAS_KEY, "gpt-4o")
        key = str(requested).strip().lower()
        mapped = self._table.get(key)
        if mapped is not None:
            if mapped != requested:
                logger.debug("Model alias '%s' -> '%s'", requested, mapped)
            return mapped
        logger.warning("Unknown model '%s', forwarding as-is", requested)
        return requested


def list_model_entries(created: int) -> list[dict[str, Any]]:
    """Render MODEL_CATALOG as OpenAI model objects."""
    return [
        {
            "id": model_id,
            "object": "model",
            "created": created,
            "owned_by": owned_by,
        }
        for model_id, owned_by in MODEL_CATALOG
    ]
