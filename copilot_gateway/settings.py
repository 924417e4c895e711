"""Typed settings resolved from the loaded configuration dictionary."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

logger = logging.getLogger("copilot-gateway")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_CONNECT_TIMEOUT = 60.0

DEFAULT_CHAT_URL = "https://api.individual.githubcopilot.com/chat/completions"
DEFAULT_COMPLETIONS_URL = (
    "https://copilot-proxy.githubusercontent.com/v1/engines/copilot-codex/completions"
)
DEFAULT_TOKEN_URL = "https://api.github.com/copilot_internal/v2/token"

DEFAULT_RATE_LIMIT = 60
DEFAULT_CHAT_RATE_LIMIT = 20
DEFAULT_TOKENS_PER_MINUTE = 20000
DEFAULT_MAX_REQUEST_TOKENS = 4000


@dataclass(frozen=True)
class ServerSettings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


@dataclass(frozen=True)
class ClientIdentity:
    """Client identification headers sent with every upstream call."""

    user_agent: str = "GitHubCopilotChat/0.22.2"
    editor_version: str = "vscode/1.96.0"
    editor_plugin_version: str = "copilot-chat/0.22.2"
    integration_id: str = "vscode-chat"


@dataclass(frozen=True)
class UpstreamSettings:
    chat_url: str = DEFAULT_CHAT_URL
    completions_url: str = DEFAULT_COMPLETIONS_URL
    token_url: str = DEFAULT_TOKEN_URL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    identity: ClientIdentity = field(default_factory=ClientIdentity)


@dataclass(frozen=True)
class AuthSettings:
    github_token: Optional[str] = None
    # pre-issued upstream token, used as-is (no expiry known)
    copilot_token: Optional[str] = None


@dataclass(frozen=True)
class RateLimitSettings:
    enabled: bool = True
    default_per_minute: int = DEFAULT_RATE_LIMIT
    chat_per_minute: int = DEFAULT_CHAT_RATE_LIMIT
    tokens_per_minute: int = DEFAULT_TOKENS_PER_MINUTE
    max_request_tokens: int = DEFAULT_MAX_REQUEST_TOKENS

    def limit_for(self, route: str) -> int:
        if route.rstrip("/").endswith("chat/completions"):
            return self.chat_per_minute
        return self.default_per_minute


@dataclass(frozen=True)
class GatewaySettings:
    server: ServerSettings = field(default_factory=ServerSettings)
    upstream: UpstreamSettings = field(default_factory=UpstreamSettings)
    auth: AuthSettings = field(default_factory=AuthSettings)
    rate_limits: RateLimitSettings = field(default_factory=RateLimitSettings)
    model_aliases: Mapping[str, str] = field(default_factory=dict)
    log_level: str = "INFO"
    version: str = "0.1.0"


def _section(config: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = config.get(key)
    return value if isinstance(value, dict) else {}


def _get_int(config: Mapping[str, Any], key: str, default: int) -> int:
    """Get an integer value from config with fallback."""
    value = config.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        logger.warning("Invalid integer for '%s': %r, using %s", key, value, default)
        return default


def _get_float(config: Mapping[str, Any], key: str, default: float) -> float:
    value = config.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        logger.warning("Invalid number for '%s': %r, using %s", key, value, default)
        return default


def _get_bool(config: Mapping[str, Any], key: str, default: bool) -> bool:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _get_str(config: Mapping[str, Any], key: str, default: Optional[str]) -> Optional[str]:
    value = config.get(key)
    if value is None:
        return default
    text = str(value).strip()
    # unresolved ${VAR} placeholders count as unset
    if not text or text.startswith("$"):
        return default
    return text


def settings_from_config(config: Mapping[str, Any]) -> GatewaySettings:
    """Build GatewaySettings from a config dict.

    Host and port may be overridden by COPILOT_GATEWAY_HOST and
    COPILOT_GATEWAY_PORT, which take priority over the file.
    """
    server_cfg = _section(config, "server")
    upstream_cfg = _section(config, "upstream")
    identity_cfg = _section(upstream_cfg, "client")
    auth_cfg = _section(config, "auth")
    limits_cfg = _section(config, "rate_limits")
    logging_cfg = _section(config, "logging")

    host = os.getenv("COPILOT_GATEWAY_HOST") or _get_str(server_cfg, "host", DEFAULT_HOST)
    port = _get_int(server_cfg, "port", DEFAULT_PORT)
    env_port = os.getenv("COPILOT_GATEWAY_PORT")
    if env_port is not None:
        port = _get_int({"port": env_port}, "port", port)

    defaults = ClientIdentity()
    identity = ClientIdentity(
        user_agent=_get_str(identity_cfg, "user_agent", defaults.user_agent),
        editor_version=_get_str(identity_cfg, "editor_version", defaults.editor_version),
        editor_plugin_version=_get_str(
            identity_cfg, "editor_plugin_version", defaults.editor_plugin_version
        ),
        integration_id=_get_str(identity_cfg, "integration_id", defaults.integration_id),
    )

    aliases = config.get("model_aliases")
    if aliases is not None and not isinstance(aliases, dict):
        logger.warning("model_aliases must be a mapping, ignoring %r", aliases)
        aliases = None

    return GatewaySettings(
        server=ServerSettings(host=host, port=port),
        upstream=UpstreamSettings(
            chat_url=_get_str(upstream_cfg, "chat_url", DEFAULT_CHAT_URL),
            completions_url=_get_str(
                upstream_cfg, "completions_url", DEFAULT_COMPLETIONS_URL
            ),
            token_url=_get_str(upstream_cfg, "token_url", DEFAULT_TOKEN_URL),
            connect_timeout=_get_float(
                upstream_cfg, "connect_timeout", DEFAULT_CONNECT_TIMEOUT
            ),
            identity=identity,
        ),
        auth=AuthSettings(
            github_token=_get_str(auth_cfg, "github_token", None),
            copilot_token=_get_str(auth_cfg, "copilot_token", None),
        ),
        rate_limits=RateLimitSettings(
            enabled=_get_bool(limits_cfg, "enabled", True),
            default_per_minute=_get_int(limits_cfg, "default", DEFAULT_RATE_LIMIT),
            chat_per_minute=_get_int(
                limits_cfg, "chat_completions", DEFAULT_CHAT_RATE_LIMIT
            ),
            tokens_per_minute=_get_int(
                limits_cfg, "tokens_per_minute", DEFAULT_TOKENS_PER_MINUTE
            ),
            max_request_tokens=_get_int(
                limits_cfg, "max_request_tokens", DEFAULT_MAX_REQUEST_TOKENS
            ),
        ),
        model_aliases=dict(aliases or {}),
        log_level=(_get_str(logging_cfg, "level", "INFO") or "INFO").upper(),
        version=str(config.get("version") or "0.1.0"),
    )
