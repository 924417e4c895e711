"""FastAPI application for the gateway."""

from __future__ import annotations

import logging
import socket
from typing import Any, Mapping, Optional

from fastapi import FastAPI

from .api import register_routes
from .config_loader import load_config
from .core.registry import set_gateway
from .gateway import CopilotGateway
from .logging import setup_logging
from .settings import GatewaySettings, settings_from_config

logger = logging.getLogger("copilot-gateway")


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    *,
    gateway: Optional[CopilotGateway] = None,
) -> FastAPI:
    """Build the application.

    Loads the default config file when neither ``config`` nor ``gateway`` is
    given. The gateway is published through the registry for the routes.
    """
    if gateway is None:
        if config is None:
            config = load_config()
        settings = settings_from_config(config)
        setup_logging(settings.log_level)
        gateway = CopilotGateway(settings)
    settings: GatewaySettings = gateway.settings
    set_gateway(gateway)

    app = FastAPI(title="Copilot Gateway", version=settings.version)
    register_routes(app)

    @app.on_event("startup")
    async def startup_event() -> None:
        server = settings.server
        logger.info("Copilot gateway %s starting up", settings.version)
        logger.info("Configured bind address %s:%s", server.host, server.port)
        if server.host == "0.0.0.0":
            logger.info(
                "Reachable on local network at http://%s:%s",
                socket.gethostname(),
                server.port,
            )
        logger.info("Upstream chat endpoint: %s", settings.upstream.chat_url)
        if gateway.tokens.get_upstream_token() is None and not gateway.tokens.can_refresh():
            logger.warning(
                "No upstream token or GitHub token configured; requests will get 401"
            )
        limits = settings.rate_limits
        if limits.enabled:
            logger.info(
                "Rate limits: default=%d/min chat=%d/min tokens=%d/min",
                limits.default_per_minute,
                limits.chat_per_minute,
                limits.tokens_per_minute,
            )

    return app


app = create_app()

__all__ = ["app", "create_app"]
