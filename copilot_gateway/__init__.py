"""copilot-gateway

OpenAI-compatible gateway in front of the GitHub Copilot chat API. Accepts
chat completions, legacy completions and Responses requests, forwards them
as upstream chat (or completions) calls and translates the streamed answer
back into the shape each caller expects.

Example:
    >>> from copilot_gateway.main import app
    >>> import uvicorn
    >>> uvicorn.run(app, host="127.0.0.1", port=3000)
"""

from .config_loader import load_config
from .gateway import CopilotGateway, GatewayRequest
from .logging import setup_logging
from .settings import GatewaySettings, settings_from_config

__version__ = "0.1.0"

__all__ = [
    "CopilotGateway",
    "GatewayRequest",
    "GatewaySettings",
    "load_config",
    "settings_from_config",
    "setup_logging",
]
