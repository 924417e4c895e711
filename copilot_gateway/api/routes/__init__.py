"""API routes for the gateway."""

from .chat import chat_completions
from .completions import completions
from .models import list_models
from .responses import responses_endpoint
from .usage import router as usage_router

__all__ = [
    "chat_completions",
    "completions",
    "list_models",
    "responses_endpoint",
    "usage_router",
]
