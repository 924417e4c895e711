"""OpenAI-compatible chat completions endpoint."""

from fastapi import Request, Response

from ...gateway import SURFACE_CHAT
from ..dependencies import handle_surface


async def chat_completions(request: Request) -> Response:
    """POST /v1/chat/completions

    Streams ``chat.completion.chunk`` frames ending in ``data: [DONE]`` when
    ``stream`` is true; otherwise returns one ``chat.completion`` object.
    """
    return await handle_surface(request, SURFACE_CHAT)
