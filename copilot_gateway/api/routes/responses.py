"""Responses API endpoint.

Requests are flattened into upstream chat calls. Streaming answers use the
named-event Responses grammar; ``response.created`` is always the first
event and ``response.done`` the last one of a successful stream.
"""

from fastapi import Request, Response

from ...gateway import SURFACE_RESPONSES
from ..dependencies import handle_surface


async def responses_endpoint(request: Request) -> Response:
    """POST /v1/responses"""
    return await handle_surface(request, SURFACE_RESPONSES)
