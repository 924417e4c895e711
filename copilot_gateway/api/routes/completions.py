"""Legacy text completions endpoint (editor tab completions)."""

from fastapi import Request, Response

from ...gateway import SURFACE_COMPLETIONS
from ..dependencies import handle_surface


async def completions(request: Request) -> Response:
    """POST /v1/completions"""
    return await handle_surface(request, SURFACE_COMPLETIONS)
