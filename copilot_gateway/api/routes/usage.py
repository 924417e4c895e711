"""Health and usage endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException

from ...core.registry import get_gateway

router = APIRouter(tags=["usage"])


@router.get("/health")
async def health() -> dict[str, Any]:
    return {"status": "healthy", "version": get_gateway().settings.version}


@router.get("/usage")
async def usage_summary() -> dict[str, Any]:
    """Aggregated request and token counts over all sessions."""
    return get_gateway().usage.summary()


@router.get("/usage/{session_id}")
async def session_usage(session_id: str) -> dict[str, Any]:
    usage = get_gateway().usage.get_usage(session_id)
    if usage is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": {
                    "message": f"No usage recorded for session '{session_id}'",
                    "type": "invalid_request_error",
                    "code": "session_not_found",
                }
            },
        )
    return {"session_id": session_id, **usage}
