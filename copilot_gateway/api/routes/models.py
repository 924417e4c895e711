"""Models listing endpoint - OpenAI compatible."""

import logging
import time

from ...core.models import list_model_entries

logger = logging.getLogger("copilot-gateway")


async def list_models() -> dict:
    """GET /v1/models

    Returns the static upstream catalog in OpenAI list format.
    """
    logger.info("Received models list request")
    return {
        "object": "list",
        "data": list_model_entries(int(time.time())),
    }
