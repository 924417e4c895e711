"""HTTP surface of the gateway."""

from fastapi import FastAPI

from .routes import (
    chat_completions,
    completions,
    list_models,
    responses_endpoint,
    usage_router,
)


def register_routes(app: FastAPI) -> None:
    app.post("/v1/chat/completions")(chat_completions)
    app.post("/v1/completions")(completions)
    app.post("/v1/responses")(responses_endpoint)
    app.get("/v1/models")(list_models)
    app.include_router(usage_router)


__all__ = ["register_routes"]
