"""Run the gateway with uvicorn: ``python -m copilot_gateway``."""

import uvicorn


def main() -> None:
    from .main import app
    from .core.registry import get_gateway

    server = get_gateway().settings.server
    uvicorn.run(app, host=server.host, port=server.port)


if __name__ == "__main__":
    main()
