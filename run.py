"""Entry point for the Calculation Chain API.

Launches the FastAPI application under Uvicorn.  It is intended to be
executed from the project root, for example in Docker, where you only
specify a single Python file to run.

Configuration such as SECRET_KEY, DATABASE_URL, HOST and PORT may be
placed in a `.env` file in the same directory.

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from calc_chain_api.app.core.config import settings
from calc_chain_api.app.main import app


async def run_api() -> None:
    """Start the API using Uvicorn.

    Host and port come from the ``HOST`` and ``PORT`` settings.
    Defaults are `0.0.0.0` and `8000`.
    """
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        # Logging is configured by create_app; keep uvicorn from replacing it
        log_config=None,
    )
    server = Server(config)
    await server.serve()


async def main() -> None:
    logging.getLogger(__name__).info("Starting %s on %s:%s", settings.project_name, settings.host, settings.port)
    await run_api()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
