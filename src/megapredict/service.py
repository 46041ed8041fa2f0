from __future__ import annotations

import asyncio

import uvicorn

from .api import app
from .config import load_config
from .main import run
from .runtime import get_or_create_round_service


async def serve() -> None:
    config = load_config()
    get_or_create_round_service(config)

    server = uvicorn.Server(
        uvicorn.Config(
            app=app,
            host="0.0.0.0",
            port=config.api_port,
            log_level="info",
        )
    )

    async with asyncio.TaskGroup() as tg:
        tg.create_task(run(config))
        tg.create_task(server.serve())


if __name__ == "__main__":
    asyncio.run(serve())
