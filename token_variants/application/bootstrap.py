from __future__ import annotations

from contextlib import asynccontextmanager

from ..infrastructure import TokenVariantsSettings
from .container import AppConfig, AppContainer, create_container


@asynccontextmanager
async def bootstrap_app(config: AppConfig, settings: TokenVariantsSettings | None = None):
    container: AppContainer = create_container(config, settings)
    await container.init_resources()
    try:
        yield container
    finally:
        await container.close()
