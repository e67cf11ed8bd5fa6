"""Startup and shutdown of the app server."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator

from alembic import command
from alembic.config import Config
from fastapi import FastAPI

from flowforge.app_server.config import AppServerConfig, get_global_config

logger = logging.getLogger(__name__)

ALEMBIC_DIR = Path(__file__).parent / 'alembic'


def get_alembic_config(url: str | None = None) -> Config:
    alembic_cfg = Config()
    alembic_cfg.set_main_option('script_location', str(ALEMBIC_DIR))
    if url:
        # ConfigParser interpolation treats % specially
        alembic_cfg.set_main_option('sqlalchemy.url', url.replace('%', '%%'))
    return alembic_cfg


def run_alembic_migrations(url: str | None = None) -> None:
    """Upgrade the schema to head. Blocking; alembic drives its own loop."""
    command.upgrade(get_alembic_config(url), 'head')


@contextlib.asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: AppServerConfig = get_global_config()
    if config.run_migrations:
        url = config.db_session.get_url()
        if not isinstance(url, str):
            url = url.render_as_string(hide_password=False)
        logger.info('Applying database migrations')
        await asyncio.to_thread(run_alembic_migrations, url)
    try:
        yield
    finally:
        await config.db_session.dispose()
        logger.info('Database engine disposed')
