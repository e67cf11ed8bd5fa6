"""Configuration for the FlowForge App Server."""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator

from fastapi import Depends, Header
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.services.db_session_injector import DbSessionInjector
from flowforge.core.errors import AuthenticationRequired
from flowforge.core.logger import set_user_id


def get_default_persistence_dir() -> Path:
    # Recheck env because this function is also used to generate other defaults
    persistence_dir = os.getenv('FF_PERSISTENCE_DIR')

    if persistence_dir:
        result = Path(persistence_dir)
    else:
        result = Path.home() / '.flowforge'

    result.mkdir(parents=True, exist_ok=True)
    return result


def _get_default_run_migrations() -> bool:
    return os.getenv('FF_RUN_MIGRATIONS', 'true').lower() not in ('0', 'false', 'no')


class AppServerConfig(BaseModel):
    persistence_dir: Path = Field(default_factory=get_default_persistence_dir)
    db_session: DbSessionInjector = Field(
        default_factory=lambda: DbSessionInjector(
            persistence_dir=get_default_persistence_dir()
        )
    )
    run_migrations: bool = Field(
        default_factory=_get_default_run_migrations,
        description='Apply alembic migrations when the server starts',
    )
    log_level: str = Field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))


_global_config: AppServerConfig | None = None


def get_global_config() -> AppServerConfig:
    """Get the default server config shared across the server."""
    global _global_config
    if _global_config is None:
        _global_config = AppServerConfig()
    return _global_config


def set_global_config(config: AppServerConfig | None) -> None:
    global _global_config
    _global_config = config


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_global_config().db_session.depends():
        yield session


async def get_user_id(
    x_user_id: int | None = Header(default=None, alias='X-User-Id'),
) -> int:
    """Caller id, already authenticated upstream."""
    if x_user_id is None:
        raise AuthenticationRequired('Authentication required')
    set_user_id(x_user_id)
    return x_user_id


def depends_db_session():
    return Depends(get_db_session)


def depends_user_id():
    return Depends(get_user_id)
