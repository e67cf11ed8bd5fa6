"""Database engine and session factory for the app server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import AsyncGenerator

from pydantic import BaseModel, Field, PrivateAttr, SecretStr
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_password() -> SecretStr | None:
    value = os.getenv('FF_DB_PASSWORD')
    return SecretStr(value) if value else None


class DbSessionInjector(BaseModel):
    """Builds the async engine lazily and hands out one session per request.

    Without ``host`` a sqlite file inside ``persistence_dir`` is used;
    otherwise PostgreSQL through asyncpg.
    """

    persistence_dir: Path
    host: str | None = Field(default_factory=lambda: os.getenv('FF_DB_HOST') or None)
    port: int = Field(default_factory=lambda: _env_int('FF_DB_PORT', 5432))
    name: str = Field(default_factory=lambda: os.getenv('FF_DB_NAME', 'flowforge'))
    user: str = Field(default_factory=lambda: os.getenv('FF_DB_USER', 'postgres'))
    password: SecretStr | None = Field(default_factory=_env_password)
    pool_size: int = Field(default_factory=lambda: _env_int('FF_DB_POOL_SIZE', 5))
    timeout: float = Field(
        default_factory=lambda: _env_float('FF_DB_TIMEOUT', 10.0),
        description='Seconds to wait for a connection or a statement',
    )
    echo: bool = Field(
        default_factory=lambda: os.getenv('FF_DB_ECHO', '').lower() == 'true'
    )

    _engine: AsyncEngine | None = PrivateAttr(default=None)
    _session_maker: async_sessionmaker[AsyncSession] | None = PrivateAttr(
        default=None
    )

    def get_url(self) -> URL | str:
        if not self.host:
            return f'sqlite+aiosqlite:///{self.persistence_dir / "flowforge.db"}'
        return URL.create(
            'postgresql+asyncpg',
            username=self.user,
            password=self.password.get_secret_value() if self.password else None,
            host=self.host,
            port=self.port,
            database=self.name,
        )

    def get_async_engine(self) -> AsyncEngine:
        if self._engine is None:
            if self.host:
                self._engine = create_async_engine(
                    self.get_url(),
                    pool_size=self.pool_size,
                    pool_timeout=self.timeout,
                    pool_pre_ping=True,
                    connect_args={'timeout': self.timeout},
                    echo=self.echo,
                )
            else:
                self._engine = create_async_engine(
                    self.get_url(),
                    connect_args={'timeout': self.timeout},
                    echo=self.echo,
                )
            logger.info('Database engine created for %s', self._describe())
        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                self.get_async_engine(), class_=AsyncSession, expire_on_commit=False
            )
        return self._session_maker

    async def depends(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.get_session_maker()() as session:
            yield session

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None

    def _describe(self) -> str:
        if not self.host:
            return 'sqlite'
        return f'postgresql://{self.host}:{self.port}/{self.name}'
