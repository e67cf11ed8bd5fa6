"""Shared SQLAlchemy helpers for the FlowForge storage layer."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
from datetime import UTC, datetime
from typing import AsyncIterator, Awaitable, Callable, ParamSpec, TypeVar

from sqlalchemy import DateTime
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from flowforge.core.errors import StorageError

_logger = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class UtcDateTime(TypeDecorator):
    """Timezone aware datetime column.

    SQLite drops tzinfo on the way back, so values are normalized to UTC on
    both bind and load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return as_utc(value)

    def process_result_value(self, value, dialect):
        return as_utc(value)


def storage_errors(fn: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Report driver failures and timeouts of a read as ``StorageError``."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await fn(*args, **kwargs)
        except (SQLAlchemyError, asyncio.TimeoutError) as exc:
            _logger.exception('Storage failure in %s', fn.__qualname__)
            raise StorageError(
                f'Storage failure: {exc.__class__.__name__}'
            ) from exc

    return wrapper


@contextlib.asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit the work done inside the block, or roll all of it back.

    ``IntegrityError`` is re-raised untouched so callers can map constraint
    violations to domain errors. Any other driver failure or timeout becomes a
    ``StorageError``.
    """
    try:
        yield session
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    except (SQLAlchemyError, asyncio.TimeoutError) as exc:
        await session.rollback()
        _logger.exception('Storage failure, transaction rolled back')
        raise StorageError(f'Storage failure: {exc.__class__.__name__}') from exc
    except BaseException:
        await session.rollback()
        raise
