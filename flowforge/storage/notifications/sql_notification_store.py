"""SQL-backed notification ledger."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.utils.sql_utils import storage_errors, transaction, utc_now
from flowforge.core.errors import (
    AlreadyResolved,
    CompletionAlreadyRequested,
    NotFound,
    StorageError,
    ValidationError,
)
from flowforge.storage.models.notification import (
    COMPLETION_REQUEST,
    Notification,
    NotificationStatus,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (
    NotificationStatus.APPROVED.value,
    NotificationStatus.REJECTED.value,
)


class SQLNotificationStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        recipient_id: int,
        type: str,
        payload: dict[str, Any],
        requested_by: int,
        related_project_id: int | None = None,
        related_team_id: int | None = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            type=type or COMPLETION_REQUEST,
            payload=dict(payload or {}),
            requested_by=requested_by,
            status=NotificationStatus.PENDING.value,
            related_project_id=related_project_id,
            related_team_id=related_team_id,
        )
        try:
            async with transaction(self.session):
                self.session.add(notification)
        except IntegrityError as exc:
            # The partial unique index allows one pending request per project.
            if related_project_id is not None:
                if await self.pending_for_project(related_project_id) is not None:
                    raise CompletionAlreadyRequested() from exc
            logger.exception('Failed to store notification for %s', recipient_id)
            raise StorageError('Notification could not be stored') from exc
        logger.info(
            'Created %s notification %s for user %s',
            notification.type,
            notification.id,
            recipient_id,
        )
        return notification

    @storage_errors
    async def get(self, notification_id: int) -> Notification | None:
        return await self.session.get(
            Notification, notification_id, populate_existing=True
        )

    @storage_errors
    async def list_for(self, user_id: int) -> list[Notification]:
        """Notifications addressed to *user_id*, newest first."""
        result = await self.session.execute(
            select(Notification)
            .where(Notification.recipient_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return list(result.scalars().all())

    @storage_errors
    async def pending_for_project(self, project_id: int) -> Notification | None:
        result = await self.session.execute(
            select(Notification).where(
                Notification.related_project_id == project_id,
                Notification.status == NotificationStatus.PENDING.value,
            )
        )
        return result.scalars().first()

    async def resolve(self, notification_id: int, status: str) -> Notification:
        """Move a pending notification to approved or rejected.

        Resolving twice fails with ``AlreadyResolved`` instead of succeeding
        silently.
        """
        status = getattr(status, 'value', status)
        if status not in TERMINAL_STATUSES:
            raise ValidationError(f'Cannot resolve a notification to {status!r}')
        if await self.get(notification_id) is None:
            raise NotFound('Notification', notification_id)
        async with transaction(self.session):
            resolved = await self.mark_resolved(notification_id, status)
        if not resolved:
            raise AlreadyResolved()
        notification = await self.get(notification_id)
        logger.info('Notification %s %s', notification_id, status)
        return notification

    async def mark_resolved(self, notification_id: int, status: str) -> bool:
        """Compare-and-set ``pending -> status`` without committing."""
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.status == NotificationStatus.PENDING.value,
            )
            .values(status=status, resolved_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
