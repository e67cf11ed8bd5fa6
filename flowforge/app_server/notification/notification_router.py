"""Notification inbox router."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.config import depends_db_session, depends_user_id
from flowforge.app_server.notification.notification_models import (
    NotificationResponse,
    notification_to_response,
)
from flowforge.app_server.project.project_lifecycle_service import (
    ProjectLifecycleService,
)

router = APIRouter(prefix='/notifications', tags=['Notifications'])

db_session_dependency = depends_db_session()
user_id_dependency = depends_user_id()


@router.get('')
async def list_notifications(
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> list[NotificationResponse]:
    """Notifications addressed to the caller, newest first."""
    service = ProjectLifecycleService(db_session)
    notifications = await service.notifications_for(caller_id)
    return [notification_to_response(n) for n in notifications]


@router.post('/{notification_id}/{action}')
async def resolve_notification(
    notification_id: int,
    action: Literal['approve', 'reject'],
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> NotificationResponse:
    """Approve or reject a completion request addressed to the caller."""
    service = ProjectLifecycleService(db_session)
    notification = await service.resolve_completion(
        notification_id, caller_id, action
    )
    return notification_to_response(notification)
