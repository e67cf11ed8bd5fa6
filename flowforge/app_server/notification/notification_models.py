"""Pydantic response models for notification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from flowforge.storage.models.notification import Notification


class NotificationResponse(BaseModel):
    id: int
    recipient_id: int
    type: str
    payload: dict[str, Any]
    requested_by: int
    status: str
    related_project_id: int | None = None
    related_team_id: int | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None


def notification_to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        recipient_id=notification.recipient_id,
        type=notification.type,
        payload=notification.payload or {},
        requested_by=notification.requested_by,
        status=notification.status,
        related_project_id=notification.related_project_id,
        related_team_id=notification.related_team_id,
        created_at=notification.created_at,
        resolved_at=notification.resolved_at,
    )
