"""Pydantic request/response models for project endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from flowforge.app_server.notification.notification_models import (
    NotificationResponse,
)
from flowforge.storage.models.project import Project

# ── Response models ─────────────────────────────────────────────────


class ProjectResponse(BaseModel):
    id: int
    team_id: int
    name: str
    description: str
    start_time: datetime
    end_time: datetime
    priority: str
    status: str
    created_by: int
    completed_at: datetime | None = None
    created_at: datetime | None = None


class CompletionResponse(BaseModel):
    completed: bool
    project: ProjectResponse
    notification: NotificationResponse | None = None


# ── Request models ──────────────────────────────────────────────────


class CreateProjectRequest(BaseModel):
    name: str
    start_time: datetime
    end_time: datetime
    description: str = ''
    priority: str = Field(default='medium', pattern=r'^(low|medium|high)$')


class UpdateProjectRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    priority: str | None = Field(default=None, pattern=r'^(low|medium|high)$')
    status: str | None = None


def project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        team_id=project.team_id,
        name=project.name,
        description=project.description or '',
        start_time=project.start_time,
        end_time=project.end_time,
        priority=project.priority,
        status=project.status,
        created_by=project.created_by,
        completed_at=project.completed_at,
        created_at=project.created_at,
    )
