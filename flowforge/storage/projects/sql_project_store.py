"""SQL-backed project storage."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.utils.sql_utils import (
    as_utc,
    storage_errors,
    transaction,
    utc_now,
)
from flowforge.core.errors import NotFound, ValidationError
from flowforge.storage.models.notification import Notification
from flowforge.storage.models.project import Project, ProjectPriority, ProjectStatus
from flowforge.storage.models.team import Team

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {'name', 'description', 'start_time', 'end_time', 'priority', 'status'}
)
# Statuses an edit may set; the pending window is never stored.
STORED_STATUSES = (ProjectStatus.ACTIVE.value, ProjectStatus.COMPLETED.value)


def _value(value: Any) -> Any:
    return getattr(value, 'value', value)


def validate_project_fields(
    name: str | None,
    start_time: datetime | None,
    end_time: datetime | None,
    priority: str | None,
) -> None:
    if not name or not name.strip():
        raise ValidationError('Project name is required')
    if start_time is None or end_time is None:
        raise ValidationError('Start and end time are required')
    if end_time < start_time:
        raise ValidationError('End time must not be before start time')
    if priority not in {p.value for p in ProjectPriority}:
        raise ValidationError(f'Unknown priority: {priority!r}')


class SQLProjectStore:
    """Projects of a team.

    ``mark_completed`` does not commit; callers combine it with other writes
    inside ``transaction()``. Everything else commits on its own.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        team_id: int,
        name: str,
        start_time: datetime,
        end_time: datetime,
        created_by: int,
        description: str | None = '',
        priority: str = ProjectPriority.MEDIUM.value,
    ) -> Project:
        priority = _value(priority)
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        validate_project_fields(name, start_time, end_time, priority)
        if await self._get_team(team_id) is None:
            raise NotFound('Team', team_id)

        project = Project(
            team_id=team_id,
            name=name.strip(),
            description=description or '',
            start_time=start_time,
            end_time=end_time,
            priority=priority,
            status=ProjectStatus.ACTIVE.value,
            created_by=created_by,
        )
        async with transaction(self.session):
            self.session.add(project)
        logger.info('Created project %s in team %s', project.id, team_id)
        return project

    @storage_errors
    async def get(self, project_id: int) -> Project | None:
        return await self.session.get(Project, project_id, populate_existing=True)

    @storage_errors
    async def list_for_team(self, team_id: int) -> list[Project]:
        result = await self.session.execute(
            select(Project).where(Project.team_id == team_id).order_by(Project.id)
        )
        return list(result.scalars().all())

    async def update(self, project_id: int, **fields: Any) -> Project:
        """Apply an edit.

        Moving into ``completed`` stamps ``completed_at``; moving out of it
        clears the stamp.
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f'Unknown project fields: {sorted(unknown)}')
        fields = {key: _value(value) for key, value in fields.items()}
        for key in ('start_time', 'end_time'):
            if key in fields:
                fields[key] = as_utc(fields[key])
        if 'status' in fields and fields['status'] not in STORED_STATUSES:
            raise ValidationError(f'Status cannot be set to {fields["status"]!r}')

        project = await self.get(project_id)
        if project is None:
            raise NotFound('Project', project_id)
        validate_project_fields(
            fields.get('name', project.name),
            fields.get('start_time', project.start_time),
            fields.get('end_time', project.end_time),
            fields.get('priority', project.priority),
        )

        async with transaction(self.session):
            previous_status = project.status
            for key, value in fields.items():
                if key == 'name':
                    value = value.strip()
                elif key == 'description':
                    value = value or ''
                setattr(project, key, value)

            if project.status != previous_status:
                if project.status == ProjectStatus.COMPLETED.value:
                    project.completed_at = utc_now()
                else:
                    project.completed_at = None
        logger.info('Updated project %s', project_id)
        return project

    async def mark_completed(self, project_id: int) -> bool:
        """Compare-and-set ``active -> completed``.

        Returns False when the project was no longer active, so two callers
        racing on the same project cannot both complete it.
        """
        result = await self.session.execute(
            update(Project)
            .where(
                Project.id == project_id,
                Project.status == ProjectStatus.ACTIVE.value,
            )
            .values(status=ProjectStatus.COMPLETED.value, completed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, project_id: int) -> None:
        """Delete the project and every notification that references it."""
        if await self.get(project_id) is None:
            raise NotFound('Project', project_id)
        async with transaction(self.session):
            await self.session.execute(
                delete(Notification).where(
                    Notification.related_project_id == project_id
                )
            )
            await self.session.execute(delete(Project).where(Project.id == project_id))
        logger.info('Deleted project %s', project_id)

    async def refresh(self, project: Project) -> Project:
        await self.session.refresh(project)
        return project

    @storage_errors
    async def _get_team(self, team_id: int) -> Team | None:
        return await self.session.get(Team, team_id)
