"""Project lifecycle: creation, edits, deletion and the completion workflow.

A project is ``active`` until it is completed. Creators and team owners
complete immediately. Anyone else with access to the team files a completion
request addressed to the team lead; while the request is pending the project
stays ``active`` in storage and the pending notification marks the window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.authorization.access_resolver import (
    AccessResolver,
    Capability,
    Relation,
    relation_has_capability,
)
from flowforge.app_server.utils.sql_utils import transaction
from flowforge.core.errors import (
    AccessDenied,
    AlreadyCompleted,
    AlreadyResolved,
    CompletionAlreadyRequested,
    NotFound,
    ValidationError,
)
from flowforge.storage.models.notification import (
    COMPLETION_REQUEST,
    Notification,
    NotificationStatus,
)
from flowforge.storage.models.project import Project, ProjectPriority, ProjectStatus
from flowforge.storage.models.team import Team
from flowforge.storage.notifications.sql_notification_store import (
    SQLNotificationStore,
)
from flowforge.storage.projects.sql_project_store import SQLProjectStore
from flowforge.storage.teams.sql_team_store import SQLTeamStore

logger = logging.getLogger(__name__)

RESOLUTION_STATUSES = {
    'approve': NotificationStatus.APPROVED.value,
    'reject': NotificationStatus.REJECTED.value,
}


@dataclass
class CompletionOutcome:
    """Result of a completion request.

    ``completed`` is True when the project was completed immediately; otherwise
    ``notification`` holds the pending request sent to the team lead.
    """

    project: Project
    completed: bool
    notification: Notification | None = None


class ProjectLifecycleService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.teams = SQLTeamStore(session)
        self.projects = SQLProjectStore(session)
        self.notifications = SQLNotificationStore(session)
        self.access = AccessResolver(session)

    async def create_project(
        self,
        team_id: int,
        user_id: int,
        name: str,
        start_time: datetime,
        end_time: datetime,
        description: str | None = '',
        priority: str = ProjectPriority.MEDIUM.value,
    ) -> Project:
        team = await self._get_team(team_id)
        await self.access.require_team(user_id, team, Capability.PROJECT_CREATE)
        return await self.projects.create(
            team_id=team.id,
            name=name,
            start_time=start_time,
            end_time=end_time,
            created_by=user_id,
            description=description,
            priority=priority,
        )

    async def request_completion(
        self, project_id: int, user_id: int
    ) -> CompletionOutcome:
        project, team = await self._load(project_id)
        relation = await self.access.relation_to_project(user_id, project, team)
        may_complete = relation_has_capability(relation, Capability.PROJECT_COMPLETE)
        may_request = relation_has_capability(
            relation, Capability.PROJECT_REQUEST_COMPLETION
        )
        if not (may_complete or may_request):
            logger.warning(
                'Denied completion of project %s to user %s', project.id, user_id
            )
            raise AccessDenied('You do not have access to this project')
        # Status is only reported to callers with access.
        if project.status == ProjectStatus.COMPLETED.value:
            raise AlreadyCompleted()

        if may_complete:
            async with transaction(self.session):
                completed = await self.projects.mark_completed(project.id)
            if not completed:
                raise AlreadyCompleted()
            await self.projects.refresh(project)
            logger.info(
                'Project %s completed by %s (%s)', project.id, user_id, relation.value
            )
            return CompletionOutcome(project=project, completed=True)

        if await self.notifications.pending_for_project(project.id) is not None:
            raise CompletionAlreadyRequested()
        notification = await self.notifications.create(
            recipient_id=team.lead_id,
            type=COMPLETION_REQUEST,
            payload={
                'projectId': project.id,
                'projectName': project.name,
                'message': f'Request to mark project "{project.name}" as complete',
            },
            requested_by=user_id,
            related_project_id=project.id,
            related_team_id=team.id,
        )
        logger.info(
            'Completion of project %s requested by %s, awaiting lead %s',
            project.id,
            user_id,
            team.lead_id,
        )
        return CompletionOutcome(
            project=project, completed=False, notification=notification
        )

    async def resolve_completion(
        self, notification_id: int, user_id: int, action: str
    ) -> Notification:
        """Approve or reject a pending completion request.

        Only the recipient recorded on the request may resolve it. Approving
        completes the project in the same transaction; if the project was
        completed in the meantime its ``completed_at`` is left as is.
        """
        status = RESOLUTION_STATUSES.get(action)
        if status is None:
            raise ValidationError(f'Invalid action: {action!r}')

        notification = await self.notifications.get(notification_id)
        if notification is None:
            raise NotFound('Notification', notification_id)
        self.access.require_recipient(user_id, notification)

        async with transaction(self.session):
            resolved = await self.notifications.mark_resolved(notification.id, status)
            if (
                resolved
                and status == NotificationStatus.APPROVED.value
                and notification.related_project_id is not None
            ):
                await self.projects.mark_completed(notification.related_project_id)
        if not resolved:
            raise AlreadyResolved()

        await self.session.refresh(notification)
        if notification.related_project_id is not None:
            # Reload so callers holding the project see the new status.
            await self.projects.get(notification.related_project_id)
        logger.info(
            'Completion request %s %s by %s', notification.id, status, user_id
        )
        return notification

    async def edit_project(
        self, project_id: int, user_id: int, **fields: Any
    ) -> Project:
        project, team = await self._load(project_id)
        await self.access.require_project(
            user_id, project, team, Capability.PROJECT_EDIT
        )
        return await self.projects.update(project.id, **fields)

    async def delete_project(self, project_id: int, user_id: int) -> None:
        project, team = await self._load(project_id)
        await self.access.require_project(
            user_id, project, team, Capability.PROJECT_DELETE
        )
        await self.projects.delete(project.id)

    async def projects_of_team(
        self, team_id: int, user_id: int | None = None
    ) -> list[Project]:
        """Projects of a team; with *user_id* the caller must be able to read it."""
        team = await self._get_team(team_id)
        if user_id is not None:
            await self.access.require_team(user_id, team, Capability.PROJECT_READ)
        return await self.projects.list_for_team(team.id)

    async def project_by_id(
        self, project_id: int, user_id: int | None = None
    ) -> Project:
        project, team = await self._load(project_id)
        if user_id is not None:
            await self.access.require_project(
                user_id, project, team, Capability.PROJECT_READ
            )
        return project

    async def relation_to_project(self, project_id: int, user_id: int) -> Relation:
        project, team = await self._load(project_id)
        return await self.access.relation_to_project(user_id, project, team)

    async def teams_visible_to(self, user_id: int) -> list[Team]:
        return await self.teams.teams_visible_to(user_id)

    async def notifications_for(self, user_id: int) -> list[Notification]:
        return await self.notifications.list_for(user_id)

    async def _get_team(self, team_id: int) -> Team:
        team = await self.teams.get_team(team_id)
        if team is None:
            raise NotFound('Team', team_id)
        return team

    async def _load(self, project_id: int) -> tuple[Project, Team]:
        project = await self.projects.get(project_id)
        if project is None:
            raise NotFound('Project', project_id)
        team = await self._get_team(project.team_id)
        return project, team
