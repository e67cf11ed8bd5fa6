"""Relation-based access control for teams and projects.

Every decision derives from a single relation between the caller and the
resource, looked up in ``RELATION_CAPABILITIES``.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.core.errors import AccessDenied
from flowforge.storage.models.notification import Notification
from flowforge.storage.models.project import Project
from flowforge.storage.models.team import Team
from flowforge.storage.teams.sql_team_store import SQLTeamStore

logger = logging.getLogger(__name__)


class Relation(str, Enum):
    """How a user relates to a team or project, strongest first."""

    OWNER = 'owner'
    PROJECT_CREATOR = 'project_creator'
    LEAD = 'lead'
    MEMBER = 'member'
    VIEWER = 'viewer'
    NONE = 'none'


class Capability(str, Enum):
    PROJECT_CREATE = 'project:create'
    PROJECT_READ = 'project:read'
    PROJECT_EDIT = 'project:edit'
    PROJECT_DELETE = 'project:delete'
    PROJECT_COMPLETE = 'project:complete'
    PROJECT_REQUEST_COMPLETION = 'project:request_completion'


# Maps each relation to the capabilities it grants.
RELATION_CAPABILITIES: dict[Relation, set[Capability]] = {
    Relation.OWNER: {
        Capability.PROJECT_CREATE,
        Capability.PROJECT_READ,
        Capability.PROJECT_EDIT,
        Capability.PROJECT_DELETE,
        Capability.PROJECT_COMPLETE,
    },
    Relation.PROJECT_CREATOR: {
        Capability.PROJECT_READ,
        Capability.PROJECT_EDIT,
        Capability.PROJECT_COMPLETE,
    },
    Relation.LEAD: {
        Capability.PROJECT_READ,
        Capability.PROJECT_REQUEST_COMPLETION,
    },
    Relation.MEMBER: {
        Capability.PROJECT_READ,
        Capability.PROJECT_REQUEST_COMPLETION,
    },
    Relation.VIEWER: {
        Capability.PROJECT_READ,
        Capability.PROJECT_REQUEST_COMPLETION,
    },
    Relation.NONE: set(),
}


def relation_has_capability(relation: Relation, capability: Capability) -> bool:
    return capability in RELATION_CAPABILITIES.get(relation, set())


def check_capability(relation: Relation, capability: Capability) -> None:
    """Raise ``AccessDenied`` unless *relation* grants *capability*."""
    if not relation_has_capability(relation, capability):
        raise AccessDenied(
            f'Permission denied: {capability.value} is not granted to '
            f'{relation.value}'
        )


def team_relation(user_id: int, team: Team, visible: bool = False) -> Relation:
    """Relation of *user_id* to *team*.

    ``visible`` says whether the team reaches the user through the
    provisioning graph; it only matters when no direct relation exists.
    """
    if team.created_by == user_id:
        return Relation.OWNER
    if team.lead_id == user_id:
        return Relation.LEAD
    if user_id in team.member_ids:
        return Relation.MEMBER
    if visible:
        return Relation.VIEWER
    return Relation.NONE


def project_relation(
    user_id: int, project: Project, team: Team, visible: bool = False
) -> Relation:
    relation = team_relation(user_id, team, visible)
    if relation is Relation.OWNER:
        return relation
    if project.created_by == user_id:
        return Relation.PROJECT_CREATOR
    return relation


def is_recipient(user_id: int, notification: Notification) -> bool:
    return notification.recipient_id == user_id


class AccessResolver:
    """Loads the inputs of the relation functions and enforces capabilities."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.team_store = SQLTeamStore(session)

    async def relation_to_team(self, user_id: int, team: Team) -> Relation:
        relation = team_relation(user_id, team)
        if relation is Relation.NONE:
            if await self.team_store.is_visible_to(team, user_id):
                return Relation.VIEWER
        return relation

    async def relation_to_project(
        self, user_id: int, project: Project, team: Team
    ) -> Relation:
        relation = project_relation(user_id, project, team)
        if relation is Relation.NONE:
            if await self.team_store.is_visible_to(team, user_id):
                return Relation.VIEWER
        return relation

    async def require_team(
        self, user_id: int, team: Team, capability: Capability
    ) -> Relation:
        relation = await self.relation_to_team(user_id, team)
        self._enforce(user_id, relation, capability, f'team {team.id}')
        return relation

    async def require_project(
        self, user_id: int, project: Project, team: Team, capability: Capability
    ) -> Relation:
        relation = await self.relation_to_project(user_id, project, team)
        self._enforce(user_id, relation, capability, f'project {project.id}')
        return relation

    def require_recipient(self, user_id: int, notification: Notification) -> None:
        if not is_recipient(user_id, notification):
            logger.warning(
                'User %s may not resolve notification %s', user_id, notification.id
            )
            raise AccessDenied('Only the designated approver can resolve this request')

    @staticmethod
    def _enforce(
        user_id: int, relation: Relation, capability: Capability, target: str
    ) -> None:
        try:
            check_capability(relation, capability)
        except AccessDenied:
            logger.warning(
                'Denied %s on %s to user %s (%s)',
                capability.value,
                target,
                user_id,
                relation.value,
            )
            raise
