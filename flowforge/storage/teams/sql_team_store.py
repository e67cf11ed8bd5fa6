"""SQL-backed team registry.

Visibility follows the provisioning graph recorded in ``relationships``:

* admin: teams they created, plus teams created by hr users they provisioned;
* hr: teams they created, lead or belong to, plus teams created by the admin
  who provisioned them;
* employee: teams they lead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.utils.sql_utils import storage_errors, transaction
from flowforge.core.errors import NotFound, ValidationError
from flowforge.storage.models.notification import Notification
from flowforge.storage.models.project import Project, ProjectStatus
from flowforge.storage.models.relationship import Relationship
from flowforge.storage.models.team import Team, TeamMember
from flowforge.storage.models.user import User, UserRole

logger = logging.getLogger(__name__)


@dataclass
class TeamAssignment:
    """A team a user leads or belongs to, with its active projects."""

    team: Team
    is_lead: bool
    projects: list[Project] = field(default_factory=list)


class SQLTeamStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_team(
        self,
        name: str,
        lead_id: int,
        member_ids: list[int] | set[int] | None,
        created_by: int,
    ) -> Team:
        name = (name or '').strip()
        if not name:
            raise ValidationError('Team name is required')
        if lead_id is None or created_by is None:
            raise ValidationError('Team lead and creator are required')

        members = set(member_ids or ())
        await self._require_users({created_by, lead_id} | members)

        team = Team(
            name=name,
            created_by=created_by,
            lead_id=lead_id,
            members=[TeamMember(user_id=user_id) for user_id in sorted(members)],
        )
        async with transaction(self.session):
            self.session.add(team)
        logger.info(
            'Created team %s (lead %s, %d members) by %s',
            team.id,
            lead_id,
            len(members),
            created_by,
        )
        return team

    async def delete_team(self, team_id: int) -> None:
        """Delete a team with its projects and their notifications.

        No authorization is applied here; callers decide who may delete.
        """
        if await self.get_team(team_id) is None:
            raise NotFound('Team', team_id)
        async with transaction(self.session):
            project_ids = select(Project.id).where(Project.team_id == team_id)
            await self.session.execute(
                delete(Notification).where(
                    or_(
                        Notification.related_project_id.in_(project_ids),
                        Notification.related_team_id == team_id,
                    )
                )
            )
            await self.session.execute(
                delete(Project).where(Project.team_id == team_id)
            )
            await self.session.execute(
                delete(TeamMember).where(TeamMember.team_id == team_id)
            )
            await self.session.execute(delete(Team).where(Team.id == team_id))
        logger.info('Deleted team %s', team_id)

    @storage_errors
    async def get_team(self, team_id: int) -> Team | None:
        return await self.session.get(Team, team_id, populate_existing=True)

    @storage_errors
    async def teams_visible_to(self, user_id: int) -> list[Team]:
        user = await self._require_user(user_id)
        clause = self._visibility_clause(user)
        result = await self.session.execute(
            select(Team).where(clause).order_by(Team.id)
        )
        return list(result.scalars().all())

    @storage_errors
    async def is_visible_to(self, team: Team | int, user_id: int) -> bool:
        team_id = team.id if isinstance(team, Team) else team
        user = await self.session.get(User, user_id)
        if user is None:
            return False
        clause = self._visibility_clause(user)
        result = await self.session.execute(
            select(Team.id).where(Team.id == team_id, clause)
        )
        return result.first() is not None

    @storage_errors
    async def available_provisionees(self, user_id: int) -> list[User]:
        """Users *user_id* may put on a new team.

        An admin gets the hr users they provisioned, the employees those hr
        users provisioned, and employees they provisioned directly. An hr user
        gets the employees they provisioned.
        """
        user = await self._require_user(user_id)
        if user.role == UserRole.ADMIN.value:
            hr_ids = select(Relationship.subject_id).where(
                Relationship.issuer_id == user.id,
                Relationship.subject_role == UserRole.HR.value,
            )
            condition = or_(
                Relationship.issuer_id == user.id,
                Relationship.issuer_id.in_(hr_ids),
            )
        elif user.role == UserRole.HR.value:
            condition = Relationship.issuer_id == user.id
        else:
            return []

        result = await self.session.execute(
            select(User)
            .join(Relationship, Relationship.subject_id == User.id)
            .where(condition)
            .order_by(User.id)
        )
        return list(result.scalars().unique().all())

    @storage_errors
    async def teams_led_by(self, user_id: int) -> list[Team]:
        result = await self.session.execute(
            select(Team).where(Team.lead_id == user_id).order_by(Team.id)
        )
        return list(result.scalars().all())

    @storage_errors
    async def team_assignments(self, user_id: int) -> list[TeamAssignment]:
        result = await self.session.execute(
            select(Team)
            .where(or_(Team.lead_id == user_id, Team.id.in_(self._member_of(user_id))))
            .order_by(Team.id)
        )
        teams = list(result.scalars().all())
        if not teams:
            return []

        result = await self.session.execute(
            select(Project)
            .where(
                Project.team_id.in_([team.id for team in teams]),
                Project.status == ProjectStatus.ACTIVE.value,
            )
            .order_by(Project.id)
        )
        by_team: dict[int, list[Project]] = {}
        for project in result.scalars().all():
            by_team.setdefault(project.team_id, []).append(project)

        return [
            TeamAssignment(
                team=team,
                is_lead=team.lead_id == user_id,
                projects=by_team.get(team.id, []),
            )
            for team in teams
        ]

    def _visibility_clause(self, user: User):
        if user.role == UserRole.ADMIN.value:
            provisioned_hr = select(Relationship.subject_id).where(
                Relationship.issuer_id == user.id,
                Relationship.issuer_role == UserRole.ADMIN.value,
                Relationship.subject_role == UserRole.HR.value,
            )
            return or_(Team.created_by == user.id, Team.created_by.in_(provisioned_hr))
        if user.role == UserRole.HR.value:
            clauses = [
                Team.created_by == user.id,
                Team.lead_id == user.id,
                Team.id.in_(self._member_of(user.id)),
            ]
            provisioning_admin = select(Relationship.issuer_id).where(
                Relationship.subject_id == user.id,
                Relationship.issuer_role == UserRole.ADMIN.value,
            )
            clauses.append(Team.created_by.in_(provisioning_admin))
            return or_(*clauses)
        if user.role == UserRole.EMPLOYEE.value:
            return Team.lead_id == user.id
        return false()

    @staticmethod
    def _member_of(user_id: int):
        return select(TeamMember.team_id).where(TeamMember.user_id == user_id)

    async def _require_user(self, user_id: int) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFound('User', user_id)
        return user

    @storage_errors
    async def _require_users(self, user_ids: set[int]) -> None:
        result = await self.session.execute(
            select(User.id).where(User.id.in_(user_ids))
        )
        missing = user_ids - set(result.scalars().all())
        if missing:
            raise NotFound('User', min(missing))
