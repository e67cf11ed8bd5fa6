"""Team router: visibility, creation, deletion and the team's projects."""

from __future__ import annotations

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.config import depends_db_session, depends_user_id
from flowforge.app_server.project.project_lifecycle_service import (
    ProjectLifecycleService,
)
from flowforge.app_server.project.project_models import (
    CreateProjectRequest,
    ProjectResponse,
    project_to_response,
)
from flowforge.app_server.team.team_models import (
    CreateTeamRequest,
    TeamAssignmentResponse,
    TeamResponse,
    assignment_to_response,
    team_to_response,
)
from flowforge.app_server.user.user_models import UserResponse
from flowforge.app_server.user.user_router import user_to_response
from flowforge.storage.teams.sql_team_store import SQLTeamStore

router = APIRouter(prefix='/teams', tags=['Teams'])

db_session_dependency = depends_db_session()
user_id_dependency = depends_user_id()


@router.get('')
async def list_visible_teams(
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> list[TeamResponse]:
    """Teams visible to the caller through ownership, membership or provisioning."""
    teams = await SQLTeamStore(db_session).teams_visible_to(caller_id)
    return [team_to_response(t) for t in teams]


@router.post('', status_code=status.HTTP_201_CREATED)
async def create_team(
    body: CreateTeamRequest,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> TeamResponse:
    team = await SQLTeamStore(db_session).create_team(
        name=body.name,
        lead_id=body.lead_id,
        member_ids=body.member_ids,
        created_by=caller_id,
    )
    return team_to_response(team)


@router.get('/led')
async def list_led_teams(
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> list[TeamResponse]:
    teams = await SQLTeamStore(db_session).teams_led_by(caller_id)
    return [team_to_response(t) for t in teams]


@router.get('/assignments')
async def list_assignments(
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> list[TeamAssignmentResponse]:
    """Teams the caller leads or belongs to, with their active projects."""
    assignments = await SQLTeamStore(db_session).team_assignments(caller_id)
    return [assignment_to_response(a) for a in assignments]


@router.get('/provisionees')
async def list_provisionees(
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> list[UserResponse]:
    """Users the caller may put on a new team."""
    users = await SQLTeamStore(db_session).available_provisionees(caller_id)
    return [user_to_response(u) for u in users]


@router.delete('/{team_id}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    db_session: AsyncSession = db_session_dependency,
    _caller: int = user_id_dependency,
) -> None:
    await SQLTeamStore(db_session).delete_team(team_id)


@router.get('/{team_id}/projects')
async def list_team_projects(
    team_id: int,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> list[ProjectResponse]:
    service = ProjectLifecycleService(db_session)
    projects = await service.projects_of_team(team_id, caller_id)
    return [project_to_response(p) for p in projects]


@router.post('/{team_id}/projects', status_code=status.HTTP_201_CREATED)
async def create_team_project(
    team_id: int,
    body: CreateProjectRequest,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> ProjectResponse:
    """Create a project under the team (team owner only)."""
    service = ProjectLifecycleService(db_session)
    project = await service.create_project(
        team_id=team_id,
        user_id=caller_id,
        name=body.name,
        start_time=body.start_time,
        end_time=body.end_time,
        description=body.description,
        priority=body.priority,
    )
    return project_to_response(project)
