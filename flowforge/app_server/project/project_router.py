"""Project router: reads, edits, deletion and completion."""

from __future__ import annotations

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.config import depends_db_session, depends_user_id
from flowforge.app_server.notification.notification_models import (
    notification_to_response,
)
from flowforge.app_server.project.project_lifecycle_service import (
    ProjectLifecycleService,
)
from flowforge.app_server.project.project_models import (
    CompletionResponse,
    ProjectResponse,
    UpdateProjectRequest,
    project_to_response,
)

router = APIRouter(prefix='/projects', tags=['Projects'])

db_session_dependency = depends_db_session()
user_id_dependency = depends_user_id()


@router.get('/{project_id}')
async def get_project(
    project_id: int,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> ProjectResponse:
    service = ProjectLifecycleService(db_session)
    project = await service.project_by_id(project_id, caller_id)
    return project_to_response(project)


@router.put('/{project_id}')
async def update_project(
    project_id: int,
    body: UpdateProjectRequest,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> ProjectResponse:
    """Edit a project (project creator or team owner)."""
    service = ProjectLifecycleService(db_session)
    project = await service.edit_project(
        project_id, caller_id, **body.model_dump(exclude_unset=True)
    )
    return project_to_response(project)


@router.delete('/{project_id}', status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> None:
    """Delete a project and its notifications (team owner only)."""
    service = ProjectLifecycleService(db_session)
    await service.delete_project(project_id, caller_id)


@router.post('/{project_id}/complete')
async def complete_project(
    project_id: int,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> CompletionResponse:
    """Complete the project, or ask the team lead to approve completion."""
    service = ProjectLifecycleService(db_session)
    outcome = await service.request_completion(project_id, caller_id)
    return CompletionResponse(
        completed=outcome.completed,
        project=project_to_response(outcome.project),
        notification=(
            notification_to_response(outcome.notification)
            if outcome.notification is not None
            else None
        ),
    )
