"""User signup and profile router."""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.config import depends_db_session, depends_user_id
from flowforge.app_server.user.user_models import (
    RelationshipResponse,
    SignupRequest,
    UpdateNameRequest,
    UserResponse,
)
from flowforge.core.errors import AccessDenied, NotFound
from flowforge.storage.models.relationship import Relationship
from flowforge.storage.models.user import User
from flowforge.storage.users.sql_user_store import SQLUserStore

router = APIRouter(prefix='/users', tags=['Users'])
logger = logging.getLogger(__name__)

db_session_dependency = depends_db_session()
user_id_dependency = depends_user_id()


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        invited_by_admin=user.invited_by_admin,
        invited_by_hr=user.invited_by_hr,
        created_at=user.created_at,
    )


def _relationship_to_response(rel: Relationship) -> RelationshipResponse:
    return RelationshipResponse(
        id=rel.id,
        issuer_id=rel.issuer_id,
        issuer_role=rel.issuer_role,
        subject_id=rel.subject_id,
        subject_role=rel.subject_role,
        invite_code=rel.invite_code,
        created_at=rel.created_at,
    )


@router.post('/signup', status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    db_session: AsyncSession = db_session_dependency,
) -> UserResponse:
    """Provision a user; hr and employee signups redeem an invite code."""
    store = SQLUserStore(db_session)
    user = await store.create_user(
        name=body.name,
        email=body.email,
        password_hash=body.password_hash,
        role=body.role,
        invite_code=body.invite_code,
    )
    return user_to_response(user)


@router.get('/{user_id}')
async def get_user(
    user_id: int,
    db_session: AsyncSession = db_session_dependency,
    _caller: int = user_id_dependency,
) -> UserResponse:
    user = await SQLUserStore(db_session).find_by_id(user_id)
    if user is None:
        raise NotFound('User', user_id)
    return user_to_response(user)


@router.put('/{user_id}/name')
async def update_name(
    user_id: int,
    body: UpdateNameRequest,
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> UserResponse:
    """Rename the caller's own profile."""
    if caller_id != user_id:
        raise AccessDenied('Users can only update their own profile')
    user = await SQLUserStore(db_session).update_name(user_id, body.name)
    return user_to_response(user)


@router.get('/{user_id}/relationships')
async def list_relationships(
    user_id: int,
    as_role: Literal['issuer', 'subject'] = 'issuer',
    db_session: AsyncSession = db_session_dependency,
    _caller: int = user_id_dependency,
) -> list[RelationshipResponse]:
    relationships = await SQLUserStore(db_session).relationships_for(
        user_id, as_role
    )
    return [_relationship_to_response(r) for r in relationships]
