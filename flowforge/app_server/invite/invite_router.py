"""Invite code router."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.config import depends_db_session, depends_user_id
from flowforge.core.errors import NotFound
from flowforge.storage.invites.sql_invite_store import SQLInviteStore
from flowforge.storage.models.invite_code import InviteCode
from flowforge.storage.users.sql_user_store import SQLUserStore

router = APIRouter(prefix='/invites', tags=['Invites'])

db_session_dependency = depends_db_session()
user_id_dependency = depends_user_id()


class InviteCodeResponse(BaseModel):
    code: str
    issuer_id: int
    issuer_role: str


def _to_response(invite: InviteCode) -> InviteCodeResponse:
    return InviteCodeResponse(
        code=invite.code, issuer_id=invite.issuer_id, issuer_role=invite.issuer_role
    )


@router.get('/me')
async def get_my_code(
    db_session: AsyncSession = db_session_dependency,
    caller_id: int = user_id_dependency,
) -> InviteCodeResponse:
    """The caller's permanent invite code, generated on first request."""
    user = await SQLUserStore(db_session).find_by_id(caller_id)
    if user is None:
        raise NotFound('User', caller_id)
    code = await SQLInviteStore(db_session).get_or_create_code(user.id, user.role)
    return InviteCodeResponse(code=code, issuer_id=user.id, issuer_role=user.role)


@router.get('/{code}')
async def check_code(
    code: str,
    role: str | None = None,
    db_session: AsyncSession = db_session_dependency,
) -> InviteCodeResponse:
    """Resolve a code before signup; with ``role`` it must be valid for that role."""
    store = SQLInviteStore(db_session)
    if role is None:
        invite = await store.resolve_code(code)
    else:
        invite = await store.resolve_code_for_role(code, role)
    return _to_response(invite)
