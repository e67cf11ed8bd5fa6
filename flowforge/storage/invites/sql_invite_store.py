"""SQL-backed invite code registry."""

from __future__ import annotations

import logging
import secrets

from sqlalchemy import case, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.utils.sql_utils import storage_errors, transaction
from flowforge.core.errors import (
    InvalidInviteCode,
    NotFound,
    StorageError,
    Unauthorized,
)
from flowforge.storage.models.invite_code import InviteCode
from flowforge.storage.models.user import User, UserRole

logger = logging.getLogger(__name__)

# No I, O, 0, 1
CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 8
MAX_GENERATION_ATTEMPTS = 5

ISSUER_ROLES = (UserRole.ADMIN.value, UserRole.HR.value)


def generate_code(issuer_id: int, issuer_role: str) -> str:
    """Admin codes carry the admin id as a prefix so redemptions can be traced."""
    body = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    if issuer_role == UserRole.ADMIN.value:
        return f'{issuer_id}-{body}'
    return body


class SQLInviteStore:
    """Issue and resolve permanent invite codes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @storage_errors
    async def get_or_create_code(self, issuer_id: int, issuer_role: str) -> str:
        """Return the issuer's code, generating it on first use.

        The unique constraint on ``issuer_id`` decides races: a caller that
        loses the insert fetches the winner's code instead of writing its own.
        """
        issuer_role = str(getattr(issuer_role, 'value', issuer_role))
        await self._require_issuer(issuer_id, issuer_role)

        existing = await self._find_by_issuer(issuer_id)
        if existing is not None:
            return existing.code

        for _ in range(MAX_GENERATION_ATTEMPTS):
            code = generate_code(issuer_id, issuer_role)
            try:
                async with transaction(self.session):
                    self.session.add(
                        InviteCode(
                            issuer_id=issuer_id, issuer_role=issuer_role, code=code
                        )
                    )
            except IntegrityError:
                existing = await self._find_by_issuer(issuer_id)
                if existing is not None:
                    logger.info(
                        'Invite code for issuer %s created concurrently, reusing it',
                        issuer_id,
                    )
                    return existing.code
                # The generated code itself collided; draw another one.
                continue
            logger.info('Issued invite code for %s %s', issuer_role, issuer_id)
            return code

        raise StorageError(
            f'Failed to generate a unique invite code after '
            f'{MAX_GENERATION_ATTEMPTS} attempts'
        )

    @storage_errors
    async def resolve_code(self, code: str) -> InviteCode:
        """Find the issuer of *code*; admin-issued codes win over hr-issued ones."""
        result = await self.session.execute(
            select(InviteCode)
            .where(InviteCode.code == code)
            .order_by(
                case((InviteCode.issuer_role == UserRole.ADMIN.value, 0), else_=1)
            )
        )
        invite = result.scalars().first()
        if invite is None:
            raise NotFound('Invite code')
        return invite

    async def resolve_code_for_role(self, code: str | None, role: str) -> InviteCode:
        """Resolve a code redeemed by a signup for *role*.

        hr signups need an admin-issued code. employee signups accept hr-issued
        codes and fall back to admin-issued ones.
        """
        if not code:
            raise InvalidInviteCode(f'Access code is required for {role} registration')
        try:
            invite = await self.resolve_code(code)
        except NotFound as exc:
            raise InvalidInviteCode(f'Invalid {role} access code') from exc

        if role == UserRole.HR.value and invite.issuer_role != UserRole.ADMIN.value:
            raise InvalidInviteCode('HR registration requires an admin access code')
        if role == UserRole.EMPLOYEE.value and invite.issuer_role not in ISSUER_ROLES:
            raise InvalidInviteCode('Invalid employee access code')
        return invite

    async def _find_by_issuer(self, issuer_id: int) -> InviteCode | None:
        result = await self.session.execute(
            select(InviteCode).where(InviteCode.issuer_id == issuer_id)
        )
        return result.scalars().first()

    @storage_errors
    async def _require_issuer(self, issuer_id: int, issuer_role: str) -> User:
        if issuer_role not in ISSUER_ROLES:
            raise Unauthorized(f'Role {issuer_role!r} cannot issue invite codes')
        issuer = await self.session.get(User, issuer_id)
        if issuer is None or issuer.role != issuer_role:
            logger.warning(
                'Rejected invite code request for %s %s', issuer_role, issuer_id
            )
            raise Unauthorized()
        return issuer
