"""SQL-backed identity and relationship store."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flowforge.app_server.utils.sql_utils import storage_errors, transaction
from flowforge.core.errors import (
    DuplicateEmail,
    NotFound,
    StorageError,
    ValidationError,
)
from flowforge.storage.invites.sql_invite_store import SQLInviteStore
from flowforge.storage.models.relationship import Relationship
from flowforge.storage.models.user import User, UserRole

logger = logging.getLogger(__name__)

RELATIONSHIP_SIDES = ('issuer', 'subject')


def _normalize_email(email: str | None) -> str:
    return (email or '').strip().lower()


class SQLUserStore:
    """Users and the provisioning edges created when they sign up."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str,
        invite_code: str | None = None,
    ) -> User:
        """Provision a user.

        hr and employee signups must redeem an invite code; the user row and
        the relationship recording its issuer are committed together.

        Raises:
            ValidationError: missing fields or an unknown role.
            DuplicateEmail: the email is already registered.
            InvalidInviteCode: the code is missing or not valid for the role.
            StorageError: the store failed; nothing was written.
        """
        name = (name or '').strip()
        email = _normalize_email(email)
        role = str(getattr(role, 'value', role))
        if not name or not email or not password_hash:
            raise ValidationError('Missing required fields')
        if role not in {r.value for r in UserRole}:
            raise ValidationError(f'Unknown role: {role!r}')

        if await self.find_by_email(email) is not None:
            raise DuplicateEmail(email)

        invite = None
        if role != UserRole.ADMIN.value:
            invite_store = SQLInviteStore(self.session)
            invite = await invite_store.resolve_code_for_role(invite_code, role)

        user = User(name=name, email=email, password_hash=password_hash, role=role)
        if invite is not None:
            if invite.issuer_role == UserRole.ADMIN.value:
                user.invited_by_admin = invite.issuer_id
            else:
                user.invited_by_hr = invite.issuer_id

        try:
            async with transaction(self.session):
                self.session.add(user)
                await self.session.flush()
                if invite is not None:
                    self.session.add(
                        Relationship(
                            issuer_id=invite.issuer_id,
                            issuer_role=invite.issuer_role,
                            subject_id=user.id,
                            subject_role=role,
                            invite_code=invite.code,
                        )
                    )
        except IntegrityError as exc:
            if await self.find_by_email(email) is not None:
                raise DuplicateEmail(email) from exc
            logger.exception('Provisioning of %s rolled back', email)
            raise StorageError('User provisioning failed') from exc

        await self.session.refresh(user)
        if invite is None:
            logger.info('Created %s user %s', role, user.id)
        else:
            logger.info(
                'Created %s user %s provisioned by %s %s',
                role,
                user.id,
                invite.issuer_role,
                invite.issuer_id,
            )
        return user

    @storage_errors
    async def find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.email == _normalize_email(email))
        )
        return result.scalars().first()

    @storage_errors
    async def find_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    @storage_errors
    async def list_users(self) -> list[User]:
        result = await self.session.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    @storage_errors
    async def relationships_for(
        self, user_id: int, as_role: str
    ) -> list[Relationship]:
        """List the edges where *user_id* is the issuer or the subject."""
        if as_role not in RELATIONSHIP_SIDES:
            raise ValidationError(f'as_role must be one of {RELATIONSHIP_SIDES}')
        column = (
            Relationship.issuer_id if as_role == 'issuer' else Relationship.subject_id
        )
        result = await self.session.execute(
            select(Relationship).where(column == user_id).order_by(Relationship.id)
        )
        return list(result.scalars().all())

    @storage_errors
    async def get_issuer(self, user_id: int) -> Relationship | None:
        """Return the edge recording who provisioned *user_id*, if any."""
        result = await self.session.execute(
            select(Relationship).where(Relationship.subject_id == user_id)
        )
        return result.scalars().first()

    async def update_name(self, user_id: int, name: str) -> User:
        name = (name or '').strip()
        if not name:
            raise ValidationError('Name cannot be empty')
        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFound('User', user_id)
        async with transaction(self.session):
            user.name = name
        logger.info('Renamed user %s', user_id)
        return user
