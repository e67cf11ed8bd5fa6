"""Shared fixtures: an in-memory database and a small provisioned organization.

The organization mirrors a typical signup chain::

    admin --(admin code)--> hr --(hr code)--> lead, member
    other_admin --(admin code)--> outsider

``hr`` owns ``team`` (lead ``lead``, member ``member``) and created ``project``.
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Register the models on Base.metadata
import flowforge.storage.models  # noqa: F401
from flowforge.app_server.project.project_lifecycle_service import (
    ProjectLifecycleService,
)
from flowforge.app_server.utils.sql_utils import Base
from flowforge.storage.invites.sql_invite_store import SQLInviteStore
from flowforge.storage.teams.sql_team_store import SQLTeamStore
from flowforge.storage.users.sql_user_store import SQLUserStore

START = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)
END = datetime(2026, 1, 30, 17, 0, tzinfo=UTC)


@pytest.fixture
async def async_engine():
    engine = create_async_engine(
        'sqlite+aiosqlite:///:memory:',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest.fixture
async def async_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


async def signup(
    session: AsyncSession, name: str, role: str, invite_code: str | None = None
):
    return await SQLUserStore(session).create_user(
        name=name,
        email=f'{name.lower().replace(" ", ".")}@example.com',
        password_hash='not-a-real-hash',
        role=role,
        invite_code=invite_code,
    )


@pytest.fixture
def make_user(async_session):
    """Sign up a user; pass ``session`` to use a session other than the default."""

    async def _make(name, role, invite_code=None, session=None):
        return await signup(session or async_session, name, role, invite_code)

    return _make


@pytest.fixture
async def org(async_session) -> SimpleNamespace:
    invites = SQLInviteStore(async_session)

    admin = await signup(async_session, 'Ada Admin', 'admin')
    admin_code = await invites.get_or_create_code(admin.id, 'admin')
    hr = await signup(async_session, 'Hal Hr', 'hr', admin_code)
    hr_code = await invites.get_or_create_code(hr.id, 'hr')
    lead = await signup(async_session, 'Lea Lead', 'employee', hr_code)
    member = await signup(async_session, 'Max Member', 'employee', hr_code)

    other_admin = await signup(async_session, 'Oto Admin', 'admin')
    other_code = await invites.get_or_create_code(other_admin.id, 'admin')
    outsider = await signup(async_session, 'Ola Outsider', 'employee', other_code)

    return SimpleNamespace(
        admin=admin,
        admin_code=admin_code,
        hr=hr,
        hr_code=hr_code,
        lead=lead,
        member=member,
        other_admin=other_admin,
        outsider=outsider,
    )


@pytest.fixture
async def team(async_session, org):
    return await SQLTeamStore(async_session).create_team(
        name='Platform',
        lead_id=org.lead.id,
        member_ids=[org.member.id],
        created_by=org.hr.id,
    )


@pytest.fixture
def lifecycle(async_session) -> ProjectLifecycleService:
    return ProjectLifecycleService(async_session)


@pytest.fixture
async def project(lifecycle, org, team):
    return await lifecycle.create_project(
        team_id=team.id,
        user_id=org.hr.id,
        name='Migrate billing',
        start_time=START,
        end_time=END,
        description='Move billing to the new ledger',
        priority='high',
    )
