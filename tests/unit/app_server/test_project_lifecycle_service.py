"""Tests for the project lifecycle and completion workflow."""

import re

import pytest
from sqlalchemy import func, select

from flowforge.app_server.authorization.access_resolver import Relation
from flowforge.core.errors import (
    AccessDenied,
    AlreadyCompleted,
    AlreadyResolved,
    CompletionAlreadyRequested,
    NotFound,
    ValidationError,
)
from flowforge.storage.invites.sql_invite_store import SQLInviteStore
from flowforge.storage.models.notification import Notification
from flowforge.storage.models.relationship import Relationship
from flowforge.storage.teams.sql_team_store import SQLTeamStore


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestCreateProject:
    @pytest.mark.asyncio
    async def test_owner_creates(self, lifecycle, org, team, project):
        assert project.created_by == org.hr.id
        assert project.priority == 'high'
        assert [p.id for p in await lifecycle.projects_of_team(team.id)] == [
            project.id
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize('who', ['lead', 'member', 'admin', 'outsider'])
    async def test_others_cannot_create(self, lifecycle, org, team, project, who):
        with pytest.raises(AccessDenied):
            await lifecycle.create_project(
                team_id=team.id,
                user_id=getattr(org, who).id,
                name='Not mine',
                start_time=project.start_time,
                end_time=project.end_time,
            )
        assert len(await lifecycle.projects_of_team(team.id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_team(self, lifecycle, org, project):
        with pytest.raises(NotFound):
            await lifecycle.create_project(
                team_id=9999,
                user_id=org.hr.id,
                name='Nowhere',
                start_time=project.start_time,
                end_time=project.end_time,
            )


class TestRequestCompletion:
    @pytest.mark.asyncio
    async def test_creator_completes_immediately(
        self, async_session, lifecycle, org, project
    ):
        outcome = await lifecycle.request_completion(project.id, org.hr.id)

        assert outcome.completed
        assert outcome.notification is None
        assert outcome.project.status == 'completed'
        assert outcome.project.completed_at is not None
        assert await _count(async_session, Notification) == 0

    @pytest.mark.asyncio
    async def test_project_creator_who_is_not_owner_completes_immediately(
        self, lifecycle, org, team, project
    ):
        own = await lifecycle.projects.create(
            team_id=team.id,
            name='Lead project',
            start_time=project.start_time,
            end_time=project.end_time,
            created_by=org.lead.id,
        )

        outcome = await lifecycle.request_completion(own.id, org.lead.id)

        assert outcome.completed
        assert own.status == 'completed'

    @pytest.mark.asyncio
    async def test_member_request_notifies_the_lead(
        self, lifecycle, org, team, project
    ):
        outcome = await lifecycle.request_completion(project.id, org.member.id)

        assert not outcome.completed
        assert project.status == 'active'
        notification = outcome.notification
        assert notification.status == 'pending'
        assert notification.recipient_id == org.lead.id
        assert notification.requested_by == org.member.id
        assert notification.related_project_id == project.id
        assert notification.related_team_id == team.id
        assert notification.payload == {
            'projectId': project.id,
            'projectName': 'Migrate billing',
            'message': 'Request to mark project "Migrate billing" as complete',
        }
        assert [n.id for n in await lifecycle.notifications_for(org.lead.id)] == [
            notification.id
        ]

    @pytest.mark.asyncio
    async def test_visible_viewer_may_request(self, lifecycle, org, project):
        outcome = await lifecycle.request_completion(project.id, org.admin.id)

        assert not outcome.completed
        assert outcome.notification.requested_by == org.admin.id

    @pytest.mark.asyncio
    async def test_second_request_while_pending(
        self, async_session, lifecycle, org, project
    ):
        await lifecycle.request_completion(project.id, org.member.id)

        with pytest.raises(CompletionAlreadyRequested):
            await lifecycle.request_completion(project.id, org.lead.id)
        assert await _count(async_session, Notification) == 1

    @pytest.mark.asyncio
    async def test_outsider_is_denied(self, async_session, lifecycle, org, project):
        with pytest.raises(AccessDenied):
            await lifecycle.request_completion(project.id, org.outsider.id)
        assert project.status == 'active'
        assert await _count(async_session, Notification) == 0

    @pytest.mark.asyncio
    async def test_completed_project_cannot_be_completed_again(
        self, lifecycle, org, project
    ):
        await lifecycle.request_completion(project.id, org.hr.id)

        with pytest.raises(AlreadyCompleted):
            await lifecycle.request_completion(project.id, org.hr.id)
        with pytest.raises(AlreadyCompleted):
            await lifecycle.request_completion(project.id, org.member.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize('who', ['outsider', 'other_admin'])
    async def test_completed_status_is_hidden_from_callers_without_access(
        self, lifecycle, org, project, who
    ):
        await lifecycle.request_completion(project.id, org.hr.id)

        with pytest.raises(AccessDenied):
            await lifecycle.request_completion(project.id, getattr(org, who).id)

    @pytest.mark.asyncio
    async def test_unknown_project(self, lifecycle, org):
        with pytest.raises(NotFound):
            await lifecycle.request_completion(9999, org.hr.id)


class TestResolveCompletion:
    @pytest.mark.asyncio
    async def test_lead_approves(self, lifecycle, org, project):
        outcome = await lifecycle.request_completion(project.id, org.member.id)
        notification_id = outcome.notification.id

        resolved = await lifecycle.resolve_completion(
            notification_id, org.lead.id, 'approve'
        )

        assert resolved.status == 'approved'
        assert resolved.resolved_at is not None
        assert project.status == 'completed'
        assert project.completed_at is not None

    @pytest.mark.asyncio
    async def test_second_resolve_fails_and_changes_nothing(
        self, lifecycle, org, project
    ):
        outcome = await lifecycle.request_completion(project.id, org.member.id)
        notification_id = outcome.notification.id
        await lifecycle.resolve_completion(notification_id, org.lead.id, 'approve')

        with pytest.raises(AlreadyResolved):
            await lifecycle.resolve_completion(notification_id, org.lead.id, 'reject')

        reloaded = await lifecycle.project_by_id(project.id)
        assert reloaded.status == 'completed'
        notes = await lifecycle.notifications_for(org.lead.id)
        assert [n.status for n in notes] == ['approved']

    @pytest.mark.asyncio
    async def test_lead_rejects(self, lifecycle, org, project):
        outcome = await lifecycle.request_completion(project.id, org.member.id)

        resolved = await lifecycle.resolve_completion(
            outcome.notification.id, org.lead.id, 'reject'
        )

        assert resolved.status == 'rejected'
        assert project.status == 'active'
        assert project.completed_at is None

    @pytest.mark.asyncio
    async def test_new_request_after_rejection(self, lifecycle, org, project):
        first = await lifecycle.request_completion(project.id, org.member.id)
        await lifecycle.resolve_completion(
            first.notification.id, org.lead.id, 'reject'
        )

        second = await lifecycle.request_completion(project.id, org.member.id)

        assert second.notification.id != first.notification.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize('who', ['member', 'hr', 'admin'])
    async def test_only_the_recipient_may_resolve(
        self, lifecycle, org, project, who
    ):
        outcome = await lifecycle.request_completion(project.id, org.member.id)

        with pytest.raises(AccessDenied):
            await lifecycle.resolve_completion(
                outcome.notification.id, getattr(org, who).id, 'approve'
            )
        assert outcome.notification.status == 'pending'

    @pytest.mark.asyncio
    async def test_invalid_action_and_unknown_notification(self, lifecycle, org):
        with pytest.raises(ValidationError):
            await lifecycle.resolve_completion(1, org.lead.id, 'maybe')
        with pytest.raises(NotFound):
            await lifecycle.resolve_completion(9999, org.lead.id, 'approve')

    @pytest.mark.asyncio
    async def test_approval_after_direct_completion_keeps_timestamp(
        self, lifecycle, org, project
    ):
        outcome = await lifecycle.request_completion(project.id, org.member.id)
        edited = await lifecycle.edit_project(
            project.id, org.hr.id, status='completed'
        )
        completed_at = edited.completed_at

        resolved = await lifecycle.resolve_completion(
            outcome.notification.id, org.lead.id, 'approve'
        )

        assert resolved.status == 'approved'
        assert project.status == 'completed'
        assert project.completed_at == completed_at


class TestEditAndDelete:
    @pytest.mark.asyncio
    async def test_owner_edits(self, lifecycle, org, project):
        edited = await lifecycle.edit_project(
            project.id, org.hr.id, name='Billing v2', priority='low'
        )

        assert (edited.name, edited.priority) == ('Billing v2', 'low')

    @pytest.mark.asyncio
    async def test_project_creator_edits_but_cannot_delete(
        self, lifecycle, org, team, project
    ):
        own = await lifecycle.projects.create(
            team_id=team.id,
            name='Lead project',
            start_time=project.start_time,
            end_time=project.end_time,
            created_by=org.lead.id,
        )

        edited = await lifecycle.edit_project(own.id, org.lead.id, description='x')
        assert edited.description == 'x'
        with pytest.raises(AccessDenied):
            await lifecycle.delete_project(own.id, org.lead.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize('who', ['lead', 'member', 'admin', 'outsider'])
    async def test_others_cannot_edit_or_delete(self, lifecycle, org, project, who):
        user_id = getattr(org, who).id

        with pytest.raises(AccessDenied):
            await lifecycle.edit_project(project.id, user_id, name='Hijacked')
        with pytest.raises(AccessDenied):
            await lifecycle.delete_project(project.id, user_id)
        assert project.name == 'Migrate billing'

    @pytest.mark.asyncio
    async def test_delete_with_pending_request_removes_both(
        self, async_session, lifecycle, org, project
    ):
        project_id = project.id
        outcome = await lifecycle.request_completion(project_id, org.member.id)
        notification_id = outcome.notification.id

        await lifecycle.delete_project(project_id, org.hr.id)

        with pytest.raises(NotFound):
            await lifecycle.project_by_id(project_id)
        assert await lifecycle.notifications.get(notification_id) is None
        assert await lifecycle.notifications_for(org.lead.id) == []


class TestReads:
    @pytest.mark.asyncio
    async def test_read_checks_when_a_caller_is_given(
        self, lifecycle, org, team, project
    ):
        assert (await lifecycle.project_by_id(project.id, org.admin.id)).id == (
            project.id
        )
        assert len(await lifecycle.projects_of_team(team.id, org.member.id)) == 1

        with pytest.raises(AccessDenied):
            await lifecycle.project_by_id(project.id, org.outsider.id)
        with pytest.raises(AccessDenied):
            await lifecycle.projects_of_team(team.id, org.other_admin.id)

    @pytest.mark.asyncio
    async def test_relation_to_project(self, lifecycle, org, project):
        assert await lifecycle.relation_to_project(project.id, org.hr.id) is (
            Relation.OWNER
        )
        assert await lifecycle.relation_to_project(project.id, org.member.id) is (
            Relation.MEMBER
        )


@pytest.mark.asyncio
async def test_provisioning_chain_end_to_end(async_session, make_user, lifecycle):
    invites = SQLInviteStore(async_session)

    admin = await make_user('Ari Admin', 'admin')
    admin_id = admin.id
    admin_code = await invites.get_or_create_code(admin_id, 'admin')
    assert re.fullmatch(rf'{admin_id}-[A-Z2-9]{{8}}', admin_code)

    hr = await make_user('Hye Hr', 'hr', admin_code)
    edges = (await async_session.execute(select(Relationship))).scalars().all()
    assert [(e.issuer_id, e.subject_id, e.issuer_role) for e in edges] == [
        (admin_id, hr.id, 'admin')
    ]

    hr_code = await invites.get_or_create_code(hr.id, 'hr')
    employee = await make_user('Eli Employee', 'employee', hr_code)
    assert employee.invited_by_hr == hr.id

    team = await SQLTeamStore(async_session).create_team(
        'Launch', employee.id, [], hr.id
    )

    visible = await lifecycle.teams_visible_to(admin_id)
    assert team.id in [t.id for t in visible]
