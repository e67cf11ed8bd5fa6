"""Create users, relationships, invite_codes, teams, projects and notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), sa.Identity(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('invited_by_admin', sa.Integer(), nullable=True),
        sa.Column('invited_by_hr', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['invited_by_admin'], ['users.id']),
        sa.ForeignKeyConstraint(['invited_by_hr'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role'), 'users', ['role'], unique=False)

    op.create_table(
        'relationships',
        sa.Column('id', sa.Integer(), sa.Identity(), nullable=False),
        sa.Column('issuer_id', sa.Integer(), nullable=False),
        sa.Column('issuer_role', sa.String(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('subject_role', sa.String(), nullable=False),
        sa.Column('invite_code', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['issuer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['subject_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_relationships_issuer_id'),
        'relationships',
        ['issuer_id'],
        unique=False,
    )
    op.create_index(
        op.f('ix_relationships_subject_id'),
        'relationships',
        ['subject_id'],
        unique=True,
    )

    op.create_table(
        'invite_codes',
        sa.Column('id', sa.Integer(), sa.Identity(), nullable=False),
        sa.Column('issuer_id', sa.Integer(), nullable=False),
        sa.Column('issuer_role', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['issuer_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('issuer_id'),
    )
    op.create_index(
        op.f('ix_invite_codes_code'), 'invite_codes', ['code'], unique=True
    )

    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), sa.Identity(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['lead_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_teams_created_by'), 'teams', ['created_by'], unique=False
    )
    op.create_index(op.f('ix_teams_lead_id'), 'teams', ['lead_id'], unique=False)

    op.create_table(
        'team_members',
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('team_id', 'user_id'),
    )
    op.create_index(
        op.f('ix_team_members_user_id'), 'team_members', ['user_id'], unique=False
    )

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), sa.Identity(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('priority', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_projects_team_id'), 'projects', ['team_id'], unique=False
    )
    op.create_index(op.f('ix_projects_status'), 'projects', ['status'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), sa.Identity(), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('requested_by', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('related_project_id', sa.Integer(), nullable=True),
        sa.Column('related_team_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id']),
        sa.ForeignKeyConstraint(['requested_by'], ['users.id']),
        sa.ForeignKeyConstraint(
            ['related_project_id'], ['projects.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['related_team_id'], ['teams.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_notifications_recipient_id'),
        'notifications',
        ['recipient_id'],
        unique=False,
    )
    op.create_index(
        op.f('ix_notifications_status'), 'notifications', ['status'], unique=False
    )
    op.create_index(
        op.f('ix_notifications_related_project_id'),
        'notifications',
        ['related_project_id'],
        unique=False,
    )
    op.create_index(
        op.f('ix_notifications_created_at'),
        'notifications',
        ['created_at'],
        unique=False,
    )
    # One outstanding completion request per project
    op.create_index(
        'uq_notifications_pending_project',
        'notifications',
        ['related_project_id'],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('uq_notifications_pending_project', table_name='notifications')
    op.drop_index(op.f('ix_notifications_created_at'), table_name='notifications')
    op.drop_index(
        op.f('ix_notifications_related_project_id'), table_name='notifications'
    )
    op.drop_index(op.f('ix_notifications_status'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_recipient_id'), table_name='notifications')
    op.drop_table('notifications')
    op.drop_index(op.f('ix_projects_status'), table_name='projects')
    op.drop_index(op.f('ix_projects_team_id'), table_name='projects')
    op.drop_table('projects')
    op.drop_index(op.f('ix_team_members_user_id'), table_name='team_members')
    op.drop_table('team_members')
    op.drop_index(op.f('ix_teams_lead_id'), table_name='teams')
    op.drop_index(op.f('ix_teams_created_by'), table_name='teams')
    op.drop_table('teams')
    op.drop_index(op.f('ix_invite_codes_code'), table_name='invite_codes')
    op.drop_table('invite_codes')
    op.drop_index(op.f('ix_relationships_subject_id'), table_name='relationships')
    op.drop_index(op.f('ix_relationships_issuer_id'), table_name='relationships')
    op.drop_table('relationships')
    op.drop_index(op.f('ix_users_role'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
