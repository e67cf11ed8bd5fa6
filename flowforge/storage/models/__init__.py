"""Database models for persistent storage."""

from flowforge.storage.models.invite_code import InviteCode
from flowforge.storage.models.notification import Notification, NotificationStatus
from flowforge.storage.models.project import Project, ProjectPriority, ProjectStatus
from flowforge.storage.models.relationship import Relationship
from flowforge.storage.models.team import Team, TeamMember
from flowforge.storage.models.user import User, UserRole

__all__ = [
    'User',
    'UserRole',
    'Relationship',
    'InviteCode',
    'Team',
    'TeamMember',
    'Project',
    'ProjectPriority',
    'ProjectStatus',
    'Notification',
    'NotificationStatus',
]
