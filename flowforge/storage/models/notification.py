"""Completion-request notification model."""

from enum import Enum

from sqlalchemy import JSON, Column, ForeignKey, Identity, Index, Integer, String, text
from sqlalchemy.orm import relationship

from flowforge.app_server.utils.sql_utils import Base, UtcDateTime, utc_now

COMPLETION_REQUEST = 'completion_request'


class NotificationStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class Notification(Base):
    """Approval request addressed to a team lead."""

    __tablename__ = 'notifications'
    __table_args__ = (
        # At most one outstanding request per project.
        Index(
            'uq_notifications_pending_project',
            'related_project_id',
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(Integer, Identity(), primary_key=True)
    recipient_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    type = Column(String, nullable=False, default=COMPLETION_REQUEST)
    payload = Column(JSON, nullable=False, default=dict)
    requested_by = Column(Integer, ForeignKey('users.id'), nullable=False)
    status = Column(
        String, nullable=False, default=NotificationStatus.PENDING.value, index=True
    )
    related_project_id = Column(
        Integer,
        ForeignKey('projects.id', ondelete='CASCADE'),
        nullable=True,
        index=True,
    )
    related_team_id = Column(Integer, ForeignKey('teams.id'), nullable=True)
    created_at = Column(UtcDateTime, default=utc_now, index=True)
    resolved_at = Column(UtcDateTime, nullable=True)

    # Relationships
    project = relationship('Project', back_populates='notifications')

    def __repr__(self):
        return (
            f'<Notification(id={self.id}, recipient_id={self.recipient_id}, '
            f"status='{self.status}')>"
        )
