"""Project model."""

from enum import Enum

from sqlalchemy import Column, ForeignKey, Identity, Integer, String, Text
from sqlalchemy.orm import relationship

from flowforge.app_server.utils.sql_utils import Base, UtcDateTime, utc_now


class ProjectStatus(str, Enum):
    ACTIVE = 'active'
    # Never persisted: an outstanding completion request marks the pending window.
    PENDING_COMPLETION = 'pending_completion'
    COMPLETED = 'completed'


class ProjectPriority(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class Project(Base):
    """Project owned by a team."""

    __tablename__ = 'projects'

    id = Column(Integer, Identity(), primary_key=True)
    team_id = Column(
        Integer, ForeignKey('teams.id', ondelete='CASCADE'), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default='')
    start_time = Column(UtcDateTime, nullable=False)
    end_time = Column(UtcDateTime, nullable=False)
    priority = Column(String, nullable=False, default=ProjectPriority.MEDIUM.value)
    status = Column(
        String, nullable=False, default=ProjectStatus.ACTIVE.value, index=True
    )
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False)
    completed_at = Column(UtcDateTime, nullable=True)
    created_at = Column(UtcDateTime, default=utc_now)

    # Relationships
    team = relationship('Team', back_populates='projects')
    notifications = relationship(
        'Notification',
        back_populates='project',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', status='{self.status}')>"
