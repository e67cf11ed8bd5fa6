"""Team model and its member set."""

from sqlalchemy import Column, ForeignKey, Identity, Integer, String
from sqlalchemy.orm import relationship

from flowforge.app_server.utils.sql_utils import Base, UtcDateTime, utc_now


class Team(Base):
    """A team owns its projects. ``created_by`` is fixed at creation."""

    __tablename__ = 'teams'

    id = Column(Integer, Identity(), primary_key=True)
    name = Column(String, nullable=False)
    created_by = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    created_at = Column(UtcDateTime, default=utc_now)

    # Relationships
    members = relationship(
        'TeamMember',
        back_populates='team',
        cascade='all, delete-orphan',
        lazy='selectin',
    )
    projects = relationship(
        'Project',
        back_populates='team',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    @property
    def member_ids(self) -> set[int]:
        return {m.user_id for m in self.members}

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}', created_by={self.created_by})>"


class TeamMember(Base):
    """Membership row; the composite key makes the member list a set."""

    __tablename__ = 'team_members'

    team_id = Column(
        Integer, ForeignKey('teams.id', ondelete='CASCADE'), primary_key=True
    )
    user_id = Column(Integer, ForeignKey('users.id'), primary_key=True, index=True)

    team = relationship('Team', back_populates='members')

    def __repr__(self):
        return f'<TeamMember(team_id={self.team_id}, user_id={self.user_id})>'
