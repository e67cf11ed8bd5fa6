"""Provisioning edge recorded when a user redeems an invite code."""

from sqlalchemy import Column, ForeignKey, Identity, Integer, String

from flowforge.app_server.utils.sql_utils import Base, UtcDateTime, utc_now


class Relationship(Base):
    """Directed issuer -> subject edge (admin -> hr, hr -> employee, admin -> employee).

    Append-only. ``subject_id`` is unique: a user is provisioned exactly once.
    """

    __tablename__ = 'relationships'

    id = Column(Integer, Identity(), primary_key=True)
    issuer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    issuer_role = Column(String, nullable=False)  # admin, hr
    subject_id = Column(
        Integer, ForeignKey('users.id'), nullable=False, unique=True, index=True
    )
    subject_role = Column(String, nullable=False)  # hr, employee
    invite_code = Column(String, nullable=False)
    created_at = Column(UtcDateTime, default=utc_now)

    def __repr__(self):
        return (
            f'<Relationship(issuer_id={self.issuer_id}, '
            f'subject_id={self.subject_id}, subject_role={self.subject_role!r})>'
        )
