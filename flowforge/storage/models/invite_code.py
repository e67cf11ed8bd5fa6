"""Invite code model."""

from sqlalchemy import Column, ForeignKey, Identity, Integer, String

from flowforge.app_server.utils.sql_utils import Base, UtcDateTime, utc_now


class InviteCode(Base):
    """One permanent, reusable code per issuer."""

    __tablename__ = 'invite_codes'

    id = Column(Integer, Identity(), primary_key=True)
    issuer_id = Column(Integer, ForeignKey('users.id'), nullable=False, unique=True)
    issuer_role = Column(String, nullable=False)  # admin, hr
    code = Column(String, nullable=False, unique=True, index=True)
    created_at = Column(UtcDateTime, default=utc_now)

    def __repr__(self):
        return f"<InviteCode(issuer_id={self.issuer_id}, code='{self.code}')>"
