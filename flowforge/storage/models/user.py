"""User model for persistent storage."""

from enum import Enum

from sqlalchemy import Column, ForeignKey, Identity, Integer, String

from flowforge.app_server.utils.sql_utils import Base, UtcDateTime, utc_now


class UserRole(str, Enum):
    ADMIN = 'admin'
    HR = 'hr'
    EMPLOYEE = 'employee'


class User(Base):
    """A provisioned identity. The role never changes after signup."""

    __tablename__ = 'users'

    id = Column(Integer, Identity(), primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, index=True)  # admin, hr, employee
    # At most one of these is set; admins have neither.
    invited_by_admin = Column(Integer, ForeignKey('users.id'), nullable=True)
    invited_by_hr = Column(Integer, ForeignKey('users.id'), nullable=True)
    created_at = Column(UtcDateTime, default=utc_now)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
