"""Pydantic request/response models for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

# ── Response models ─────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    invited_by_admin: int | None = None
    invited_by_hr: int | None = None
    created_at: datetime | None = None


class RelationshipResponse(BaseModel):
    id: int
    issuer_id: int
    issuer_role: str
    subject_id: int
    subject_role: str
    invite_code: str
    created_at: datetime | None = None


# ── Request models ──────────────────────────────────────────────────


class SignupRequest(BaseModel):
    name: str
    email: str
    password_hash: str = Field(
        ..., description='Credential hashed by the caller; stored as is'
    )
    role: str = Field(..., pattern=r'^(admin|hr|employee)$')
    invite_code: str | None = None


class UpdateNameRequest(BaseModel):
    name: str
