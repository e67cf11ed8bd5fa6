"""Pydantic request/response models for team endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from flowforge.storage.models.team import Team
from flowforge.storage.teams.sql_team_store import TeamAssignment

# ── Response models ─────────────────────────────────────────────────


class TeamResponse(BaseModel):
    id: int
    name: str
    created_by: int
    lead_id: int
    member_ids: list[int]
    created_at: datetime | None = None


class AssignedProject(BaseModel):
    id: int
    name: str
    priority: str


class TeamAssignmentResponse(BaseModel):
    team_id: int
    team_name: str
    is_lead: bool
    projects: list[AssignedProject]


# ── Request models ──────────────────────────────────────────────────


class CreateTeamRequest(BaseModel):
    name: str
    lead_id: int
    member_ids: list[int] = Field(default_factory=list)


def team_to_response(team: Team) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        name=team.name,
        created_by=team.created_by,
        lead_id=team.lead_id,
        member_ids=sorted(team.member_ids),
        created_at=team.created_at,
    )


def assignment_to_response(assignment: TeamAssignment) -> TeamAssignmentResponse:
    return TeamAssignmentResponse(
        team_id=assignment.team.id,
        team_name=assignment.team.name,
        is_lead=assignment.is_lead,
        projects=[
            AssignedProject(id=p.id, name=p.name, priority=p.priority)
            for p in assignment.projects
        ],
    )
