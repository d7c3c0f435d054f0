from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DraftStatus = Literal["pending", "ready", "in_progress", "completed"]


class AssignCaptainsIn(BaseModel):
    captain_profile_ids: List[int] = Field(min_length=2)
    team_names: Optional[List[str]] = None

    @model_validator(mode="after")
    def _names_match(self) -> "AssignCaptainsIn":
        if self.team_names is not None and len(self.team_names) != len(self.captain_profile_ids):
            raise ValueError("team_names_mismatch")
        return self


class PickIn(BaseModel):
    team_id: int
    profile_id: Optional[int] = None
    guest_queue_id: Optional[int] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "PickIn":
        if (self.profile_id is None) == (self.guest_queue_id is None):
            raise ValueError("profile_or_guest_required")
        return self


class ReportResultIn(BaseModel):
    winning_team_id: int
    losing_team_id: Optional[int] = None
    winner_score: Optional[int] = Field(default=None, ge=0)
    loser_score: Optional[int] = Field(default=None, ge=0)


class CaptainVoteIn(BaseModel):
    candidate_profile_id: int


class DraftActionOut(BaseModel):
    game_id: int
    draft_status: DraftStatus
    draft_turn: Optional[int] = None
    draft_direction: Optional[int] = None
    pick_order: Optional[int] = None


class ResultOut(BaseModel):
    game_id: int
    status: Literal["pending", "confirmed"]
    game_status: str


class VoteOut(BaseModel):
    game_id: int
    action: Literal["added", "removed"]
    my_votes: List[int]


class TeamMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    profile_id: Optional[int] = None
    guest_queue_id: Optional[int] = None
    pick_order: int
    assigned_by: Optional[int] = None
    assigned_at: datetime


class TeamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    draft_order: int
    captain_profile_id: Optional[int] = None
    members: List[TeamMemberOut]


class CaptainOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slot: int
    profile_id: int


class DraftEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    team_id: Optional[int] = None
    profile_id: Optional[int] = None
    guest_queue_id: Optional[int] = None
    created_by: Optional[int] = None
    payload: Dict[str, Any]
    created_at: datetime


class GameResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    winning_team_id: int
    losing_team_id: Optional[int] = None
    winner_score: Optional[int] = None
    loser_score: Optional[int] = None
    reported_by: Optional[int] = None
    reported_at: datetime
    status: str


class DraftStateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    game_id: int
    draft_status: DraftStatus
    draft_turn: Optional[int] = None
    draft_direction: Optional[int] = None
    teams: List[TeamOut]
    captains: List[CaptainOut]
    captain_team_id: Optional[int] = None
    current_turn_team_id: Optional[int] = None
    is_captain_turn: bool
    events: List[DraftEventOut]
    vote_counts: Dict[int, int]
    my_votes: List[int]
    result: Optional[GameResultOut] = None
