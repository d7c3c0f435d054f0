from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

QueueStatus = Literal["rostered", "waitlisted", "dropped"]


class QueueEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    game_id: int
    profile_id: Optional[int] = None
    guest_name: Optional[str] = None
    added_by_profile_id: Optional[int] = None
    status: QueueStatus
    joined_at: datetime
    promoted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    attendance_confirmed_at: Optional[datetime] = None


class MyQueueEntryOut(BaseModel):
    game_id: int
    entry: Optional[QueueEntryOut] = None


class QueueActionOut(BaseModel):
    game_id: int
    queue_id: Optional[int] = None
    status: Optional[QueueStatus] = None
    promoted_queue_ids: List[int] = Field(default_factory=list)
    was_rostered: bool = False
    draft_reset: bool = False


class AdminAddIn(BaseModel):
    profile_id: Optional[int] = Field(default=None, gt=0)
    guest_name: Optional[str] = Field(default=None, min_length=1, max_length=120)

    @model_validator(mode="after")
    def _exactly_one(self) -> "AdminAddIn":
        if (self.profile_id is None) == (self.guest_name is None):
            raise ValueError("profile_or_guest_required")
        return self
