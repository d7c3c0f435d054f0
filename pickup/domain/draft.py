"""Draft sequencing primitives and the typed draft-event payloads."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Literal, Sequence, TypeVar, Union

T = TypeVar("T")

DraftAction = Literal["start", "pick", "undo", "reset", "finalize"]

DRAFT_PENDING = "pending"
DRAFT_READY = "ready"
DRAFT_IN_PROGRESS = "in_progress"
DRAFT_COMPLETED = "completed"


def next_snake_turn(current_turn: int, direction: int, team_count: int) -> tuple[int, int]:
    """Advance the snake pointer one pick.

    The boundary team picks twice in a row at each reversal, so three teams
    go 0, 1, 2, 2, 1, 0, 0, 1, 2, ...
    """
    if team_count <= 0:
        return 0, direction

    next_turn = current_turn + direction
    next_direction = direction

    last_index = team_count - 1
    if next_turn > last_index:
        next_turn = last_index
        next_direction = -1
    elif next_turn < 0:
        next_turn = 0
        next_direction = 1

    return next_turn, next_direction


def shuffle_order(items: Sequence[T], rng: Callable[[], float] | None = None) -> list[T]:
    """Fisher-Yates shuffle returning a new list."""
    draw = rng or random.random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = int(draw() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


@dataclass(frozen=True)
class StartPayload:
    captain_profile_ids: list[int]
    action: DraftAction = field(default="start", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"captainProfileIds": list(self.captain_profile_ids)}


@dataclass(frozen=True)
class PickPayload:
    pick_order: int
    turn_before: int
    direction_before: int
    undone: bool = False
    undone_by: int | None = None
    undone_at: str | None = None
    action: DraftAction = field(default="pick", init=False)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "pickOrder": self.pick_order,
            "draftTurnBefore": self.turn_before,
            "draftDirectionBefore": self.direction_before,
        }
        if self.undone:
            payload.update(
                {"undone": True, "undoneBy": self.undone_by, "undoneAt": self.undone_at}
            )
        return payload

    def mark_undone(self, actor_id: int, at: datetime) -> "PickPayload":
        return PickPayload(
            pick_order=self.pick_order,
            turn_before=self.turn_before,
            direction_before=self.direction_before,
            undone=True,
            undone_by=actor_id,
            undone_at=at.isoformat(),
        )


@dataclass(frozen=True)
class UndoPayload:
    reversed_event_id: int
    pick_order: int
    action: DraftAction = field(default="undo", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"reversedEventId": self.reversed_event_id, "pickOrder": self.pick_order}


@dataclass(frozen=True)
class ResetPayload:
    preserve_captains: bool = False
    action: DraftAction = field(default="reset", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"preserveCaptains": self.preserve_captains}


@dataclass(frozen=True)
class FinalizePayload:
    drafted_count: int
    action: DraftAction = field(default="finalize", init=False)

    def to_payload(self) -> dict[str, Any]:
        return {"draftedCount": self.drafted_count}


DraftEventPayload = Union[StartPayload, PickPayload, UndoPayload, ResetPayload, FinalizePayload]


def parse_event_payload(action: str, raw: dict[str, Any] | None) -> DraftEventPayload:
    data = raw or {}
    if action == "pick":
        return PickPayload(
            pick_order=int(data.get("pickOrder", 0)),
            turn_before=int(data.get("draftTurnBefore", 0)),
            direction_before=int(data.get("draftDirectionBefore", 1)),
            undone=bool(data.get("undone", False)),
            undone_by=data.get("undoneBy"),
            undone_at=data.get("undoneAt"),
        )
    if action == "undo":
        return UndoPayload(
            reversed_event_id=int(data.get("reversedEventId", 0)),
            pick_order=int(data.get("pickOrder", 0)),
        )
    if action == "start":
        return StartPayload(captain_profile_ids=[int(v) for v in data.get("captainProfileIds", [])])
    if action == "reset":
        return ResetPayload(preserve_captains=bool(data.get("preserveCaptains", False)))
    if action == "finalize":
        return FinalizePayload(drafted_count=int(data.get("draftedCount", 0)))
    raise ValueError(f"unknown_draft_action:{action}")
