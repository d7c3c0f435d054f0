from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pickup.domain.draft import DraftEventPayload, PickPayload
from pickup.models import GameDraftEvent


def record_draft_event(
    db: Session,
    *,
    game_id: int,
    payload: DraftEventPayload,
    created_at: datetime,
    team_id: Optional[int] = None,
    profile_id: Optional[int] = None,
    guest_queue_id: Optional[int] = None,
    created_by: Optional[int] = None,
) -> GameDraftEvent:
    # Joins the caller's transaction; committing is the caller's job.
    event = GameDraftEvent(
        game_id=game_id,
        action=payload.action,
        team_id=team_id,
        profile_id=profile_id,
        guest_queue_id=guest_queue_id,
        created_by=created_by,
        payload=payload.to_payload(),
        is_undone=False,
        created_at=created_at,
    )
    db.add(event)
    db.flush()
    return event


def list_draft_events(db: Session, game_id: int) -> list[GameDraftEvent]:
    return (
        db.execute(
            select(GameDraftEvent)
            .where(GameDraftEvent.game_id == game_id)
            .order_by(GameDraftEvent.created_at, GameDraftEvent.id)
        )
        .scalars()
        .all()
    )


def recent_pick_events(db: Session, game_id: int, limit: int) -> list[GameDraftEvent]:
    return (
        db.execute(
            select(GameDraftEvent)
            .where(GameDraftEvent.game_id == game_id, GameDraftEvent.action == "pick")
            .order_by(GameDraftEvent.created_at.desc(), GameDraftEvent.id.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )


def mark_pick_undone(
    db: Session,
    event: GameDraftEvent,
    payload: PickPayload,
) -> bool:
    """Flip the undone flag once. False when another undo already took it."""
    result = db.execute(
        update(GameDraftEvent)
        .where(GameDraftEvent.id == event.id, GameDraftEvent.is_undone.is_(False))
        .values(is_undone=True, payload=payload.to_payload())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    db.refresh(event)
    return True
