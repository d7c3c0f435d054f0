from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pickup.core.config import Settings, get_settings
from pickup.domain.time_window import to_utc
from pickup.models import Community, CommunityMember, Game, GameQueue, Profile
from pickup.services.errors import GameNotFound


def utcnow(now: datetime | None = None) -> datetime:
    return to_utc(now) if now is not None else datetime.now(timezone.utc)


@contextmanager
def committing(db: Session) -> Iterator[None]:
    """Commit on success; roll the whole operation back on any failure."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def lock_game(db: Session, game_id: int) -> Game:
    """Load the game row and hold it for the rest of the transaction."""
    game = db.execute(
        select(Game).where(Game.id == game_id).with_for_update()
    ).scalar_one_or_none()
    if not game:
        raise GameNotFound()
    return game


def get_game(db: Session, game_id: int) -> Game:
    game = db.get(Game, game_id)
    if not game:
        raise GameNotFound()
    return game


def get_profile(db: Session, profile_id: int) -> Optional[Profile]:
    return db.get(Profile, profile_id)


def get_community(db: Session, game: Game) -> Optional[Community]:
    return db.get(Community, game.community_id)


def is_approved_member(db: Session, community_id: int, profile_id: int) -> bool:
    status = db.execute(
        select(CommunityMember.status).where(
            CommunityMember.community_id == community_id,
            CommunityMember.profile_id == profile_id,
        )
    ).scalar_one_or_none()
    return status == "approved"


def effective_window_hours(
    db: Session, game: Game, settings: Settings | None = None
) -> int:
    if game.confirmation_window_hours_before_kickoff is not None:
        return game.confirmation_window_hours_before_kickoff
    community = get_community(db, game)
    if community is not None and community.confirmation_window_hours_before_kickoff is not None:
        return community.confirmation_window_hours_before_kickoff
    settings = settings or get_settings()
    return settings.DEFAULT_CONFIRMATION_WINDOW_HOURS


def effective_join_offset(game: Game, settings: Settings | None = None) -> int:
    if game.join_cutoff_offset_minutes_from_kickoff is not None:
        return game.join_cutoff_offset_minutes_from_kickoff
    settings = settings or get_settings()
    return settings.DEFAULT_JOIN_CUTOFF_OFFSET_MINUTES


def count_by_status(db: Session, game_id: int, status: str) -> int:
    return int(
        db.execute(
            select(func.count(GameQueue.id)).where(
                GameQueue.game_id == game_id, GameQueue.status == status
            )
        ).scalar_one()
    )


def count_attendance_confirmed(db: Session, game_id: int) -> int:
    return int(
        db.execute(
            select(func.count(GameQueue.id)).where(
                GameQueue.game_id == game_id,
                GameQueue.status == "rostered",
                GameQueue.attendance_confirmed_at.is_not(None),
            )
        ).scalar_one()
    )


def rostered_entries(db: Session, game_id: int) -> list[GameQueue]:
    return (
        db.execute(
            select(GameQueue)
            .where(GameQueue.game_id == game_id, GameQueue.status == "rostered")
            .order_by(GameQueue.joined_at, GameQueue.id)
        )
        .scalars()
        .all()
    )


def rostered_profile_ids(db: Session, game_id: int) -> set[int]:
    return set(
        db.execute(
            select(GameQueue.profile_id).where(
                GameQueue.game_id == game_id,
                GameQueue.status == "rostered",
                GameQueue.profile_id.is_not(None),
            )
        )
        .scalars()
        .all()
    )
