from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, aliased

from pickup.domain.draft import DRAFT_PENDING
from pickup.domain.time_window import build_join_cutoff, resolve_confirmation_window
from pickup.models import Game, GameCaptain, GameQueue, Profile
from pickup.services import notifications as notify
from pickup.services.draft import apply_draft_reset, is_captain, maybe_auto_start
from pickup.services.errors import (
    ConfirmationDisabled,
    ConfirmationWindowClosed,
    DraftInProgress,
    Forbidden,
    GameNotOpen,
    InvalidQueueEntry,
    JoinCutoffPassed,
    NoOpenSpot,
    NotConfirmable,
    NotMember,
    NotWaitlisted,
    QueueNotFound,
    WaitlistFull,
)
from pickup.services.games import (
    committing,
    count_attendance_confirmed,
    count_by_status,
    effective_join_offset,
    effective_window_hours,
    get_profile,
    is_approved_member,
    lock_game,
    utcnow,
)

logger = logging.getLogger(__name__)

ROSTERED = "rostered"
WAITLISTED = "waitlisted"
DROPPED = "dropped"
ACTIVE_STATUSES = (ROSTERED, WAITLISTED)
CLOSED_GAME_STATUSES = ("completed", "cancelled")


@dataclass
class QueueOutcome:
    game_id: int
    queue_id: Optional[int]
    status: Optional[str]
    promoted_queue_ids: list[int] = field(default_factory=list)
    was_rostered: bool = False
    draft_reset: bool = False
    notifications: list[notify.NotificationIntent] = field(default_factory=list)


def get_queue_entry(db: Session, game_id: int, profile_id: int) -> Optional[GameQueue]:
    """The participant's row for the game, dropped or not. None if they never joined."""
    return db.execute(
        select(GameQueue).where(GameQueue.game_id == game_id, GameQueue.profile_id == profile_id)
    ).scalar_one_or_none()


def _active_entry(db: Session, game_id: int, profile_id: int) -> Optional[GameQueue]:
    entry = get_queue_entry(db, game_id, profile_id)
    if entry is None or entry.status not in ACTIVE_STATUSES:
        return None
    return entry


def _rostered_count(game_id: int):
    # Aliased so the count does not correlate with the row being updated.
    other = aliased(GameQueue)
    return (
        select(func.count(other.id))
        .where(other.game_id == game_id, other.status == ROSTERED)
        .scalar_subquery()
    )


def _claim_roster_spot(db: Session, game: Game, entry_id: int, now: datetime) -> bool:
    """waitlisted -> rostered, only while a slot is still open."""
    result = db.execute(
        update(GameQueue)
        .where(
            GameQueue.id == entry_id,
            GameQueue.status == WAITLISTED,
            _rostered_count(game.id) < game.capacity,
        )
        .values(status=ROSTERED, promoted_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _placement(db: Session, game: Game) -> str:
    if count_by_status(db, game.id, ROSTERED) < game.capacity:
        return ROSTERED
    if count_by_status(db, game.id, WAITLISTED) < game.waitlist_capacity:
        return WAITLISTED
    raise WaitlistFull()


def _display_name(db: Session, entry: GameQueue) -> str:
    if entry.is_guest:
        return entry.guest_name or "A guest"
    profile = get_profile(db, entry.profile_id)
    return profile.name if profile else "A player"


def promote_next_waitlisted(db: Session, game: Game, *, now: datetime) -> Optional[GameQueue]:
    """Flip the earliest waitlisted entry to rostered. FIFO by joined_at, then id."""
    skipped: list[int] = []
    while True:
        stmt = (
            select(GameQueue)
            .where(GameQueue.game_id == game.id, GameQueue.status == WAITLISTED)
            .order_by(GameQueue.joined_at, GameQueue.id)
            .limit(1)
        )
        if skipped:
            stmt = stmt.where(GameQueue.id.not_in(skipped))
        candidate = db.execute(stmt).scalar_one_or_none()
        if candidate is None:
            return None
        if _claim_roster_spot(db, game, candidate.id, now):
            db.refresh(candidate)
            logger.info(
                "queue:promoted game_id=%s queue_id=%s profile_id=%s",
                game.id,
                candidate.id,
                candidate.profile_id,
            )
            return candidate
        if count_by_status(db, game.id, ROSTERED) >= game.capacity:
            return None
        skipped.append(candidate.id)


def sync_lock_state(db: Session, game: Game) -> list[notify.NotificationIntent]:
    """Move the game between scheduled and locked as the confirmed roster fills or empties."""
    if game.draft_status != DRAFT_PENDING:
        return []
    full = (
        count_by_status(db, game.id, ROSTERED) >= game.capacity
        and count_attendance_confirmed(db, game.id) >= game.capacity
    )
    if full and game.status == "scheduled":
        from_status, to_status = "scheduled", "locked"
    elif not full and game.status == "locked":
        from_status, to_status = "locked", "scheduled"
    else:
        return []

    result = db.execute(
        update(Game)
        .where(Game.id == game.id, Game.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    db.refresh(game)
    if result.rowcount != 1:
        return []
    logger.info("queue:lock_sync game_id=%s status=%s", game.id, to_status)
    return [notify.roster_locked(game)] if to_status == "locked" else []


def _reset_for_roster_change(
    db: Session,
    game: Game,
    *,
    departing_profile_id: Optional[int],
    actor_id: Optional[int],
    now: datetime,
) -> bool:
    departing_captain = departing_profile_id is not None and is_captain(
        db, game.id, departing_profile_id
    )
    if game.draft_status == DRAFT_PENDING:
        if departing_captain:
            db.execute(delete(GameCaptain).where(GameCaptain.game_id == game.id))
        return False
    apply_draft_reset(
        db,
        game,
        actor_id=actor_id,
        preserve_captains=not departing_captain,
        now=now,
    )
    return True


def _drop_entry(
    db: Session,
    game: Game,
    entry: GameQueue,
    *,
    actor_id: Optional[int],
    now: datetime,
) -> QueueOutcome:
    was_rostered = entry.status == ROSTERED
    result = db.execute(
        update(GameQueue)
        .where(GameQueue.id == entry.id, GameQueue.status == entry.status)
        .values(status=DROPPED, cancelled_at=now, attendance_confirmed_at=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise QueueNotFound()
    db.refresh(entry)

    outcome = QueueOutcome(
        game_id=game.id,
        queue_id=entry.id,
        status=entry.status,
        was_rostered=was_rostered,
    )
    if not was_rostered:
        return outcome

    promoted = promote_next_waitlisted(db, game, now=now)
    if promoted is not None:
        outcome.promoted_queue_ids.append(promoted.id)
        if promoted.profile_id is not None:
            outcome.notifications.append(notify.waitlist_promoted(game, promoted.profile_id))

    if _reset_for_roster_change(
        db, game, departing_profile_id=entry.profile_id, actor_id=actor_id, now=now
    ):
        outcome.draft_reset = True
        outcome.notifications.append(notify.draft_reset(game))

    outcome.notifications.extend(sync_lock_state(db, game))
    return outcome


def join(
    db: Session,
    game_id: int,
    profile: Profile,
    *,
    now: Optional[datetime] = None,
) -> QueueOutcome:
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.status != "scheduled":
            raise GameNotOpen()
        if game.start_time is not None and now >= build_join_cutoff(
            game.start_time, effective_join_offset(game)
        ):
            raise JoinCutoffPassed()
        if not is_approved_member(db, game.community_id, profile.id):
            raise NotMember()
        if game.draft_status != DRAFT_PENDING:
            raise DraftInProgress()

        entry = get_queue_entry(db, game_id, profile.id)
        if entry is not None and entry.status in ACTIVE_STATUSES:
            return QueueOutcome(game_id=game_id, queue_id=entry.id, status=entry.status)

        status = _placement(db, game)
        if entry is None:
            entry = GameQueue(game_id=game_id, profile_id=profile.id, status=status, joined_at=now)
            db.add(entry)
        else:
            entry.status = status
            entry.joined_at = now
            entry.cancelled_at = None
            entry.attendance_confirmed_at = None
        db.flush()

        outcome = QueueOutcome(game_id=game_id, queue_id=entry.id, status=status)
        if status == ROSTERED:
            outcome.notifications.append(notify.roster_joined(game, profile.id, profile.name))
        outcome.notifications.extend(sync_lock_state(db, game))

    logger.info(
        "queue:join game_id=%s profile_id=%s status=%s", game_id, profile.id, outcome.status
    )
    return outcome


def leave(
    db: Session,
    game_id: int,
    profile: Profile,
    *,
    now: Optional[datetime] = None,
) -> QueueOutcome:
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.status in CLOSED_GAME_STATUSES:
            raise GameNotOpen()
        entry = _active_entry(db, game_id, profile.id)
        if entry is None:
            raise QueueNotFound()
        outcome = _drop_entry(db, game, entry, actor_id=profile.id, now=now)

    logger.info(
        "queue:leave game_id=%s profile_id=%s promoted=%s draft_reset=%s",
        game_id,
        profile.id,
        outcome.promoted_queue_ids,
        outcome.draft_reset,
    )
    return outcome


def grab_open_spot(
    db: Session,
    game_id: int,
    profile: Profile,
    *,
    now: Optional[datetime] = None,
) -> QueueOutcome:
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.status != "scheduled":
            raise GameNotOpen()
        entry = get_queue_entry(db, game_id, profile.id)
        if entry is None or entry.status != WAITLISTED:
            raise NotWaitlisted()
        if not _claim_roster_spot(db, game, entry.id, now):
            raise NoOpenSpot()
        db.refresh(entry)

        outcome = QueueOutcome(game_id=game_id, queue_id=entry.id, status=entry.status)
        outcome.notifications.append(notify.roster_joined(game, profile.id, profile.name))
        if _reset_for_roster_change(
            db, game, departing_profile_id=None, actor_id=profile.id, now=now
        ):
            outcome.draft_reset = True
            outcome.notifications.append(notify.draft_reset(game))
        outcome.notifications.extend(sync_lock_state(db, game))

    logger.info("queue:grab game_id=%s profile_id=%s", game_id, profile.id)
    return outcome


def confirm_attendance(
    db: Session,
    game_id: int,
    profile: Profile,
    *,
    now: Optional[datetime] = None,
    rng: Optional[Callable[[], float]] = None,
) -> QueueOutcome:
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.status != "scheduled":
            raise GameNotOpen()
        if not game.confirmation_enabled:
            raise ConfirmationDisabled()

        window = resolve_confirmation_window(
            game.start_time,
            offset_minutes=effective_join_offset(game),
            window_hours=effective_window_hours(db, game),
        )
        if window is None or not window.contains(now):
            raise ConfirmationWindowClosed()

        result = db.execute(
            update(GameQueue)
            .where(
                GameQueue.game_id == game_id,
                GameQueue.profile_id == profile.id,
                GameQueue.status == ROSTERED,
                GameQueue.attendance_confirmed_at.is_(None),
            )
            .values(attendance_confirmed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotConfirmable()

        entry = get_queue_entry(db, game_id, profile.id)
        db.refresh(entry)
        outcome = QueueOutcome(game_id=game_id, queue_id=entry.id, status=entry.status)
        outcome.notifications.extend(sync_lock_state(db, game))
        outcome.notifications.extend(
            maybe_auto_start(db, game, actor_id=profile.id, now=now, rng=rng)
        )

    logger.info("queue:confirm game_id=%s profile_id=%s", game_id, profile.id)
    return outcome


def admin_add(
    db: Session,
    game_id: int,
    actor: Profile,
    *,
    profile_id: Optional[int] = None,
    guest_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> QueueOutcome:
    if not actor.is_admin:
        raise Forbidden()
    if (profile_id is None) == (not guest_name):
        raise InvalidQueueEntry()
    now = utcnow(now)

    with committing(db):
        game = lock_game(db, game_id)
        if game.status not in ("scheduled", "locked"):
            raise GameNotOpen()

        if profile_id is not None:
            if not is_approved_member(db, game.community_id, profile_id):
                raise NotMember()
            entry = get_queue_entry(db, game_id, profile_id)
            if entry is not None and entry.status in ACTIVE_STATUSES:
                return QueueOutcome(game_id=game_id, queue_id=entry.id, status=entry.status)
        else:
            entry = None

        status = _placement(db, game)
        if entry is None:
            entry = GameQueue(
                game_id=game_id,
                profile_id=profile_id,
                guest_name=guest_name if profile_id is None else None,
                added_by_profile_id=actor.id,
                status=status,
                joined_at=now,
            )
            # Guests cannot confirm for themselves; the adding admin vouches for them.
            if profile_id is None and status == ROSTERED:
                entry.attendance_confirmed_at = now
            db.add(entry)
        else:
            entry.status = status
            entry.joined_at = now
            entry.cancelled_at = None
            entry.attendance_confirmed_at = None
            entry.added_by_profile_id = actor.id
        db.flush()

        outcome = QueueOutcome(game_id=game_id, queue_id=entry.id, status=status)
        if status == ROSTERED:
            outcome.notifications.append(
                notify.roster_joined(game, profile_id, _display_name(db, entry))
            )
            if _reset_for_roster_change(
                db, game, departing_profile_id=None, actor_id=actor.id, now=now
            ):
                outcome.draft_reset = True
                outcome.notifications.append(notify.draft_reset(game))
        outcome.notifications.extend(sync_lock_state(db, game))

    logger.info(
        "queue:admin_add game_id=%s queue_id=%s status=%s actor_id=%s",
        game_id,
        outcome.queue_id,
        outcome.status,
        actor.id,
    )
    return outcome


def admin_remove(
    db: Session,
    queue_id: int,
    actor: Profile,
    *,
    now: Optional[datetime] = None,
) -> QueueOutcome:
    if not actor.is_admin:
        raise Forbidden()
    now = utcnow(now)

    with committing(db):
        entry = db.get(GameQueue, queue_id)
        if entry is None:
            raise QueueNotFound()
        game = lock_game(db, entry.game_id)
        if game.status in CLOSED_GAME_STATUSES:
            raise GameNotOpen()
        db.refresh(entry)
        if entry.status not in ACTIVE_STATUSES:
            raise QueueNotFound()
        outcome = _drop_entry(db, game, entry, actor_id=actor.id, now=now)

    logger.info(
        "queue:admin_remove game_id=%s queue_id=%s was_rostered=%s promoted=%s",
        outcome.game_id,
        queue_id,
        outcome.was_rostered,
        outcome.promoted_queue_ids,
    )
    return outcome
