from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pickup.core.config import get_settings
from pickup.db.session import SessionLocal
from pickup.domain.time_window import (
    build_join_cutoff,
    build_zoned_time,
    is_confirmation_window_open,
    to_utc,
)
from pickup.models import Community, Game, GameQueue
from pickup.services import notifications as notify
from pickup.services.games import (
    count_by_status,
    effective_join_offset,
    effective_window_hours,
    utcnow,
)

logger = logging.getLogger(__name__)


def _upcoming_games(db: Session, now: datetime, *extra_filters) -> list[tuple[Game, Community]]:
    rows = db.execute(
        select(Game, Community)
        .join(Community, Community.id == Game.community_id)
        .where(
            Game.status == "scheduled",
            Game.start_time.is_not(None),
            Game.start_time > now,
            *extra_filters,
        )
        .order_by(Game.start_time, Game.id)
    ).all()
    return [(game, community) for game, community in rows]


def _mark_once(db: Session, game_id: int, column, now: datetime) -> bool:
    result = db.execute(
        update(Game)
        .where(Game.id == game_id, column.is_(None))
        .values({column.key: now})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def run_crunch_time_alerts(
    db: Session,
    *,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> dict[str, int]:
    """Tell the community about open spots once the local crunch-time start is reached."""
    now = utcnow(now)
    stats = {"checked": 0, "notified": 0}
    intents: list[notify.NotificationIntent] = []

    candidates = _upcoming_games(
        db,
        now,
        Game.crunch_time_notified_at.is_(None),
        Community.crunch_time_enabled.is_(True),
    )
    for game, community in candidates:
        stats["checked"] += 1
        trigger_at = build_zoned_time(
            game.start_time, community.timezone, community.crunch_time_start_time_local
        )
        if trigger_at is None or now < trigger_at:
            continue
        if now >= build_join_cutoff(game.start_time, effective_join_offset(game)):
            continue
        open_spots = game.capacity - count_by_status(db, game.id, "rostered")
        if open_spots <= 0:
            continue
        if dry_run:
            stats["notified"] += 1
            continue
        if _mark_once(db, game.id, Game.crunch_time_notified_at, now):
            stats["notified"] += 1
            intents.append(notify.crunch_time_open(game, open_spots))
            logger.info("scheduler:crunch_time game_id=%s open_spots=%s", game.id, open_spots)

    if not dry_run:
        db.commit()
        notify.dispatch_notifications(db, intents)
    return stats


def run_confirmation_reminders(
    db: Session,
    *,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> dict[str, int]:
    """Nudge rostered, unconfirmed players once, at the community's reminder time."""
    now = utcnow(now)
    stats = {"checked": 0, "notified": 0}
    intents: list[notify.NotificationIntent] = []

    candidates = _upcoming_games(
        db,
        now,
        Game.confirmation_enabled.is_(True),
        Game.confirmation_reminder_sent_at.is_(None),
        Community.confirmation_reminder_time_local.is_not(None),
    )
    for game, community in candidates:
        stats["checked"] += 1
        if not is_confirmation_window_open(
            game.start_time,
            now,
            offset_minutes=effective_join_offset(game),
            window_hours=effective_window_hours(db, game),
        ):
            continue
        remind_at = build_zoned_time(
            now, community.timezone, community.confirmation_reminder_time_local
        )
        if remind_at is None or to_utc(now) < remind_at:
            continue

        pending_ids = list(
            db.execute(
                select(GameQueue.profile_id).where(
                    GameQueue.game_id == game.id,
                    GameQueue.status == "rostered",
                    GameQueue.profile_id.is_not(None),
                    GameQueue.attendance_confirmed_at.is_(None),
                )
            )
            .scalars()
            .all()
        )
        if not pending_ids:
            continue
        if dry_run:
            stats["notified"] += 1
            continue
        if _mark_once(db, game.id, Game.confirmation_reminder_sent_at, now):
            stats["notified"] += 1
            intents.append(notify.confirmation_reminder(game, pending_ids))
            logger.info(
                "scheduler:confirmation_reminder game_id=%s recipients=%s",
                game.id,
                len(pending_ids),
            )

    if not dry_run:
        db.commit()
        notify.dispatch_notifications(db, intents)
    return stats


async def _scheduler_loop(interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            with SessionLocal() as db:
                run_crunch_time_alerts(db)
                run_confirmation_reminders(db)
        except Exception:
            logger.exception("scheduler_loop_error")
            # keep scheduler alive
            continue


def start_scheduler() -> asyncio.Task | None:
    settings = get_settings()
    if not settings.SCHEDULER_ENABLED:
        return None
    return asyncio.create_task(_scheduler_loop(settings.SCHEDULER_INTERVAL_SECONDS))
