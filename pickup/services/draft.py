from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pickup.core.config import get_settings
from pickup.domain.draft import (
    DRAFT_COMPLETED,
    DRAFT_IN_PROGRESS,
    DRAFT_PENDING,
    DRAFT_READY,
    FinalizePayload,
    PickPayload,
    ResetPayload,
    StartPayload,
    UndoPayload,
    next_snake_turn,
    parse_event_payload,
    shuffle_order,
)
from pickup.domain.time_window import build_confirmation_window_start, to_utc
from pickup.models import (
    CaptainVote,
    Game,
    GameCaptain,
    GameDraftEvent,
    GameQueue,
    GameResult,
    GameTeam,
    GameTeamMember,
    Profile,
)
from pickup.services import notifications as notify
from pickup.services.draft_events import (
    list_draft_events,
    mark_pick_undone,
    recent_pick_events,
    record_draft_event,
)
from pickup.services.errors import (
    DraftBlocked,
    DraftIncomplete,
    DraftNotCompleted,
    DraftNotInProgress,
    DraftNotReady,
    Forbidden,
    InvalidCaptains,
    InvalidResult,
    InvalidTeam,
    NoPicksToUndo,
    NotYourTurn,
    PlayerAlreadyDrafted,
    PlayerNotConfirmed,
    PlayerNotOnRoster,
    VoteRejected,
)
from pickup.services.games import (
    committing,
    count_attendance_confirmed,
    count_by_status,
    effective_window_hours,
    get_game,
    lock_game,
    rostered_entries,
    rostered_profile_ids,
    utcnow,
)

logger = logging.getLogger(__name__)

MAX_CAPTAIN_VOTES = 2

BLOCKER_ALREADY_STARTED = "Draft already started"
BLOCKER_ROSTER_UNCONFIRMED = "Full roster must be confirmed"
BLOCKER_TOO_FEW_CAPTAINS = "At least two captains required"
BLOCKER_UNEVEN_TEAMS = "Captain count must divide evenly into the confirmed roster"
BLOCKER_NO_START_TIME = "Start time required"
BLOCKER_OUTSIDE_WINDOW = "Draft only available within the confirmation window"


@dataclass(frozen=True)
class DraftStartSnapshot:
    game_id: int
    draft_status: str
    capacity: int
    confirmed_count: int
    attendance_confirmed_count: int
    kickoff: Optional[datetime]
    window_hours: int


@dataclass
class DraftOutcome:
    game_id: int
    draft_status: str
    draft_turn: Optional[int] = None
    draft_direction: Optional[int] = None
    pick_order: Optional[int] = None
    notifications: list[notify.NotificationIntent] = field(default_factory=list)


@dataclass
class ResultOutcome:
    game_id: int
    status: str
    game_status: str


@dataclass
class VoteOutcome:
    game_id: int
    action: str
    my_votes: list[int]


@dataclass
class TeamState:
    id: int
    name: str
    draft_order: int
    captain_profile_id: Optional[int]
    members: list[GameTeamMember]


@dataclass
class DraftState:
    game_id: int
    draft_status: str
    draft_turn: Optional[int]
    draft_direction: Optional[int]
    teams: list[TeamState]
    captains: list[GameCaptain]
    captain_team_id: Optional[int]
    current_turn_team_id: Optional[int]
    is_captain_turn: bool
    events: list[GameDraftEvent]
    vote_counts: dict[int, int]
    my_votes: list[int]
    result: Optional[GameResult]


def _outcome(game: Game, **kwargs) -> DraftOutcome:
    return DraftOutcome(
        game_id=game.id,
        draft_status=game.draft_status,
        draft_turn=game.draft_turn,
        draft_direction=game.draft_direction,
        **kwargs,
    )


def _require_admin(actor: Profile) -> None:
    if not actor.is_admin:
        raise Forbidden()


def _advance_status(db: Session, game_id: int, from_status: str, to_status: str, **values) -> bool:
    result = db.execute(
        update(Game)
        .where(Game.id == game_id, Game.draft_status == from_status)
        .values(draft_status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _captain_ids(db: Session, game_id: int) -> list[int]:
    return list(
        db.execute(
            select(GameCaptain.profile_id)
            .where(GameCaptain.game_id == game_id)
            .order_by(GameCaptain.slot)
        )
        .scalars()
        .all()
    )


def _teams(db: Session, game_id: int) -> list[GameTeam]:
    return (
        db.execute(
            select(GameTeam).where(GameTeam.game_id == game_id).order_by(GameTeam.draft_order)
        )
        .scalars()
        .all()
    )


def is_captain(db: Session, game_id: int, profile_id: int) -> bool:
    return profile_id in _captain_ids(db, game_id)


def _stored_team_names(db: Session, game_id: int, captain_ids: Sequence[int]) -> list[str]:
    """Names saved with the captains, falling back to the configured defaults."""
    saved = dict(
        db.execute(
            select(GameCaptain.profile_id, GameCaptain.team_name).where(
                GameCaptain.game_id == game_id
            )
        ).all()
    )
    defaults = get_settings().default_team_names(len(captain_ids))
    return [saved.get(cid) or defaults[i] for i, cid in enumerate(captain_ids)]


def fetch_draft_start_snapshot(db: Session, game: Game) -> DraftStartSnapshot:
    return DraftStartSnapshot(
        game_id=game.id,
        draft_status=game.draft_status,
        capacity=game.capacity,
        confirmed_count=count_by_status(db, game.id, "rostered"),
        attendance_confirmed_count=count_attendance_confirmed(db, game.id),
        kickoff=game.start_time,
        window_hours=effective_window_hours(db, game),
    )


def get_draft_start_blocker(
    snapshot: DraftStartSnapshot,
    captain_count: int,
    now: datetime,
) -> Optional[str]:
    """Return the first reason a draft cannot start, or None."""
    if snapshot.draft_status != DRAFT_PENDING:
        return BLOCKER_ALREADY_STARTED
    if (
        snapshot.confirmed_count != snapshot.capacity
        or snapshot.attendance_confirmed_count != snapshot.capacity
    ):
        return BLOCKER_ROSTER_UNCONFIRMED
    if captain_count < 2:
        return BLOCKER_TOO_FEW_CAPTAINS
    if snapshot.confirmed_count % captain_count != 0:
        return BLOCKER_UNEVEN_TEAMS
    if snapshot.kickoff is None:
        return BLOCKER_NO_START_TIME

    kickoff = to_utc(snapshot.kickoff)
    window_start = build_confirmation_window_start(kickoff, snapshot.window_hours)
    if not (window_start <= to_utc(now) < kickoff):
        return BLOCKER_OUTSIDE_WINDOW
    return None


def _open_draft(
    db: Session,
    game: Game,
    captain_ids: Sequence[int],
    *,
    actor_id: Optional[int],
    now: datetime,
    team_names: Optional[Sequence[str]] = None,
    rng: Optional[Callable[[], float]] = None,
) -> None:
    existing = db.execute(
        select(func.count(GameTeam.id)).where(GameTeam.game_id == game.id)
    ).scalar_one()
    if existing:
        raise DraftNotReady("draft_already_initialized")

    names = list(team_names) if team_names else _stored_team_names(db, game.id, captain_ids)
    name_by_captain = dict(zip(captain_ids, names))
    order = shuffle_order(captain_ids, rng)

    for draft_order, captain_id in enumerate(order):
        team = GameTeam(
            game_id=game.id,
            name=name_by_captain[captain_id],
            draft_order=draft_order,
            captain_profile_id=captain_id,
        )
        db.add(team)
        db.flush()
        db.add(
            GameTeamMember(
                game_id=game.id,
                game_team_id=team.id,
                profile_id=captain_id,
                pick_order=0,
                assigned_by=captain_id,
                assigned_at=now,
            )
        )
    db.flush()

    if not _advance_status(
        db, game.id, DRAFT_READY, DRAFT_IN_PROGRESS, draft_turn=0, draft_direction=1
    ):
        raise DraftNotReady()

    record_draft_event(
        db,
        game_id=game.id,
        payload=StartPayload(captain_profile_ids=list(order)),
        created_at=now,
        created_by=actor_id,
    )
    db.refresh(game)
    logger.info("draft:started game_id=%s teams=%s", game.id, len(order))


def apply_draft_reset(
    db: Session,
    game: Game,
    *,
    actor_id: Optional[int],
    preserve_captains: bool,
    now: datetime,
) -> None:
    """Clear every draft artifact for the game. Does not commit."""
    db.execute(delete(GameTeamMember).where(GameTeamMember.game_id == game.id))
    db.execute(delete(GameResult).where(GameResult.game_id == game.id))
    db.execute(delete(GameDraftEvent).where(GameDraftEvent.game_id == game.id))
    db.execute(delete(GameTeam).where(GameTeam.game_id == game.id))
    db.execute(delete(CaptainVote).where(CaptainVote.game_id == game.id))
    if not preserve_captains:
        db.execute(delete(GameCaptain).where(GameCaptain.game_id == game.id))

    db.execute(
        update(Game)
        .where(Game.id == game.id)
        .values(draft_status=DRAFT_PENDING, draft_turn=None, draft_direction=1)
        .execution_options(synchronize_session=False)
    )
    record_draft_event(
        db,
        game_id=game.id,
        payload=ResetPayload(preserve_captains=preserve_captains),
        created_at=now,
        created_by=actor_id,
    )
    db.refresh(game)
    logger.info(
        "draft:reset game_id=%s preserve_captains=%s actor_id=%s",
        game.id,
        preserve_captains,
        actor_id,
    )


def maybe_auto_start(
    db: Session,
    game: Game,
    *,
    actor_id: Optional[int],
    now: datetime,
    rng: Optional[Callable[[], float]] = None,
) -> list[notify.NotificationIntent]:
    """Start the draft when recorded captains meet a freshly completed roster."""
    captain_ids = _captain_ids(db, game.id)
    if len(captain_ids) < 2:
        return []
    if not set(captain_ids) <= rostered_profile_ids(db, game.id):
        return []
    snapshot = fetch_draft_start_snapshot(db, game)
    if get_draft_start_blocker(snapshot, len(captain_ids), now):
        return []
    if not _advance_status(db, game.id, DRAFT_PENDING, DRAFT_READY):
        return []
    _open_draft(db, game, captain_ids, actor_id=actor_id, now=now, rng=rng)
    logger.info("draft:auto_started game_id=%s", game.id)
    return [notify.draft_ready(game), notify.draft_started(game)]


def assign_captains(
    db: Session,
    game_id: int,
    actor: Profile,
    captain_ids: Sequence[int],
    team_names: Optional[Sequence[str]] = None,
    *,
    now: Optional[datetime] = None,
    rng: Optional[Callable[[], float]] = None,
) -> DraftOutcome:
    _require_admin(actor)
    now = utcnow(now)
    captain_ids = list(captain_ids)
    if len(set(captain_ids)) != len(captain_ids):
        raise InvalidCaptains("duplicate_captains")
    if team_names is not None and len(team_names) != len(captain_ids):
        raise InvalidCaptains("team_names_mismatch")

    with committing(db):
        game = lock_game(db, game_id)
        blocker = get_draft_start_blocker(
            fetch_draft_start_snapshot(db, game), len(captain_ids), now
        )
        if blocker:
            raise DraftBlocked(blocker)

        rostered = rostered_profile_ids(db, game_id)
        if any(captain_id not in rostered for captain_id in captain_ids):
            raise InvalidCaptains("captain_not_rostered")

        db.execute(delete(GameCaptain).where(GameCaptain.game_id == game_id))
        for index, captain_id in enumerate(captain_ids):
            db.add(
                GameCaptain(
                    game_id=game_id,
                    slot=index + 1,
                    profile_id=captain_id,
                    team_name=team_names[index] if team_names else None,
                )
            )
        db.flush()

        if not _advance_status(db, game_id, DRAFT_PENDING, DRAFT_READY):
            raise DraftBlocked(BLOCKER_ALREADY_STARTED)
        _open_draft(
            db,
            game,
            captain_ids,
            actor_id=actor.id,
            now=now,
            team_names=team_names,
            rng=rng,
        )

    logger.info("draft:captains_assigned game_id=%s captains=%s", game_id, captain_ids)
    return _outcome(
        game,
        notifications=[
            notify.captains_assigned(game, captain_ids),
            notify.draft_ready(game),
            notify.draft_started(game),
        ],
    )


def start_draft(
    db: Session,
    game_id: int,
    actor: Profile,
    *,
    now: Optional[datetime] = None,
    rng: Optional[Callable[[], float]] = None,
) -> DraftOutcome:
    _require_admin(actor)
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        captain_ids = _captain_ids(db, game_id)
        if len(captain_ids) < 2:
            raise InvalidCaptains("captains_required")

        if game.draft_status == DRAFT_PENDING:
            blocker = get_draft_start_blocker(
                fetch_draft_start_snapshot(db, game), len(captain_ids), now
            )
            if blocker:
                raise DraftBlocked(blocker)
            if not _advance_status(db, game_id, DRAFT_PENDING, DRAFT_READY):
                raise DraftBlocked(BLOCKER_ALREADY_STARTED)
        elif game.draft_status != DRAFT_READY:
            raise DraftNotReady()

        _open_draft(db, game, captain_ids, actor_id=actor.id, now=now, rng=rng)

    return _outcome(game, notifications=[notify.draft_started(game)])


def reset_draft(
    db: Session,
    game_id: int,
    actor: Profile,
    *,
    preserve_captains: bool = True,
    now: Optional[datetime] = None,
) -> DraftOutcome:
    _require_admin(actor)
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        apply_draft_reset(
            db, game, actor_id=actor.id, preserve_captains=preserve_captains, now=now
        )
    return _outcome(game)


def clear_captains(
    db: Session,
    game_id: int,
    actor: Profile,
    *,
    now: Optional[datetime] = None,
) -> DraftOutcome:
    return reset_draft(db, game_id, actor, preserve_captains=False, now=now)


def _find_roster_entry(
    db: Session,
    game_id: int,
    profile_id: Optional[int],
    guest_queue_id: Optional[int],
) -> Optional[GameQueue]:
    stmt = select(GameQueue).where(GameQueue.game_id == game_id)
    if guest_queue_id is not None:
        stmt = stmt.where(GameQueue.id == guest_queue_id, GameQueue.profile_id.is_(None))
    else:
        stmt = stmt.where(GameQueue.profile_id == profile_id)
    return db.execute(stmt).scalar_one_or_none()


def _member_filter(entry_profile_id: Optional[int], guest_queue_id: Optional[int]):
    if guest_queue_id is not None:
        return GameTeamMember.guest_queue_id == guest_queue_id
    return GameTeamMember.profile_id == entry_profile_id


def pick_player(
    db: Session,
    game_id: int,
    actor: Profile,
    team_id: int,
    *,
    profile_id: Optional[int] = None,
    guest_queue_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> DraftOutcome:
    now = utcnow(now)
    if (profile_id is None) == (guest_queue_id is None):
        raise PlayerNotOnRoster()

    with committing(db):
        game = lock_game(db, game_id)
        if game.draft_status != DRAFT_IN_PROGRESS or game.draft_turn is None:
            raise DraftNotInProgress()

        team = db.execute(
            select(GameTeam).where(GameTeam.id == team_id, GameTeam.game_id == game_id)
        ).scalar_one_or_none()
        if team is None:
            raise InvalidTeam()

        if not actor.is_admin:
            if team.captain_profile_id != actor.id:
                raise Forbidden()
            if team.draft_order != game.draft_turn:
                raise NotYourTurn()

        entry = _find_roster_entry(db, game_id, profile_id, guest_queue_id)
        if entry is None or entry.status != "rostered":
            raise PlayerNotOnRoster()
        if entry.attendance_confirmed_at is None:
            raise PlayerNotConfirmed()

        guest_id = entry.id if entry.is_guest else None
        already = db.execute(
            select(GameTeamMember.id).where(
                GameTeamMember.game_id == game_id,
                _member_filter(entry.profile_id, guest_id),
            )
        ).first()
        if already:
            raise PlayerAlreadyDrafted()

        turn_before = game.draft_turn
        direction_before = game.draft_direction or 1
        team_count = len(_teams(db, game_id))
        next_turn, next_direction = next_snake_turn(turn_before, direction_before, team_count)

        advanced = db.execute(
            update(Game)
            .where(
                Game.id == game_id,
                Game.draft_status == DRAFT_IN_PROGRESS,
                Game.draft_turn == turn_before,
                Game.draft_direction == direction_before,
            )
            .values(draft_turn=next_turn, draft_direction=next_direction)
            .execution_options(synchronize_session=False)
        )
        if advanced.rowcount != 1:
            raise NotYourTurn()

        pick_order = (
            db.execute(
                select(func.coalesce(func.max(GameTeamMember.pick_order), 0)).where(
                    GameTeamMember.game_id == game_id
                )
            ).scalar_one()
            + 1
        )
        db.add(
            GameTeamMember(
                game_id=game_id,
                game_team_id=team.id,
                profile_id=entry.profile_id,
                guest_queue_id=guest_id,
                pick_order=pick_order,
                assigned_by=actor.id,
                assigned_at=now,
            )
        )
        try:
            db.flush()
        except IntegrityError as exc:
            raise PlayerAlreadyDrafted() from exc

        record_draft_event(
            db,
            game_id=game_id,
            payload=PickPayload(
                pick_order=pick_order,
                turn_before=turn_before,
                direction_before=direction_before,
            ),
            created_at=now,
            team_id=team.id,
            profile_id=entry.profile_id,
            guest_queue_id=guest_id,
            created_by=actor.id,
        )
        db.refresh(game)

    logger.info(
        "draft:pick game_id=%s team_id=%s queue_id=%s pick_order=%s",
        game_id,
        team.id,
        entry.id,
        pick_order,
    )
    intents = []
    if entry.profile_id is not None:
        intents.append(notify.draft_pick(game, entry.profile_id, pick_order))
    return _outcome(game, pick_order=pick_order, notifications=intents)


def undo_pick(
    db: Session,
    game_id: int,
    actor: Profile,
    *,
    now: Optional[datetime] = None,
) -> DraftOutcome:
    _require_admin(actor)
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.draft_status != DRAFT_IN_PROGRESS:
            raise DraftNotInProgress()

        target = None
        for event in recent_pick_events(db, game_id, get_settings().DRAFT_UNDO_LOOKBACK):
            payload = parse_event_payload(event.action, event.payload)
            if not event.is_undone and not payload.undone:
                target = (event, payload)
                break
        if target is None:
            raise NoPicksToUndo()

        event, payload = target
        if not mark_pick_undone(db, event, payload.mark_undone(actor.id, now)):
            raise NoPicksToUndo()

        db.execute(
            delete(GameTeamMember).where(
                GameTeamMember.game_id == game_id,
                _member_filter(event.profile_id, event.guest_queue_id),
            )
        )
        db.execute(
            update(Game)
            .where(Game.id == game_id, Game.draft_status == DRAFT_IN_PROGRESS)
            .values(draft_turn=payload.turn_before, draft_direction=payload.direction_before)
            .execution_options(synchronize_session=False)
        )
        record_draft_event(
            db,
            game_id=game_id,
            payload=UndoPayload(reversed_event_id=event.id, pick_order=payload.pick_order),
            created_at=now,
            team_id=event.team_id,
            profile_id=event.profile_id,
            guest_queue_id=event.guest_queue_id,
            created_by=actor.id,
        )
        db.refresh(game)

    logger.info(
        "draft:undo game_id=%s event_id=%s pick_order=%s", game_id, event.id, payload.pick_order
    )
    return _outcome(game, pick_order=payload.pick_order)


def finalize_draft(
    db: Session,
    game_id: int,
    actor: Profile,
    *,
    now: Optional[datetime] = None,
) -> DraftOutcome:
    _require_admin(actor)
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.draft_status != DRAFT_IN_PROGRESS:
            raise DraftNotInProgress()

        roster = rostered_entries(db, game_id)
        if not roster:
            raise DraftIncomplete("no_confirmed_players")

        members = (
            db.execute(select(GameTeamMember).where(GameTeamMember.game_id == game_id))
            .scalars()
            .all()
        )
        if len(members) != len(roster):
            raise DraftIncomplete()

        drafted_profiles = {m.profile_id for m in members if m.profile_id is not None}
        drafted_guests = {m.guest_queue_id for m in members if m.guest_queue_id is not None}
        for entry in roster:
            drafted = (
                entry.id in drafted_guests
                if entry.is_guest
                else entry.profile_id in drafted_profiles
            )
            if not drafted:
                raise DraftIncomplete("undrafted_players")

        if not _advance_status(
            db,
            game_id,
            DRAFT_IN_PROGRESS,
            DRAFT_COMPLETED,
            draft_turn=None,
            draft_direction=1,
        ):
            raise DraftNotInProgress()
        record_draft_event(
            db,
            game_id=game_id,
            payload=FinalizePayload(drafted_count=len(members)),
            created_at=now,
            created_by=actor.id,
        )
        db.refresh(game)

    logger.info("draft:finalized game_id=%s drafted=%s", game_id, len(members))
    return _outcome(game, notifications=[notify.draft_completed(game)])


def _mark_game_completed(db: Session, game_id: int) -> None:
    db.execute(
        update(Game)
        .where(Game.id == game_id, Game.status != "cancelled")
        .values(status="completed")
        .execution_options(synchronize_session=False)
    )


def report_result(
    db: Session,
    game_id: int,
    actor: Profile,
    winning_team_id: int,
    losing_team_id: Optional[int] = None,
    *,
    winner_score: Optional[int] = None,
    loser_score: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ResultOutcome:
    now = utcnow(now)
    with committing(db):
        game = lock_game(db, game_id)
        if game.draft_status != DRAFT_COMPLETED:
            raise DraftNotCompleted()

        teams = {team.id: team for team in _teams(db, game_id)}
        if winning_team_id not in teams:
            raise InvalidResult("winning_team_not_in_game")
        if losing_team_id is not None and (
            losing_team_id not in teams or losing_team_id == winning_team_id
        ):
            raise InvalidResult("losing_team_not_in_game")

        reporter_is_captain = any(t.captain_profile_id == actor.id for t in teams.values())
        if not actor.is_admin and not reporter_is_captain:
            raise Forbidden()

        if losing_team_id is None:
            losing_team_id = next((tid for tid in teams if tid != winning_team_id), None)

        status = "confirmed" if actor.is_admin else "pending"
        result = db.execute(
            select(GameResult).where(GameResult.game_id == game_id)
        ).scalar_one_or_none()
        if result is None:
            result = GameResult(game_id=game_id)
            db.add(result)
        result.winning_team_id = winning_team_id
        result.losing_team_id = losing_team_id
        result.winner_score = winner_score
        result.loser_score = loser_score
        result.reported_by = actor.id
        result.reported_at = now
        result.status = status
        db.flush()

        if status == "confirmed":
            _mark_game_completed(db, game_id)
        db.refresh(game)

    logger.info("draft:result_reported game_id=%s status=%s", game_id, status)
    return ResultOutcome(game_id=game_id, status=status, game_status=game.status)


def confirm_result(
    db: Session,
    game_id: int,
    actor: Profile,
) -> ResultOutcome:
    with committing(db):
        game = lock_game(db, game_id)
        result = db.execute(
            select(GameResult).where(GameResult.game_id == game_id)
        ).scalar_one_or_none()
        if result is None:
            raise InvalidResult("result_not_reported")

        if not actor.is_admin:
            if not any(t.captain_profile_id == actor.id for t in _teams(db, game_id)):
                raise Forbidden()
            if result.reported_by == actor.id and result.status == "pending":
                raise Forbidden("reporter_cannot_confirm")

        result.status = "confirmed"
        _mark_game_completed(db, game_id)
        db.flush()
        db.refresh(game)

    logger.info("draft:result_confirmed game_id=%s actor_id=%s", game_id, actor.id)
    return ResultOutcome(game_id=game_id, status=result.status, game_status=game.status)


def _votes_by(db: Session, game_id: int, voter_id: int) -> list[int]:
    return list(
        db.execute(
            select(CaptainVote.candidate_profile_id)
            .where(CaptainVote.game_id == game_id, CaptainVote.voter_profile_id == voter_id)
            .order_by(CaptainVote.id)
        )
        .scalars()
        .all()
    )


def toggle_captain_vote(
    db: Session,
    game_id: int,
    voter: Profile,
    candidate_profile_id: int,
) -> VoteOutcome:
    with committing(db):
        game = lock_game(db, game_id)
        if game.draft_status != DRAFT_PENDING:
            raise VoteRejected("voting_closed")
        if candidate_profile_id == voter.id:
            raise VoteRejected("cannot_vote_for_self")

        rostered = rostered_profile_ids(db, game_id)
        if voter.id not in rostered:
            raise VoteRejected("voter_not_rostered")
        if candidate_profile_id not in rostered:
            raise VoteRejected("nominee_not_rostered")

        existing = db.execute(
            select(CaptainVote).where(
                CaptainVote.game_id == game_id,
                CaptainVote.voter_profile_id == voter.id,
                CaptainVote.candidate_profile_id == candidate_profile_id,
            )
        ).scalar_one_or_none()
        if existing is not None:
            db.delete(existing)
            action = "removed"
        else:
            if len(_votes_by(db, game_id, voter.id)) >= MAX_CAPTAIN_VOTES:
                raise VoteRejected("vote_limit_reached")
            db.add(
                CaptainVote(
                    game_id=game_id,
                    voter_profile_id=voter.id,
                    candidate_profile_id=candidate_profile_id,
                )
            )
            action = "added"
        db.flush()
        my_votes = _votes_by(db, game_id, voter.id)

    return VoteOutcome(game_id=game_id, action=action, my_votes=my_votes)


def get_draft_state(db: Session, game_id: int, viewer: Profile) -> DraftState:
    game = get_game(db, game_id)
    teams = _teams(db, game_id)
    members = (
        db.execute(
            select(GameTeamMember)
            .where(GameTeamMember.game_id == game_id)
            .order_by(GameTeamMember.pick_order, GameTeamMember.id)
        )
        .scalars()
        .all()
    )
    by_team: dict[int, list[GameTeamMember]] = {team.id: [] for team in teams}
    for member in members:
        by_team.setdefault(member.game_team_id, []).append(member)

    captains = (
        db.execute(
            select(GameCaptain).where(GameCaptain.game_id == game_id).order_by(GameCaptain.slot)
        )
        .scalars()
        .all()
    )
    captain_team_id = next((t.id for t in teams if t.captain_profile_id == viewer.id), None)
    current_turn_team_id = None
    if game.draft_status == DRAFT_IN_PROGRESS and game.draft_turn is not None:
        current_turn_team_id = next(
            (t.id for t in teams if t.draft_order == game.draft_turn), None
        )

    rostered = rostered_profile_ids(db, game_id)
    vote_counts: dict[int, int] = {}
    my_votes: list[int] = []
    for vote in db.execute(select(CaptainVote).where(CaptainVote.game_id == game_id)).scalars():
        if vote.candidate_profile_id not in rostered:
            continue
        vote_counts[vote.candidate_profile_id] = vote_counts.get(vote.candidate_profile_id, 0) + 1
        if vote.voter_profile_id == viewer.id:
            my_votes.append(vote.candidate_profile_id)

    result = db.execute(
        select(GameResult).where(GameResult.game_id == game_id)
    ).scalar_one_or_none()

    return DraftState(
        game_id=game.id,
        draft_status=game.draft_status,
        draft_turn=game.draft_turn,
        draft_direction=game.draft_direction,
        teams=[
            TeamState(
                id=team.id,
                name=team.name,
                draft_order=team.draft_order,
                captain_profile_id=team.captain_profile_id,
                members=by_team.get(team.id, []),
            )
            for team in teams
        ],
        captains=list(captains),
        captain_team_id=captain_team_id,
        current_turn_team_id=current_turn_team_id,
        is_captain_turn=bool(
            current_turn_team_id is not None and current_turn_team_id == captain_team_id
        ),
        events=list_draft_events(db, game_id),
        vote_counts=vote_counts,
        my_votes=my_votes,
        result=result,
    )
