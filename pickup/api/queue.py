from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from pickup.api.deps import get_current_profile, require_admin
from pickup.db.session import get_db
from pickup.models import Profile
from pickup.schemas.queue import AdminAddIn, MyQueueEntryOut, QueueActionOut, QueueEntryOut
from pickup.services import queue as queue_service
from pickup.services.games import get_game
from pickup.services.notifications import dispatch_in_background
from pickup.services.queue import QueueOutcome

router = APIRouter(tags=["queue"])


def _respond(outcome: QueueOutcome, background: BackgroundTasks) -> QueueActionOut:
    if outcome.notifications:
        background.add_task(dispatch_in_background, list(outcome.notifications))
    return QueueActionOut(
        game_id=outcome.game_id,
        queue_id=outcome.queue_id,
        status=outcome.status,
        promoted_queue_ids=outcome.promoted_queue_ids,
        was_rostered=outcome.was_rostered,
        draft_reset=outcome.draft_reset,
    )


@router.get("/games/{game_id}/queue/me", response_model=MyQueueEntryOut)
def my_queue_entry(
    game_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> MyQueueEntryOut:
    get_game(db, game_id)
    entry = queue_service.get_queue_entry(db, game_id, profile.id)
    return MyQueueEntryOut(
        game_id=game_id,
        entry=QueueEntryOut.model_validate(entry) if entry is not None else None,
    )


@router.post("/games/{game_id}/queue/join", response_model=QueueActionOut)
def join_game(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> QueueActionOut:
    return _respond(queue_service.join(db, game_id, profile), background)


@router.post("/games/{game_id}/queue/leave", response_model=QueueActionOut)
def leave_game(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> QueueActionOut:
    return _respond(queue_service.leave(db, game_id, profile), background)


@router.post("/games/{game_id}/queue/grab", response_model=QueueActionOut)
def grab_open_spot(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> QueueActionOut:
    return _respond(queue_service.grab_open_spot(db, game_id, profile), background)


@router.post("/games/{game_id}/queue/confirm", response_model=QueueActionOut)
def confirm_attendance(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> QueueActionOut:
    return _respond(queue_service.confirm_attendance(db, game_id, profile), background)


@router.post("/games/{game_id}/queue/members", response_model=QueueActionOut)
def admin_add_member(
    game_id: int,
    payload: AdminAddIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> QueueActionOut:
    outcome = queue_service.admin_add(
        db,
        game_id,
        admin,
        profile_id=payload.profile_id,
        guest_name=payload.guest_name,
    )
    return _respond(outcome, background)


@router.delete("/queue/{queue_id}", response_model=QueueActionOut)
def admin_remove_member(
    queue_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> QueueActionOut:
    return _respond(queue_service.admin_remove(db, queue_id, admin), background)
