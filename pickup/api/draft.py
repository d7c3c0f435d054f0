from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from pickup.api.deps import get_current_profile, require_admin
from pickup.db.session import get_db
from pickup.models import Profile
from pickup.schemas.draft import (
    AssignCaptainsIn,
    CaptainVoteIn,
    DraftActionOut,
    DraftStateOut,
    PickIn,
    ReportResultIn,
    ResultOut,
    VoteOut,
)
from pickup.services import draft as draft_service
from pickup.services.draft import DraftOutcome
from pickup.services.notifications import dispatch_in_background

router = APIRouter(prefix="/games/{game_id}/draft", tags=["draft"])


def _respond(outcome: DraftOutcome, background: BackgroundTasks) -> DraftActionOut:
    if outcome.notifications:
        background.add_task(dispatch_in_background, list(outcome.notifications))
    return DraftActionOut(
        game_id=outcome.game_id,
        draft_status=outcome.draft_status,
        draft_turn=outcome.draft_turn,
        draft_direction=outcome.draft_direction,
        pick_order=outcome.pick_order,
    )


@router.get("", response_model=DraftStateOut)
def draft_state(
    game_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> DraftStateOut:
    state = draft_service.get_draft_state(db, game_id, profile)
    return DraftStateOut.model_validate(state)


@router.post("/captains", response_model=DraftActionOut)
def assign_captains(
    game_id: int,
    payload: AssignCaptainsIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> DraftActionOut:
    outcome = draft_service.assign_captains(
        db, game_id, admin, payload.captain_profile_ids, payload.team_names
    )
    return _respond(outcome, background)


@router.post("/start", response_model=DraftActionOut)
def start_draft(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> DraftActionOut:
    return _respond(draft_service.start_draft(db, game_id, admin), background)


@router.post("/reset", response_model=DraftActionOut)
def reset_draft(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> DraftActionOut:
    return _respond(draft_service.reset_draft(db, game_id, admin), background)


@router.post("/clear-captains", response_model=DraftActionOut)
def clear_captains(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> DraftActionOut:
    return _respond(draft_service.clear_captains(db, game_id, admin), background)


@router.post("/pick", response_model=DraftActionOut)
def pick_player(
    game_id: int,
    payload: PickIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> DraftActionOut:
    outcome = draft_service.pick_player(
        db,
        game_id,
        profile,
        payload.team_id,
        profile_id=payload.profile_id,
        guest_queue_id=payload.guest_queue_id,
    )
    return _respond(outcome, background)


@router.post("/undo", response_model=DraftActionOut)
def undo_pick(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> DraftActionOut:
    return _respond(draft_service.undo_pick(db, game_id, admin), background)


@router.post("/finalize", response_model=DraftActionOut)
def finalize_draft(
    game_id: int,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_admin),
) -> DraftActionOut:
    return _respond(draft_service.finalize_draft(db, game_id, admin), background)


@router.post("/result", response_model=ResultOut)
def report_result(
    game_id: int,
    payload: ReportResultIn,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> ResultOut:
    outcome = draft_service.report_result(
        db,
        game_id,
        profile,
        payload.winning_team_id,
        payload.losing_team_id,
        winner_score=payload.winner_score,
        loser_score=payload.loser_score,
    )
    return ResultOut(game_id=outcome.game_id, status=outcome.status, game_status=outcome.game_status)


@router.post("/result/confirm", response_model=ResultOut)
def confirm_result(
    game_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> ResultOut:
    outcome = draft_service.confirm_result(db, game_id, profile)
    return ResultOut(game_id=outcome.game_id, status=outcome.status, game_status=outcome.game_status)


@router.post("/votes", response_model=VoteOut)
def toggle_captain_vote(
    game_id: int,
    payload: CaptainVoteIn,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> VoteOut:
    outcome = draft_service.toggle_captain_vote(db, game_id, profile, payload.candidate_profile_id)
    return VoteOut(game_id=outcome.game_id, action=outcome.action, my_votes=outcome.my_votes)
