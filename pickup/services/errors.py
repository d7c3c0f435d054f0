from __future__ import annotations

from fastapi import status


class EngineError(Exception):
    """Typed, user-facing failure of a queue or draft operation."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "bad_request"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class GameNotFound(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "game_not_found"


class GameNotOpen(EngineError):
    detail = "game_not_open"


class JoinCutoffPassed(EngineError):
    detail = "join_cutoff_passed"


class NotMember(EngineError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "not_member"


class DraftInProgress(EngineError):
    status_code = status.HTTP_409_CONFLICT
    detail = "draft_in_progress"


class WaitlistFull(EngineError):
    status_code = status.HTTP_409_CONFLICT
    detail = "waitlist_full"


class QueueNotFound(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "queue_entry_not_found"


class NotWaitlisted(EngineError):
    detail = "not_waitlisted"


class NoOpenSpot(EngineError):
    status_code = status.HTTP_409_CONFLICT
    detail = "no_open_spot"


class ConfirmationDisabled(EngineError):
    detail = "confirmation_disabled"


class ConfirmationWindowClosed(EngineError):
    detail = "confirmation_window_closed"


class NotConfirmable(EngineError):
    detail = "no_active_roster_spot_to_confirm"


class Forbidden(EngineError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "forbidden"


class DraftBlocked(EngineError):
    """Carries the gate's human-readable blocker message as detail."""

    detail = "draft_blocked"


class InvalidCaptains(EngineError):
    detail = "invalid_captains"


class DraftNotReady(EngineError):
    detail = "draft_not_ready"


class DraftNotInProgress(EngineError):
    detail = "draft_not_in_progress"


class DraftNotCompleted(EngineError):
    detail = "draft_not_completed"


class InvalidTeam(EngineError):
    detail = "invalid_team"


class NotYourTurn(EngineError):
    status_code = status.HTTP_409_CONFLICT
    detail = "not_your_turn"


class PlayerNotOnRoster(EngineError):
    detail = "player_not_on_roster"


class PlayerNotConfirmed(EngineError):
    detail = "player_not_confirmed"


class PlayerAlreadyDrafted(EngineError):
    status_code = status.HTTP_409_CONFLICT
    detail = "player_already_drafted"


class NoPicksToUndo(EngineError):
    detail = "no_picks_to_undo"


class DraftIncomplete(EngineError):
    detail = "draft_incomplete"


class InvalidResult(EngineError):
    detail = "invalid_result"


class VoteRejected(EngineError):
    detail = "vote_rejected"


class InvalidQueueEntry(EngineError):
    detail = "profile_or_guest_required"
