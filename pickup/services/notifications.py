from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Literal, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from pickup.core.config import Settings, get_settings
from pickup.db.session import SessionLocal
from pickup.models import (
    CommunityMember,
    Game,
    GameNotification,
    GameQueue,
    PushDeviceToken,
)
from pickup.schemas.notifications import DeviceRegistration

logger = logging.getLogger(__name__)

FCM_SCOPE = ["https://www.googleapis.com/auth/firebase.messaging"]

Audience = Literal["profiles", "roster", "waitlist", "community"]


@dataclass(frozen=True)
class NotificationIntent:
    """A fact the engine emits after a committed transition."""

    kind: str
    game_id: int
    title: str
    body: str
    audience: Audience = "profiles"
    profile_ids: Tuple[int, ...] = ()
    exclude_profile_ids: Tuple[int, ...] = ()

    def link(self, settings: Settings) -> str:
        return f"{settings.APP_DEEP_LINK_BASE.rstrip('/')}/{self.game_id}"


@dataclass
class DispatchStats:
    intents: int = 0
    recipients: int = 0
    sent: int = 0
    skipped: int = 0
    errors: int = 0
    push_enabled: bool = False
    failed_kinds: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, int | bool | list[str]]:
        return {
            "intents": self.intents,
            "recipients": self.recipients,
            "sent": self.sent,
            "skipped": self.skipped,
            "errors": self.errors,
            "push_enabled": self.push_enabled,
            "failed_kinds": list(self.failed_kinds),
        }


def waitlist_promoted(game: Game, profile_id: int) -> NotificationIntent:
    return NotificationIntent(
        kind="waitlist_promoted",
        game_id=game.id,
        title=f"You are in for {game.name}",
        body="A spot opened. View the game details.",
        profile_ids=(profile_id,),
    )


def roster_joined(
    game: Game, profile_id: int | None, player_name: str
) -> NotificationIntent:
    return NotificationIntent(
        kind="roster_joined",
        game_id=game.id,
        title=f"Roster update: {game.name}",
        body=f"{player_name} has joined the game.",
        audience="roster",
        exclude_profile_ids=(profile_id,) if profile_id is not None else (),
    )


def roster_locked(game: Game) -> NotificationIntent:
    return NotificationIntent(
        kind="roster_locked",
        game_id=game.id,
        title=f"Roster locked for {game.name}",
        body="Teams are set. Check the lineup.",
        audience="roster",
    )


def captains_assigned(game: Game, captain_ids: Sequence[int]) -> NotificationIntent:
    return NotificationIntent(
        kind="captains_assigned",
        game_id=game.id,
        title=f"You are a captain for {game.name}",
        body="Get ready to draft your team.",
        profile_ids=tuple(captain_ids),
    )


def draft_ready(game: Game) -> NotificationIntent:
    return NotificationIntent(
        kind="draft_ready",
        game_id=game.id,
        title=f"Captains set for {game.name}",
        body="Draft starting now.",
        audience="roster",
    )


def draft_started(game: Game) -> NotificationIntent:
    return NotificationIntent(
        kind="draft_started",
        game_id=game.id,
        title=f"Draft is live for {game.name}",
        body="Join the room to follow the picks.",
        audience="roster",
    )


def draft_pick(game: Game, profile_id: int, pick_order: int) -> NotificationIntent:
    return NotificationIntent(
        kind="draft_pick",
        game_id=game.id,
        title=f"You were drafted in {game.name}",
        body=f"You went as pick #{pick_order}.",
        profile_ids=(profile_id,),
    )


def draft_completed(game: Game) -> NotificationIntent:
    return NotificationIntent(
        kind="draft_completed",
        game_id=game.id,
        title=f"Draft complete for {game.name}",
        body="Teams are set. View the roster.",
        audience="roster",
    )


def draft_reset(game: Game) -> NotificationIntent:
    return NotificationIntent(
        kind="draft_reset",
        game_id=game.id,
        title=f"Draft reset for {game.name}",
        body="Roster changed. We will re-run the draft once everyone confirms.",
        audience="roster",
    )


def crunch_time_open(game: Game, open_spots: int) -> NotificationIntent:
    noun = "spot" if open_spots == 1 else "spots"
    return NotificationIntent(
        kind="crunch_time_open",
        game_id=game.id,
        title=f"Crunch time: {game.name}",
        body=f"{open_spots} open {noun}. First to grab it plays.",
        audience="community",
    )


def confirmation_reminder(game: Game, profile_ids: Sequence[int]) -> NotificationIntent:
    return NotificationIntent(
        kind="confirmation_reminder",
        game_id=game.id,
        title=f"Confirm your spot for {game.name}",
        body="Tap to confirm you are still coming.",
        profile_ids=tuple(profile_ids),
    )


def resolve_recipient_ids(db: Session, intent: NotificationIntent) -> set[int]:
    if intent.audience == "profiles":
        ids = set(intent.profile_ids)
    elif intent.audience in {"roster", "waitlist"}:
        queue_status = "rostered" if intent.audience == "roster" else "waitlisted"
        ids = set(
            db.execute(
                select(GameQueue.profile_id).where(
                    GameQueue.game_id == intent.game_id,
                    GameQueue.status == queue_status,
                    GameQueue.profile_id.is_not(None),
                )
            )
            .scalars()
            .all()
        )
    else:
        ids = set(
            db.execute(
                select(CommunityMember.profile_id)
                .join(Game, Game.community_id == CommunityMember.community_id)
                .where(Game.id == intent.game_id, CommunityMember.status == "approved")
            )
            .scalars()
            .all()
        )
    return ids - set(intent.exclude_profile_ids)


def list_profile_devices(db: Session, profile_id: int) -> list[PushDeviceToken]:
    return (
        db.execute(
            select(PushDeviceToken)
            .where(PushDeviceToken.profile_id == profile_id)
            .order_by(PushDeviceToken.updated_at.desc())
        )
        .scalars()
        .all()
    )


def register_profile_device(
    db: Session,
    *,
    profile_id: int,
    payload: DeviceRegistration,
) -> PushDeviceToken:
    row = db.execute(
        select(PushDeviceToken).where(
            PushDeviceToken.profile_id == profile_id,
            PushDeviceToken.device_id == payload.device_id,
        )
    ).scalar_one_or_none()
    if row is None:
        row = PushDeviceToken(
            profile_id=profile_id,
            platform=payload.platform,
            device_id=payload.device_id,
            token=payload.token,
            timezone=payload.timezone,
            app_version=payload.app_version,
            is_active=True,
        )
        db.add(row)
    else:
        row.platform = payload.platform
        row.token = payload.token
        row.timezone = payload.timezone
        row.app_version = payload.app_version
        row.is_active = True
        row.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(row)
    logger.info(
        "notifications:register_token profile_id=%s device_id=%s platform=%s",
        profile_id,
        payload.device_id,
        payload.platform,
    )
    return row


def deactivate_profile_device(db: Session, *, profile_id: int, device_id: str) -> bool:
    row = db.execute(
        select(PushDeviceToken).where(
            PushDeviceToken.profile_id == profile_id,
            PushDeviceToken.device_id == device_id,
        )
    ).scalar_one_or_none()
    if row is None:
        return False
    row.is_active = False
    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    return True


class FCMClient:
    def __init__(self, settings: Settings):
        from google.auth.transport.requests import AuthorizedSession
        from google.oauth2 import service_account

        project_id = (settings.FCM_PROJECT_ID or "").strip()
        if not project_id:
            raise ValueError("fcm_project_id_missing")
        self._project_id = project_id
        creds = self._load_credentials(settings, service_account)
        if creds is None:
            raise ValueError("fcm_credentials_missing")
        self._session = AuthorizedSession(creds)

    @staticmethod
    def _load_credentials(settings: Settings, service_account_module):
        raw_json = (settings.FCM_SERVICE_ACCOUNT_JSON or "").strip()
        file_hint = (settings.GOOGLE_APPLICATION_CREDENTIALS or "").strip()

        if raw_json:
            if raw_json.startswith("{"):
                info = json.loads(raw_json)
                return service_account_module.Credentials.from_service_account_info(
                    info,
                    scopes=FCM_SCOPE,
                )
            json_path = Path(raw_json)
            if json_path.exists():
                return service_account_module.Credentials.from_service_account_file(
                    str(json_path),
                    scopes=FCM_SCOPE,
                )
        if file_hint:
            creds_path = Path(file_hint)
            if creds_path.exists():
                return service_account_module.Credentials.from_service_account_file(
                    str(creds_path),
                    scopes=FCM_SCOPE,
                )
        return None

    def send_message(
        self,
        *,
        token: str,
        title: str,
        body: str,
        data: dict[str, str],
    ) -> Tuple[bool, str | None, bool]:
        url = f"https://fcm.googleapis.com/v1/projects/{self._project_id}/messages:send"
        message = {
            "message": {
                "token": token,
                "notification": {"title": title, "body": body},
                "data": data,
            }
        }
        response = self._session.post(url, json=message, timeout=15)
        if 200 <= response.status_code < 300:
            return True, None, False

        text = response.text
        invalid_token = any(
            marker in text
            for marker in (
                "UNREGISTERED",
                "registration-token-not-registered",
                "INVALID_ARGUMENT",
            )
        )
        return False, f"fcm_error_{response.status_code}:{text[:500]}", invalid_token


def _build_fcm_client(settings: Settings) -> FCMClient | None:
    try:
        return FCMClient(settings)
    except Exception as exc:  # pragma: no cover - startup/runtime guard
        logger.warning("fcm_client_unavailable: %s", exc)
        return None


def _deliver_intent(
    db: Session,
    intent: NotificationIntent,
    *,
    client,
    settings: Settings,
    stats: DispatchStats,
) -> None:
    recipient_ids = resolve_recipient_ids(db, intent)
    stats.recipients += len(recipient_ids)
    if not recipient_ids:
        return

    devices = (
        db.execute(
            select(PushDeviceToken).where(
                PushDeviceToken.profile_id.in_(recipient_ids),
                PushDeviceToken.is_active.is_(True),
            )
        )
        .scalars()
        .all()
    )
    data = {"type": intent.kind, "game_id": str(intent.game_id), "link": intent.link(settings)}
    for device in devices:
        row = GameNotification(
            game_id=intent.game_id,
            device_token_id=device.id,
            kind=intent.kind,
            status="pending",
        )
        db.add(row)
        db.flush()

        if client is None:
            row.status = "error"
            row.error = "fcm_client_unavailable"
            db.commit()
            stats.errors += 1
            continue

        ok, error_detail, invalid_token = client.send_message(
            token=device.token,
            title=intent.title,
            body=intent.body,
            data=data,
        )
        if ok:
            row.status = "sent"
            row.sent_at = datetime.now(timezone.utc)
            stats.sent += 1
        else:
            row.status = "error"
            row.error = error_detail
            stats.errors += 1
            logger.error(
                "notifications:send_error kind=%s game_id=%s device_id=%s error=%s",
                intent.kind,
                intent.game_id,
                device.device_id,
                error_detail,
            )
            if invalid_token:
                device.is_active = False
                device.updated_at = datetime.now(timezone.utc)
        db.commit()


def dispatch_notifications(
    db: Session,
    intents: Iterable[NotificationIntent],
    *,
    settings: Settings | None = None,
    client=None,
) -> dict[str, int | bool | list[str]]:
    """Deliver intents; never raises. Failures are logged and counted."""
    settings = settings or get_settings()
    intents = list(intents)
    stats = DispatchStats(intents=len(intents), push_enabled=bool(settings.PUSH_ENABLED))
    if not intents:
        return stats.as_dict()
    if not settings.PUSH_ENABLED:
        stats.skipped = len(intents)
        logger.debug("notifications:push_disabled skipped=%s", len(intents))
        return stats.as_dict()

    if client is None:
        client = _build_fcm_client(settings)

    for intent in intents:
        try:
            _deliver_intent(db, intent, client=client, settings=settings, stats=stats)
        except Exception:
            db.rollback()
            stats.errors += 1
            stats.failed_kinds.append(intent.kind)
            logger.exception(
                "notifications:dispatch_error kind=%s game_id=%s", intent.kind, intent.game_id
            )
    return stats.as_dict()


def dispatch_in_background(intents: list[NotificationIntent]) -> None:
    settings = get_settings()
    if not intents or not settings.PUSH_ENABLED:
        return
    try:
        with SessionLocal() as db:
            dispatch_notifications(db, intents, settings=settings)
    except Exception:
        logger.exception("notifications:background_dispatch_error count=%s", len(intents))
