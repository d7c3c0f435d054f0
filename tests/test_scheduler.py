from datetime import timedelta
from unittest.mock import patch

from pickup.services.scheduler import run_confirmation_reminders, run_crunch_time_alerts
from tests.conftest import BEFORE_WINDOW, IN_WINDOW, KICKOFF

DISPATCH = "pickup.services.notifications.dispatch_notifications"


def _crunch_community(factory, start="12:00"):
    return factory.community(
        name="Crunchers", crunch_time_enabled=True, crunch_time_start_time_local=start
    )


def test_crunch_time_alert_fires_once(factory):
    """Open spots after the local crunch-time start alert the community once."""
    db = factory.db
    community = _crunch_community(factory)
    game = factory.game(community, capacity=4)
    factory.entry(game, factory.members(community, "Ana")[0])
    now = KICKOFF - timedelta(hours=5)

    with patch(DISPATCH) as dispatch:
        stats = run_crunch_time_alerts(db, now=now)
    assert stats == {"checked": 1, "notified": 1}
    (intents,) = dispatch.call_args.args[1:]
    assert [i.kind for i in intents] == ["crunch_time_open"]
    assert intents[0].body.startswith("3 open spots")
    db.refresh(game)
    assert game.crunch_time_notified_at is not None

    with patch(DISPATCH):
        again = run_crunch_time_alerts(db, now=now + timedelta(minutes=5))
    assert again == {"checked": 0, "notified": 0}


def test_crunch_time_waits_for_local_start(factory):
    """Before the configured local time nothing is sent."""
    db = factory.db
    community = _crunch_community(factory, start="15:00")
    game = factory.game(community)

    with patch(DISPATCH):
        stats = run_crunch_time_alerts(db, now=KICKOFF - timedelta(hours=5))
    assert stats == {"checked": 1, "notified": 0}
    db.refresh(game)
    assert game.crunch_time_notified_at is None


def test_crunch_time_skips_full_and_disabled(factory, community):
    """Full rosters and communities without crunch time are ignored."""
    db = factory.db
    crunchers = _crunch_community(factory)
    full = factory.game(crunchers, capacity=1)
    factory.entry(full, factory.members(crunchers, "Ana")[0])
    factory.game(community)

    with patch(DISPATCH):
        stats = run_crunch_time_alerts(db, now=KICKOFF - timedelta(hours=5))
    assert stats == {"checked": 1, "notified": 0}


def test_crunch_time_dry_run_does_not_mark(factory):
    """A dry run reports what would be sent and leaves games untouched."""
    db = factory.db
    community = _crunch_community(factory)
    game = factory.game(community)

    with patch(DISPATCH) as dispatch:
        stats = run_crunch_time_alerts(db, now=KICKOFF - timedelta(hours=5), dry_run=True)
    assert stats["notified"] == 1
    dispatch.assert_not_called()
    db.refresh(game)
    assert game.crunch_time_notified_at is None


def test_confirmation_reminder_targets_unconfirmed_players(factory):
    """Only rostered players who have not confirmed are nudged."""
    db = factory.db
    community = factory.community(name="Reminders", confirmation_reminder_time_local="09:00")
    game = factory.game(community)
    ana, ben, cai = factory.members(community, "Ana", "Ben", "Cai")
    factory.entry(game, ana)
    factory.entry(game, ben, confirmed=True)
    factory.entry(game, cai, status="waitlisted")

    with patch(DISPATCH) as dispatch:
        stats = run_confirmation_reminders(db, now=IN_WINDOW)
    assert stats == {"checked": 1, "notified": 1}
    (intents,) = dispatch.call_args.args[1:]
    assert intents[0].kind == "confirmation_reminder"
    assert intents[0].profile_ids == (ana.id,)
    db.refresh(game)
    assert game.confirmation_reminder_sent_at is not None


def test_confirmation_reminder_respects_window_and_time(factory):
    """Reminders wait for both the open window and the local reminder time."""
    db = factory.db
    early = factory.community(name="Early", confirmation_reminder_time_local="09:00")
    late = factory.community(name="Late", confirmation_reminder_time_local="17:00")
    for community in (early, late):
        game = factory.game(community)
        factory.entry(game, factory.members(community, f"{community.name} player")[0])

    with patch(DISPATCH):
        before_window = run_confirmation_reminders(db, now=BEFORE_WINDOW)
    assert before_window == {"checked": 2, "notified": 0}

    with patch(DISPATCH):
        in_window = run_confirmation_reminders(db, now=IN_WINDOW)
    assert in_window == {"checked": 2, "notified": 1}
