from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from pickup.core.security import create_access_token
from pickup.db.session import get_db
from pickup.main import app


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _auth(profile) -> dict[str, str]:
    token = create_access_token({"sub": str(profile.id)})
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    """Liveness reports the environment; the db check runs a query."""
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True, "env": "test", "scheduler": False}
    assert client.get("/health/db").json() == {"ok": True, "db": "up"}


def test_auth_is_required(client, factory, community):
    """Missing or broken tokens are rejected before any work happens."""
    game = factory.game(community, start_time=None)
    assert client.post(f"/games/{game.id}/queue/join").json() == {"detail": "missing_token"}

    res = client.post(
        f"/games/{game.id}/queue/join", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert res.status_code == 401
    assert res.json()["detail"] == "invalid_token"


def test_join_and_read_my_entry(client, factory, community):
    """Joining returns the placement and the entry is readable afterwards."""
    game = factory.game(community, start_time=None, capacity=1, waitlist_capacity=1)
    ana, ben = factory.members(community, "Ana", "Ben")

    empty = client.get(f"/games/{game.id}/queue/me", headers=_auth(ana))
    assert empty.status_code == 200
    assert empty.json() == {"game_id": game.id, "entry": None}

    joined = client.post(f"/games/{game.id}/queue/join", headers=_auth(ana))
    assert joined.status_code == 200
    assert joined.json()["status"] == "rostered"

    waiting = client.post(f"/games/{game.id}/queue/join", headers=_auth(ben))
    assert waiting.json()["status"] == "waitlisted"

    left = client.post(f"/games/{game.id}/queue/leave", headers=_auth(ana))
    assert left.json()["promoted_queue_ids"] == [waiting.json()["queue_id"]]

    mine = client.get(f"/games/{game.id}/queue/me", headers=_auth(ana)).json()
    assert mine["entry"]["status"] == "dropped"


def test_engine_errors_map_to_detail_codes(client, factory, community):
    """Typed failures come back with their status code and snake_case detail."""
    ana = factory.members(community, "Ana")[0]
    outsider = factory.profile("Outsider")
    game = factory.game(community, start_time=None)

    missing = client.post("/games/999/queue/join", headers=_auth(ana))
    assert missing.status_code == 404
    assert missing.json() == {"detail": "game_not_found"}

    forbidden = client.post(f"/games/{game.id}/queue/join", headers=_auth(outsider))
    assert forbidden.status_code == 403
    assert forbidden.json() == {"detail": "not_member"}

    not_queued = client.post(f"/games/{game.id}/queue/leave", headers=_auth(ana))
    assert not_queued.status_code == 404
    assert not_queued.json() == {"detail": "queue_entry_not_found"}


def test_admin_routes_require_admin(client, factory, community, admin):
    """Members cannot use admin queue and draft routes."""
    ana = factory.members(community, "Ana")[0]
    game = factory.game(community, start_time=None)

    res = client.post(
        f"/games/{game.id}/queue/members", json={"guest_name": "Sam"}, headers=_auth(ana)
    )
    assert res.status_code == 403
    assert res.json() == {"detail": "admin_required"}

    res = client.post(
        f"/games/{game.id}/queue/members", json={"guest_name": "Sam"}, headers=_auth(admin)
    )
    assert res.status_code == 200
    assert res.json()["status"] == "rostered"

    bad = client.post(f"/games/{game.id}/queue/members", json={}, headers=_auth(admin))
    assert bad.status_code == 422

    assert client.post(f"/games/{game.id}/draft/reset", headers=_auth(ana)).status_code == 403


def test_draft_over_http(client, factory, community, admin):
    """Captains are assigned, a pick lands, and the state reflects both."""
    kickoff = datetime.now(timezone.utc) + timedelta(hours=2)
    game = factory.game(community, start_time=kickoff, capacity=4)
    players = factory.members(community, "A", "B", "C", "D")
    factory.confirmed_roster(game, players)

    blocked = client.post(
        f"/games/{game.id}/draft/captains",
        json={"captain_profile_ids": [p.id for p in players[:3]]},
        headers=_auth(admin),
    )
    assert blocked.status_code == 400
    assert blocked.json()["detail"] == "Captain count must divide evenly into the confirmed roster"

    assigned = client.post(
        f"/games/{game.id}/draft/captains",
        json={"captain_profile_ids": [players[0].id, players[1].id]},
        headers=_auth(admin),
    )
    assert assigned.status_code == 200
    assert assigned.json()["draft_status"] == "in_progress"

    state = client.get(f"/games/{game.id}/draft", headers=_auth(players[0])).json()
    on_clock = next(t for t in state["teams"] if t["draft_order"] == 0)
    captain = next(p for p in players if p.id == on_clock["captain_profile_id"])
    other = next(p for p in players[:2] if p.id != captain.id)

    not_yours = client.post(
        f"/games/{game.id}/draft/pick",
        json={"team_id": on_clock["id"], "profile_id": players[2].id},
        headers=_auth(other),
    )
    assert not_yours.status_code == 403

    picked = client.post(
        f"/games/{game.id}/draft/pick",
        json={"team_id": on_clock["id"], "profile_id": players[2].id},
        headers=_auth(captain),
    )
    assert picked.status_code == 200
    assert picked.json()["pick_order"] == 1
    assert picked.json()["draft_turn"] == 1

    state = client.get(f"/games/{game.id}/draft", headers=_auth(other)).json()
    assert state["is_captain_turn"] is True
    assert [e["action"] for e in state["events"]] == ["start", "pick"]

    undone = client.post(f"/games/{game.id}/draft/undo", headers=_auth(admin))
    assert undone.json()["draft_turn"] == 0


def test_device_registration(client, factory):
    """Devices register, list and deactivate for the calling profile."""
    ana = factory.profile("Ana")
    payload = {"token": "t" * 30, "platform": "android", "device_id": "pixel-8"}

    res = client.post("/notifications/devices/register", json=payload, headers=_auth(ana))
    assert res.status_code == 200
    body = res.json()
    assert (body["device_id"], body["platform"], body["is_active"]) == ("pixel-8", "android", True)
    assert "token" not in body

    listed = client.get("/notifications/devices", headers=_auth(ana)).json()
    assert [d["device_id"] for d in listed] == ["pixel-8"]

    removed = client.delete("/notifications/devices/pixel-8", headers=_auth(ana))
    assert removed.json() == {"device_id": "pixel-8", "removed": True}
    unknown = client.delete("/notifications/devices/old-phone", headers=_auth(ana))
    assert unknown.json() == {"device_id": "old-phone", "removed": False}
    listed = client.get("/notifications/devices", headers=_auth(ana)).json()
    assert listed[0]["is_active"] is False


def test_device_registration_rejects_unknown_timezone(client, factory):
    """Timezones must be IANA names."""
    ana = factory.profile("Ana")
    payload = {
        "token": "t" * 30,
        "platform": "ios",
        "device_id": "iphone",
        "timezone": "Mars/Olympus",
    }
    res = client.post("/notifications/devices/register", json=payload, headers=_auth(ana))
    assert res.status_code == 422

    payload["timezone"] = "America/Lima"
    res = client.post("/notifications/devices/register", json=payload, headers=_auth(ana))
    assert res.json()["timezone"] == "America/Lima"
