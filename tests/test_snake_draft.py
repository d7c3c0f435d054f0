import pytest

from pickup.domain.draft import (
    PickPayload,
    UndoPayload,
    next_snake_turn,
    parse_event_payload,
    shuffle_order,
)


def _turns(team_count: int, picks: int) -> list[int]:
    turn, direction = 0, 1
    sequence = [turn]
    for _ in range(picks - 1):
        turn, direction = next_snake_turn(turn, direction, team_count)
        sequence.append(turn)
    return sequence


def test_two_teams_repeat_at_each_reversal():
    """Two teams: 0,1,1,0,0,1,1,0."""
    assert _turns(2, 8) == [0, 1, 1, 0, 0, 1, 1, 0]


def test_three_teams_repeat_at_each_reversal():
    """Three teams: the boundary team picks twice in a row."""
    assert _turns(3, 9) == [0, 1, 2, 2, 1, 0, 0, 1, 2]


def test_single_team_always_picks():
    """One team keeps the pointer at zero and flips direction each pick."""
    assert _turns(1, 4) == [0, 0, 0, 0]
    assert next_snake_turn(0, 1, 1) == (0, -1)
    assert next_snake_turn(0, -1, 1) == (0, 1)


@pytest.mark.parametrize("team_count", [0, -1])
def test_no_teams_clamps_and_keeps_direction(team_count):
    """Without teams the pointer parks at zero and direction is unchanged."""
    assert next_snake_turn(3, 1, team_count) == (0, 1)
    assert next_snake_turn(3, -1, team_count) == (0, -1)


def test_direction_flips_at_both_ends():
    """Crossing the last index turns back; crossing zero turns forward."""
    assert next_snake_turn(2, 1, 3) == (2, -1)
    assert next_snake_turn(2, -1, 3) == (1, -1)
    assert next_snake_turn(0, -1, 3) == (0, 1)


def test_shuffle_is_a_permutation_and_copies():
    """The input is left untouched and every element survives."""
    items = [10, 20, 30, 40]
    shuffled = shuffle_order(items)
    assert items == [10, 20, 30, 40]
    assert sorted(shuffled) == items


def test_shuffle_follows_the_supplied_draws():
    """Fisher-Yates walks from the end, swapping with the drawn index."""
    assert shuffle_order(["a", "b", "c"], rng=lambda: 0.0) == ["b", "c", "a"]
    assert shuffle_order(["a", "b", "c"], rng=lambda: 0.999) == ["a", "b", "c"]
    assert shuffle_order([], rng=lambda: 0.5) == []


def test_pick_payload_keys_and_undo_marking():
    """Pick payloads carry the turn state needed to reverse them."""
    payload = PickPayload(pick_order=3, turn_before=2, direction_before=-1)
    assert payload.to_payload() == {
        "pickOrder": 3,
        "draftTurnBefore": 2,
        "draftDirectionBefore": -1,
    }

    from datetime import datetime, timezone

    undone = payload.mark_undone(7, datetime(2026, 1, 10, 17, 0, tzinfo=timezone.utc))
    raw = undone.to_payload()
    assert raw["undone"] is True
    assert raw["undoneBy"] == 7
    assert raw["undoneAt"].startswith("2026-01-10T17:00")

    parsed = parse_event_payload("pick", raw)
    assert parsed.undone
    assert (parsed.turn_before, parsed.direction_before) == (2, -1)


def test_parse_rejects_unknown_actions():
    """Only the five draft actions are valid."""
    assert parse_event_payload("undo", {"reversedEventId": 4, "pickOrder": 2}) == UndoPayload(
        reversed_event_id=4, pick_order=2
    )
    with pytest.raises(ValueError):
        parse_event_payload("trade", {})
