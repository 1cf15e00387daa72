"""Room channel payloads and inbound event routing."""

import pytest

from core.exceptions import InvalidRollValue
from core.round_engine import RoundEngine
from models import RoomEventKind
from services.naming_service import (
    ROOM_CODE_ALPHABET,
    generate_participant_id,
    generate_room_code,
    normalize_room_code,
)
from services.sync_service import SYNC_FIELDS, apply_room_event, sanitize_game_state


def started_engine() -> RoundEngine:
    engine = RoundEngine()
    engine.add_player("Ann")
    engine.add_player("Ben")
    engine.start_game()
    return engine


def test_sanitize_defaults() -> None:
    state = sanitize_game_state(None)
    assert set(state) == set(SYNC_FIELDS)
    assert state["players"] == []
    assert state["total_rounds"] == 20
    assert state["current_round"] == 1
    assert state["game_started"] is False


def test_sanitize_untrusted_payload() -> None:
    state = sanitize_game_state({
        "players": [{"name": "Ann", "score": "7"}, {"score": 3}, "junk"],
        "bank_total": float("nan"),
        "players_who_can_roll": [0, -1, True, 1],
        "history": [{"anything": 1}],
        "game_started": "yes",
    })
    assert state["players"] == [{"name": "Ann", "score": 7}]
    assert state["bank_total"] == 0
    assert state["players_who_can_roll"] == [0, 1]
    assert state["game_started"] is False
    assert "history" not in state


def test_sanitize_snapshot() -> None:
    engine = started_engine()
    engine.roll(9)
    state = sanitize_game_state(engine.snapshot())
    assert state["bank_total"] == 9
    assert state["roll_count"] == 1
    assert state["game_started"] is True
    assert state["players"] == [{"name": "Ann", "score": 0}, {"name": "Ben", "score": 0}]


def test_roll_event_goes_through_engine() -> None:
    engine = started_engine()
    assert apply_room_event(engine, RoomEventKind.ROLL, "Ann", value=8) is True
    assert engine.snapshot().bank_total == 8

    with pytest.raises(InvalidRollValue):
        apply_room_event(engine, RoomEventKind.ROLL, "Ann")


def test_bank_request_resolves_name() -> None:
    engine = started_engine()
    engine.roll(8)
    assert apply_room_event(engine, RoomEventKind.BANK_REQUEST, "ben") is True
    assert engine.snapshot().players_who_banked == (1,)
    assert apply_room_event(engine, RoomEventKind.BANK_REQUEST, "Zed") is False


def test_room_codes() -> None:
    code = generate_room_code()
    assert len(code) == 4
    assert all(c in ROOM_CODE_ALPHABET for c in code)
    assert normalize_room_code(" k7qx ") == "K7QX"
    assert generate_participant_id().startswith("player_")
