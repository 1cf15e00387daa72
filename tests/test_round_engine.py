"""Round engine: turn order, seven rule, doubles, banking, undo and game flow."""

import pytest

from core.exceptions import (
    DuplicatePlayerName,
    InvalidRollValue,
    InvalidStateTransition,
    PlayerNotFound,
    RosterFull,
)
from core.game_state import DoublesRule, GamePhase, RoundEndReason
from core.round_engine import RoundEngine


def make_engine(names=("Ann", "Ben", "Cal"), total_rounds=3, **kwargs) -> RoundEngine:
    engine = RoundEngine(**kwargs)
    for name in names:
        engine.add_player(name)
    engine.set_total_rounds(total_rounds)
    engine.start_game()
    return engine


def scores(engine: RoundEngine):
    return [p.score for p in engine.state.players]


# ============ Setup ============

def test_start_needs_two_players() -> None:
    engine = RoundEngine()
    engine.add_player("Solo")
    snapshot = engine.start_game()
    assert snapshot.phase is GamePhase.SETUP
    assert snapshot.game_started is False


def test_duplicate_name_is_case_insensitive() -> None:
    engine = RoundEngine()
    engine.add_player("Ann")
    with pytest.raises(DuplicatePlayerName):
        engine.add_player("  aNN ")
    assert len(engine.state.players) == 1


def test_roster_is_capped() -> None:
    engine = RoundEngine(max_players=2)
    engine.add_player("Ann")
    engine.add_player("Ben")
    with pytest.raises(RosterFull):
        engine.add_player("Cal")


def test_reorder_players() -> None:
    engine = RoundEngine()
    for name in ("Ann", "Ben", "Cal"):
        engine.add_player(name)
    snapshot = engine.reorder_players([2, 0, 1])
    assert [p.name for p in snapshot.players] == ["Cal", "Ann", "Ben"]


def test_start_uses_chosen_starting_player() -> None:
    engine = RoundEngine()
    for name in ("Ann", "Ben", "Cal"):
        engine.add_player(name)
    engine.set_starting_player(2)
    snapshot = engine.start_game()
    assert snapshot.phase is GamePhase.IN_ROUND
    assert snapshot.current_player == 2
    assert snapshot.players_who_can_roll == (0, 1, 2)


def test_roster_is_frozen_once_started() -> None:
    engine = make_engine()
    with pytest.raises(InvalidStateTransition):
        engine.add_player("Dee")


# ============ Rolling ============

def test_ordinary_roll_advances_one_turn() -> None:
    engine = make_engine()
    engine.roll(5)
    engine.roll(6)
    snapshot = engine.roll(8)
    assert snapshot.bank_total == 19
    assert snapshot.roll_count == 3
    assert snapshot.current_player_index == 0
    assert snapshot.players_who_can_roll == (0, 1, 2)


def test_roll_rejects_out_of_range_value() -> None:
    engine = make_engine()
    with pytest.raises(InvalidRollValue):
        engine.roll(13)
    assert engine.snapshot().roll_count == 0
    assert engine.snapshot().can_undo is False


def test_seven_is_safe_for_first_three_rolls() -> None:
    engine = make_engine()
    for _ in range(3):
        snapshot = engine.roll(7)
    assert snapshot.phase is GamePhase.IN_ROUND
    assert snapshot.bank_total == 210
    assert snapshot.seven_ends_round is True

    snapshot = engine.roll(7)
    assert snapshot.phase is GamePhase.ROUND_END
    assert snapshot.last_round_end_reason is RoundEndReason.SEVEN_ROLLED
    assert snapshot.bank_total == 210
    assert scores(engine) == [0, 0, 0]


def test_no_mutation_after_round_end() -> None:
    engine = make_engine()
    for _ in range(4):
        engine.roll(7)
    with pytest.raises(InvalidStateTransition):
        engine.roll(8)
    with pytest.raises(InvalidStateTransition):
        engine.request_bank([0])
    assert engine.snapshot().bank_total == 210


def test_doubles_always_double() -> None:
    engine = make_engine()
    for _ in range(3):
        engine.roll(6)
    assert engine.snapshot().doubles_enabled is True
    snapshot = engine.roll_doubles()
    assert snapshot.bank_total == 36
    assert snapshot.roll_count == 4


def test_doubles_face_value_then_double() -> None:
    engine = make_engine(doubles_rule=DoublesRule.FACE_VALUE_THEN_DOUBLE)
    with pytest.raises(InvalidRollValue):
        engine.roll_doubles(3)

    engine.roll_doubles(8)
    engine.roll(5)
    engine.roll(4)
    snapshot = engine.roll_doubles()
    assert snapshot.bank_total == 34


# ============ Banking ============

def test_bank_keeps_current_player_in_place() -> None:
    engine = make_engine(names=("Ann", "Ben", "Cal", "Dee"))
    engine.roll(5)
    engine.roll(5)
    assert engine.snapshot().current_player == 2

    snapshot = engine.request_bank([0, 3])
    assert scores(engine) == [10, 0, 0, 10]
    assert snapshot.players_who_can_roll == (1, 2)
    assert snapshot.players_who_banked == (3, 0)
    assert snapshot.current_player == 2


def test_bank_skips_players_who_already_banked() -> None:
    engine = make_engine()
    engine.roll(9)
    engine.request_bank([0])
    engine.roll(3)
    engine.request_bank([0, 1])
    assert scores(engine) == [9, 12, 0]


def test_bank_with_unknown_index_changes_nothing() -> None:
    engine = make_engine()
    engine.roll(9)
    with pytest.raises(PlayerNotFound):
        engine.request_bank([0, 7])
    assert scores(engine) == [0, 0, 0]
    assert engine.snapshot().players_who_banked == ()


def test_everybody_banked_ends_round() -> None:
    engine = make_engine()
    engine.roll(9)
    snapshot = engine.request_bank([0, 1, 2])
    assert snapshot.phase is GamePhase.ROUND_END
    assert snapshot.last_round_end_reason is RoundEndReason.ALL_BANKED
    assert [r.place for r in snapshot.standings] == [1, 1, 1]


# ============ Undo ============

def test_undo_restores_each_step_in_reverse() -> None:
    engine = make_engine()
    before = [engine.snapshot()]
    engine.roll(6)
    before.append(engine.snapshot())
    engine.request_bank([1])
    before.append(engine.snapshot())
    engine.roll(7)

    for expected in reversed(before):
        assert engine.undo() == expected
    assert engine.snapshot().can_undo is False
    assert engine.undo() == before[0]


def test_undo_from_round_end_resumes_round() -> None:
    engine = make_engine()
    for _ in range(4):
        engine.roll(7)

    snapshot = engine.undo()
    assert snapshot.phase is GamePhase.IN_ROUND
    assert snapshot.roll_count == 3
    assert snapshot.bank_total == 210
    assert snapshot.last_round_end_reason is None


def test_undo_from_game_end_reopens_last_round() -> None:
    engine = make_engine(names=("Ann", "Ben"), total_rounds=1)
    engine.roll(8)
    snapshot = engine.request_bank([0, 1])
    assert snapshot.phase is GamePhase.GAME_END
    assert snapshot.current_round == 2

    snapshot = engine.undo()
    assert snapshot.phase is GamePhase.IN_ROUND
    assert snapshot.current_round == 1
    assert snapshot.game_started is True
    assert scores(engine) == [0, 0]


def test_history_is_bounded() -> None:
    engine = make_engine(history_limit=3)
    for value in (2, 3, 4, 5, 6):
        engine.roll(value)
    for _ in range(3):
        engine.undo()
    snapshot = engine.snapshot()
    assert snapshot.can_undo is False
    assert snapshot.bank_total == 5


# ============ Game flow ============

def test_next_round_starts_after_last_roller() -> None:
    engine = make_engine()
    for value in (5, 5, 5, 7):
        engine.roll(value)
    assert engine.phase is GamePhase.ROUND_END

    snapshot = engine.advance_round()
    assert snapshot.current_round == 2
    assert snapshot.current_player == 1
    assert snapshot.bank_total == 0
    assert snapshot.can_undo is False


def test_last_round_goes_straight_to_game_end() -> None:
    engine = make_engine(names=("Ann", "Ben"), total_rounds=1)
    engine.roll(10)
    engine.request_bank([0])
    engine.roll(4)
    snapshot = engine.request_bank([1])
    assert snapshot.phase is GamePhase.GAME_END
    assert snapshot.game_started is False
    assert snapshot.winners == ("Ben",)
    assert snapshot.is_tie is False


def test_tie_is_reported() -> None:
    engine = make_engine(names=("Ann", "Ben"), total_rounds=1)
    engine.roll(8)
    snapshot = engine.request_bank([0, 1])
    assert snapshot.winners == ("Ann", "Ben")
    assert snapshot.is_tie is True


def test_reset_rotates_starting_player() -> None:
    engine = make_engine(names=("Ann", "Ben"), total_rounds=1)
    engine.roll(8)
    engine.request_bank([0, 1])

    snapshot = engine.reset_game()
    assert snapshot.phase is GamePhase.SETUP
    assert snapshot.starting_player_index == 1
    assert [p.score for p in snapshot.players] == [0, 0]
    assert snapshot.can_undo is False


def test_place_hidden_until_player_scores() -> None:
    engine = make_engine()
    engine.roll(6)
    snapshot = engine.request_bank([2])
    assert [p.place for p in snapshot.players] == [None, None, 1]


# ============ Dice gating ============

def test_doubles_locked_during_safe_rolls() -> None:
    engine = make_engine()
    engine.roll(6)
    assert engine.snapshot().doubles_enabled is False

    with pytest.raises(InvalidStateTransition):
        engine.roll_doubles()
    snapshot = engine.snapshot()
    assert snapshot.roll_count == 1
    assert snapshot.bank_total == 6
    assert snapshot.current_player == 1


def test_plain_two_and_twelve_only_during_safe_rolls() -> None:
    engine = make_engine()
    engine.roll(12)
    engine.roll(8)
    snapshot = engine.roll(2)
    assert snapshot.bank_total == 22
    assert snapshot.plain_extremes_enabled is False

    for value in (2, 12):
        with pytest.raises(InvalidRollValue):
            engine.roll(value)
    assert engine.snapshot().roll_count == 3
    assert engine.roll_doubles().bank_total == 44


def test_repeated_bank_adds_no_undo_step() -> None:
    engine = make_engine()
    engine.roll(9)
    engine.request_bank([0])
    history_size = len(engine.state.history)

    engine.request_bank([0])
    assert len(engine.state.history) == history_size
    assert scores(engine) == [9, 0, 0]

    snapshot = engine.undo()
    assert snapshot.players_who_banked == ()
    assert scores(engine) == [0, 0, 0]
