"""
Round Engine: the Bank dice game state machine

Responsibilities:
1. Roster edits before the game starts
2. Round lifecycle (start, roll, bank, end) and game end
3. Undo history
4. Read-only snapshots for whoever renders the game

Rules of the game:
- Every round starts with an empty pot (bank_total)
- Rolls 1-3: a seven adds 70 to the pot
- From roll 4 on: a seven ends the round, unbanked players get nothing
- Any other value is added to the pot; doubles follow the engine's DoublesRule
- A player may bank at any time: the pot goes to their score and they sit
  out the rest of the round
- The round also ends once everybody has banked

The engine is synchronous and owns its GameState exclusively. Callers
(GameManager, tests) only go through the public methods below.
"""
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence
import logging

from core.exceptions import (
    DuplicatePlayerName,
    InvalidPlayerName,
    InvalidPlayerOrder,
    InvalidRollValue,
    InvalidRoundCount,
    InvalidStateTransition,
    PlayerNotFound,
    RosterFull,
)
from core.game_state import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_PLAYERS,
    MAX_ROLL,
    MIN_ROLL,
    SAFE_ROLLS,
    SEVEN,
    SEVEN_BONUS,
    DoublesRule,
    GamePhase,
    GameSnapshot,
    GameState,
    Player,
    PlayerView,
    RoundEndReason,
    RoundState,
)
from core.history import RoundSnapshot, UndoHistory
from core.state_machine import GameStateMachine
from services.ranking_service import rank_players, round_standings, winners

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RoundEngine:
    """Owns one Bank game and applies commands to it"""

    def __init__(
        self,
        state: Optional[GameState] = None,
        *,
        doubles_rule: DoublesRule = DoublesRule.ALWAYS_DOUBLE,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_players: int = DEFAULT_MAX_PLAYERS,
    ):
        self.doubles_rule = DoublesRule(doubles_rule)
        self.max_players = max_players
        if state is None:
            state = GameState(history=UndoHistory(history_limit))
        self._state = state

    @property
    def state(self) -> GameState:
        """Live state, for persistence only. Do not mutate."""
        return self._state

    @property
    def phase(self) -> GamePhase:
        return self._state.phase

    # ============ Roster ============

    def add_player(self, name: str) -> GameSnapshot:
        """
        Add a player to the roster

        Raises:
            InvalidPlayerName: empty name
            RosterFull: roster already at max_players
            DuplicatePlayerName: name taken (case-insensitive)
        """
        GameStateMachine.require(self._state, GamePhase.SETUP)

        name = (name or "").strip()
        if not name:
            raise InvalidPlayerName("Player name must not be empty")
        if len(self._state.players) >= self.max_players:
            raise RosterFull(f"Roster is limited to {self.max_players} players")
        if any(p.name.lower() == name.lower() for p in self._state.players):
            raise DuplicatePlayerName(name)

        self._state.players.append(Player(name=name))
        logger.info(f"Added player {name} ({len(self._state.players)} on roster)")
        return self.snapshot()

    def remove_player(self, index: int) -> GameSnapshot:
        GameStateMachine.require(self._state, GamePhase.SETUP)
        self._check_player_index(index)

        removed = self._state.players.pop(index)
        if not 0 <= self._state.starting_player_index < len(self._state.players):
            self._state.starting_player_index = 0

        logger.info(f"Removed player {removed.name}")
        return self.snapshot()

    def reorder_players(self, new_order: Sequence[int]) -> GameSnapshot:
        """
        Reorder the roster

        ``new_order[i]`` is the current index of the player that should end
        up at position i.
        """
        GameStateMachine.require(self._state, GamePhase.SETUP)

        order = list(new_order)
        if sorted(order) != list(range(len(self._state.players))):
            raise InvalidPlayerOrder(
                f"Order {order} is not a permutation of {len(self._state.players)} players"
            )

        self._state.players = [self._state.players[i] for i in order]
        return self.snapshot()

    def set_total_rounds(self, total_rounds: int) -> GameSnapshot:
        GameStateMachine.require(self._state, GamePhase.SETUP)
        if not _is_int(total_rounds) or total_rounds < 1:
            raise InvalidRoundCount(f"Total rounds must be a positive integer, got {total_rounds!r}")

        self._state.total_rounds = total_rounds
        return self.snapshot()

    def set_starting_player(self, index: int) -> GameSnapshot:
        GameStateMachine.require(self._state, GamePhase.SETUP)
        self._check_player_index(index)

        self._state.starting_player_index = index
        return self.snapshot()

    # ============ Game flow ============

    def start_game(self) -> GameSnapshot:
        """
        SETUP -> IN_ROUND

        With fewer than two players this is a no-op.
        """
        GameStateMachine.require(self._state, GamePhase.SETUP)

        state = self._state
        if len(state.players) < 2:
            logger.warning(f"Start ignored: need at least 2 players, got {len(state.players)}")
            return self.snapshot()

        state.game_started = True
        state.current_round = 1
        state.last_round_end_player_index = state.starting_player_index
        state.last_round_end_reason = None
        state.players = [replace(p, score=0) for p in state.players]

        GameStateMachine.transition(state, GamePhase.IN_ROUND)
        self.start_round()

        logger.info(
            f"Game started: {len(state.players)} players, {state.total_rounds} rounds, "
            f"{state.players[state.starting_player_index].name} rolls first"
        )
        return self.snapshot()

    def start_round(self) -> RoundState:
        """
        Fresh round state

        Round 1 starts with the chosen starting player, later rounds with the
        player after the one who ended the previous round. At round start
        players_who_can_roll is [0..n-1], so a roster index is also the
        position in that list.
        """
        state = self._state
        player_count = len(state.players)

        if state.current_round == 1:
            first = state.starting_player_index
        else:
            first = (state.last_round_end_player_index + 1) % player_count

        state.round = RoundState(
            roll_count=0,
            bank_total=0,
            players_who_can_roll=list(range(player_count)),
            players_who_banked=[],
            current_player_index=first,
        )
        state.history.clear()
        return state.round

    def roll(self, value: int) -> GameSnapshot:
        """
        Apply an ordinary dice total (2..12)

        After the safe rolls a 2 or a 12 can only come from doubles, so a
        plain 2 or 12 is refused then (use roll_doubles).

        Raises:
            InvalidStateTransition: no round in progress
            InvalidRollValue: value outside 2..12, or a plain 2/12 after roll 3
        """
        GameStateMachine.require(self._state, GamePhase.IN_ROUND)
        if not _is_int(value) or not MIN_ROLL <= value <= MAX_ROLL:
            raise InvalidRollValue(value)
        if value in (MIN_ROLL, MAX_ROLL) and self._state.round.roll_count >= SAFE_ROLLS:
            raise InvalidRollValue(value)

        rnd = self._begin_roll()

        if value == SEVEN:
            if rnd.roll_count <= SAFE_ROLLS:
                rnd.bank_total += SEVEN_BONUS
                self._advance_turn()
            else:
                logger.info(f"Seven on roll {rnd.roll_count}, round {self._state.current_round} over")
                self.end_round(RoundEndReason.SEVEN_ROLLED)
        else:
            rnd.bank_total += value
            self._advance_turn()

        return self.snapshot()

    def roll_doubles(self, face_value: Optional[int] = None) -> GameSnapshot:
        """
        Apply a doubles roll according to the engine's DoublesRule

        ALWAYS_DOUBLE ignores face_value and only accepts doubles after the
        safe rolls. FACE_VALUE_THEN_DOUBLE needs the dice total (an even
        number 2..12) for the safe rolls.

        Raises:
            InvalidStateTransition: no round in progress, or doubles before
                roll 4 under ALWAYS_DOUBLE
            InvalidRollValue: missing or odd face value
        """
        GameStateMachine.require(self._state, GamePhase.IN_ROUND)

        safe_roll = self._state.round.roll_count < SAFE_ROLLS
        if self.doubles_rule is DoublesRule.ALWAYS_DOUBLE and safe_roll:
            raise InvalidStateTransition(
                f"Doubles are only available after roll {SAFE_ROLLS}"
            )

        needs_face = self.doubles_rule is DoublesRule.FACE_VALUE_THEN_DOUBLE and safe_roll
        if needs_face and (
            not _is_int(face_value) or not MIN_ROLL <= face_value <= MAX_ROLL or face_value % 2
        ):
            raise InvalidRollValue(face_value)

        rnd = self._begin_roll()

        if needs_face:
            rnd.bank_total += face_value
        else:
            rnd.bank_total *= 2
        self._advance_turn()

        logger.debug(f"Doubles on roll {rnd.roll_count}, pot now {rnd.bank_total}")
        return self.snapshot()

    def request_bank(self, player_indices: Iterable[int]) -> GameSnapshot:
        """
        Bank the pot for one or more players

        Players are processed in descending order of their position in
        players_who_can_roll so removals do not shift positions still to be
        handled. Players who already banked are skipped individually.

        Raises:
            InvalidStateTransition: no round in progress
            PlayerNotFound: an index is not on the roster (nothing changes)
        """
        GameStateMachine.require(self._state, GamePhase.IN_ROUND)

        indices = list(dict.fromkeys(player_indices))
        if not indices:
            return self.snapshot()
        for index in indices:
            self._check_player_index(index)

        state = self._state
        rnd = state.round
        can_roll = rnd.players_who_can_roll

        if all(index in rnd.players_who_banked for index in indices):
            logger.warning(f"Players {indices} already banked this round, nothing to do")
            return self.snapshot()

        self._push_history()

        def position(player_index):
            return can_roll.index(player_index) if player_index in can_roll else -1

        for player_index in sorted(indices, key=position, reverse=True):
            if player_index in rnd.players_who_banked:
                logger.warning(f"Player {player_index} already banked this round, skipped")
                continue

            player = state.players[player_index]
            state.players[player_index] = replace(player, score=player.score + rnd.bank_total)
            rnd.players_who_banked.append(player_index)

            removed_at = position(player_index)
            if removed_at > -1:
                del can_roll[removed_at]
                if can_roll and removed_at < rnd.current_player_index:
                    rnd.current_player_index -= 1

            logger.info(f"{player.name} banked {rnd.bank_total}")

        rnd.current_player_index = rnd.current_player_index % len(can_roll) if can_roll else 0

        if len(rnd.players_who_banked) == len(state.players):
            self.end_round(RoundEndReason.ALL_BANKED)

        return self.snapshot()

    def end_round(self, reason: RoundEndReason) -> GameSnapshot:
        """
        Close the current round

        On the last round the round summary is skipped and the game ends
        right away.
        """
        state = self._state
        state.last_round_end_reason = RoundEndReason(reason)

        if state.current_round >= state.total_rounds:
            state.current_round += 1
            return self.end_game()

        GameStateMachine.transition(state, GamePhase.ROUND_END)
        logger.info(f"Round {state.current_round} ended ({state.last_round_end_reason.value})")
        return self.snapshot()

    def advance_round(self) -> GameSnapshot:
        """ROUND_END -> IN_ROUND, or GAME_END once rounds are exhausted"""
        GameStateMachine.require(self._state, GamePhase.ROUND_END)

        state = self._state
        state.current_round += 1
        if state.current_round > state.total_rounds:
            return self.end_game()

        GameStateMachine.transition(state, GamePhase.IN_ROUND)
        self.start_round()
        logger.info(f"Round {state.current_round} of {state.total_rounds} started")
        return self.snapshot()

    def end_game(self) -> GameSnapshot:
        state = self._state
        GameStateMachine.transition(state, GamePhase.GAME_END)
        state.game_started = False

        top = winners(state.players)
        logger.info(
            f"Game over: {', '.join(p.name for p in top)} "
            f"{'tie' if len(top) > 1 else 'wins'} with {top[0].score if top else 0}"
        )
        return self.snapshot()

    def undo(self) -> GameSnapshot:
        """
        Restore the state before the last roll / bank

        No-op without history. From the round-end screen play resumes in the
        same round; from the game-over screen the last round is re-opened.
        """
        state = self._state
        if state.phase is GamePhase.SETUP or not state.history:
            logger.debug("Undo ignored: history is empty")
            return self.snapshot()

        snapshot = state.history.pop()

        if state.phase is GamePhase.GAME_END:
            state.current_round -= 1
            state.game_started = True
            GameStateMachine.transition(state, GamePhase.IN_ROUND)
        elif state.phase is GamePhase.ROUND_END:
            GameStateMachine.transition(state, GamePhase.IN_ROUND)

        state.round = RoundState(
            roll_count=snapshot.roll_count,
            bank_total=snapshot.bank_total,
            players_who_can_roll=list(snapshot.players_who_can_roll),
            players_who_banked=list(snapshot.players_who_banked),
            current_player_index=snapshot.current_player_index,
        )
        state.players = list(snapshot.players)
        state.last_round_end_player_index = snapshot.last_round_end_player_index
        state.last_round_end_reason = None

        return self.snapshot()

    def reset_game(self) -> GameSnapshot:
        """
        Back to SETUP keeping the roster

        Scores are cleared and the starting player rotates to the next
        person for the new game.
        """
        state = self._state
        GameStateMachine.transition(state, GamePhase.SETUP)

        state.game_started = False
        state.current_round = 1
        state.last_round_end_player_index = 0
        state.last_round_end_reason = None
        if state.players:
            state.starting_player_index = (state.starting_player_index + 1) % len(state.players)
        else:
            state.starting_player_index = 0
        state.players = [replace(p, score=0) for p in state.players]
        state.round = RoundState(players_who_can_roll=list(range(len(state.players))))
        state.history.clear()

        logger.info("Game reset to setup")
        return self.snapshot()

    # ============ Snapshot ============

    def snapshot(self) -> GameSnapshot:
        state = self._state
        rnd = state.round
        current = rnd.current_player if state.phase is GamePhase.IN_ROUND else None

        places = {r.index: r.place for r in rank_players(state.players)}
        views = tuple(
            PlayerView(
                index=i,
                name=p.name,
                score=p.score,
                banked=i in rnd.players_who_banked,
                is_current=i == current,
                place=places[i] if p.score > 0 else None,
            )
            for i, p in enumerate(state.players)
        )

        standings = ()
        top: List[Player] = []
        if state.phase in (GamePhase.ROUND_END, GamePhase.GAME_END):
            standings = tuple(round_standings(state.players))
        if state.phase is GamePhase.GAME_END:
            top = winners(state.players)

        if self.doubles_rule is DoublesRule.ALWAYS_DOUBLE:
            doubles_enabled = rnd.roll_count >= SAFE_ROLLS
        else:
            doubles_enabled = True

        return GameSnapshot(
            phase=state.phase,
            players=views,
            total_rounds=state.total_rounds,
            current_round=state.current_round,
            game_started=state.game_started,
            starting_player_index=state.starting_player_index,
            roll_count=rnd.roll_count,
            bank_total=rnd.bank_total,
            current_player_index=rnd.current_player_index,
            current_player=current,
            players_who_can_roll=tuple(rnd.players_who_can_roll),
            players_who_banked=tuple(rnd.players_who_banked),
            can_undo=state.phase is not GamePhase.SETUP and bool(state.history),
            seven_ends_round=rnd.roll_count >= SAFE_ROLLS,
            doubles_enabled=doubles_enabled,
            plain_extremes_enabled=rnd.roll_count < SAFE_ROLLS,
            doubles_rule=self.doubles_rule,
            last_round_end_reason=state.last_round_end_reason,
            standings=standings,
            winners=tuple(p.name for p in top),
            is_tie=len(top) > 1,
        )

    def find_player(self, name: str) -> Optional[int]:
        """Roster index for a name (case-insensitive), None when unknown"""
        wanted = (name or "").strip().lower()
        for index, player in enumerate(self._state.players):
            if player.name.lower() == wanted:
                return index
        return None

    # ============ Internals ============

    def _check_player_index(self, index) -> None:
        if not _is_int(index) or not 0 <= index < len(self._state.players):
            raise PlayerNotFound(index)

    def _begin_roll(self) -> RoundState:
        """Push history, remember who rolled, count the roll"""
        self._push_history()
        rnd = self._state.round
        if rnd.current_player is not None:
            self._state.last_round_end_player_index = rnd.current_player
        rnd.roll_count += 1
        return rnd

    def _advance_turn(self) -> None:
        rnd = self._state.round
        if not rnd.players_who_can_roll:
            return
        rnd.current_player_index = (rnd.current_player_index + 1) % len(rnd.players_who_can_roll)

    def _push_history(self) -> None:
        state = self._state
        rnd = state.round
        state.history.push(RoundSnapshot(
            roll_count=rnd.roll_count,
            bank_total=rnd.bank_total,
            current_player_index=rnd.current_player_index,
            players_who_can_roll=tuple(rnd.players_who_can_roll),
            players_who_banked=tuple(rnd.players_who_banked),
            players=tuple(state.players),
            last_round_end_player_index=state.last_round_end_player_index,
        ))
