"""
Bank dice game data model

Plain dataclasses owned by a RoundEngine. Nothing outside the engine
mutates these; renderers only ever see GameSnapshot.
"""
import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core.history import UndoHistory

DEFAULT_TOTAL_ROUNDS = 20
DEFAULT_MAX_PLAYERS = 20
DEFAULT_HISTORY_LIMIT = 50

SEVEN = 7
SEVEN_BONUS = 70
# Rolls 1..3 are the "safe" rolls: a seven pays 70 instead of ending the round
SAFE_ROLLS = 3
MIN_ROLL = 2
MAX_ROLL = 12


class GamePhase(str, enum.Enum):
    SETUP = "setup"
    IN_ROUND = "in_round"
    ROUND_END = "round_end"
    GAME_END = "game_end"


class RoundEndReason(str, enum.Enum):
    SEVEN_ROLLED = "seven_rolled"
    ALL_BANKED = "all_banked"


class DoublesRule(str, enum.Enum):
    """
    Scoring rule for a doubles roll

    - ALWAYS_DOUBLE: every doubles roll doubles the pot
    - FACE_VALUE_THEN_DOUBLE: rolls 1-3 add the face value, later rolls double
    """
    ALWAYS_DOUBLE = "always_double"
    FACE_VALUE_THEN_DOUBLE = "face_value_then_double"


@dataclass(frozen=True)
class Player:
    name: str
    score: int = 0


@dataclass
class RoundState:
    roll_count: int = 0
    bank_total: int = 0
    players_who_can_roll: List[int] = field(default_factory=list)
    players_who_banked: List[int] = field(default_factory=list)
    current_player_index: int = 0

    @property
    def current_player(self) -> Optional[int]:
        """Roster index of the player whose turn it is, None when nobody can roll"""
        if not self.players_who_can_roll:
            return None
        return self.players_who_can_roll[self.current_player_index]


@dataclass
class GameState:
    players: List[Player] = field(default_factory=list)
    total_rounds: int = DEFAULT_TOTAL_ROUNDS
    current_round: int = 1
    game_started: bool = False
    starting_player_index: int = 0
    last_round_end_player_index: int = 0
    phase: GamePhase = GamePhase.SETUP
    last_round_end_reason: Optional[RoundEndReason] = None
    round: RoundState = field(default_factory=RoundState)
    history: UndoHistory = field(default_factory=UndoHistory)


# ============ Read-only views ============

@dataclass(frozen=True)
class PlayerView:
    index: int
    name: str
    score: int
    banked: bool
    is_current: bool
    place: Optional[int]


@dataclass(frozen=True)
class RankedPlayer:
    place: int
    index: int
    name: str
    score: int


@dataclass(frozen=True)
class GameSnapshot:
    phase: GamePhase
    players: Tuple[PlayerView, ...]
    total_rounds: int
    current_round: int
    game_started: bool
    starting_player_index: int
    roll_count: int
    bank_total: int
    current_player_index: int
    current_player: Optional[int]
    players_who_can_roll: Tuple[int, ...]
    players_who_banked: Tuple[int, ...]
    can_undo: bool
    seven_ends_round: bool
    doubles_enabled: bool
    plain_extremes_enabled: bool
    doubles_rule: DoublesRule
    last_round_end_reason: Optional[RoundEndReason]
    standings: Tuple[RankedPlayer, ...]
    winners: Tuple[str, ...]
    is_tie: bool
