"""
Persistence service: Bank games as versioned JSON blobs

A game is stored as one flat JSON document per role in the saved_games
key-value table. Loading goes through three steps:

1. migrate_saved_state() brings any known layout up to SCHEMA_VERSION
   (version-less blobs use the legacy camelCase browser layout)
2. restore_game() fills every missing or malformed field with its default
3. the result is validated structurally before an engine ever sees it

Anything that still fails raises SavedStateError; load_game() then deletes
the entry and the caller starts from a fresh game.
"""
import enum
import math
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from core.exceptions import SavedStateError
from core.game_state import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_TOTAL_ROUNDS,
    GamePhase,
    GameState,
    Player,
    RoundEndReason,
    RoundState,
)
from core.history import RoundSnapshot, UndoHistory
from database import transactional
from models import SavedGame

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class GameRole(str, enum.Enum):
    """Each role keeps its own independent game under a fixed storage key"""
    SCORER = "scorer"
    PARTICIPANT = "participant"


STORAGE_KEYS = {
    GameRole.SCORER: "bank_scorer",
    GameRole.PARTICIPANT: "bank_participant",
}

# Browser local-storage layout (no schema_version) -> current field names
LEGACY_FIELDS = {
    "players": "players",
    "totalRounds": "total_rounds",
    "currentRound": "current_round",
    "rollCount": "roll_count",
    "bankTotal": "bank_total",
    "currentPlayerIndex": "current_player_index",
    "playersWhoCanRoll": "players_who_can_roll",
    "playersWhoBanked": "players_who_banked",
    "gameStarted": "game_started",
    "lastRoundEndPlayerIndex": "last_round_end_player_index",
    "startingPlayerIndex": "starting_player_index",
    "history": "history",
    "roomCode": "room_code",
}


# ============ Serialization ============

def _player_to_dict(player: Player) -> Dict[str, Any]:
    return {"name": player.name, "score": player.score}


def _snapshot_to_dict(snapshot: RoundSnapshot) -> Dict[str, Any]:
    return {
        "roll_count": snapshot.roll_count,
        "bank_total": snapshot.bank_total,
        "current_player_index": snapshot.current_player_index,
        "players_who_can_roll": list(snapshot.players_who_can_roll),
        "players_who_banked": list(snapshot.players_who_banked),
        "players": [_player_to_dict(p) for p in snapshot.players],
        "last_round_end_player_index": snapshot.last_round_end_player_index,
    }


def serialize_game(state: GameState, room_code: Optional[str] = None) -> Dict[str, Any]:
    """Whole game, history included, as a JSON-ready dict"""
    rnd = state.round
    return {
        "schema_version": SCHEMA_VERSION,
        "players": [_player_to_dict(p) for p in state.players],
        "total_rounds": state.total_rounds,
        "current_round": state.current_round,
        "roll_count": rnd.roll_count,
        "bank_total": rnd.bank_total,
        "current_player_index": rnd.current_player_index,
        "players_who_can_roll": list(rnd.players_who_can_roll),
        "players_who_banked": list(rnd.players_who_banked),
        "game_started": state.game_started,
        "phase": state.phase.value,
        "last_round_end_reason": state.last_round_end_reason.value if state.last_round_end_reason else None,
        "last_round_end_player_index": state.last_round_end_player_index,
        "starting_player_index": state.starting_player_index,
        "history": [_snapshot_to_dict(s) for s in state.history.to_list()],
        "room_code": room_code,
    }


# ============ Migration ============

def _migrate_legacy(raw: Dict[str, Any]) -> Dict[str, Any]:
    data = {new: raw[old] for old, new in LEGACY_FIELDS.items() if old in raw}
    history = data.get("history")
    if isinstance(history, list):
        data["history"] = [
            {LEGACY_FIELDS.get(k, k): v for k, v in entry.items()} if isinstance(entry, dict) else entry
            for entry in history
        ]
    return data


def migrate_saved_state(raw: Any) -> Dict[str, Any]:
    """
    Bring a stored blob up to SCHEMA_VERSION

    Raises:
        SavedStateError: not a JSON object, or a version this code does not know
    """
    if not isinstance(raw, dict):
        raise SavedStateError(f"Saved game must be an object, got {type(raw).__name__}")

    version = raw.get("schema_version")
    if version is None:
        logger.info("Migrating legacy saved game to schema version 1")
        data = _migrate_legacy(raw)
    elif version == SCHEMA_VERSION:
        data = dict(raw)
    else:
        raise SavedStateError(f"Unsupported saved game schema version {version!r}")

    data["schema_version"] = SCHEMA_VERSION
    return data


# ============ Field coercion ============

def coerce_int(value: Any, default: int, minimum: int = 0) -> int:
    """
    Integer or ``default``

    Integral floats and numeric strings are accepted; booleans, NaN and
    anything below ``minimum`` fall back to the default.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return default
        value = int(value)
    if not isinstance(value, int) or value < minimum:
        return default
    return value


def _coerce_bool(value: Any, default: bool = False) -> bool:
    return value if isinstance(value, bool) else default


def _coerce_index_list(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    return [coerce_int(v, -1, minimum=-1) for v in value]


def _restore_players(value: Any) -> List[Player]:
    if not isinstance(value, list):
        return []

    players = []
    for entry in value:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str) or not entry["name"].strip():
            raise SavedStateError(f"Malformed player entry: {entry!r}")
        players.append(Player(name=entry["name"].strip(), score=coerce_int(entry.get("score"), 0)))
    return players


def _check_round_indices(can_roll: List[int], banked: List[int], player_count: int, where: str) -> None:
    for index in can_roll + banked:
        if not 0 <= index < player_count:
            raise SavedStateError(f"{where}: player index {index} out of range")
    if len(set(can_roll)) != len(can_roll) or len(set(banked)) != len(banked):
        raise SavedStateError(f"{where}: duplicate player index")
    if set(can_roll) & set(banked):
        raise SavedStateError(f"{where}: player both banked and rolling")


def _clamp_position(index: int, size: int) -> int:
    return index % size if size else 0


def _restore_snapshot(entry: Any) -> RoundSnapshot:
    if not isinstance(entry, dict):
        raise SavedStateError(f"Malformed history entry: {entry!r}")

    players = _restore_players(entry.get("players"))
    can_roll = _coerce_index_list(entry.get("players_who_can_roll"))
    banked = _coerce_index_list(entry.get("players_who_banked"))
    _check_round_indices(can_roll, banked, len(players), "history")

    last_end = coerce_int(entry.get("last_round_end_player_index"), 0)
    return RoundSnapshot(
        roll_count=coerce_int(entry.get("roll_count"), 0),
        bank_total=coerce_int(entry.get("bank_total"), 0),
        current_player_index=_clamp_position(coerce_int(entry.get("current_player_index"), 0), len(can_roll)),
        players_who_can_roll=tuple(can_roll),
        players_who_banked=tuple(banked),
        players=tuple(players),
        last_round_end_player_index=last_end if last_end < max(len(players), 1) else 0,
    )


def restore_game(raw: Any, history_limit: int = DEFAULT_HISTORY_LIMIT) -> Tuple[GameState, Optional[str]]:
    """
    Rebuild a GameState (and the attached room code) from a stored blob

    Raises:
        SavedStateError: blob cannot be turned into a consistent game
    """
    data = migrate_saved_state(raw)

    players = _restore_players(data.get("players"))
    names = [p.name.lower() for p in players]
    if len(set(names)) != len(names):
        raise SavedStateError("Duplicate player names in saved game")

    player_count = len(players)
    game_started = _coerce_bool(data.get("game_started"))

    try:
        phase = GamePhase(data.get("phase"))
    except ValueError:
        phase = GamePhase.IN_ROUND if game_started else GamePhase.SETUP

    try:
        reason = RoundEndReason(data["last_round_end_reason"]) if data.get("last_round_end_reason") else None
    except ValueError:
        reason = None

    # Round bookkeeping only matters once a game is running; start_round() rebuilds it
    if phase is GamePhase.SETUP:
        can_roll, banked = [], []
    else:
        can_roll = _coerce_index_list(data.get("players_who_can_roll"))
        banked = _coerce_index_list(data.get("players_who_banked"))
        _check_round_indices(can_roll, banked, player_count, "round")

    if phase is not GamePhase.SETUP and player_count < 2:
        raise SavedStateError(f"Game in phase {phase.value} with {player_count} players")
    if phase is GamePhase.IN_ROUND and not can_roll:
        if len(banked) != player_count:
            raise SavedStateError("Round in progress but nobody can roll")
        # Saved between the last bank and the round-end screen
        phase = GamePhase.ROUND_END

    def roster_index(key):
        value = coerce_int(data.get(key), 0)
        return value if value < player_count else 0

    history_entries = data.get("history") if isinstance(data.get("history"), list) else []
    if phase is GamePhase.SETUP:
        history_entries = []
    history = UndoHistory(history_limit, (_restore_snapshot(e) for e in history_entries))

    state = GameState(
        players=players,
        total_rounds=coerce_int(data.get("total_rounds"), DEFAULT_TOTAL_ROUNDS, minimum=1),
        current_round=coerce_int(data.get("current_round"), 1, minimum=1),
        game_started=game_started,
        starting_player_index=roster_index("starting_player_index"),
        last_round_end_player_index=roster_index("last_round_end_player_index"),
        phase=phase,
        last_round_end_reason=reason,
        round=RoundState(
            roll_count=coerce_int(data.get("roll_count"), 0),
            bank_total=coerce_int(data.get("bank_total"), 0),
            players_who_can_roll=can_roll,
            players_who_banked=banked,
            current_player_index=_clamp_position(coerce_int(data.get("current_player_index"), 0), len(can_roll)),
        ),
        history=history,
    )

    room_code = data.get("room_code") if isinstance(data.get("room_code"), str) else None
    return state, room_code


# ============ Storage ============

def storage_key(role: GameRole) -> str:
    return STORAGE_KEYS[GameRole(role)]


def load_game(db: Session, role: GameRole, history_limit: int = DEFAULT_HISTORY_LIMIT) -> Optional[Tuple[GameState, Optional[str]]]:
    """
    Load the saved game for a role

    Returns:
        (GameState, room_code), or None when nothing usable is stored.
        A corrupted entry is deleted rather than raised.
    """
    key = storage_key(role)
    try:
        row = db.query(SavedGame).filter(SavedGame.key == key).first()
        if row is None:
            return None
        return restore_game(row.data, history_limit=history_limit)
    except (SavedStateError, ValueError, TypeError) as e:
        logger.error(f"Failed to load saved game {key}, discarding it: {e}")
        db.rollback()
        clear_game(db, role)
        return None


@transactional
def save_game(db: Session, role: GameRole, state: GameState, room_code: Optional[str] = None) -> SavedGame:
    key = storage_key(role)
    data = serialize_game(state, room_code)

    row = db.query(SavedGame).filter(SavedGame.key == key).first()
    if row is None:
        row = SavedGame(key=key, schema_version=SCHEMA_VERSION, data=data)
        db.add(row)
    else:
        row.schema_version = SCHEMA_VERSION
        row.data = data
    return row


@transactional
def clear_game(db: Session, role: GameRole) -> None:
    db.query(SavedGame).filter(SavedGame.key == storage_key(role)).delete()
