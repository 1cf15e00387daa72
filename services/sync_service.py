"""
Sync service: what crosses the realtime room channel

- sanitize_game_state(): the only game data published to a room
- apply_room_event(): turns an inbound roll / bank request into an engine
  command, exactly as if the scorer had entered it locally
"""
from typing import Any, Dict, Mapping, Optional, Union
import logging

from core.exceptions import InvalidRollValue
from core.game_state import DEFAULT_TOTAL_ROUNDS, GameSnapshot
from core.round_engine import RoundEngine
from models import RoomEventKind
from services.persistence_service import coerce_int

logger = logging.getLogger(__name__)

SYNC_FIELDS = (
    "players",
    "total_rounds",
    "current_round",
    "roll_count",
    "bank_total",
    "current_player_index",
    "players_who_can_roll",
    "players_who_banked",
    "game_started",
)


def _sanitize_players(players: Any):
    if not isinstance(players, (list, tuple)):
        return []
    result = []
    for p in players:
        name = p.get("name") if isinstance(p, Mapping) else getattr(p, "name", None)
        score = p.get("score") if isinstance(p, Mapping) else getattr(p, "score", None)
        if isinstance(name, str):
            result.append({"name": name, "score": coerce_int(score, 0)})
    return result


def _sanitize_indices(values: Any):
    if not isinstance(values, (list, tuple)):
        return []
    return [v for v in values if isinstance(v, int) and not isinstance(v, bool) and v >= 0]


def sanitize_game_state(state: Union[GameSnapshot, Mapping[str, Any], None]) -> Dict[str, Any]:
    """
    Reduce a game to the nine gameplay fields

    Accepts an engine snapshot or an untrusted dict (e.g. an inbound
    payload); every field falls back to its default when missing or
    malformed, and a non-numeric bank_total becomes 0.
    """
    if isinstance(state, GameSnapshot):
        source = {field: getattr(state, field) for field in SYNC_FIELDS}
    elif isinstance(state, Mapping):
        source = state
    else:
        source = {}

    return {
        "players": _sanitize_players(source.get("players")),
        "total_rounds": coerce_int(source.get("total_rounds"), DEFAULT_TOTAL_ROUNDS, minimum=1),
        "current_round": coerce_int(source.get("current_round"), 1, minimum=1),
        "roll_count": coerce_int(source.get("roll_count"), 0),
        "bank_total": coerce_int(source.get("bank_total"), 0),
        "current_player_index": coerce_int(source.get("current_player_index"), 0),
        "players_who_can_roll": _sanitize_indices(source.get("players_who_can_roll")),
        "players_who_banked": _sanitize_indices(source.get("players_who_banked")),
        "game_started": source.get("game_started") is True,
    }


def apply_room_event(
    engine: RoundEngine,
    kind: RoomEventKind,
    participant_name: str,
    value: Optional[int] = None,
    is_doubles: bool = False,
) -> bool:
    """
    Forward one inbound event into the engine

    Returns:
        True if the engine accepted a command, False if the event named
        nobody on the roster.

    Raises:
        BankGameException subclasses straight from the engine
    """
    if kind is RoomEventKind.ROLL:
        if is_doubles:
            engine.roll_doubles(value or None)
        else:
            if value is None:
                raise InvalidRollValue(value)
            engine.roll(value)
        logger.info(f"{participant_name} rolled {'doubles' if is_doubles else value}")
        return True

    player_index = engine.find_player(participant_name)
    if player_index is None:
        logger.warning(f"Bank request from {participant_name} ignored: not on the roster")
        return False

    engine.request_bank([player_index])
    logger.info(f"{participant_name} banked via room")
    return True
