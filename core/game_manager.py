"""
Game Manager: owns the live Bank engines

Responsibilities:
1. One RoundEngine per GameRole, restored lazily from storage
2. Running commands one at a time per role
3. Persisting after every command (storage is cleared once a game ends)
4. Republishing the sanitized state to the role's room, if one is open

The manager is created once per application and kept on ``app.state``; it
is the only owner of the engines.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, TypeVar
import logging

from sqlalchemy.orm import Session

from core.exceptions import RoomNotFound
from core.game_state import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_PLAYERS,
    DEFAULT_TOTAL_ROUNDS,
    DoublesRule,
    GamePhase,
    GameSnapshot,
    GameState,
)
from core.history import UndoHistory
from core.locks import game_lock
from core.room_manager import RoomManager
from core.round_engine import RoundEngine
from models import Room
from services.naming_service import ROOM_CODE_LENGTH
from services.persistence_service import GameRole, clear_game, load_game, save_game

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class GameSession:
    role: GameRole
    engine: RoundEngine
    room_code: Optional[str] = None


class GameManager:
    """Live engines keyed by role"""

    def __init__(
        self,
        doubles_rule: DoublesRule = DoublesRule.ALWAYS_DOUBLE,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        max_players: int = DEFAULT_MAX_PLAYERS,
        default_total_rounds: int = DEFAULT_TOTAL_ROUNDS,
        room_code_length: int = ROOM_CODE_LENGTH,
    ):
        self.doubles_rule = DoublesRule(doubles_rule)
        self.history_limit = history_limit
        self.max_players = max_players
        self.default_total_rounds = default_total_rounds
        self.room_code_length = room_code_length
        self._sessions: Dict[GameRole, GameSession] = {}

    @classmethod
    def from_settings(cls, settings) -> "GameManager":
        return cls(
            doubles_rule=settings.doubles_rule,
            history_limit=settings.history_limit,
            max_players=settings.max_players,
            default_total_rounds=settings.default_total_rounds,
            room_code_length=settings.room_code_length,
        )

    # ============ Sessions ============

    def _new_engine(self, state: Optional[GameState] = None) -> RoundEngine:
        if state is None:
            state = GameState(
                total_rounds=self.default_total_rounds,
                history=UndoHistory(self.history_limit),
            )
        return RoundEngine(
            state,
            doubles_rule=self.doubles_rule,
            history_limit=self.history_limit,
            max_players=self.max_players,
        )

    def session(self, db: Session, role: GameRole) -> GameSession:
        """Live session for a role, restored from storage on first use"""
        role = GameRole(role)
        with game_lock(role.value):
            session = self._sessions.get(role)
            if session is None:
                loaded = load_game(db, role, history_limit=self.history_limit)
                if loaded is None:
                    session = GameSession(role=role, engine=self._new_engine())
                else:
                    state, room_code = loaded
                    session = GameSession(role=role, engine=self._new_engine(state), room_code=room_code)
                    logger.info(f"Restored {role.value} game in phase {state.phase.value}")
                self._sessions[role] = session
            return session

    def snapshot(self, db: Session, role: GameRole) -> GameSnapshot:
        return self.session(db, role).engine.snapshot()

    # ============ Commands ============

    def execute(self, db: Session, role: GameRole, command: Callable[[RoundEngine], T]) -> T:
        """
        Run one command against a role's engine, then persist and publish

        Usage:
            manager.execute(db, GameRole.SCORER, lambda engine: engine.roll(8))

        Domain exceptions propagate unchanged; the engine rejects commands
        before mutating, so nothing is saved in that case.
        """
        role = GameRole(role)
        with game_lock(role.value):
            session = self.session(db, role)
            result = command(session.engine)
            self._persist(db, session)
            return result

    def _persist(self, db: Session, session: GameSession) -> None:
        engine = session.engine
        if engine.phase is GamePhase.GAME_END:
            clear_game(db, session.role)
        else:
            save_game(db, session.role, engine.state, session.room_code)

        if session.room_code:
            try:
                RoomManager.publish_state(db, session.room_code, engine.snapshot())
            except RoomNotFound:
                logger.warning(f"Room {session.room_code} is gone, detaching {session.role.value} game")
                session.room_code = None

    # ============ Rooms ============

    def open_room(self, db: Session, role: GameRole = GameRole.SCORER) -> Room:
        """
        Open (or return the already open) room for a role's game
        """
        role = GameRole(role)
        with game_lock(role.value):
            session = self.session(db, role)
            if session.room_code:
                try:
                    return RoomManager.get_room_by_code(db, session.room_code)
                except RoomNotFound:
                    session.room_code = None

            room = RoomManager.create_room(
                db, role.value, session.engine.snapshot(), code_length=self.room_code_length
            )
            session.room_code = room.code
            self._persist(db, session)
            return room

    def close_room(self, db: Session, code: str) -> None:
        room = RoomManager.get_room_by_code(db, code)
        code, role = room.code, GameRole(room.host_role)
        with game_lock(role.value):
            RoomManager.close_room(db, code)
            session = self._sessions.get(role)
            if session is not None and session.room_code == code:
                session.room_code = None
                self._persist(db, session)

    def dispatch_room_events(self, db: Session, code: str) -> int:
        """Feed a room's queued events into its host engine"""
        room = RoomManager.get_room_by_code(db, code)
        role = GameRole(room.host_role)
        with game_lock(role.value):
            session = self.session(db, role)
            applied = RoomManager.dispatch_events(db, room.code, session.engine)
            if applied:
                self._persist(db, session)
            return applied
