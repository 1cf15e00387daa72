"""
Room Manager: lifecycle of multiplayer rooms

Responsibilities:
1. Create / close a room for a host game
2. Participants joining and leaving (informational only)
3. Publishing the sanitized game state (state_version bumps on every publish)
4. Queueing inbound rolls and bank requests, and dispatching them into the
   host's engine

Delivery is at-least-once from the client's point of view; each event row is
deleted as soon as it is dispatched, so the engine sees it at most once.
"""
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional, Tuple
import logging

from models import Room, RoomEvent, RoomEventKind, RoomParticipant
from core.locks import with_room_lock
from core.exceptions import (
    BankGameException,
    ParticipantNotFound,
    RoomNotFound,
)
from core.round_engine import RoundEngine
from services.naming_service import (
    ROOM_CODE_LENGTH,
    generate_participant_id,
    generate_room_code,
    normalize_room_code,
)
from services.sync_service import apply_room_event, sanitize_game_state
from database import transactional

logger = logging.getLogger(__name__)


class RoomManager:
    """Room lifecycle manager"""

    @staticmethod
    @transactional
    def create_room(
        db: Session,
        host_role: str,
        state: Optional[Dict[str, Any]] = None,
        code_length: int = ROOM_CODE_LENGTH,
    ) -> Room:
        """
        Create a room with a fresh unique code

        Flow:
        1. Generate a code, retrying on collision
        2. Store the room with the initial sanitized state
        """
        code = generate_room_code(code_length)
        while db.query(Room).filter(Room.code == code).first():
            logger.warning(f"Room code collision detected, regenerating: {code}")
            code = generate_room_code(code_length)

        room = Room(
            code=code,
            host_role=host_role,
            state=sanitize_game_state(state),
            state_version=1,
        )
        db.add(room)

        logger.info(f"Created room {code} for {host_role}")
        return room

    @staticmethod
    @transactional
    def close_room(db: Session, code: str) -> None:
        room = RoomManager.get_room_by_code(db, code)
        db.delete(room)
        logger.info(f"Closed room {room.code}")

    @staticmethod
    def get_room_by_code(db: Session, code: str) -> Room:
        """
        Raises:
            RoomNotFound: no such room
        """
        code = normalize_room_code(code)
        room = db.query(Room).filter(Room.code == code).first()
        if not room:
            raise RoomNotFound(code)
        return room

    @staticmethod
    def get_participant(db: Session, code: str, participant_id: str) -> RoomParticipant:
        participant = db.query(RoomParticipant).filter(
            RoomParticipant.room_code == normalize_room_code(code),
            RoomParticipant.id == participant_id
        ).first()
        if not participant:
            raise ParticipantNotFound(participant_id)
        return participant

    @staticmethod
    @transactional
    def join_room(db: Session, code: str, name: str) -> Tuple[Room, RoomParticipant]:
        room = RoomManager.get_room_by_code(db, code)

        participant = RoomParticipant(
            id=generate_participant_id(),
            room_code=room.code,
            name=name.strip(),
            connected=True
        )
        db.add(participant)

        logger.info(f"Participant {participant.id} ({participant.name}) joined room {room.code}")
        return room, participant

    @staticmethod
    @transactional
    def leave_room(db: Session, code: str, participant_id: str) -> RoomParticipant:
        """Mark a participant disconnected. Game state is not touched."""
        participant = RoomManager.get_participant(db, code, participant_id)
        participant.connected = False
        logger.info(f"Participant {participant_id} left room {participant.room_code}")
        return participant

    @staticmethod
    @transactional
    def publish_state(db: Session, code: str, state: Any) -> Room:
        """Replace the room's game state and bump state_version"""
        room = with_room_lock(normalize_room_code(code), db).first()
        if not room:
            raise RoomNotFound(code)

        room.state = sanitize_game_state(state)
        room.state_version = (room.state_version or 0) + 1
        return room

    @staticmethod
    @transactional
    def submit_event(
        db: Session,
        code: str,
        participant_id: str,
        kind: RoomEventKind,
        value: Optional[int] = None,
        is_doubles: bool = False,
    ) -> RoomEvent:
        """
        Queue a roll or bank request from a participant

        Raises:
            RoomNotFound, ParticipantNotFound
        """
        participant = RoomManager.get_participant(db, code, participant_id)

        event = RoomEvent(
            room_code=participant.room_code,
            kind=kind,
            participant_id=participant.id,
            participant_name=participant.name,
            value=value,
            is_doubles=is_doubles
        )
        db.add(event)
        return event

    @staticmethod
    @transactional
    def dispatch_events(db: Session, code: str, engine: RoundEngine) -> int:
        """
        Apply every queued event of a room to the host engine, oldest first

        Events the engine rejects (wrong phase, bad value, unknown player)
        are logged and dropped like the rest.

        Returns:
            number of events the engine accepted
        """
        room = with_room_lock(normalize_room_code(code), db).first()
        if not room:
            raise RoomNotFound(code)

        events = db.query(RoomEvent).filter(
            RoomEvent.room_code == room.code
        ).order_by(RoomEvent.id).all()

        applied = 0
        for event in events:
            try:
                if apply_room_event(
                    engine,
                    event.kind,
                    event.participant_name,
                    value=event.value,
                    is_doubles=event.is_doubles
                ):
                    applied += 1
            except BankGameException as e:
                logger.warning(f"Room {room.code}: dropped {event.kind.value} from {event.participant_name}: {e}")
            db.delete(event)

        if events:
            logger.info(f"Room {room.code}: dispatched {len(events)} events ({applied} applied)")
        return applied
