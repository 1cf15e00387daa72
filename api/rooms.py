"""
Room API Endpoints - short polling

Flow:
1. The scorer opens a room and reads out the 4-character code
2. Participants join with their name and poll /state (state_version tells
   them when something changed)
3. Participants post rolls and bank requests; each is queued and then
   dispatched into the scorer's engine as an ordinary command
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import logging

from database import get_db
from models import RoomEventKind
from schemas import (
    DispatchResponse,
    ParticipantRef,
    ParticipantResponse,
    RoomEventResponse,
    RoomJoin,
    RoomResponse,
    RoomRollSubmit,
    RoomStateResponse,
)
from api.dependencies import get_game_manager, to_http_exception
from core.exceptions import BankGameException, InvalidRollValue
from core.game_manager import GameManager
from core.room_manager import RoomManager
from services.persistence_service import GameRole

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@router.post("", response_model=RoomResponse)
def create_room(db: Session = Depends(get_db),
                manager: GameManager = Depends(get_game_manager)):
    """
    Open a room for the scorer's game (host endpoint)

    Returns the already open room if there is one.
    """
    try:
        room = manager.open_room(db, GameRole.SCORER)
        return RoomResponse(code=room.code, state_version=room.state_version)

    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{code}", response_model=DispatchResponse)
def close_room(code: str, db: Session = Depends(get_db),
               manager: GameManager = Depends(get_game_manager)):
    try:
        manager.close_room(db, code)
        return DispatchResponse(applied=0)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to close room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/join", response_model=ParticipantResponse)
def join_room(code: str, data: RoomJoin, db: Session = Depends(get_db)):
    """
    Join a room (participant endpoint)

    The participant name should match a roster name for bank requests to
    reach the right player.
    """
    try:
        room, participant = RoomManager.join_room(db, code, data.name)
        return ParticipantResponse(
            participant_id=participant.id,
            room_code=room.code,
            name=participant.name
        )

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/leave", response_model=ParticipantResponse)
def leave_room(code: str, data: ParticipantRef, db: Session = Depends(get_db)):
    try:
        participant = RoomManager.leave_room(db, code, data.participant_id)
        return ParticipantResponse(
            participant_id=participant.id,
            room_code=participant.room_code,
            name=participant.name
        )

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to leave room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/state", response_model=RoomStateResponse)
def get_room_state(code: str, db: Session = Depends(get_db)):
    """
    Sanitized game state for participants

    Clients poll this and only re-render when state_version changes.
    """
    try:
        room = RoomManager.get_room_by_code(db, code)
        return RoomStateResponse(
            code=room.code,
            state_version=room.state_version,
            state=room.state,
            connected_players=sum(1 for p in room.participants if p.connected)
        )

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get room state: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/rolls", response_model=RoomEventResponse)
def submit_roll(code: str, data: RoomRollSubmit, db: Session = Depends(get_db),
                manager: GameManager = Depends(get_game_manager)):
    """
    Submit a roll from a participant

    Queued, then dispatched right away. A roll the engine rejects (e.g. the
    round already ended) is dropped; ``applied`` reports what got through.
    """
    try:
        if data.value is None and not data.is_doubles:
            raise InvalidRollValue(None)

        event = RoomManager.submit_event(
            db, code, data.participant_id, RoomEventKind.ROLL,
            value=data.value, is_doubles=data.is_doubles
        )
        event_id = event.id
        applied = manager.dispatch_room_events(db, code)
        return RoomEventResponse(event_id=event_id, kind=RoomEventKind.ROLL, applied=applied)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to submit roll: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/bank-requests", response_model=RoomEventResponse)
def submit_bank_request(code: str, data: ParticipantRef, db: Session = Depends(get_db),
                        manager: GameManager = Depends(get_game_manager)):
    """Ask to bank for the roster player named like the participant"""
    try:
        event = RoomManager.submit_event(
            db, code, data.participant_id, RoomEventKind.BANK_REQUEST
        )
        event_id = event.id
        applied = manager.dispatch_room_events(db, code)
        return RoomEventResponse(event_id=event_id, kind=RoomEventKind.BANK_REQUEST, applied=applied)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to submit bank request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/dispatch", response_model=DispatchResponse)
def dispatch_events(code: str, db: Session = Depends(get_db),
                    manager: GameManager = Depends(get_game_manager)):
    """Dispatch anything still queued (host endpoint)"""
    try:
        return DispatchResponse(applied=manager.dispatch_room_events(db, code))

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to dispatch room events: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
