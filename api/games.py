"""
Game API Endpoints

The command surface of the Bank scorekeeper. Every endpoint runs exactly
one engine command through the GameManager and returns the new snapshot.

Roles:
- scorer: the table's main scoreboard (can host a room)
- participant: an independent game kept on a participant's device
"""
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import logging

from database import get_db
from schemas import (
    BankSubmit,
    DoublesSubmit,
    GameStateResponse,
    PlayerAdd,
    PlayerOrder,
    RollSubmit,
    StartingPlayer,
    TotalRounds,
)
from api.dependencies import get_game_manager, to_http_exception
from core.exceptions import BankGameException
from core.game_manager import GameManager
from core.round_engine import RoundEngine
from services.persistence_service import GameRole

router = APIRouter(prefix="/api/games", tags=["games"])
logger = logging.getLogger(__name__)


def _run(
    db: Session,
    manager: GameManager,
    role: GameRole,
    action: str,
    command: Callable[[RoundEngine], object],
) -> GameStateResponse:
    try:
        snapshot = manager.execute(db, role, command)
        return GameStateResponse.model_validate(snapshot)

    except BankGameException as e:
        logger.warning(f"{action} rejected for {role.value} game: {e}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to {action} for {role.value} game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{role}", response_model=GameStateResponse)
def get_game(role: GameRole, db: Session = Depends(get_db),
             manager: GameManager = Depends(get_game_manager)):
    """
    Current snapshot of a role's game

    A corrupted saved game is discarded on load and a fresh setup returned.
    """
    try:
        return GameStateResponse.model_validate(manager.snapshot(db, role))
    except Exception as e:
        logger.error(f"Failed to load {role.value} game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Setup ============

@router.post("/{role}/players", response_model=GameStateResponse)
def add_player(role: GameRole, data: PlayerAdd, db: Session = Depends(get_db),
               manager: GameManager = Depends(get_game_manager)):
    """
    Add a player (setup only)

    Errors:
        409 duplicate name (case-insensitive)
        400 roster full / game already running
    """
    return _run(db, manager, role, "add player", lambda engine: engine.add_player(data.name))


@router.delete("/{role}/players/{index}", response_model=GameStateResponse)
def remove_player(role: GameRole, index: int, db: Session = Depends(get_db),
                  manager: GameManager = Depends(get_game_manager)):
    return _run(db, manager, role, "remove player", lambda engine: engine.remove_player(index))


@router.put("/{role}/players/order", response_model=GameStateResponse)
def reorder_players(role: GameRole, data: PlayerOrder, db: Session = Depends(get_db),
                    manager: GameManager = Depends(get_game_manager)):
    """``order[i]`` is the current index of the player moved to position i"""
    return _run(db, manager, role, "reorder players", lambda engine: engine.reorder_players(data.order))


@router.put("/{role}/rounds", response_model=GameStateResponse)
def set_total_rounds(role: GameRole, data: TotalRounds, db: Session = Depends(get_db),
                     manager: GameManager = Depends(get_game_manager)):
    return _run(db, manager, role, "set rounds", lambda engine: engine.set_total_rounds(data.total_rounds))


@router.put("/{role}/starting-player", response_model=GameStateResponse)
def set_starting_player(role: GameRole, data: StartingPlayer, db: Session = Depends(get_db),
                        manager: GameManager = Depends(get_game_manager)):
    return _run(db, manager, role, "set starting player",
                lambda engine: engine.set_starting_player(data.index))


@router.post("/{role}/start", response_model=GameStateResponse)
def start_game(role: GameRole, db: Session = Depends(get_db),
               manager: GameManager = Depends(get_game_manager)):
    """Start the game; with fewer than 2 players nothing happens"""
    return _run(db, manager, role, "start game", lambda engine: engine.start_game())


# ============ Round ============

@router.post("/{role}/roll", response_model=GameStateResponse)
def roll(role: GameRole, data: RollSubmit, db: Session = Depends(get_db),
         manager: GameManager = Depends(get_game_manager)):
    return _run(db, manager, role, "roll", lambda engine: engine.roll(data.value))


@router.post("/{role}/roll-doubles", response_model=GameStateResponse)
def roll_doubles(role: GameRole, data: Optional[DoublesSubmit] = None, db: Session = Depends(get_db),
                 manager: GameManager = Depends(get_game_manager)):
    face_value = data.face_value if data else None
    return _run(db, manager, role, "roll doubles", lambda engine: engine.roll_doubles(face_value))


@router.post("/{role}/bank", response_model=GameStateResponse)
def bank(role: GameRole, data: BankSubmit, db: Session = Depends(get_db),
         manager: GameManager = Depends(get_game_manager)):
    """
    Bank for the selected players

    Players who already banked are skipped; the others still bank.
    """
    return _run(db, manager, role, "bank", lambda engine: engine.request_bank(data.player_indices))


@router.post("/{role}/undo", response_model=GameStateResponse)
def undo(role: GameRole, db: Session = Depends(get_db),
         manager: GameManager = Depends(get_game_manager)):
    """Undo the last roll / bank; no-op when can_undo is false"""
    return _run(db, manager, role, "undo", lambda engine: engine.undo())


@router.post("/{role}/next-round", response_model=GameStateResponse)
def next_round(role: GameRole, db: Session = Depends(get_db),
               manager: GameManager = Depends(get_game_manager)):
    return _run(db, manager, role, "advance round", lambda engine: engine.advance_round())


@router.post("/{role}/reset", response_model=GameStateResponse)
def reset_game(role: GameRole, db: Session = Depends(get_db),
               manager: GameManager = Depends(get_game_manager)):
    """New game with the same roster; the starting player rotates"""
    return _run(db, manager, role, "reset game", lambda engine: engine.reset_game())
