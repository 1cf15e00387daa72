"""
Shared API dependencies and error translation
"""
from fastapi import HTTPException, Request

from core.exceptions import (
    BankGameException,
    DuplicatePlayerName,
    NetworkNotFound,
    ParticipantNotFound,
    PlayerNotFound,
    RoomNotFound,
)
from core.game_manager import GameManager
from core.network import Initializer, make_initializer
from database import get_settings


def get_game_manager(request: Request) -> GameManager:
    """The application's single GameManager (created in main.py)"""
    return request.app.state.game_manager


def get_initializer() -> Initializer:
    """Weight initializer configured by WEIGHT_INIT / WEIGHT_INIT_RANGE"""
    settings = get_settings()
    return make_initializer(settings.weight_init, settings.weight_init_range)


def to_http_exception(error: BankGameException) -> HTTPException:
    """
    Domain error -> HTTP error

    - not found: 404
    - duplicate player: 409
    - any other rejected command: 400
    """
    if isinstance(error, (RoomNotFound, ParticipantNotFound, NetworkNotFound, PlayerNotFound)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DuplicatePlayerName):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
