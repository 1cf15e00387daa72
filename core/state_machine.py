"""
Game phase state machine

Every phase change of a Bank game goes through GameStateMachine.transition,
so the legal edges live in exactly one table:

    SETUP ──start──> IN_ROUND ──round ends──> ROUND_END ──next──> IN_ROUND
                         │                        │
                         └──last round ends──> GAME_END <──rounds exhausted

    reset: IN_ROUND | ROUND_END | GAME_END -> SETUP
    undo:  ROUND_END | GAME_END -> IN_ROUND
"""
import logging

from core.exceptions import InvalidStateTransition
from core.game_state import GamePhase, GameState

logger = logging.getLogger(__name__)


class GameStateMachine:
    """Central phase transition rules"""

    TRANSITIONS = {
        GamePhase.SETUP: {GamePhase.IN_ROUND},
        GamePhase.IN_ROUND: {GamePhase.ROUND_END, GamePhase.GAME_END, GamePhase.SETUP},
        GamePhase.ROUND_END: {GamePhase.IN_ROUND, GamePhase.GAME_END, GamePhase.SETUP},
        GamePhase.GAME_END: {GamePhase.IN_ROUND, GamePhase.SETUP},
    }

    @classmethod
    def can_transition(cls, current: GamePhase, target: GamePhase) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, state: GameState, target: GamePhase) -> GameState:
        """
        Move the game to a new phase

        Raises:
            InvalidStateTransition: edge not in TRANSITIONS
        """
        current = state.phase
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Cannot transition game from {current.value} to {target.value}"
            )
        state.phase = target
        logger.debug(f"Game phase {current.value} -> {target.value}")
        return state

    @staticmethod
    def require(state: GameState, *phases: GamePhase) -> None:
        """Raise InvalidStateTransition unless the game is in one of ``phases``"""
        if state.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise InvalidStateTransition(
                f"Command requires phase {allowed}, game is in {state.phase.value}"
            )
