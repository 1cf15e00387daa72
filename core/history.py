"""
Undo history for the round engine

A bounded LIFO of frozen RoundSnapshot records. Snapshots are built from
copies of the live lists at push time, so later mutation of the round can
never leak into history. When the buffer is full the oldest snapshot is
dropped silently.
"""
from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from core.game_state import Player

DEFAULT_CAPACITY = 50


@dataclass(frozen=True)
class RoundSnapshot:
    roll_count: int
    bank_total: int
    current_player_index: int
    players_who_can_roll: Tuple[int, ...]
    players_who_banked: Tuple[int, ...]
    players: Tuple["Player", ...]
    last_round_end_player_index: int


class UndoHistory:
    """Ring buffer of RoundSnapshot, newest last"""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, snapshots: Iterable[RoundSnapshot] = ()):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._items = deque(snapshots, maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen

    def push(self, snapshot: RoundSnapshot) -> None:
        self._items.append(snapshot)

    def pop(self) -> Optional[RoundSnapshot]:
        if not self._items:
            return None
        return self._items.pop()

    def clear(self) -> None:
        self._items.clear()

    def to_list(self) -> List[RoundSnapshot]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
