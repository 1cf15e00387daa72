"""
Pydantic request / response schemas
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.game_state import DoublesRule, GamePhase, RoundEndReason
from models import RoomEventKind


# ============ Games ============

class PlayerAdd(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)


class PlayerOrder(BaseModel):
    order: List[int]


class TotalRounds(BaseModel):
    total_rounds: int = Field(..., gt=0)


class StartingPlayer(BaseModel):
    index: int = Field(..., ge=0)


class RollSubmit(BaseModel):
    value: int = Field(..., ge=2, le=12)


class DoublesSubmit(BaseModel):
    face_value: Optional[int] = Field(None, ge=2, le=12)


class BankSubmit(BaseModel):
    player_indices: List[int]


class PlayerViewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    name: str
    score: int
    banked: bool
    is_current: bool
    place: Optional[int]


class RankedPlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    place: int
    index: int
    name: str
    score: int


class GameStateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phase: GamePhase
    players: List[PlayerViewResponse]
    total_rounds: int
    current_round: int
    game_started: bool
    starting_player_index: int
    roll_count: int
    bank_total: int
    current_player_index: int
    current_player: Optional[int]
    players_who_can_roll: List[int]
    players_who_banked: List[int]
    can_undo: bool
    seven_ends_round: bool
    doubles_enabled: bool
    plain_extremes_enabled: bool
    doubles_rule: DoublesRule
    last_round_end_reason: Optional[RoundEndReason]
    standings: List[RankedPlayerResponse]
    winners: List[str]
    is_tie: bool


# ============ Rooms ============

class RoomResponse(BaseModel):
    code: str
    state_version: int


class RoomJoin(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)


class ParticipantResponse(BaseModel):
    participant_id: str
    room_code: str
    name: str


class ParticipantRef(BaseModel):
    participant_id: str


class RoomRollSubmit(BaseModel):
    participant_id: str
    value: Optional[int] = Field(None, ge=2, le=12)
    is_doubles: bool = False


class RoomEventResponse(BaseModel):
    event_id: int
    kind: RoomEventKind
    applied: int


class RoomStateResponse(BaseModel):
    code: str
    state_version: int
    state: Dict[str, Any]
    connected_players: int


class DispatchResponse(BaseModel):
    applied: int


# ============ Networks ============

class NetworkCreate(BaseModel):
    gate: str = "not"
    hidden_neurons: int = Field(0, ge=0, le=5)


class GateSelect(BaseModel):
    gate: str


class HiddenNeurons(BaseModel):
    hidden_neurons: int = Field(..., ge=0, le=5)


class WeightEdit(BaseModel):
    layer: int = Field(..., ge=0)
    neuron: int = Field(..., ge=0)
    weight: int = Field(..., ge=0)
    value: float


class BiasEdit(BaseModel):
    layer: int = Field(..., ge=0)
    neuron: int = Field(..., ge=0)
    value: float


class NeuronEdit(BaseModel):
    layer: int = Field(..., ge=0)
    neuron: int = Field(..., ge=0)
    weights: List[float]
    bias: float


class InputValues(BaseModel):
    values: List[int]


class EvaluateRequest(BaseModel):
    inputs: Optional[List[float]] = None


class NeuronResponse(BaseModel):
    weights: List[float]
    bias: float
    output: float


class NetworkResponse(BaseModel):
    id: str
    gate: str
    hidden_neurons: int
    input_count: int
    output_labels: List[str]
    input_values: List[int]
    layers: List[List[NeuronResponse]]


class EvaluationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inputs: List[float]
    outputs: List[float]
    bits: List[int]
    expected: Optional[List[int]]


class TruthTableRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inputs: List[int]
    outputs: List[float]
    bits: List[int]
    expected: List[int]
    correct: bool


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gate: str
    labels: List[str]
    rows: List[TruthTableRowResponse]
    solved: bool
    next_gate: Optional[str]
