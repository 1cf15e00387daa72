"""
Network Manager: logic-gate playground sessions

Responsibilities:
1. Create a session for a gate (input/output counts follow the gate)
2. Topology changes (hidden neuron count) that keep hand-set weights
3. Weight / bias / input edits
4. Challenge evaluation and progression

Each session is one network_sessions row; the network itself is stored as
JSON and rebuilt into core.network objects for every operation.
"""
import math
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from models import NetworkSession
from core.locks import with_network_lock
from core.exceptions import (
    InputLengthMismatch,
    InvalidNetworkEdit,
    InvalidStateTransition,
    NetworkNotFound,
)
from core.network import (
    Initializer,
    Network,
    build_network,
    classify,
    make_initializer,
    save_layers,
)
from services.truth_table_service import (
    Gate,
    RowResult,
    evaluate_truth_table,
    expected_output_for,
    input_count,
    is_solved,
    next_challenge,
    output_count,
    output_labels,
    to_gate,
)
from database import transactional

logger = logging.getLogger(__name__)

# The playground offers a single hidden layer of 0..5 neurons
MAX_HIDDEN_NEURONS = 5


@dataclass(frozen=True)
class Evaluation:
    inputs: List[float]
    outputs: List[float]
    bits: List[int]
    expected: Optional[List[int]]


@dataclass(frozen=True)
class ChallengeResult:
    gate: Gate
    labels: List[str]
    rows: List[RowResult]
    solved: bool
    next_gate: Optional[Gate]


def _hidden_sizes(hidden_neurons: int) -> List[int]:
    return [hidden_neurons] if hidden_neurons > 0 else []


def _check_value(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidNetworkEdit(f"Weight/bias must be a finite number, got {value!r}")
    return float(value)


def load_network(session: NetworkSession) -> Network:
    return Network.from_dict(session.layers or [])


def _store(session: NetworkSession, network: Network) -> None:
    session.layers = network.to_dict()


def _rebuild(session: NetworkSession, initializer: Optional[Initializer], saved_layers) -> Network:
    gate = to_gate(session.gate)
    network = build_network(
        input_count(gate),
        _hidden_sizes(session.hidden_neurons),
        output_count(gate),
        initializer=initializer or make_initializer(),
        saved_layers=saved_layers,
    )
    _store(session, network)
    return network


def _neuron(network: Network, layer_index: int, neuron_index: int):
    if not 0 <= layer_index < len(network.layers):
        raise InvalidNetworkEdit(f"Layer {layer_index} does not exist")
    layer = network.layers[layer_index]
    if not 0 <= neuron_index < len(layer):
        raise InvalidNetworkEdit(f"Neuron {neuron_index} does not exist in layer {layer_index}")
    return layer[neuron_index]


class NetworkManager:
    """Playground session manager"""

    @staticmethod
    @transactional
    def create_session(
        db: Session,
        gate: str = Gate.NOT.value,
        hidden_neurons: int = 0,
        initializer: Optional[Initializer] = None,
    ) -> NetworkSession:
        gate = to_gate(gate)
        if not 0 <= hidden_neurons <= MAX_HIDDEN_NEURONS:
            raise InvalidNetworkEdit(f"Hidden neurons must be 0..{MAX_HIDDEN_NEURONS}, got {hidden_neurons}")

        session = NetworkSession(
            id=str(uuid.uuid4()),
            gate=gate.value,
            hidden_neurons=hidden_neurons,
            saved_layers={},
            input_values=[0] * input_count(gate),
        )
        _rebuild(session, initializer, None)
        db.add(session)

        logger.info(f"Created network {session.id} for {gate.value} with {hidden_neurons} hidden neurons")
        return session

    @staticmethod
    def get_session(db: Session, session_id: str) -> NetworkSession:
        """
        Raises:
            NetworkNotFound: no such session
        """
        session = db.query(NetworkSession).filter(NetworkSession.id == session_id).first()
        if not session:
            raise NetworkNotFound(session_id)
        return session

    @staticmethod
    def _locked(db: Session, session_id: str) -> NetworkSession:
        session = with_network_lock(session_id, db).first()
        if not session:
            raise NetworkNotFound(session_id)
        return session

    # ============ Topology ============

    @staticmethod
    @transactional
    def select_gate(db: Session, session_id: str, gate: str,
                    initializer: Optional[Initializer] = None) -> NetworkSession:
        """Switch challenge: new shape, saved weights discarded"""
        gate = to_gate(gate)
        session = NetworkManager._locked(db, session_id)

        session.gate = gate.value
        session.saved_layers = {}
        session.input_values = [0] * input_count(gate)
        _rebuild(session, initializer, None)

        logger.info(f"Network {session_id} switched to {gate.value}")
        return session

    @staticmethod
    @transactional
    def set_hidden_neurons(db: Session, session_id: str, hidden_neurons: int,
                           initializer: Optional[Initializer] = None) -> NetworkSession:
        """Resize the hidden layer, keeping weights of layers whose shape survives"""
        if not 0 <= hidden_neurons <= MAX_HIDDEN_NEURONS:
            raise InvalidNetworkEdit(f"Hidden neurons must be 0..{MAX_HIDDEN_NEURONS}, got {hidden_neurons}")

        session = NetworkManager._locked(db, session_id)
        saved = save_layers(load_network(session), session.saved_layers)

        session.hidden_neurons = hidden_neurons
        session.saved_layers = saved
        _rebuild(session, initializer, saved)

        logger.info(f"Network {session_id} now has {hidden_neurons} hidden neurons")
        return session

    @staticmethod
    @transactional
    def reset_weights(db: Session, session_id: str,
                      initializer: Optional[Initializer] = None) -> NetworkSession:
        session = NetworkManager._locked(db, session_id)
        session.saved_layers = {}
        _rebuild(session, initializer, None)
        return session

    # ============ Edits ============

    @staticmethod
    @transactional
    def set_weight(db: Session, session_id: str, layer_index: int, neuron_index: int,
                   weight_index: int, value: float) -> NetworkSession:
        value = _check_value(value)
        session = NetworkManager._locked(db, session_id)
        network = load_network(session)

        neuron = _neuron(network, layer_index, neuron_index)
        if not 0 <= weight_index < len(neuron.weights):
            raise InvalidNetworkEdit(f"Weight {weight_index} does not exist on neuron {neuron_index}")
        neuron.weights[weight_index] = value

        _store(session, network)
        return session

    @staticmethod
    @transactional
    def set_bias(db: Session, session_id: str, layer_index: int, neuron_index: int,
                 value: float) -> NetworkSession:
        value = _check_value(value)
        session = NetworkManager._locked(db, session_id)
        network = load_network(session)

        _neuron(network, layer_index, neuron_index).bias = value

        _store(session, network)
        return session

    @staticmethod
    @transactional
    def set_neuron(db: Session, session_id: str, layer_index: int, neuron_index: int,
                   weights: Sequence[float], bias: float) -> NetworkSession:
        """Replace all weights and the bias of one neuron at once"""
        bias = _check_value(bias)
        values = [_check_value(w) for w in weights]
        session = NetworkManager._locked(db, session_id)
        network = load_network(session)

        neuron = _neuron(network, layer_index, neuron_index)
        if len(values) != len(neuron.weights):
            raise InvalidNetworkEdit(
                f"Neuron {neuron_index} has {len(neuron.weights)} weights, got {len(values)}"
            )
        neuron.weights = values
        neuron.bias = bias

        _store(session, network)
        return session

    @staticmethod
    @transactional
    def set_inputs(db: Session, session_id: str, values: Sequence[int]) -> NetworkSession:
        """Set the playground input toggles (each 0 or 1)"""
        session = NetworkManager._locked(db, session_id)
        expected = input_count(session.gate)
        if len(values) != expected:
            raise InputLengthMismatch(expected, len(values))

        session.input_values = [1 if v else 0 for v in values]
        return session

    # ============ Evaluation ============

    @staticmethod
    @transactional
    def evaluate(db: Session, session_id: str,
                 inputs: Optional[Sequence[float]] = None) -> Evaluation:
        """
        Forward pass for custom inputs (default: the stored toggles)

        Neuron outputs are cached on the stored network. Expected bits are
        included when the inputs are a valid 0/1 vector for the gate.
        """
        session = NetworkManager._locked(db, session_id)
        network = load_network(session)
        values = list(session.input_values if inputs is None else inputs)

        outputs = network.forward(values)
        _store(session, network)

        expected = None
        if all(v in (0, 1) for v in values):
            expected = list(expected_output_for(session.gate, values))

        return Evaluation(
            inputs=[float(v) for v in values],
            outputs=outputs,
            bits=[classify(v) for v in outputs],
            expected=expected,
        )

    @staticmethod
    def run_challenge(db: Session, session_id: str) -> ChallengeResult:
        session = NetworkManager.get_session(db, session_id)
        gate = to_gate(session.gate)

        rows = evaluate_truth_table(load_network(session), gate)
        solved = is_solved(rows)
        return ChallengeResult(
            gate=gate,
            labels=output_labels(gate),
            rows=rows,
            solved=solved,
            next_gate=next_challenge(gate) if solved else None,
        )

    @staticmethod
    def advance_challenge(db: Session, session_id: str,
                          initializer: Optional[Initializer] = None) -> NetworkSession:
        """
        Move a solved session to the next gate of the progression

        Raises:
            InvalidStateTransition: not solved yet, or already on the last challenge
        """
        result = NetworkManager.run_challenge(db, session_id)
        if not result.solved:
            raise InvalidStateTransition(f"Challenge {result.gate.value} is not solved yet")
        if result.next_gate is None:
            raise InvalidStateTransition(f"No challenge after {result.gate.value}")

        logger.info(f"Network {session_id} solved {result.gate.value}, moving to {result.next_gate.value}")
        return NetworkManager.select_gate(db, session_id, result.next_gate.value, initializer)
