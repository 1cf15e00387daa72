"""
Network API Endpoints - logic-gate playground

Flow:
1. Create a session for a gate (default: not)
2. Edit weights / biases / hidden neuron count and toggle inputs
3. GET /challenge runs the full truth table; once solved,
   POST /challenge/next moves on to the next gate
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import logging

from database import get_db
from models import NetworkSession
from schemas import (
    BiasEdit,
    ChallengeResponse,
    EvaluateRequest,
    EvaluationResponse,
    GateSelect,
    HiddenNeurons,
    InputValues,
    NetworkCreate,
    NetworkResponse,
    NeuronEdit,
    NeuronResponse,
    TruthTableRowResponse,
    WeightEdit,
)
from api.dependencies import get_initializer, to_http_exception
from core.exceptions import BankGameException
from core.network import Initializer
from core.network_manager import NetworkManager, load_network
from services.truth_table_service import output_labels

router = APIRouter(prefix="/api/networks", tags=["networks"])
logger = logging.getLogger(__name__)


def _network_response(session: NetworkSession) -> NetworkResponse:
    network = load_network(session)
    return NetworkResponse(
        id=session.id,
        gate=session.gate,
        hidden_neurons=session.hidden_neurons,
        input_count=network.input_count,
        output_labels=output_labels(session.gate),
        input_values=list(session.input_values or []),
        layers=[
            [NeuronResponse(weights=n.weights, bias=n.bias, output=n.output) for n in layer]
            for layer in network.layers
        ]
    )


@router.post("", response_model=NetworkResponse)
def create_network(data: NetworkCreate, db: Session = Depends(get_db),
                   initializer: Initializer = Depends(get_initializer)):
    try:
        session = NetworkManager.create_session(db, data.gate, data.hidden_neurons, initializer)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create network: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{session_id}", response_model=NetworkResponse)
def get_network(session_id: str, db: Session = Depends(get_db)):
    try:
        return _network_response(NetworkManager.get_session(db, session_id))

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get network: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Topology ============

@router.put("/{session_id}/gate", response_model=NetworkResponse)
def select_gate(session_id: str, data: GateSelect, db: Session = Depends(get_db),
                initializer: Initializer = Depends(get_initializer)):
    """Switch gate; the network is rebuilt for the new input/output shape"""
    try:
        session = NetworkManager.select_gate(db, session_id, data.gate, initializer)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to select gate: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{session_id}/hidden", response_model=NetworkResponse)
def set_hidden_neurons(session_id: str, data: HiddenNeurons, db: Session = Depends(get_db),
                       initializer: Initializer = Depends(get_initializer)):
    """
    Resize the hidden layer (0 removes it)

    Weights of layers that keep their shape survive the change.
    """
    try:
        session = NetworkManager.set_hidden_neurons(db, session_id, data.hidden_neurons, initializer)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to resize hidden layer: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{session_id}/reset", response_model=NetworkResponse)
def reset_weights(session_id: str, db: Session = Depends(get_db),
                  initializer: Initializer = Depends(get_initializer)):
    try:
        session = NetworkManager.reset_weights(db, session_id, initializer)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to reset weights: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Edits ============

@router.put("/{session_id}/weights", response_model=NetworkResponse)
def set_weight(session_id: str, data: WeightEdit, db: Session = Depends(get_db)):
    try:
        session = NetworkManager.set_weight(
            db, session_id, data.layer, data.neuron, data.weight, data.value
        )
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to set weight: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{session_id}/bias", response_model=NetworkResponse)
def set_bias(session_id: str, data: BiasEdit, db: Session = Depends(get_db)):
    try:
        session = NetworkManager.set_bias(db, session_id, data.layer, data.neuron, data.value)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to set bias: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{session_id}/neurons", response_model=NetworkResponse)
def set_neuron(session_id: str, data: NeuronEdit, db: Session = Depends(get_db)):
    try:
        session = NetworkManager.set_neuron(
            db, session_id, data.layer, data.neuron, data.weights, data.bias
        )
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to set neuron: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{session_id}/inputs", response_model=NetworkResponse)
def set_inputs(session_id: str, data: InputValues, db: Session = Depends(get_db)):
    try:
        session = NetworkManager.set_inputs(db, session_id, data.values)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to set inputs: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Evaluation ============

@router.post("/{session_id}/evaluate", response_model=EvaluationResponse)
def evaluate(session_id: str, data: Optional[EvaluateRequest] = None,
             db: Session = Depends(get_db)):
    """
    Forward pass

    Without ``inputs`` the stored input toggles are used. Returns 400 when
    the input vector does not match the gate's input count.
    """
    try:
        result = NetworkManager.evaluate(db, session_id, data.inputs if data else None)
        return EvaluationResponse.model_validate(result)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to evaluate network: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{session_id}/challenge", response_model=ChallengeResponse)
def get_challenge(session_id: str, db: Session = Depends(get_db)):
    try:
        result = NetworkManager.run_challenge(db, session_id)
        return ChallengeResponse(
            gate=result.gate.value,
            labels=result.labels,
            rows=[TruthTableRowResponse.model_validate(row) for row in result.rows],
            solved=result.solved,
            next_gate=result.next_gate.value if result.next_gate else None
        )

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to run challenge: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{session_id}/challenge/next", response_model=NetworkResponse)
def next_challenge(session_id: str, db: Session = Depends(get_db),
                   initializer: Initializer = Depends(get_initializer)):
    """Advance to the next gate; 400 until the current one is solved"""
    try:
        session = NetworkManager.advance_challenge(db, session_id, initializer)
        return _network_response(session)

    except BankGameException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to advance challenge: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
