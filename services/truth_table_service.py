"""
Truth table service: gates, expected outputs and challenge checks

Gate shapes:
- not:        1 input,  1 output
- or/and/xor: 2 inputs, 1 output
- full-adder: 3 inputs (A, B, Cin), 2 outputs (SUM, CARRY)
"""
import enum
import itertools
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from core.exceptions import UnknownGate
from core.network import Network, classify


class Gate(str, enum.Enum):
    NOT = "not"
    OR = "or"
    AND = "and"
    XOR = "xor"
    FULL_ADDER = "full-adder"


# Challenge progression; full-adder is a free-play gate
CHALLENGES = (Gate.NOT, Gate.OR, Gate.AND, Gate.XOR)

INPUT_COUNTS = {
    Gate.NOT: 1,
    Gate.OR: 2,
    Gate.AND: 2,
    Gate.XOR: 2,
    Gate.FULL_ADDER: 3,
}


@dataclass(frozen=True)
class TruthTableRow:
    inputs: Tuple[int, ...]
    expected: Tuple[int, ...]


@dataclass(frozen=True)
class RowResult:
    inputs: Tuple[int, ...]
    outputs: Tuple[float, ...]
    bits: Tuple[int, ...]
    expected: Tuple[int, ...]
    correct: bool


def to_gate(gate) -> Gate:
    try:
        return Gate(gate)
    except ValueError:
        raise UnknownGate(gate)


def input_count(gate) -> int:
    return INPUT_COUNTS[to_gate(gate)]


def output_count(gate) -> int:
    return 2 if to_gate(gate) is Gate.FULL_ADDER else 1


def output_labels(gate) -> List[str]:
    gate = to_gate(gate)
    if gate is Gate.FULL_ADDER:
        return ["SUM", "CARRY"]
    return [gate.value.upper()]


def expected_output_for(gate, inputs: Sequence[int]) -> Tuple[int, ...]:
    """
    Expected bits for one input vector

    Inputs are read as booleans (any truthy value is 1).
    """
    gate = to_gate(gate)
    bits = [1 if v else 0 for v in inputs]
    if len(bits) != INPUT_COUNTS[gate]:
        raise ValueError(f"{gate.value} takes {INPUT_COUNTS[gate]} inputs, got {len(bits)}")

    if gate is Gate.NOT:
        return (1 - bits[0],)
    if gate is Gate.OR:
        return (bits[0] | bits[1],)
    if gate is Gate.AND:
        return (bits[0] & bits[1],)
    if gate is Gate.XOR:
        return (bits[0] ^ bits[1],)

    total = sum(bits)
    return (total % 2, 1 if total >= 2 else 0)


def get_truth_table(gate) -> List[TruthTableRow]:
    """Every input combination in binary counting order"""
    gate = to_gate(gate)
    return [
        TruthTableRow(inputs=combo, expected=expected_output_for(gate, combo))
        for combo in itertools.product((0, 1), repeat=INPUT_COUNTS[gate])
    ]


def evaluate_truth_table(network: Network, gate) -> List[RowResult]:
    """Run every row through the network and compare classified bits"""
    results = []
    for row in get_truth_table(gate):
        outputs = tuple(network.forward(row.inputs))
        bits = tuple(classify(v) for v in outputs)
        results.append(RowResult(
            inputs=row.inputs,
            outputs=outputs,
            bits=bits,
            expected=row.expected,
            correct=bits == row.expected,
        ))
    return results


def is_solved(results: Sequence[RowResult]) -> bool:
    return bool(results) and all(r.correct for r in results)


def next_challenge(gate) -> Optional[Gate]:
    """Gate after ``gate`` in the progression, None at the end or off-track"""
    gate = to_gate(gate)
    if gate not in CHALLENGES:
        return None
    position = CHALLENGES.index(gate)
    return CHALLENGES[position + 1] if position + 1 < len(CHALLENGES) else None
