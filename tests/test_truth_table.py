"""Gate truth tables and challenge checks."""

import pytest

from core.exceptions import UnknownGate
from core.network import Network, Neuron, build_network
from services.truth_table_service import (
    Gate,
    evaluate_truth_table,
    expected_output_for,
    get_truth_table,
    is_solved,
    next_challenge,
    output_labels,
    to_gate,
)


def test_full_adder_rows() -> None:
    assert expected_output_for(Gate.FULL_ADDER, (1, 1, 1)) == (1, 1)
    assert expected_output_for(Gate.FULL_ADDER, (0, 1, 0)) == (1, 0)
    assert expected_output_for(Gate.FULL_ADDER, (1, 1, 0)) == (0, 1)
    assert output_labels(Gate.FULL_ADDER) == ["SUM", "CARRY"]


def test_tables_enumerate_every_combination_in_order() -> None:
    rows = get_truth_table("xor")
    assert [r.inputs for r in rows] == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert [r.expected for r in rows] == [(0,), (1,), (1,), (0,)]
    assert len(get_truth_table(Gate.FULL_ADDER)) == 8
    assert [r.expected for r in get_truth_table(Gate.NOT)] == [(1,), (0,)]


def test_and_gate_is_solved_by_single_neuron() -> None:
    network = Network(layers=[[Neuron(weights=[1.0, 1.0], bias=-1.5)]])
    assert is_solved(evaluate_truth_table(network, Gate.AND))
    assert not is_solved(evaluate_truth_table(network, Gate.OR))


def test_zero_network_fails_not_gate() -> None:
    rows = evaluate_truth_table(build_network(1), Gate.NOT)
    assert [r.correct for r in rows] == [False, True]
    assert not is_solved(rows)


def test_challenge_progression() -> None:
    assert next_challenge(Gate.NOT) is Gate.OR
    assert next_challenge(Gate.AND) is Gate.XOR
    assert next_challenge(Gate.XOR) is None
    assert next_challenge(Gate.FULL_ADDER) is None


def test_unknown_gate() -> None:
    with pytest.raises(UnknownGate):
        to_gate("nand")
