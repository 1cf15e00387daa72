"""
Feedforward network for the logic-gate playground

A network is a list of layers, each a list of neurons with hand-set weights
and a bias. There is no training: users edit weights until the network
reproduces a gate's truth table.

Forward pass: every neuron computes relu(bias + sum(w_i * x_i)) and caches
the result as ``output``; the layer's outputs feed the next layer.

Layer i's neurons have one weight per neuron of layer i-1 (layer 0: one per
network input).
"""
import enum
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from core.exceptions import InputLengthMismatch

OUTPUT_ROLE = "output"
ON_THRESHOLD = 0.5


class WeightInit(str, enum.Enum):
    ZERO = "zero"
    RANDOM = "random"


Initializer = Callable[[], float]


def make_initializer(policy: WeightInit = WeightInit.ZERO, scale: float = 1.0,
                     rng: Optional[random.Random] = None) -> Initializer:
    """
    Weight/bias initializer for new neurons

    ZERO returns 0.0; RANDOM draws uniformly from [-scale, scale].
    """
    policy = WeightInit(policy)
    if policy is WeightInit.ZERO:
        return lambda: 0.0
    rng = rng or random.Random()
    return lambda: rng.uniform(-scale, scale)


def relu(x: float) -> float:
    return max(0.0, x)


def classify(value: float) -> int:
    """Continuous output -> bit: >= 0.5 is on"""
    return 1 if value >= ON_THRESHOLD else 0


@dataclass
class Neuron:
    weights: List[float]
    bias: float = 0.0
    output: float = 0.0

    def activate(self, inputs: Sequence[float]) -> float:
        total = self.bias
        for weight, value in zip(self.weights, inputs):
            total += weight * value
        self.output = relu(total)
        return self.output


Layer = List[Neuron]


@dataclass
class Network:
    layers: List[Layer] = field(default_factory=list)

    @property
    def input_count(self) -> int:
        if not self.layers or not self.layers[0]:
            return 0
        return len(self.layers[0][0].weights)

    @property
    def output_count(self) -> int:
        return len(self.layers[-1]) if self.layers else 0

    def forward(self, inputs: Sequence[float]) -> List[float]:
        """
        Propagate ``inputs`` through every layer

        Raises:
            InputLengthMismatch: len(inputs) != input_count
        """
        if len(inputs) != self.input_count:
            raise InputLengthMismatch(self.input_count, len(inputs))

        values = [float(v) for v in inputs]
        for layer in self.layers:
            values = [neuron.activate(values) for neuron in layer]
        return values

    def layer_role(self, index: int) -> str:
        """``hidden_<i>`` for hidden layers, ``output`` for the last one"""
        return OUTPUT_ROLE if index == len(self.layers) - 1 else f"hidden_{index}"

    def to_dict(self) -> List[List[Dict]]:
        return [
            [{"weights": list(n.weights), "bias": n.bias, "output": n.output} for n in layer]
            for layer in self.layers
        ]

    @classmethod
    def from_dict(cls, layers: Sequence[Sequence[Dict]]) -> "Network":
        return cls(layers=[
            [
                Neuron(
                    weights=[float(w) for w in n.get("weights", [])],
                    bias=float(n.get("bias", 0.0)),
                    output=float(n.get("output", 0.0)),
                )
                for n in layer
            ]
            for layer in layers
        ])


def forward(network: Network, inputs: Sequence[float]) -> List[float]:
    return network.forward(inputs)


# ============ Building with weight preservation ============

SavedLayers = Dict[str, List[Dict]]


def save_layers(network: Network, previous: Optional[SavedLayers] = None) -> SavedLayers:
    """
    Capture weights/biases per layer role

    Roles not present in ``network`` keep their previously saved values, so
    dropping the hidden layer and adding it back restores its weights.
    """
    saved: SavedLayers = {k: [dict(n) for n in v] for k, v in (previous or {}).items()}
    for index, layer in enumerate(network.layers):
        saved[network.layer_role(index)] = [
            {"weights": list(n.weights), "bias": n.bias} for n in layer
        ]
    return saved


def _input_count(saved_layer: List[Dict]) -> Optional[int]:
    if saved_layer and isinstance(saved_layer[0].get("weights"), list):
        return len(saved_layer[0]["weights"])
    return None


def _find_saved_layer(saved: SavedLayers, role: str, neuron_count: int, input_count: int) -> List[Dict]:
    """
    Best-effort match for a new layer

    1. the saved layer of the same role with the same neuron count
    2. any saved layer with the same neuron and input counts
    3. nothing
    """
    same_role = saved.get(role)
    if same_role and len(same_role) == neuron_count:
        return same_role

    for candidate in saved.values():
        if len(candidate) == neuron_count and _input_count(candidate) == input_count:
            return candidate
    return []


def _neuron_from_saved(input_count: int, saved_neuron: Optional[Dict], init: Initializer) -> Neuron:
    saved_weights = saved_neuron.get("weights") if saved_neuron else None
    weights = []
    for i in range(input_count):
        if isinstance(saved_weights, list) and i < len(saved_weights):
            weights.append(float(saved_weights[i]))
        else:
            weights.append(init())

    bias = saved_neuron.get("bias") if saved_neuron else None
    if not isinstance(bias, (int, float)) or isinstance(bias, bool):
        bias = init()
    return Neuron(weights=weights, bias=float(bias))


def build_network(
    input_count: int,
    hidden_layer_sizes: Sequence[int] = (),
    output_count: int = 1,
    *,
    initializer: Optional[Initializer] = None,
    saved_layers: Optional[SavedLayers] = None,
) -> Network:
    """
    One layer per hidden size plus the output layer

    Weights found in ``saved_layers`` for a layer of matching shape are kept;
    everything else comes from ``initializer`` (zeros by default).
    """
    init = initializer or make_initializer(WeightInit.ZERO)
    saved = saved_layers or {}
    sizes = list(hidden_layer_sizes) + [output_count]

    layers: List[Layer] = []
    upstream = input_count
    for index, size in enumerate(sizes):
        role = OUTPUT_ROLE if index == len(sizes) - 1 else f"hidden_{index}"
        matched = _find_saved_layer(saved, role, size, upstream)
        layers.append([
            _neuron_from_saved(upstream, matched[n] if n < len(matched) else None, init)
            for n in range(size)
        ])
        upstream = size

    return Network(layers=layers)
