"""
Routed Network Module

This module implements a multilayered feedforward network whose connectivity
between consecutive layers is given by an explicit routing graph rather than
a dense layer-to-layer map.

Classes:
    WeightPolicy: How missing weights are filled in when the topology changes
    WeightState:  Whether the weights are consistent with the current topology
    Network:      The routed feedforward network
"""

import logging
from enum   import Enum, IntEnum
from typing import Optional, Sequence, TYPE_CHECKING

import graphviz  # type: ignore
import numpy as np

from evoroute.activations         import ActivationFunction, activations
from evoroute.errors              import ConfigurationError, StructuralMismatch
from evoroute.genotype.chromosome import to_values, to_words
from evoroute.phenotype.layer     import Layer, RoutingGraph
from evoroute.phenotype.unit      import Unit

if TYPE_CHECKING:
    from evoroute.run.config import Config

class WeightPolicy(IntEnum):
    """
    How weights are created when a unit's fan-in grows.

    The integer values are part of the persisted network format.
    """
    NONE   = 0   # no reconciliation, mismatches surface as evaluation failures
    RANDOM = 1   # uniform draw from the configured integer range, in steps of 0.001
    FIXED  = 2   # a single user supplied constant

class WeightState(Enum):
    UNINITIALIZED = 0   # weights have never been reconciled
    DIRTY         = 1   # topology or routing changed since the last reconciliation
    READY         = 2   # every unit has exactly one weight per routed input

class Network:
    """
    A feedforward neural network with per-unit configurable routing.

    Layer 0 is the input layer, the last layer is the output layer, and any
    layers in between are hidden. The input layer only passes values through
    (its units have a single weight pinned to 1 and an Identity activation);
    it exists so that routing out of the inputs works like routing out of any
    other layer. Input and output are never wired directly: evaluation needs
    at least one hidden layer.

    Each layer's RoutingGraph says which units of the next layer receive each
    unit's output. By default every unit feeds every unit of the next layer;
    the output layer's own routing is fixed to "unit i -> output slot i".

    Weights are valid lazily. Adding or removing layers and changing routes
    only marks the weights dirty. The next evaluation (or an explicit
    'force_weight_update') resizes each unit's weight vector to its actual
    fan-in according to the weight policy, keeping as many existing weights
    as possible.

    Chromosome layout: for every non-input layer, for every unit, its weights
    in input order followed by its bias, each float64 reinterpreted as a
    uint64 word.

    Public Properties:
        num_inputs, num_outputs, layer_size: Fixed construction parameters
        hidden_layer_quantity:               Number of hidden layers
        neuron_quantity:                     Total number of units
        layer_sizes:                         Units per layer, input to output
        weight_policy, weight_state:         Lazy weight reconciliation state
        learning_rate, momentum:             Backpropagation hyperparameters

    Public Methods:
        structure:   add_hidden_layer, add_hidden_layers, remove_layer, set_route,
                     get_route, copy_layout, get_unit
        weights:     random_weights, set_weights, disable_special_weights,
                     set_layer_weights, set_biases, set_layer_biases,
                     force_weight_update, check_initialized
        activations: set_activations, set_layer_activations
        running:     set_inputs, get_outputs, evaluate, propagate_error
        genome:      get_chromosome_size, get_chromosome, set_chromosome
        files:       save_to_file, read_from_file
        inspection:  visualize
    """

    def __init__(self, num_inputs: int, num_outputs: int, layer_size: int,
                 learning_rate: float = 0.01, momentum: float = 0.5,
                 rng: Optional[np.random.Generator] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Create a network with an input and an output layer and no hidden layers.

        Parameters:
            num_inputs:    number of input units
            num_outputs:   number of output units
            layer_size:    default number of units in a hidden layer
            learning_rate: backpropagation step size
            momentum:      backpropagation momentum
            rng:           random generator for the 'random' weight policy
            logger:        logger for diagnostics (defaults to the module logger)
        """
        if num_inputs < 1 or num_outputs < 1 or layer_size < 1:
            raise ValueError(f"Layer sizes must be positive, got inputs={num_inputs}, "
                             f"outputs={num_outputs}, layer_size={layer_size}")

        self._num_inputs   : int = num_inputs
        self._num_outputs  : int = num_outputs
        self._layer_size   : int = layer_size
        self._learning_rate: float = learning_rate
        self._momentum     : float = momentum
        self._rng          : np.random.Generator = rng if rng is not None else np.random.default_rng()
        self._log          : logging.Logger = logger or logging.getLogger(__name__)

        # weight reconciliation policy
        self._policy     : WeightPolicy = WeightPolicy.NONE
        self._lower      : int          = 0
        self._upper      : int          = 0
        self._user_weight: float        = 0.0
        self._state      : WeightState  = WeightState.UNINITIALIZED

        # the last vector passed to 'set_inputs'
        self._inputs: Optional[list[float]] = None

        self._layers: list[Layer] = []
        self._build_io_layers()

    def _build_io_layers(self):
        input_layer  = Layer(self._num_inputs)
        output_layer = Layer(self._num_outputs)
        for unit in input_layer:
            unit.set_weights([1.0])

        # the input is routed to the outputs until a hidden layer is inserted
        input_layer.routing.connect_fully(self._num_inputs, self._num_outputs)
        output_layer.routing.connect_identity(self._num_outputs)
        self._layers = [input_layer, output_layer]

    @classmethod
    def from_config(cls, config: 'Config', rng: Optional[np.random.Generator] = None) -> 'Network':
        """
        Build a network described by a Config.

        Parameters:
            config: Stores configuration parameters
            rng:    random generator for the 'random' weight policy

        Returns:
            a network with 'num_hidden_layers' hidden layers of 'layer_size' units,
            biases, activations and weight policy applied
        """
        network = cls(config.num_inputs, config.num_outputs, config.layer_size,
                      config.learning_rate, config.momentum, rng=rng)
        network.add_hidden_layers(config.num_hidden_layers)

        if config.weight_policy == "random":
            network.random_weights(config.random_lower, config.random_upper)
        elif config.weight_policy == "fixed":
            network.set_weights(config.fixed_weight)
        elif config.weight_policy != "none":
            raise ValueError(f"Unknown weight policy '{config.weight_policy}'")

        network.set_biases(config.initial_bias)
        network.set_activations(activations[config.activation]())
        if config.output_activation is not None:
            network.set_layer_activations(len(network._layers) - 1, activations[config.output_activation]())
        return network

    @classmethod
    def _from_parts(cls, num_inputs: int, num_outputs: int, layer_size: int,
                    hidden_sizes: Sequence[int], routing_graphs: Sequence[RoutingGraph],
                    policy: WeightPolicy, lower: int, upper: int, user_weight: float) -> 'Network':
        """
        Rebuild a network from its decoded parts, without weights.

        'routing_graphs' holds one graph per layer, input layer first, and
        replaces the routing built by 'add_hidden_layer'. The weight policy
        settings are restored as stored, whichever policy is active.

        Raises:
            ValueError: if a size is not positive or the number of graphs does not match the layers
        """
        network = cls(num_inputs, num_outputs, layer_size)
        for size in hidden_sizes:
            network.add_hidden_layer(int(size))

        if len(routing_graphs) != len(network._layers):
            raise ValueError(f"Expected {len(network._layers)} routing graphs, got {len(routing_graphs)}")
        for layer, graph in zip(network._layers, routing_graphs):
            layer.routing = graph.copy()

        network._policy      = WeightPolicy(policy)
        network._lower       = int(lower)
        network._upper       = int(upper)
        network._user_weight = float(user_weight)
        return network

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def num_inputs(self) -> int:
        return self._num_inputs

    @property
    def num_outputs(self) -> int:
        return self._num_outputs

    @property
    def layer_size(self) -> int:
        """Default number of units in a new hidden layer."""
        return self._layer_size

    @property
    def hidden_layer_quantity(self) -> int:
        return len(self._layers) - 2

    @property
    def neuron_quantity(self) -> int:
        return sum(len(layer) for layer in self._layers)

    @property
    def layer_sizes(self) -> list[int]:
        return [len(layer) for layer in self._layers]

    @property
    def routing_graphs(self) -> list[RoutingGraph]:
        """Copies of every layer's routing graph, input layer first."""
        return [layer.routing.copy() for layer in self._layers]

    @property
    def weight_policy(self) -> WeightPolicy:
        return self._policy

    @property
    def weight_state(self) -> WeightState:
        return self._state

    @property
    def random_range(self) -> tuple[int, int]:
        return self._lower, self._upper

    @property
    def user_weight(self) -> float:
        return self._user_weight

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    @learning_rate.setter
    def learning_rate(self, rate: float):
        self._learning_rate = rate

    @property
    def momentum(self) -> float:
        return self._momentum

    @momentum.setter
    def momentum(self, momentum: float):
        self._momentum = momentum

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def _invalidate(self):
        if self._state == WeightState.READY:
            self._state = WeightState.DIRTY

    def add_hidden_layer(self, size: Optional[int] = None, position: Optional[int] = None) -> bool:
        """
        Insert a hidden layer.

        The new layer routes to every unit of the layer that follows it. The
        layer in front of it is re-routed to the new layer only if it still
        uses default routing.

        Parameters:
            size:     number of units (defaults to 'layer_size')
            position: index the new layer will occupy, between 1 and the
                      index of the output layer (defaults to just before the output layer)

        Returns:
            False if the position is not between the input and output layers
        """
        size = self._layer_size if size is None else size
        position = len(self._layers) - 1 if position is None else position
        if size < 1:
            raise ValueError(f"Hidden layer size must be positive, got {size}")
        if not 1 <= position <= len(self._layers) - 1:
            self._log.warning("Cannot insert a hidden layer at index %d.", position)
            return False

        layer       = Layer(size)
        successor   = self._layers[position]
        predecessor = self._layers[position - 1]
        layer.routing.connect_fully(size, len(successor))
        self._layers.insert(position, layer)

        if predecessor.default_routing:
            predecessor.routing.connect_fully(len(predecessor), size)

        self._invalidate()
        return True

    def add_hidden_layers(self, count: int) -> None:
        for _ in range(count):
            self.add_hidden_layer()

    def remove_layer(self, index: int) -> bool:
        """
        Remove the hidden layer at 'index'.

        Returns:
            False if 'index' does not refer to a hidden layer
        """
        if not 1 <= index < len(self._layers) - 1:
            self._log.warning("Cannot remove layer at index %d.", index)
            return False

        del self._layers[index]
        predecessor = self._layers[index - 1]
        if predecessor.default_routing:
            predecessor.routing.connect_fully(len(predecessor), len(self._layers[index]))

        self._invalidate()
        return True

    def get_unit(self, layer_i: int, unit_i: int) -> Optional[Unit]:
        """
        Return the unit at ('layer_i', 'unit_i'), or None for a bad index.
        Input units cannot be retrieved, since they only pass values through.
        """
        if not 1 <= layer_i < len(self._layers):
            return None
        layer = self._layers[layer_i]
        if not 0 <= unit_i < len(layer):
            return None
        return layer.units[unit_i]

    def get_route(self, layer_i: int, unit_i: int) -> Optional[list[int]]:
        if not 0 <= layer_i < len(self._layers) or not 0 <= unit_i < len(self._layers[layer_i]):
            return None
        return self._layers[layer_i].routing.destinations(unit_i)

    def set_route(self, layer_i: int, unit_i: int, destinations: Sequence[int]) -> bool:
        """
        Make unit 'unit_i' of layer 'layer_i' feed exactly 'destinations' in the next layer.

        The layer stops using default routing, so later structural changes
        do not overwrite its routes.

        Returns:
            False if an index is invalid, the layer is the output layer, or
            a destination lies outside the next layer
        """
        if not 0 <= layer_i < len(self._layers) - 1:
            self._log.warning("Cannot route out of layer %d.", layer_i)
            return False
        layer = self._layers[layer_i]
        if not 0 <= unit_i < len(layer):
            self._log.warning("Layer %d has no unit %d.", layer_i, unit_i)
            return False
        next_size = len(self._layers[layer_i + 1])
        if any(not 0 <= dest < next_size for dest in destinations):
            self._log.warning("Route %s leaves the %d units of layer %d.", list(destinations), next_size, layer_i + 1)
            return False

        layer.routing.set_route(unit_i, destinations)
        self._invalidate()
        return True

    def copy_layout(self, source: 'Network') -> bool:
        """
        Give this network the architecture of 'source'.

        Layer sizes, routing and activation functions are copied; weights
        and biases are not (units start without weights).

        Returns:
            False if the input count, output count or default layer size differ
        """
        if (source._num_inputs != self._num_inputs or
            source._num_outputs != self._num_outputs or
            source._layer_size != self._layer_size):
            return False

        layers = []
        for layer_i, source_layer in enumerate(source._layers):
            layer = Layer(len(source_layer))
            for unit, source_unit in zip(layer.units, source_layer.units):
                unit.activation = source_unit.activation
                if layer_i == 0:
                    unit.set_weights([1.0])
            layer.routing = source_layer.routing.copy()
            layers.append(layer)

        self._layers = layers
        self._state  = WeightState.UNINITIALIZED
        return True

    # ------------------------------------------------------------------
    # Weights, biases, activations
    # ------------------------------------------------------------------

    def random_weights(self, lower: int, upper: int) -> None:
        """
        Fill new weights with uniform draws from [lower, upper], in steps of 0.001.
        Existing weights are kept.
        """
        if lower > upper:
            raise ValueError(f"Empty weight range [{lower}, {upper}]")
        self._policy = WeightPolicy.RANDOM
        self._lower  = int(lower)
        self._upper  = int(upper)

    def set_weights(self, value: float) -> None:
        """
        Fill new weights with 'value'. Existing weights are kept.
        """
        self._policy      = WeightPolicy.FIXED
        self._user_weight = float(value)

    def disable_special_weights(self) -> None:
        """Stop creating weights automatically."""
        self._policy = WeightPolicy.NONE

    def set_layer_weights(self, layer_i: int, values: Sequence[float]) -> bool:
        """
        Give every unit of layer 'layer_i' the weight vector 'values'.

        Returns:
            False for the input layer or a bad index
        """
        if not 1 <= layer_i < len(self._layers):
            self._log.warning("Cannot set weights of layer %d.", layer_i)
            return False
        for unit in self._layers[layer_i]:
            unit.set_weights(values)
        self._invalidate()
        return True

    def set_biases(self, bias: float) -> None:
        for layer_i in range(1, len(self._layers)):
            self.set_layer_biases(layer_i, bias)

    def set_layer_biases(self, layer_i: int, bias: float) -> bool:
        if not 1 <= layer_i < len(self._layers):
            self._log.warning("Cannot set biases of layer %d.", layer_i)
            return False
        for unit in self._layers[layer_i]:
            unit.bias = bias
        return True

    def set_activations(self, activation: Optional[ActivationFunction]) -> None:
        """Use 'activation' for every unit outside the input layer."""
        for layer_i in range(1, len(self._layers)):
            self.set_layer_activations(layer_i, activation)

    def set_layer_activations(self, layer_i: int, activation: Optional[ActivationFunction]) -> bool:
        if not 1 <= layer_i < len(self._layers):
            self._log.warning("Cannot set activations of layer %d.", layer_i)
            return False
        for unit in self._layers[layer_i]:
            unit.activation = activation
        return True

    def _new_weight(self) -> float:
        if self._policy == WeightPolicy.RANDOM:
            return self._rng.integers(self._lower * 1000, self._upper * 1000, endpoint=True) / 1000
        return self._user_weight

    def _fan_ins(self, layer_i: int) -> list[int]:
        """Number of inputs each unit of layer 'layer_i' receives."""
        if layer_i == 0:
            return [1] * len(self._layers[0])
        return self._layers[layer_i - 1].routing.fan_ins(len(self._layers[layer_i]))

    def _reconcile(self, layer_i: int, unit: Unit, fan_in: int) -> None:
        """Resize the weight vector of 'unit' to 'fan_in', as the weight policy allows."""
        if unit.num_weights == fan_in:
            return
        if layer_i == 0:
            unit.set_weights([1.0] * fan_in)
            return
        if self._policy == WeightPolicy.NONE:
            return

        weights = unit.weights[:fan_in]
        while len(weights) < fan_in:
            weights.append(self._new_weight())
        unit.set_weights(weights)

    def _weights_match_topology(self) -> bool:
        for layer_i, layer in enumerate(self._layers):
            for unit, fan_in in zip(layer.units, self._fan_ins(layer_i)):
                if unit.num_weights != fan_in:
                    return False
        return True

    def force_weight_update(self) -> bool:
        """
        Reconcile every unit's weights against its current fan-in, without evaluating.

        Returns:
            True if the weights now match the topology
        """
        if not self.hidden_layer_quantity:
            return False

        for layer_i, layer in enumerate(self._layers):
            for unit, fan_in in zip(layer.units, self._fan_ins(layer_i)):
                self._reconcile(layer_i, unit, fan_in)

        if self._weights_match_topology():
            self._state = WeightState.READY
            return True
        self._log.debug("force_weight_update(): weights do not match the routing.")
        return False

    def check_initialized(self) -> bool:
        """
        Make sure the weights are consistent with the topology.

        Returns:
            True if every unit has one weight per routed input
        """
        if self._state == WeightState.READY:
            return True
        self._log.debug("check_initialized(): forcing weight update.")
        return self.force_weight_update()

    # ------------------------------------------------------------------
    # Forward evaluation
    # ------------------------------------------------------------------

    def set_inputs(self, values: Sequence[float]) -> None:
        """
        Store the values the input units receive on the next evaluation.

        Raises:
            StructuralMismatch: if 'values' does not have one entry per input
        """
        if len(values) != self._num_inputs:
            raise StructuralMismatch(f"Expected {self._num_inputs} inputs, got {len(values)}")
        self._inputs = [float(v) for v in values]

    def get_outputs(self) -> list[float]:
        """
        Run the stored inputs through the network.

        Returns:
            one value per output unit

        Raises:
            ConfigurationError: if no inputs were set, or a unit has no activation
            StructuralMismatch: if there are no hidden layers or a unit's weight
                                count differs from its fan-in
        """
        if self._inputs is None:
            raise ConfigurationError("set_inputs() must be called before get_outputs()")
        return self._forward(self._inputs)

    def evaluate(self, values: Sequence[float]) -> list[float]:
        """Set the inputs and compute the outputs."""
        self.set_inputs(values)
        return self.get_outputs()

    def _forward(self, values: list[float]) -> list[float]:
        if not self.hidden_layer_quantity:
            raise StructuralMismatch("A network needs at least one hidden layer to be evaluated")

        # destination unit index => inputs routed to it, in arrival order
        buffer: dict[int, list[float]] = {i: [value] for i, value in enumerate(values)}
        last = len(self._layers) - 1

        for layer_i, layer in enumerate(self._layers):
            outputs = []
            for unit_i, unit in enumerate(layer.units):
                unit_inputs = buffer.get(unit_i, [])
                unit.set_inputs(unit_inputs)
                self._reconcile(layer_i, unit, len(unit_inputs))
                outputs.append(unit.get_output())

            next_size = self._num_outputs if layer_i == last else len(self._layers[layer_i + 1])
            buffer = {}
            for unit_i, output in enumerate(outputs):
                for dest in layer.routing.destinations(unit_i):
                    if not 0 <= dest < next_size:
                        raise StructuralMismatch(f"Unit {unit_i} of layer {layer_i} routes to missing unit {dest}")
                    buffer.setdefault(dest, []).append(output)

        # guaranteed by the identity routing of the output layer
        if len(buffer) != self._num_outputs or any(len(buffer.get(i, ())) != 1 for i in range(self._num_outputs)):
            raise RuntimeError("Invalid routing for output layer")

        self._state = WeightState.READY
        return [buffer[i][0] for i in range(self._num_outputs)]

    # ------------------------------------------------------------------
    # Backpropagation
    # ------------------------------------------------------------------

    def propagate_error(self, targets: Sequence[float], final_outputs: Optional[Sequence[float]] = None) -> None:
        """
        Backpropagate the error between 'targets' and the network outputs, adjusting weights.

        Layers are visited from the output backwards, units within a layer from
        the last to the first. A hidden unit's error is the sum, over the units
        it routes to, of the downstream unit's pre-update weight on that
        connection times the downstream unit's error. The weight is
        taken from the downstream unit's replay cursor, which yields weights in
        exactly the reverse of the order the inputs were fed forward.

        Units with a differentiable activation are adjusted with the signal
        error * derivative; other units are left unchanged. Either way the raw
        error, not the signal, is what flows upstream. The input layer is never
        adjusted.

        Parameters:
            targets:       one expected value per output
            final_outputs: outputs of the last forward pass on the current
                           inputs, to skip recomputing them

        Raises:
            ConfigurationError: if a unit has no activation function (no weights are changed)
            StructuralMismatch: if 'targets' or 'final_outputs' have the wrong length
        """
        if len(targets) != self._num_outputs:
            raise StructuralMismatch(f"Expected {self._num_outputs} targets, got {len(targets)}")
        for layer_i in range(1, len(self._layers)):
            for unit_i, unit in enumerate(self._layers[layer_i]):
                if unit.activation is None:
                    raise ConfigurationError(f"Unit {unit_i} of layer {layer_i} has no activation function, "
                                             f"the network is not ready for training")

        if final_outputs is None:
            outputs = self.get_outputs()
        else:
            if len(final_outputs) != self._num_outputs:
                raise StructuralMismatch(f"Expected {self._num_outputs} outputs, got {len(final_outputs)}")
            outputs = list(final_outputs)

        last = len(self._layers) - 1
        downstream_errors: dict[int, float] = {}

        for layer_i in range(last, 0, -1):
            layer  = self._layers[layer_i]
            errors = {}
            for unit_i in range(len(layer) - 1, -1, -1):
                unit = layer.units[unit_i]

                if layer_i == last:
                    error = targets[unit_i] - outputs[unit_i]
                else:
                    error = 0.0
                    lower_layer = self._layers[layer_i + 1]
                    for dest in layer.routing.destinations(unit_i):
                        popped = lower_layer.units[dest].pop_last_weight()
                        if popped is None:
                            raise RuntimeError(f"Unit {dest} of layer {layer_i + 1} has the wrong number of weights")
                        weight, _ = popped
                        error += weight * downstream_errors[dest]

                if unit.activation.differentiable:
                    signal = error * unit.activation.derivative(unit.output, unit.net_input)
                    unit.adjust_weights(self._learning_rate, self._momentum, signal)
                errors[unit_i] = error

            downstream_errors = errors

    # ------------------------------------------------------------------
    # Chromosome
    # ------------------------------------------------------------------

    def get_chromosome_size(self) -> int:
        """
        Number of words in this network's chromosome.

        Returns:
            0 if the weights cannot be reconciled with the topology (not ready)
        """
        if not self.check_initialized():
            return 0
        return sum(unit.num_weights + 1 for layer in self._layers[1:] for unit in layer)

    def get_chromosome(self) -> Optional[np.ndarray]:
        """
        Encode weights and biases as a chromosome.

        Returns:
            uint64 array in (layer, unit, weights..., bias) order, or None if not ready
        """
        if not self.check_initialized():
            return None

        values = []
        for layer in self._layers[1:]:
            for unit in layer:
                values.extend(unit.weights)
                values.append(unit.bias)
        return to_words(values)

    def set_chromosome(self, chromosome: Sequence[int]) -> bool:
        """
        Decode a chromosome into weights and biases.

        Every unit gets exactly one weight per routed input, regardless of
        the weight policy. Words are reinterpreted bit for bit, so any
        pattern (NaN, infinity, denormal) is accepted.

        Returns:
            False if the chromosome length does not match the topology, or
            the network has no hidden layer
        """
        if not self.hidden_layer_quantity:
            return False

        fan_ins  = [self._fan_ins(layer_i) for layer_i in range(1, len(self._layers))]
        expected = sum(n + 1 for counts in fan_ins for n in counts)
        if len(chromosome) != expected:
            self._log.warning("Chromosome has %d words, the network needs %d.", len(chromosome), expected)
            return False

        values = to_values(chromosome)
        index  = 0
        for layer, counts in zip(self._layers[1:], fan_ins):
            for unit, fan_in in zip(layer.units, counts):
                unit.set_weights(values[index:index + fan_in])
                unit.bias = float(values[index + fan_in])
                index += fan_in + 1

        for unit in self._layers[0]:
            self._reconcile(0, unit, 1)

        self._state = WeightState.READY
        return True

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def save_to_file(self, path: str) -> bool:
        """
        Write the network to 'path' in the binary network format.
        Activation functions are not saved.

        Returns:
            False if the weights are not ready to be saved
        """
        # Import here to avoid circular import
        from evoroute.phenotype.serialization import serialize

        if not self.check_initialized():
            return False
        with open(path, 'wb') as f:
            f.write(serialize(self))
        return True

    @classmethod
    def read_from_file(cls, path: str) -> 'Network':
        """
        Read a network previously written by 'save_to_file'.
        Units get the Identity activation.

        Raises:
            StructuralMismatch: if the file is truncated or inconsistent
        """
        # Import here to avoid circular import
        from evoroute.phenotype.serialization import deserialize

        with open(path, 'rb') as f:
            return deserialize(f.read())

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def visualize(self, view: bool = False) -> graphviz.Digraph:
        """
        Visualize the network using Graphviz.

        One cluster per layer, one edge per routed connection, labelled with
        the weight the receiving unit applies to it.

        Parameters:
            view: If True, automatically open the visualization after rendering

        Returns:
            graphviz.Digraph object representing the network
        """
        dot = graphviz.Digraph()
        dot.attr(rankdir='LR')
        dot.attr('graph', labelloc='t')

        node_attrs = {'style': 'filled', 'shape': 'circle', 'color': 'black', 'penwidth': '0.5',
                      'fontsize': '5', 'width': '0.5', 'height': '0.5', 'fixedsize': 'true'}
        fill = ['lightgrey'] + ['lightblue'] * self.hidden_layer_quantity + ['white']

        for layer_i, layer in enumerate(self._layers):
            with dot.subgraph(name=f'cluster_{layer_i}') as cluster:
                cluster.attr(label=f'Layer {layer_i}', style='invisible')
                for unit_i, unit in enumerate(layer.units):
                    label = f"{layer_i}:{unit_i}" if layer_i == 0 else f"{layer_i}:{unit_i}\\nbias={unit.bias:.2f}"
                    cluster.node(f"{layer_i}_{unit_i}", label=label, fillcolor=fill[layer_i], **node_attrs)

        for layer_i, layer in enumerate(self._layers[:-1]):
            lower_layer = self._layers[layer_i + 1]
            arrivals    = [0] * len(lower_layer)
            for unit_i, destinations in layer.routing.items():
                for dest in destinations:
                    if not 0 <= dest < len(lower_layer):
                        continue
                    weights = lower_layer.units[dest].weights
                    index   = arrivals[dest]
                    arrivals[dest] += 1
                    label = f"w={weights[index]:.2f}" if index < len(weights) else "w=?"
                    dot.edge(f"{layer_i}_{unit_i}", f"{layer_i + 1}_{dest}", label=label,
                             fontsize='5', penwidth='0.5', arrowsize='0.5')

        if view:
            dot.view(cleanup=True)
        return dot

    def __str__(self):
        lines = []
        for layer_i, layer in enumerate(self._layers):
            lines.append(f"Layer {layer_i} ({len(layer)} units, default routing={layer.default_routing})")
            for unit_i, unit in enumerate(layer.units):
                lines.append(f"  {unit_i}: {unit} -> {layer.routing.destinations(unit_i)}")
        return "\n".join(lines)

    def __repr__(self):
        return (f"Network(num_inputs={self._num_inputs}, num_outputs={self._num_outputs}, "
                f"layer_size={self._layer_size}, layers={self.layer_sizes})")
