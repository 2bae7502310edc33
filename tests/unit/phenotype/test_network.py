"""
Unit tests for the routed Network.
"""

import math

import graphviz  # type: ignore
import numpy as np
import pytest

from evoroute.activations import Identity, Sigmoid, TanH, Threshold
from evoroute.errors import ConfigurationError, StructuralMismatch
from evoroute.genotype.chromosome import to_values, to_words
from evoroute.phenotype.network import Network, WeightPolicy, WeightState
from evoroute.run.config import Config


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def xor_network():
    """A hand-wired XOR network with one hidden layer of three threshold units."""
    network = Network(2, 1, 3)
    network.add_hidden_layer()

    network.set_activations(Identity())
    assert network.set_layer_activations(1, Threshold(1.0))
    network.get_unit(1, 1).activation = Threshold(2.0)

    assert network.set_layer_weights(1, [1.0])
    assert network.set_layer_weights(2, [1.0, -2.0, 1.0])
    network.get_unit(1, 1).set_weights([1.0, 1.0])

    assert network.set_route(0, 0, [0, 1])
    assert network.set_route(0, 1, [1, 2])
    return network


@pytest.fixture
def fixed_network():
    """1 input, 1 output, one hidden layer of 2 units, all weights and biases 1."""
    network = Network(1, 1, 2)
    network.add_hidden_layer()
    network.set_weights(1.0)
    network.set_biases(1.0)
    return network


def routed_training_network(rng):
    """Two inputs, two outputs, hidden layers of 3 and 2 units with sparse routing."""
    network = Network(2, 2, 3, learning_rate=0.1, momentum=0.0, rng=rng)
    network.add_hidden_layer(3)
    network.add_hidden_layer(2)
    network.random_weights(-1, 1)
    network.set_activations(Sigmoid())
    network.set_layer_activations(2, TanH())

    assert network.set_route(0, 0, [0, 2])
    assert network.set_route(0, 1, [1, 2, 2])
    assert network.set_route(1, 0, [1])
    assert network.set_route(1, 2, [0, 1])
    assert network.check_initialized()

    for layer_i in (1, 2, 3):
        for unit_i in range(network.layer_sizes[layer_i]):
            network.get_unit(layer_i, unit_i).bias = float(rng.uniform(-0.5, 0.5))
    return network


# ============================================================================
# Construction and structure
# ============================================================================

class TestStructure:

    def test_new_network_has_no_hidden_layers(self):
        network = Network(2, 3, 4)
        assert network.hidden_layer_quantity == 0
        assert network.layer_sizes == [2, 3]
        assert network.neuron_quantity == 5
        assert network.weight_state == WeightState.UNINITIALIZED

    def test_rejects_empty_layers(self):
        with pytest.raises(ValueError):
            Network(0, 1, 1)

    def test_add_hidden_layers(self):
        network = Network(1, 1, 2)
        assert network.add_hidden_layer()
        network.add_hidden_layers(2)
        assert network.hidden_layer_quantity == 3
        assert network.layer_sizes == [1, 2, 2, 2, 1]

    def test_add_hidden_layer_with_size_and_position(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert network.add_hidden_layer(5, position=1)
        assert network.layer_sizes == [1, 5, 2, 1]
        # default routing follows the new layer
        assert network.get_route(0, 0) == [0, 1, 2, 3, 4]
        assert network.get_route(1, 4) == [0, 1]

    def test_add_hidden_layer_bad_position(self):
        network = Network(1, 1, 2)
        assert not network.add_hidden_layer(position=0)
        assert not network.add_hidden_layer(position=2)
        assert network.hidden_layer_quantity == 0

    def test_input_routed_to_output_until_hidden_layer_added(self):
        network = Network(2, 3, 1)
        assert network.get_route(0, 1) == [0, 1, 2]
        network.add_hidden_layer()
        assert network.get_route(0, 1) == [0]

    def test_output_routing_is_identity(self):
        network = Network(1, 3, 2)
        network.add_hidden_layer()
        assert [network.get_route(2, i) for i in range(3)] == [[0], [1], [2]]

    def test_remove_layer(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer(3)
        network.add_hidden_layer(4)
        assert network.remove_layer(2)
        assert network.layer_sizes == [1, 3, 1]
        assert network.get_route(1, 0) == [0]

    def test_remove_layer_rejects_input_and_output(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert not network.remove_layer(0)
        assert not network.remove_layer(2)
        assert network.hidden_layer_quantity == 1

    def test_customized_routing_survives_layer_insertion(self):
        network = Network(2, 1, 2)
        network.add_hidden_layer()
        network.set_route(0, 0, [1])
        network.add_hidden_layer(position=1)
        assert network.get_route(0, 0) == [1]

    def test_get_unit(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert network.get_unit(1, 1) is not None
        assert network.get_unit(0, 0) is None
        assert network.get_unit(1, 2) is None
        assert network.get_unit(3, 0) is None

    def test_copy_layout(self, xor_network):
        copy = Network(2, 1, 3)
        assert copy.copy_layout(xor_network)
        assert copy.layer_sizes == xor_network.layer_sizes
        assert copy.get_route(0, 1) == [1, 2]
        assert copy.get_unit(1, 0).num_weights == 0

    def test_copy_layout_requires_same_shape(self, xor_network):
        assert not Network(2, 2, 3).copy_layout(xor_network)


# ============================================================================
# Routing
# ============================================================================

class TestRouting:

    def test_set_route_rejects_output_layer(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert not network.set_route(2, 0, [0])

    def test_set_route_rejects_destination_outside_next_layer(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert not network.set_route(0, 0, [2])
        assert not network.set_route(0, 0, [-1])
        assert network.get_route(0, 0) == [0, 1]

    def test_set_route_rejects_bad_unit(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert not network.set_route(0, 1, [0])

    def test_set_route_marks_weights_dirty(self, fixed_network):
        assert fixed_network.check_initialized()
        assert fixed_network.set_route(1, 0, [])
        assert fixed_network.weight_state == WeightState.DIRTY

    def test_routing_graphs_are_copies(self, fixed_network):
        graphs = fixed_network.routing_graphs
        assert [graph.default for graph in graphs] == [True, True, True]
        graphs[0].set_route(0, [1])
        assert fixed_network.get_route(0, 0) == [0, 1]

    def test_from_parts_rebuilds_layout_and_policy(self, fixed_network):
        assert fixed_network.set_route(0, 0, [1])
        rebuilt = Network._from_parts(1, 1, 2, [2], fixed_network.routing_graphs,
                                      WeightPolicy.RANDOM, -4, 4, 0.25)
        assert rebuilt.layer_sizes == [1, 2, 1]
        assert rebuilt.get_route(0, 0) == [1]
        assert rebuilt.routing_graphs == fixed_network.routing_graphs
        assert rebuilt.weight_policy == WeightPolicy.RANDOM
        assert rebuilt.random_range == (-4, 4)
        assert rebuilt.user_weight == 0.25
        assert rebuilt.weight_state == WeightState.UNINITIALIZED

    def test_from_parts_rejects_inconsistent_parts(self, fixed_network):
        graphs = fixed_network.routing_graphs
        with pytest.raises(ValueError):
            Network._from_parts(1, 1, 2, [2, 2], graphs, WeightPolicy.FIXED, 0, 0, 1.0)
        with pytest.raises(ValueError):
            Network._from_parts(1, 1, 2, [0], graphs, WeightPolicy.FIXED, 0, 0, 1.0)
        with pytest.raises(ValueError):
            Network._from_parts(1, 1, 2, [2], graphs, 7, 0, 0, 1.0)


# ============================================================================
# Forward evaluation
# ============================================================================

class TestEvaluation:

    @pytest.mark.parametrize("inputs, expected", [
        ([1.0, 0.0], 1.0),
        ([0.0, 1.0], 1.0),
        ([0.0, 0.0], 0.0),
        ([1.0, 1.0], 0.0),
    ])
    def test_xor(self, xor_network, inputs, expected):
        xor_network.set_inputs(inputs)
        assert xor_network.get_outputs() == [expected]

    def test_output_length(self):
        network = Network(3, 4, 5)
        network.add_hidden_layers(2)
        network.random_weights(-5, 10)
        network.set_activations(Threshold(1.0))
        outputs = network.evaluate([10.0, -1.0, 0.5])
        assert len(outputs) == 4
        assert set(outputs) <= {0.0, 1.0}

    def test_repeated_get_outputs_is_stable(self, fixed_network):
        fixed_network.set_inputs([0.25])
        assert fixed_network.get_outputs() == fixed_network.get_outputs()

    def test_fixed_weights_value(self, fixed_network):
        # hidden: 1*x + 1 each; output: h0 + h1 + 1
        assert fixed_network.evaluate([2.0]) == [7.0]

    def test_wrong_input_length(self, fixed_network):
        with pytest.raises(StructuralMismatch):
            fixed_network.set_inputs([1.0, 2.0])

    def test_outputs_before_inputs(self, fixed_network):
        with pytest.raises(ConfigurationError):
            fixed_network.get_outputs()

    def test_no_hidden_layer_fails(self):
        network = Network(1, 1, 1)
        network.set_weights(1.0)
        with pytest.raises(StructuralMismatch):
            network.evaluate([1.0])

    def test_missing_weights_fail_without_policy(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        with pytest.raises(StructuralMismatch):
            network.evaluate([1.0])

    def test_evaluation_marks_weights_ready(self, fixed_network):
        fixed_network.evaluate([1.0])
        assert fixed_network.weight_state == WeightState.READY

    def test_unrouted_unit_only_outputs_bias(self, fixed_network):
        fixed_network.set_route(0, 0, [0])
        # hidden 0: x + 1, hidden 1: no input, bias 1; output: h0 + h1 + 1
        assert fixed_network.evaluate([3.0]) == [6.0]


# ============================================================================
# Lazy weight reconciliation
# ============================================================================

class TestWeightReconciliation:

    def test_random_weights_in_range_with_step(self, rng):
        network = Network(4, 3, 6, rng=rng)
        network.add_hidden_layer()
        network.random_weights(-2, 3)
        assert network.force_weight_update()
        for layer_i in (1, 2):
            for unit_i in range(network.layer_sizes[layer_i]):
                for weight in network.get_unit(layer_i, unit_i).weights:
                    assert -2.0 <= weight <= 3.0
                    assert round(weight * 1000) == pytest.approx(weight * 1000)

    def test_random_range_must_not_be_empty(self):
        with pytest.raises(ValueError):
            Network(1, 1, 1).random_weights(3, 2)

    def test_policy_none_requires_explicit_weights(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert network.weight_policy == WeightPolicy.NONE
        assert not network.check_initialized()
        assert network.get_chromosome_size() == 0
        assert network.get_chromosome() is None

    def test_policy_none_with_matching_weights(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        network.set_layer_weights(1, [0.5])
        network.set_layer_weights(2, [0.5, 0.5])
        assert network.check_initialized()
        assert network.get_chromosome_size() == 7

    def test_fan_in_growth_keeps_existing_weights(self, fixed_network):
        fixed_network.check_initialized()
        fixed_network.get_unit(2, 0).set_weights([3.0, 4.0])
        fixed_network.set_weights(9.0)
        assert fixed_network.set_route(1, 0, [0, 0])
        assert fixed_network.check_initialized()
        assert fixed_network.get_unit(2, 0).weights == [3.0, 4.0, 9.0]

    def test_fan_in_shrink_truncates(self, fixed_network):
        fixed_network.check_initialized()
        fixed_network.get_unit(2, 0).set_weights([3.0, 4.0])
        fixed_network.set_route(1, 1, [])
        assert fixed_network.check_initialized()
        assert fixed_network.get_unit(2, 0).weights == [3.0]

    def test_input_weights_pinned_to_one(self, fixed_network):
        fixed_network.check_initialized()
        words = fixed_network.get_chromosome()
        assert len(words) == fixed_network.get_chromosome_size()
        # the input layer contributes no words
        assert fixed_network.get_chromosome_size() == 2 * 2 + 3

    def test_disable_special_weights(self, fixed_network):
        fixed_network.disable_special_weights()
        assert fixed_network.weight_policy == WeightPolicy.NONE
        assert not fixed_network.check_initialized()

    def test_no_hidden_layers_never_ready(self):
        network = Network(1, 1, 1)
        network.set_weights(1.0)
        assert not network.force_weight_update()
        assert network.get_chromosome_size() == 0


# ============================================================================
# Chromosome
# ============================================================================

class TestChromosome:

    def test_all_words_encode_the_fixed_value(self, fixed_network):
        one = to_words([1.0])[0]
        chromosome = fixed_network.get_chromosome()
        assert chromosome.dtype == np.uint64
        assert (chromosome == one).all()

    def test_set_then_get(self, fixed_network):
        one = to_words([1.0])[0]
        chromosome = fixed_network.get_chromosome()
        chromosome[0] = 2
        assert fixed_network.set_chromosome(chromosome)

        chromosome = fixed_network.get_chromosome()
        assert chromosome[0] == 2
        assert (chromosome[1:] == one).all()

    def test_order_is_layer_unit_weights_bias(self, fixed_network):
        values = [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7]
        assert fixed_network.set_chromosome(to_words(values))
        assert fixed_network.get_unit(1, 0).weights == [0.1]
        assert fixed_network.get_unit(1, 0).bias == 0.2
        assert fixed_network.get_unit(1, 1).weights == [0.3]
        assert fixed_network.get_unit(1, 1).bias == 0.4
        assert fixed_network.get_unit(2, 0).weights == [0.5, 0.6]
        assert fixed_network.get_unit(2, 0).bias == 0.7

    def test_nan_patterns_round_trip_bit_for_bit(self, fixed_network):
        chromosome = fixed_network.get_chromosome()
        chromosome[3] = np.uint64(0xFFF8000000000001)
        assert fixed_network.set_chromosome(chromosome)
        assert (fixed_network.get_chromosome() == chromosome).all()
        assert math.isnan(fixed_network.evaluate([1.0])[0])

    def test_wrong_length_rejected(self, fixed_network):
        chromosome = fixed_network.get_chromosome()
        assert not fixed_network.set_chromosome(chromosome[:-1])
        assert fixed_network.get_unit(2, 0).weights == [1.0, 1.0]

    def test_set_chromosome_sizes_units_without_policy(self):
        network = Network(1, 1, 2)
        network.add_hidden_layer()
        assert network.get_chromosome_size() == 0
        assert network.set_chromosome(to_words([0.0] * 7))
        assert network.weight_state == WeightState.READY
        assert network.get_chromosome_size() == 7

    def test_set_chromosome_without_hidden_layer(self):
        assert not Network(1, 1, 1).set_chromosome(to_words([0.0, 0.0]))


# ============================================================================
# Backpropagation
# ============================================================================

class TestBackpropagation:

    def test_error_decreases(self, rng):
        network = Network(1, 1, 5, rng=rng)
        network.add_hidden_layers(2)
        network.random_weights(-1, 1)
        network.set_activations(Sigmoid())

        network.set_inputs([0.01])
        initial_error = abs(0.5 - network.get_outputs()[0])
        for _ in range(100):
            network.propagate_error([0.5])
        final_error = abs(0.5 - network.get_outputs()[0])
        assert final_error <= initial_error

    def test_output_step_follows_gradient(self, rng):
        network = routed_training_network(rng)
        inputs, targets = [0.3, -0.8], [0.2, -0.4]
        start = to_values(network.get_chromosome()).copy()
        # the two output units, each with two weights and a bias, come last
        num_output_words = 6

        def loss(values):
            network.set_chromosome(to_words(values))
            outputs = network.evaluate(inputs)
            return sum((t - y) ** 2 for t, y in zip(targets, outputs)) / 2

        h = 1e-6
        gradient = np.zeros(num_output_words)
        for i in range(len(start) - num_output_words, len(start)):
            up, down = start.copy(), start.copy()
            up[i]   += h
            down[i] -= h
            gradient[i - len(start) + num_output_words] = (loss(up) - loss(down)) / (2 * h)

        network.set_chromosome(to_words(start))
        network.set_inputs(inputs)
        network.propagate_error(targets)
        step = to_values(network.get_chromosome()) - start

        np.testing.assert_allclose(step[-num_output_words:], -network.learning_rate * gradient,
                                   rtol=1e-4, atol=1e-9)

    def test_hidden_error_uses_raw_downstream_error(self):
        network = Network(1, 1, 1, learning_rate=0.1, momentum=0.0)
        network.add_hidden_layer()
        network.set_weights(0.5)
        network.set_activations(Sigmoid())

        network.propagate_error([1.0], final_outputs=network.evaluate([1.0]))

        hidden = 1 / (1 + math.exp(-0.5))
        output = 1 / (1 + math.exp(-0.5 * hidden))
        error  = 0.5 * (1.0 - output)
        assert network.get_unit(1, 0).bias == pytest.approx(0.1 * error * hidden * (1 - hidden))
        assert network.get_unit(1, 0).bias == pytest.approx(0.0049682, abs=1e-7)

    def test_hidden_error_through_sparse_routing(self, rng):
        network = routed_training_network(rng)
        inputs, targets = [0.3, -0.8], [0.2, -0.4]
        outputs = network.evaluate(inputs)

        hidden  = [network.get_unit(2, j) for j in range(2)]
        biases  = [unit.bias for unit in hidden]
        weights = [network.get_unit(3, k).weights for k in range(2)]
        expected = []
        for j, unit in enumerate(hidden):
            error = sum(weights[k][j] * (targets[k] - outputs[k]) for k in range(2))
            expected.append(biases[j] + network.learning_rate * error * (1 - unit.output ** 2))

        network.propagate_error(targets, final_outputs=outputs)
        assert [unit.bias for unit in hidden] == pytest.approx(expected)

    def test_uses_supplied_outputs(self, fixed_network):
        fixed_network.set_activations(Sigmoid())
        fixed_network.set_inputs([1.0])
        outputs = fixed_network.get_outputs()
        before  = fixed_network.get_chromosome()
        fixed_network.propagate_error([0.0], final_outputs=outputs)
        assert (fixed_network.get_chromosome() != before).any()

    def test_identity_units_are_not_adjusted(self, fixed_network):
        fixed_network.set_inputs([1.0])
        before = fixed_network.get_chromosome()
        fixed_network.propagate_error([100.0])
        assert (fixed_network.get_chromosome() == before).all()

    def test_error_passes_through_non_differentiable_units(self, fixed_network):
        fixed_network.set_layer_activations(1, Sigmoid())
        fixed_network.set_inputs([1.0])
        before = fixed_network.get_chromosome()
        fixed_network.propagate_error([100.0])
        after = fixed_network.get_chromosome()
        # hidden units (first 4 words) moved, identity output unit did not
        assert (after[:4] != before[:4]).all()
        assert (after[4:] == before[4:]).all()

    def test_missing_activation_aborts_without_changes(self, fixed_network):
        fixed_network.set_activations(Sigmoid())
        fixed_network.get_unit(1, 0).activation = None
        fixed_network.check_initialized()
        before = fixed_network.get_chromosome()
        fixed_network.set_inputs([1.0])
        with pytest.raises(ConfigurationError):
            fixed_network.propagate_error([0.0])
        assert (fixed_network.get_chromosome() == before).all()

    def test_wrong_target_length(self, fixed_network):
        fixed_network.set_inputs([1.0])
        with pytest.raises(StructuralMismatch):
            fixed_network.propagate_error([0.0, 1.0])


# ============================================================================
# Configuration and visualization
# ============================================================================

class TestFromConfig:

    def test_builds_configured_network(self):
        config = Config()
        config.num_inputs        = 2
        config.num_outputs       = 3
        config.layer_size        = 4
        config.num_hidden_layers = 2
        config.activation        = 'tanh'
        config.output_activation = 'sigmoid'
        config.weight_policy     = 'fixed'
        config.fixed_weight      = 0.5
        config.initial_bias      = 0.25

        network = Network.from_config(config)
        assert network.layer_sizes == [2, 4, 4, 3]
        assert network.weight_policy == WeightPolicy.FIXED
        assert isinstance(network.get_unit(1, 0).activation, TanH)
        assert isinstance(network.get_unit(3, 2).activation, Sigmoid)
        assert network.get_unit(2, 3).bias == 0.25
        assert network.check_initialized()
        assert network.get_unit(2, 0).weights == [0.5] * 4

    def test_unknown_weight_policy(self):
        config = Config()
        config.weight_policy = 'gaussian'
        with pytest.raises(ValueError):
            Network.from_config(config)


class TestVisualize:

    def test_returns_digraph_with_routed_edges(self, xor_network):
        xor_network.evaluate([1.0, 1.0])
        dot = xor_network.visualize()
        assert isinstance(dot, graphviz.Digraph)
        # 2 + 2 input routes, 3 hidden-to-output routes
        assert dot.source.count('->') == 7
        assert 'w=-2.00' in dot.source
