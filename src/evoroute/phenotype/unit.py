"""
Unit Module

This module implements the computational neuron of a routed network.

Classes:
    Unit: A neuron holding a bias, one weight per routed input, and the state
          needed to backpropagate through it
"""

from typing import Optional, Sequence

from evoroute.activations import ActivationFunction, Identity
from evoroute.errors      import ConfigurationError, StructuralMismatch

class Unit:
    """
    A computational node (neuron) in a routed feedforward network.

    A unit computes:
        output = activation(bias + sum(weight_i * input_i))

    Inputs arrive in the order the previous layer's routing delivered them,
    and weight 'i' always applies to input 'i'.

    For backpropagation the unit remembers the weights that produced its last
    output and hands them back, last one first, through 'pop_last_weight'.
    The owning network visits upstream units in reverse order, so the cursor
    stays in lock-step with the order in which inputs were fed forward, which
    is how error is attributed along arbitrary (non-dense) routes.

    Public Attributes:
        bias:       Bias value added to the weighted input
        activation: Activation function (None disables the unit)

    Public Properties:
        weights:     Copy of the current weight vector
        inputs:      Copy of the last input vector
        output:      The last computed output (None until calculated)
        net_input:   The last weighted sum, before activation
        num_weights: Length of the weight vector

    Public Methods:
        set_weights(values):                        Replace the weight vector
        set_inputs(values):                         Replace the input vector
        get_output():                               Compute and cache the output
        adjust_weights(learning_rate, momentum, s): Apply one gradient step with momentum
        pop_last_weight():                          Reverse cursor over the pre-update weights
        reset_cursor():                             Rewind the cursor to the last weight
    """

    def __init__(self, activation: Optional[ActivationFunction] = None, bias: float = 0.0):
        """
        Parameters:
            activation: the activation function (defaults to Identity)
            bias:       the initial bias
        """
        self.activation: Optional[ActivationFunction] = activation if activation is not None else Identity()
        self.bias      : float                        = bias

        self._weights    : list[float] = []
        self._deltas     : list[float] = []   # last weight changes, for the momentum term
        self._inputs     : list[float] = []
        self._old_weights: list[float] = []   # weights that produced the last output
        self._cursor     : int         = -1   # next index 'pop_last_weight' returns

        self.output   : Optional[float] = None
        self.net_input: Optional[float] = None

    @property
    def weights(self) -> list[float]:
        return list(self._weights)

    @property
    def inputs(self) -> list[float]:
        return list(self._inputs)

    @property
    def num_weights(self) -> int:
        return len(self._weights)

    def set_weights(self, values: Sequence[float]) -> None:
        """
        Replace the weight vector. Momentum history is cleared and the weight cursor rewound.
        """
        self._weights = [float(v) for v in values]
        self._deltas  = [0.0] * len(self._weights)
        self.reset_cursor()

    def set_inputs(self, values: Sequence[float]) -> None:
        self._inputs = [float(v) for v in values]

    def get_output(self) -> float:
        """
        Calculate the output of this unit from its current inputs and weights.

        The weights used are saved for 'pop_last_weight', and the output and
        net input are saved for the activation derivative.

        Returns:
            the unit's output

        Raises:
            StructuralMismatch: if the number of weights differs from the number of inputs
            ConfigurationError: if the unit has no activation function
        """
        if len(self._weights) != len(self._inputs):
            raise StructuralMismatch(f"Unit has {len(self._weights)} weights but {len(self._inputs)} inputs")
        if self.activation is None:
            raise ConfigurationError("Unit has no activation function")

        total = self.bias
        for weight, value in zip(self._weights, self._inputs):
            total += weight * value

        self.net_input    = total
        self.output       = self.activation.evaluate(total)
        self._old_weights = list(self._weights)
        self.reset_cursor()
        return self.output

    def adjust_weights(self, learning_rate: float, momentum: float, signal: float) -> None:
        """
        Move the weights and bias along a backpropagated error signal.

        For every weight:
            delta_i   = learning_rate * signal * input_i + momentum * previous_delta_i
            weight_i += delta_i
        and the bias, whose input is permanently 1:
            bias     += learning_rate * signal

        Parameters:
            learning_rate: step size
            momentum:      fraction of the previous step carried into this one
            signal:        error times activation derivative for this unit

        Raises:
            StructuralMismatch: if the number of weights differs from the number of inputs
        """
        if len(self._weights) != len(self._inputs):
            raise StructuralMismatch(f"Unit has {len(self._weights)} weights but {len(self._inputs)} inputs")

        self.bias += learning_rate * signal

        deltas = []
        for i, value in enumerate(self._inputs):
            delta = learning_rate * signal * value + momentum * self._deltas[i]
            self._weights[i] += delta
            deltas.append(delta)
        self._deltas = deltas

    def pop_last_weight(self) -> Optional[tuple[float, float]]:
        """
        Return the next (weight, input) pair, walking backwards from the last one.

        Weights come from the snapshot taken by the last 'get_output', so
        updates applied since then by 'adjust_weights' are not visible here.

        Returns:
            (weight, input), or None once the cursor is exhausted
        """
        if self._cursor < 0 or self._cursor >= len(self._old_weights):
            return None
        i = self._cursor
        self._cursor -= 1
        value = self._inputs[i] if i < len(self._inputs) else 0.0
        return self._old_weights[i], value

    def reset_cursor(self) -> None:
        self._cursor = len(self._weights) - 1

    def __str__(self):
        return f"Unit(bias={self.bias}, weights={self._weights}, {self.activation!r})"

    def __repr__(self):
        return f"Unit(activation={self.activation!r}, bias={self.bias!r})"
