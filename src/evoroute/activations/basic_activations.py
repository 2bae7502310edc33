"""
Basic Activation Functions Module

Scalar activation functions applied by each Unit to its weighted sum.

A differentiable activation exposes its derivative as a function of the
unit's last output (and, optionally, of its last net input), which is what
backpropagation has at hand after a forward pass.

Classes:
    ActivationFunction: Abstract base class for activation functions
    Identity:           Pass-through, not differentiable
    Threshold:          Step function, not differentiable
    Sigmoid:            Logistic function
    TanH:               Hyperbolic tangent
    ReLU:               Rectified linear unit
    AutogradActivation: Any autograd.numpy scalar function, derivative via autograd
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import autograd.numpy as np  # type: ignore
from autograd import grad    # type: ignore

from evoroute.errors import ConfigurationError

class ActivationFunction(ABC):
    """
    Abstract base class for a unit's activation function.

    Public Attributes:
        differentiable: Whether 'derivative' may be called

    Public Methods:
        evaluate(x):                       Apply the function
        derivative(output, net_input=None): dy/dx, expressed through the last output
    """

    differentiable: bool = True

    @abstractmethod
    def evaluate(self, x: float) -> float:
        pass

    def derivative(self, output: float, net_input: Optional[float] = None) -> float:
        """
        Return dy/dx at the point that produced 'output'.

        Parameters:
            output:    the value 'evaluate' returned
            net_input: the argument 'evaluate' was called with, if known

        Raises:
            ConfigurationError: if the function is not differentiable
        """
        raise ConfigurationError(f"{type(self).__name__} is not differentiable")

    def __call__(self, x: float) -> float:
        return self.evaluate(x)

    def __repr__(self):
        return f"{type(self).__name__}()"

class Identity(ActivationFunction):
    """Outputs its input unchanged. Used by input units and as the default."""

    differentiable = False

    def evaluate(self, x):
        return x

class Threshold(ActivationFunction):
    """Outputs 1 when the input reaches 'threshold', 0 otherwise."""

    differentiable = False

    def __init__(self, threshold: float = 0.0):
        self.threshold = threshold

    def evaluate(self, x):
        return 1.0 if x >= self.threshold else 0.0

    def __repr__(self):
        return f"Threshold({self.threshold})"

class Sigmoid(ActivationFunction):

    def evaluate(self, x):
        z = np.clip(x, -500, 500)   # to prevent overflow when calculating exp
        return float(1.0 / (1.0 + np.exp(-z)))

    def derivative(self, output, net_input=None):
        return output * (1.0 - output)

class TanH(ActivationFunction):

    def evaluate(self, x):
        return float(np.tanh(x))

    def derivative(self, output, net_input=None):
        return 1.0 - output ** 2

class ReLU(ActivationFunction):

    def evaluate(self, x):
        return float(np.maximum(0.0, x))

    def derivative(self, output, net_input=None):
        return 1.0 if output > 0 else 0.0

class AutogradActivation(ActivationFunction):
    """
    Wraps a scalar function written with autograd.numpy.

    The derivative is obtained with 'autograd.grad' at the net input that
    produced the output, so it is exact for any composition of autograd
    primitives. The net input must be supplied to 'derivative'.
    """

    def __init__(self, fn: Callable, name: Optional[str] = None):
        self._fn   = fn
        self._grad = grad(fn)
        self.name  = name or getattr(fn, '__name__', 'fn')

    def evaluate(self, x):
        return float(self._fn(float(x)))

    def derivative(self, output, net_input=None):
        if net_input is None:
            raise ConfigurationError(f"AutogradActivation({self.name}) needs the net input to differentiate")
        return float(self._grad(float(net_input)))

    def __repr__(self):
        return f"AutogradActivation({self.name})"

def _softplus(x):
    # log(1 + e^x), stable for large |x|
    return np.logaddexp(0.0, x)

activations: dict[str, Callable[..., ActivationFunction]] = {
    "identity" : Identity,
    "threshold": Threshold,
    "sigmoid"  : Sigmoid,
    "tanh"     : TanH,
    "relu"     : ReLU,
    "sin"      : lambda: AutogradActivation(np.sin, "sin"),
    "softplus" : lambda: AutogradActivation(_softplus, "softplus"),
    }
