"""
Activations Package

This package provides activation functions for the units of a routed network.

Exported:
    activations: Dictionary mapping activation function names to factories
    ActivationFunction and its implementations: Identity, Threshold, Sigmoid,
                                                TanH, ReLU, AutogradActivation
"""

from evoroute.activations.basic_activations import (
    activations,
    ActivationFunction,
    Identity,
    Threshold,
    Sigmoid,
    TanH,
    ReLU,
    AutogradActivation
)

__all__ = [
    'activations',
    'ActivationFunction',
    'Identity',
    'Threshold',
    'Sigmoid',
    'TanH',
    'ReLU',
    'AutogradActivation'
]
