"""
evoroute - routed feedforward networks evolved with a bit-level genetic algorithm.

This package provides multilayered feedforward networks whose connectivity
between layers is an explicit routing graph, trained either by
backpropagation or by a genetic algorithm that treats the network's weights
and biases as a chromosome of raw 64-bit words.

Main components:
- activations: Activation functions for network units
- genotype: Chromosome encoding and bit-level genetic operators
- phenotype: Units, layers, routing and the Network itself
- pool: The genetic algorithm and the fitness evaluator interface
- run: Configuration, evolutionary trials and supervised learning
- errors: Exceptions raised by the package

Example:
    >>> from evoroute import Config, Trial
    >>> config = Config("config.ini")
    >>> class MyTrial(Trial):
    ...     def score_fitness(self, network):
    ...         # Implement fitness evaluation
    ...         pass
    >>> trial = MyTrial(config)
    >>> trial.run()
"""

__version__ = "0.1.0"

# Import main classes for convenient access
from evoroute.run.config import Config
from evoroute.run.trial import Trial
from evoroute.run.supervised_learner import SupervisedLearner
from evoroute.phenotype.network import Network, WeightPolicy, WeightState
from evoroute.pool.genetic_algorithm import FitnessEvaluator, GeneticAlgorithm
from evoroute.errors import (EvoRouteError, StructuralMismatch, NotInitialized,
                             ConfigurationError, RepairLimitExceeded)

__all__ = [
    "Config",
    "Trial",
    "SupervisedLearner",
    "Network",
    "WeightPolicy",
    "WeightState",
    "FitnessEvaluator",
    "GeneticAlgorithm",
    "EvoRouteError",
    "StructuralMismatch",
    "NotInitialized",
    "ConfigurationError",
    "RepairLimitExceeded",
]
