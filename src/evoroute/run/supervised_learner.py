"""
Supervised Learner Module

Trains a routed network by backpropagation on (input, expected output) pairs.

Classes:
    TrainingItem:      One input vector and the output expected for it
    SupervisedLearner: Shuffled training loop with a held-out convergence check
"""

import logging
from dataclasses import dataclass
from typing      import Optional, Sequence, TYPE_CHECKING

import numpy as np

from evoroute.errors    import NotInitialized, StructuralMismatch
from evoroute.phenotype import Network

if TYPE_CHECKING:
    from evoroute.run.config import Config

logger = logging.getLogger(__name__)

@dataclass
class TrainingItem:
    inputs  : list[float]
    expected: list[float]

class SupervisedLearner:
    """
    Backpropagation training loop for a Network.

    When learning starts the data is shuffled once and split: the first
    'training_fraction' of the items train the network, the rest are held
    out to measure the error. With a single item, it is used for both.

    Each iteration backpropagates every training item (in a freshly shuffled
    order), then computes half the sum of squared errors over the held-out
    items. Learning stops once that error is below the target.

    Public Properties:
        network:    The network being trained
        data:       The training items added so far
        last_error: Held-out error after the last iteration (None before learning)
        iterations: Number of iterations run by the last 'learn'
    """

    def __init__(self, network: Network, training_fraction: float = 0.8, seed: Optional[int] = None):
        if not 0.0 < training_fraction <= 1.0:
            raise ValueError(f"training_fraction must be in (0, 1], got {training_fraction}")

        self._network          : Network             = network
        self._training_fraction: float               = training_fraction
        self._rng              : np.random.Generator = np.random.default_rng(seed)
        self._data             : list[TrainingItem]  = []
        self._last_error       : Optional[float]     = None
        self._iterations       : int                 = 0

    @classmethod
    def from_config(cls, network: Network, config: 'Config') -> 'SupervisedLearner':
        return cls(network, config.training_fraction, config.seed)

    @property
    def network(self) -> Network:
        return self._network

    @property
    def data(self) -> list[TrainingItem]:
        return list(self._data)

    @property
    def last_error(self) -> Optional[float]:
        return self._last_error

    @property
    def iterations(self) -> int:
        return self._iterations

    def add_training_data(self, inputs: Sequence[float], expected: Sequence[float]) -> None:
        """
        Raises:
            StructuralMismatch: if 'inputs' or 'expected' does not match the network's size
        """
        if len(inputs) != self._network.num_inputs:
            raise StructuralMismatch(f"Expected {self._network.num_inputs} inputs, got {len(inputs)}")
        if len(expected) != self._network.num_outputs:
            raise StructuralMismatch(f"Expected {self._network.num_outputs} outputs, got {len(expected)}")
        self._data.append(TrainingItem([float(x) for x in inputs], [float(y) for y in expected]))

    def _split(self) -> tuple[list[TrainingItem], list[TrainingItem]]:
        items = [self._data[i] for i in self._rng.permutation(len(self._data))]
        if len(items) == 1:
            return items, items

        split = int(len(items) * self._training_fraction)
        split = min(max(split, 1), len(items) - 1)
        return items[:split], items[split:]

    def _held_out_error(self, items: list[TrainingItem]) -> float:
        error = 0.0
        for item in items:
            outputs = self._network.evaluate(item.inputs)
            error += sum((target - output) ** 2 for target, output in zip(item.expected, outputs))
        return error / 2

    def learn(self, target_error: float, max_iterations: Optional[int] = None) -> bool:
        """
        Train until the held-out error drops below 'target_error'.

        Parameters:
            target_error:   error at which to stop
            max_iterations: maximum passes over the training set (None for no limit)

        Returns:
            True if the target was reached, False if 'max_iterations' ran out

        Raises:
            ValueError:         if no training data was added, or max_iterations < 1
            NotInitialized:     if the network's weights cannot be matched to its routing
            ConfigurationError: if a unit has no activation function
        """
        if not self._data:
            raise ValueError("No training data")
        if max_iterations is not None and max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        if not self._network.check_initialized():
            raise NotInitialized("Network weights do not match its routing, set a weight policy first")

        training, testing = self._split()
        self._iterations = 0
        self._last_error = None

        while max_iterations is None or self._iterations < max_iterations:
            for i in self._rng.permutation(len(training)):
                item = training[i]
                self._network.set_inputs(item.inputs)
                self._network.propagate_error(item.expected)

            self._iterations += 1
            self._last_error = self._held_out_error(testing)
            logger.debug("Iteration %d: held-out error %g", self._iterations, self._last_error)
            if self._last_error < target_error:
                return True

        logger.info("Stopped after %d iterations, held-out error %g above target %g.",
                    self._iterations, self._last_error, target_error)
        return False
