"""
Evolutionary Trial Module

This module defines the abstract base class for evolutionary trials with
built-in support for CPU-based parallelization using joblib.

A trial represents one independent run of the genetic algorithm, evolving a
population of routed networks through generations until a solution is found
or the maximum number of generations is reached.
"""

import logging
from abc    import abstractmethod
from typing import Optional

import numpy as np

from evoroute.phenotype              import Network
from evoroute.pool.genetic_algorithm import FitnessEvaluator, GeneticAlgorithm
from evoroute.run.config             import Config

logger = logging.getLogger(__name__)

class Trial(FitnessEvaluator):
    """
    Abstract base class for implementing an evolutionary trial.

    The trial is the fitness evaluator of its own genetic algorithm.

    Subclasses must implement:
    - score_fitness(network): Score a single network (negative = not viable)

    Subclasses can override:
    - _reset():           Reset trial-specific state (call super()._reset())
    - _build_network():   Create one member of the initial population
    - _terminate():       Custom termination logic (default: max generations + fitness threshold)
    - _report_progress(): Report after each generation (default: log statistics)
    - _final_report():    Report at the end of the run (default: log the outcome)

    Public Attributes:
        failed: True unless the fitness threshold was reached

    Public Properties:
        genetic_algorithm: The algorithm of the current (or last) run

    Public Methods:
        run(): Execute a complete trial

    Parallelization of fitness evaluation:
        num_jobs=1:  Serial evaluation (no parallelization)
        num_jobs>1:  Use specified number of parallel processes
        num_jobs=-1: Use all available CPU cores
    """

    def __init__(self, config: Config, suppress_output: bool = False):
        """
        Initialize the trial.

        Parameters:
            config:          Configuration parameters
            suppress_output: If True, suppress progress and final reports
        """
        self._config            : Config                     = config
        self._generation_counter: int                        = 0
        self._ga                : Optional[GeneticAlgorithm] = None
        self._suppress_output   : bool                       = suppress_output
        self.failed             : bool                       = True

    @property
    def genetic_algorithm(self) -> Optional[GeneticAlgorithm]:
        return self._ga

    def run(self, num_jobs: int = 1):
        """
        Run the trial.

        Resets the trial state, builds and scores the initial population and
        advances it until the terminate condition is met.

        Parameters:
            num_jobs: Number of parallel processes for fitness evaluation
                      1 = serial (no parallelization)
                     -1 = use all available CPU cores
                     >1 = use specified number of processes
        """
        # Reset the trial state before starting a new run
        self._reset()

        # Create and score the initial population
        self._ga = GeneticAlgorithm.from_config(self._config, self, num_jobs)
        rng = np.random.default_rng(self._config.seed)
        for _ in range(self._config.population_size):
            network = self._build_network(rng)
            if not self._ga.add_network(network):
                raise RuntimeError("Initial network was rejected by the genetic algorithm")

        if not self._suppress_output:
            self._report_progress()

        # Evolution loop
        while not self._terminate():
            self._generation_counter += 1
            self._ga.next_generation()

            if not self._suppress_output:
                self._report_progress()

        threshold   = self._config.fitness_threshold
        self.failed = threshold is None or self._ga.get_max_fitness() < threshold

        # Produce final report
        if not self._suppress_output:
            self._final_report()

    def _reset(self):
        """
        Reset the trial state before starting a new run.

        Subclasses should call super()._reset() and then
        initialize their problem-specific data.
        """
        self._generation_counter = 0
        self._ga = None
        self.failed = True

    def _build_network(self, rng: np.random.Generator) -> Network:
        """Create one network of the initial population."""
        return Network.from_config(self._config, rng=rng)

    @abstractmethod
    def score_fitness(self, network: Network) -> int:
        """
        Evaluate and return the fitness of a network.

        This method should test the network on the problem domain and compute
        a fitness score. Higher fitness values indicate better performance and
        higher probability of procreating. A negative score marks the network
        as not viable and causes it to be replaced.

        Parameters:
            network: The network to evaluate

        Returns:
            int: Fitness score for the network
        """
        pass

    def _terminate(self) -> bool:
        """
        Decide whether the run is over.

        Returns:
            True once 'max_number_generations' generations have been computed,
            or the best fitness meets 'fitness_threshold' (if set)
        """
        if self._generation_counter >= self._config.max_number_generations:
            return True
        threshold = self._config.fitness_threshold
        return threshold is not None and self._ga.get_max_fitness() >= threshold

    def _report_progress(self):
        """
        Report trial progress after each generation.

        This method is suppressed by setting 'self._suppress_output' to 'True'.
        """
        logger.info("Generation %4d: max fitness %d, average fitness %.3f",
                    self._generation_counter, self._ga.get_max_fitness(), self._ga.get_average_fitness())

    def _final_report(self):
        """
        Produce final report at the end of the trial.

        This method is suppressed by setting 'self._suppress_output' to 'True'.
        """
        if self.failed:
            logger.info("Trial stopped after %d generations, max fitness %d.",
                        self._generation_counter, self._ga.get_max_fitness())
        else:
            logger.info("Trial reached fitness %d in %d generations.",
                        self._ga.get_max_fitness(), self._generation_counter)
