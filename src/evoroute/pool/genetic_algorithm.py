"""
Genetic Algorithm Module

This module implements a generational genetic algorithm over routed networks.
Individuals are Network objects supplied by the caller; the algorithm never
copies them. Each generation it rewrites their chromosomes in place, so the
population size and the network objects themselves stay the same across
generations.

Classes:
    FitnessEvaluator: Interface for scoring a network
    GeneticAlgorithm: Fitness-proportional selection, bit-level crossover and
                      mutation, hall-of-fame elitism and repair of non-viable offspring
"""

import logging
from abc    import ABC, abstractmethod
from joblib import Parallel, delayed
from typing import Optional, TYPE_CHECKING

import numpy as np

from evoroute.errors              import ConfigurationError, RepairLimitExceeded
from evoroute.genotype.chromosome import crossover, mutate, total_bits

if TYPE_CHECKING:
    from evoroute.phenotype import Network
    from evoroute.run.config import Config

class FitnessEvaluator(ABC):
    """
    Scores networks for the genetic algorithm.

    Subclasses implement 'score_fitness'. Higher is fitter; a negative score
    marks the network as not viable, and the genetic algorithm replaces it.
    """

    @abstractmethod
    def score_fitness(self, network: 'Network') -> int:
        """
        Evaluate and return the fitness of a network.

        The network may be evaluated (and lazily initialized) as needed.
        NaN outputs are legitimate after bit-level mutation and should be
        mapped to a negative score rather than passed through.

        Parameters:
            network: the network to score

        Returns:
            int: fitness, negative if the network is not viable
        """
        pass

class GeneticAlgorithm:
    """
    A generational genetic algorithm acting on network chromosomes.

    Each call to 'next_generation':
    1. Builds the hall of fame from the current fitnesses: every network whose
       fitness is at least the 'hall_of_fame_size'-th best. All networks tied
       at the cutoff are admitted, so the hall of fame can be larger than
       configured.
    2. Breeds one child per remaining network with 'mate', both parents
       picked by roulette over the current generation.
    3. Writes the children into the non hall-of-fame networks (hall-of-fame
       networks are left untouched and are not rescored).
    4. Scores the new children. A child with negative fitness is replaced in
       place by fresh children until one is viable, or 'max_repair_attempts'
       is exceeded.
    5. Increments the generation counter.

    Fitness evaluation can be fanned out over joblib workers ('num_jobs');
    scores are written back by population slot. Mating always happens in
    this process on a single numpy Generator, so with a fixed seed the
    sequence of children is reproducible.

    Public Properties:
        population_size, generation, chromosome_size, hall_of_fame,
        networks, total_fitness, crossover_rate, mutation_rate

    Public Methods:
        add_network(network):          Admit a network into the population
        remove_network(network):       Remove a network from the population
        next_generation():             Advance the population by one generation
        pick_roulette():               Fitness-proportional pick
        mate(mother, father):          Produce a child chromosome
        invalidate_hall_of_fame():     Drop and rescore the current hall of fame
        fitness_of(network):           Last known fitness of a member
        get_fittest(), get_average_fitness(), get_max_fitness()
    """

    def __init__(self, fitness_evaluator: FitnessEvaluator, crossover_rate: float, mutation_rate: float,
                 hall_of_fame_size: int = 0, max_repair_attempts: Optional[int] = 10000,
                 num_jobs: int = 1, seed: Optional[int] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Parameters:
            fitness_evaluator:   scores networks
            crossover_rate:      probability that a child is a single-point crossover of both parents
            mutation_rate:       probability that any single bit of a child is flipped
            hall_of_fame_size:   number of top networks carried over unchanged
            max_repair_attempts: children tried per non-viable individual before giving up
                                 (None retries forever)
            num_jobs:            parallel processes for fitness evaluation
                                  1 = serial (no parallelization)
                                 -1 = use all available CPU cores
                                 >1 = use specified number of processes
            seed:                seed of the random generator used for selection and mating
            logger:              logger for diagnostics (defaults to the module logger)
        """
        if not 0.0 <= crossover_rate <= 1.0:
            raise ValueError(f"crossover_rate must be in [0, 1], got {crossover_rate}")
        if not 0.0 <= mutation_rate <= 1.0:
            raise ValueError(f"mutation_rate must be in [0, 1], got {mutation_rate}")
        if hall_of_fame_size < 0:
            raise ValueError(f"hall_of_fame_size must not be negative, got {hall_of_fame_size}")

        self._evaluator          : FitnessEvaluator    = fitness_evaluator
        self._crossover_rate     : float               = crossover_rate
        self._mutation_rate      : float               = mutation_rate
        self._hall_of_fame_size  : int                 = hall_of_fame_size
        self._max_repair_attempts: Optional[int]       = max_repair_attempts
        self._num_jobs           : int                 = num_jobs
        self._rng                : np.random.Generator = np.random.default_rng(seed)
        self._log                : logging.Logger      = logger or logging.getLogger(__name__)

        # network => fitness, in the order networks were added
        self._population     : dict['Network', int] = {}
        self._hall_of_fame   : list['Network']      = []
        self._chromosome_size: int                  = 0
        self._generation     : int                  = 0

    @classmethod
    def from_config(cls, config: 'Config', fitness_evaluator: FitnessEvaluator,
                    num_jobs: int = 1) -> 'GeneticAlgorithm':
        return cls(fitness_evaluator,
                   config.crossover_rate,
                   config.mutation_rate,
                   hall_of_fame_size   = config.hall_of_fame_size,
                   max_repair_attempts = config.max_repair_attempts,
                   num_jobs            = num_jobs,
                   seed                = config.seed)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def population_size(self) -> int:
        return len(self._population)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def chromosome_size(self) -> int:
        """Words per chromosome, shared by every member (0 for an empty population)."""
        return self._chromosome_size

    @property
    def hall_of_fame(self) -> list['Network']:
        return list(self._hall_of_fame)

    @property
    def networks(self) -> list['Network']:
        return list(self._population)

    @property
    def total_fitness(self) -> int:
        """Sum of fitnesses, negative fitnesses counting as zero."""
        return sum(max(fitness, 0) for fitness in self._population.values())

    @property
    def crossover_rate(self) -> float:
        return self._crossover_rate

    @property
    def mutation_rate(self) -> float:
        return self._mutation_rate

    def fitness_of(self, network: 'Network') -> Optional[int]:
        return self._population.get(network)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def _score(self, network: 'Network') -> int:
        return int(self._evaluator.score_fitness(network))

    def add_network(self, network: 'Network') -> bool:
        """
        Add a network to the population.

        The network is scored first, which gives the evaluator a chance to
        initialize its weights, and only then is its chromosome size checked.

        Returns:
            False if the network is already a member, is not ready (chromosome
            size 0), or its chromosome size differs from the population's
        """
        if network in self._population:
            self._log.warning("Network is already in the population.")
            return False

        fitness = self._score(network)
        size    = network.get_chromosome_size()
        if size == 0:
            self._log.warning("Rejected network: its weights are not initialized.")
            return False
        if self._population and size != self._chromosome_size:
            self._log.warning("Rejected network: chromosome size %d, population uses %d.",
                              size, self._chromosome_size)
            return False

        self._chromosome_size = size
        self._population[network] = fitness
        return True

    def remove_network(self, network: 'Network') -> bool:
        """
        Remove a network from the population.

        Returns:
            False if the network is not a member
        """
        if network not in self._population:
            return False

        del self._population[network]
        if network in self._hall_of_fame:
            self._hall_of_fame.remove(network)
        if not self._population:
            self._chromosome_size = 0
        return True

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_fittest(self) -> Optional['Network']:
        """
        Return the network with the highest fitness (the first one added, on ties),
        or None if the population is empty.
        """
        if not self._population:
            return None
        return max(self._population, key=self._population.get)

    def get_average_fitness(self) -> float:
        """Total fitness divided by population size; NaN for an empty population."""
        if not self._population:
            return float('nan')
        return self.total_fitness / len(self._population)

    def get_max_fitness(self) -> int:
        if not self._population:
            return 0
        return max(self._population.values())

    # ------------------------------------------------------------------
    # Selection and reproduction
    # ------------------------------------------------------------------

    def pick_roulette(self) -> 'Network':
        """
        Pick a network with probability proportional to its fitness.

        Every network carries weight equal to its own fitness (negative counts
        as zero), so networks sharing a fitness value are each selectable at
        that weight. A draw in [0, total] is compared against the running sum
        and the first network whose running sum meets or exceeds it wins. The
        draw 0 therefore goes to the first network even when its fitness is 0,
        and every network with positive fitness keeps at least one winning
        draw. If the total fitness is zero, the pick is uniform.

        Raises:
            ConfigurationError: if the population is empty
        """
        if not self._population:
            raise ConfigurationError("Cannot select from an empty population")

        networks = list(self._population)
        total    = self.total_fitness
        if total == 0:
            return networks[int(self._rng.integers(0, len(networks)))]

        pick      = int(self._rng.integers(0, total, endpoint=True))
        traversed = 0
        for network in networks:
            traversed += max(self._population[network], 0)
            if traversed >= pick:
                return network

        # unreachable: 'pick' is at most the total
        raise RuntimeError("Roulette walk ran past the total fitness")

    def mate(self, mother: 'Network', father: 'Network') -> np.ndarray:
        """
        Produce a child chromosome from two networks.

        With probability 'crossover_rate' the child takes the mother's bits
        before a uniformly drawn bit offset and the father's from there on.
        Otherwise the child is a copy of one parent, chosen uniformly. Every
        bit of the child is then flipped with probability 'mutation_rate'.

        Raises:
            ConfigurationError: if a parent has no chromosome
        """
        return self._mate_words(self._chromosome(mother), self._chromosome(father))

    def _chromosome(self, network: 'Network') -> np.ndarray:
        chromosome = network.get_chromosome()
        if chromosome is None:
            raise ConfigurationError("Network weights are not initialized, it cannot be mated")
        return chromosome

    def _mate_words(self, mother: np.ndarray, father: np.ndarray) -> np.ndarray:
        if self._rng.random() < self._crossover_rate:
            offset = int(self._rng.integers(0, total_bits(mother)))
            child  = crossover(mother, father, offset)
        elif self._rng.random() < 0.5:
            child = np.array(mother, dtype=np.uint64)
        else:
            child = np.array(father, dtype=np.uint64)
        return mutate(child, self._rng, self._mutation_rate)

    # ------------------------------------------------------------------
    # Generations
    # ------------------------------------------------------------------

    def _update_hall_of_fame(self):
        if self._hall_of_fame_size == 0:
            self._hall_of_fame = []
            return

        ranked = sorted(self._population.values(), reverse=True)
        cutoff = ranked[min(self._hall_of_fame_size, len(ranked)) - 1]
        self._hall_of_fame = [network for network, fitness in self._population.items() if fitness >= cutoff]
        if len(self._hall_of_fame) > self._hall_of_fame_size:
            self._log.debug("Hall of fame holds %d networks (ties at fitness %d).", len(self._hall_of_fame), cutoff)

    def invalidate_hall_of_fame(self) -> None:
        """
        Empty the hall of fame and rescore its former members.

        Useful after the fitness function itself changed, since hall-of-fame
        fitnesses are otherwise carried over without re-evaluation.
        """
        former = self._hall_of_fame
        self._hall_of_fame = []
        for network, fitness in zip(former, self._score_all(former)):
            self._population[network] = fitness

    def _score_all(self, networks: list['Network']) -> list[int]:
        """
        Score several networks, serially or in parallel based on 'num_jobs'.
        """
        if self._num_jobs == 1 or len(networks) < 2:
            return [self._score(network) for network in networks]
        scores = Parallel(self._num_jobs)(delayed(self._evaluator.score_fitness)(n) for n in networks)
        return [int(score) for score in scores]

    def _repair(self, network: 'Network', parents: dict['Network', np.ndarray]) -> int:
        """
        Replace the chromosome of 'network' with new children until one is viable.

        Returns:
            the viable fitness

        Raises:
            RepairLimitExceeded: after 'max_repair_attempts' non-viable children
        """
        attempts = 0
        while self._max_repair_attempts is None or attempts < self._max_repair_attempts:
            attempts += 1
            child = self._mate_words(parents[self.pick_roulette()], parents[self.pick_roulette()])
            network.set_chromosome(child)
            fitness = self._score(network)
            if fitness >= 0:
                if attempts > 1:
                    self._log.debug("Repaired a non-viable child after %d attempts.", attempts)
                return fitness

        raise RepairLimitExceeded(f"No viable child after {attempts} attempts in generation {self._generation}")

    def next_generation(self) -> None:
        """
        Replace every network outside the hall of fame with a child of the current generation.

        Parents are always drawn from the generation being replaced: the
        roulette uses the fitnesses from before this call, and the parents'
        chromosomes are snapshotted before any child is written.

        Raises:
            ConfigurationError:  if the population is empty
            RepairLimitExceeded: if a non-viable child could not be repaired
        """
        if not self._population:
            raise ConfigurationError("Cannot compute the next generation of an empty population")

        self._update_hall_of_fame()
        elite   = set(self._hall_of_fame)
        others  = [network for network in self._population if network not in elite]
        parents = {network: self._chromosome(network) for network in self._population}

        children = [self._mate_words(parents[self.pick_roulette()], parents[self.pick_roulette()])
                    for _ in others]
        for network, child in zip(others, children):
            network.set_chromosome(child)

        new_fitness = {}
        for network, fitness in zip(others, self._score_all(others)):
            if fitness < 0:
                fitness = self._repair(network, parents)
            new_fitness[network] = fitness

        self._population.update(new_fitness)
        self._generation += 1
        self._log.debug("Generation %d: max fitness %d, average %.3f, hall of fame %d.",
                        self._generation, self.get_max_fitness(), self.get_average_fitness(),
                        len(self._hall_of_fame))

    def __str__(self):
        lines = [f"Generation {self._generation}, {len(self._population)} networks, "
                 f"chromosome size {self._chromosome_size}"]
        for network, fitness in self._population.items():
            marker = "*" if network in self._hall_of_fame else " "
            lines.append(f" {marker} {fitness:>6}  {network!r}")
        return "\n".join(lines)
