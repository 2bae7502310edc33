"""
Population Package

Modules:
    genetic_algorithm: FitnessEvaluator interface and the GeneticAlgorithm

Exported Classes:
    FitnessEvaluator: Scores a network, negative meaning "not viable"
    GeneticAlgorithm: Generational genetic algorithm over network chromosomes
"""

from evoroute.pool.genetic_algorithm import FitnessEvaluator, GeneticAlgorithm

__all__ = ['FitnessEvaluator',
           'GeneticAlgorithm']
