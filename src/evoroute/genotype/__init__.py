"""
Chromosome Genotype Package

The genotype of a routed network is its flat chromosome: every weight and
bias as a 64-bit word. This package holds the bit-level operators the genetic
algorithm applies to chromosomes.

Modules:
    chromosome: word/value conversion, crossover and mutation
"""

from evoroute.genotype.chromosome import (
    WORD_BITS,
    to_words,
    to_values,
    total_bits,
    crossover,
    mutate,
    mutation_mask,
    unpack_bits
)

__all__ = ['WORD_BITS',
           'to_words',
           'to_values',
           'total_bits',
           'crossover',
           'mutate',
           'mutation_mask',
           'unpack_bits']
