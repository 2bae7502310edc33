"""
Chromosome Module

A chromosome (or genome) is the full set of weights and biases of a network,
stored as the raw IEEE-754 bit patterns of the float64 values, one 64-bit
word per value. Conversion between the two views is a bit reinterpretation,
never a numeric cast, so genetic operators act on the exact bits of a weight.

Bits inside a word are numbered from the least significant (bit 0) to the
most significant (bit 63); bit offset 'k' in a chromosome refers to bit
'k % 64' of word 'k // 64'.

Functions:
    to_words(values):                         float64 values -> uint64 words
    to_values(words):                         uint64 words   -> float64 values
    total_bits(words):                        Number of bits in a chromosome
    crossover(mother, father, offset):        Single-point crossover at a bit offset
    mutation_mask(rng, num_words, rate):      Random mask of bits to flip
    mutate(words, rng, rate):                 Flip each bit with a given probability
    unpack_bits(words):                       Flat array of 0/1, in bit offset order
"""

from typing import Iterable

import numpy as np

WORD_BITS = 64

def to_words(values: Iterable[float]) -> np.ndarray:
    """
    Reinterpret a sequence of doubles as 64-bit words.

    Parameters:
        values: the float values (weights and biases)

    Returns:
        a new uint64 array holding the same bits
    """
    return np.array(list(values), dtype=np.float64).view(np.uint64)

def to_values(words: Iterable[int]) -> np.ndarray:
    """
    Reinterpret a sequence of 64-bit words as doubles.

    Any bit pattern is accepted, including those of NaN, infinities and
    denormals.

    Parameters:
        words: the chromosome words

    Returns:
        a new float64 array holding the same bits
    """
    return np.array(words, dtype=np.uint64).view(np.float64)

def total_bits(words: np.ndarray) -> int:
    return len(words) * WORD_BITS

def crossover(mother: np.ndarray, father: np.ndarray, offset: int) -> np.ndarray:
    """
    Single-point crossover at bit resolution.

    The child carries the mother's bits before 'offset' and the father's
    bits from 'offset' to the end. The word containing 'offset' is merged
    bit by bit, every following word is copied whole.

    Parameters:
        mother: chromosome providing the leading bits
        father: chromosome providing the trailing bits
        offset: first bit taken from the father, in [0, total_bits)

    Returns:
        the child chromosome
    """
    if len(mother) != len(father):
        raise ValueError(f"Chromosome sizes differ: {len(mother)} != {len(father)}")
    if not 0 <= offset < total_bits(mother):
        raise ValueError(f"Crossover offset {offset} outside [0, {total_bits(mother)})")

    child = np.array(mother, dtype=np.uint64)
    word, bit = divmod(offset, WORD_BITS)

    # bits [bit, 63] of the boundary word come from the father
    high_mask   = np.uint64((0xFFFFFFFFFFFFFFFF << bit) & 0xFFFFFFFFFFFFFFFF)
    child[word] = (child[word] & ~high_mask) | (np.uint64(father[word]) & high_mask)

    # whole words past the boundary
    child[word + 1:] = father[word + 1:]
    return child

def mutation_mask(rng: np.random.Generator, num_words: int, rate: float) -> np.ndarray:
    """
    Draw one Bernoulli(rate) trial per bit and pack the outcome into words.

    Parameters:
        rng:       random number generator
        num_words: number of words in the chromosome
        rate:      probability that any single bit is set in the mask

    Returns:
        uint64 array, a set bit meaning "flip this bit"
    """
    flips = rng.random((num_words, WORD_BITS)) < rate
    packed = np.packbits(flips, axis=1, bitorder='little')   # (num_words, 8) bytes, bit 0 first
    return np.ascontiguousarray(packed).view('<u8').ravel().astype(np.uint64)

def mutate(words: np.ndarray, rng: np.random.Generator, rate: float) -> np.ndarray:
    """
    Return a copy of 'words' where every bit was flipped independently with probability 'rate'.
    """
    words = np.array(words, dtype=np.uint64)
    if rate <= 0 or len(words) == 0:
        return words
    return words ^ mutation_mask(rng, len(words), rate)

def unpack_bits(words: np.ndarray) -> np.ndarray:
    """
    Expand a chromosome into a flat array of 0/1 values, ordered by bit offset.
    """
    as_bytes = np.array(words, dtype='<u8').view(np.uint8)
    return np.unpackbits(as_bytes, bitorder='little')
