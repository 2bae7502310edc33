"""
Network Serialization Module

Binary encoding of a routed network, little-endian throughout:

    int32[7]   num_inputs, num_outputs, layer_size, weight_policy,
               weight_state, random_upper, random_lower
    float64    fixed weight
    uint32     number of hidden layers H
    uint32[H]  hidden layer sizes
    uint32     number of route words R
    uint32[R]  route words; per layer, input to output:
                   number of sources, default routing flag,
                   then per source (ascending): source, destination count, destinations...
    uint32     chromosome length C
    uint64[C]  chromosome words

Activation functions are not part of the encoding; a decoded network uses
Identity everywhere.

Functions:
    serialize(network):  Network -> bytes
    deserialize(data):   bytes   -> Network
"""

import struct
from typing import TYPE_CHECKING

import numpy as np

from evoroute.errors          import StructuralMismatch
from evoroute.phenotype.layer import RoutingGraph

if TYPE_CHECKING:
    from evoroute.phenotype.network import Network

_HEADER = struct.Struct('<7id')
_UINT32 = struct.Struct('<I')

def _route_words(network: 'Network') -> list[int]:
    words = []
    for graph in network.routing_graphs:
        items = graph.items()
        words.append(len(items))
        words.append(int(graph.default))
        for source, destinations in items:
            words.append(source)
            words.append(len(destinations))
            words.extend(destinations)
    return words

def serialize(network: 'Network') -> bytes:
    """
    Encode 'network'. Its weights must be ready (see Network.check_initialized).

    Raises:
        StructuralMismatch: if the network has no chromosome to save
    """
    chromosome = network.get_chromosome()
    if chromosome is None:
        raise StructuralMismatch("Network weights are not consistent with its routing, nothing to save")

    lower, upper = network.random_range
    hidden       = network.layer_sizes[1:-1]
    routes       = _route_words(network)

    parts = [
        _HEADER.pack(network.num_inputs, network.num_outputs, network.layer_size,
                     int(network.weight_policy), network.weight_state.value,
                     upper, lower, network.user_weight),
        _UINT32.pack(len(hidden)),
        np.asarray(hidden, dtype='<u4').tobytes(),
        _UINT32.pack(len(routes)),
        np.asarray(routes, dtype='<u4').tobytes(),
        _UINT32.pack(len(chromosome)),
        np.asarray(chromosome, dtype='<u8').tobytes(),
    ]
    return b''.join(parts)

class _Reader:
    """Sequential reader over a bytes buffer that fails on truncation."""

    def __init__(self, data: bytes):
        self._data   = data
        self._offset = 0

    def take(self, size: int) -> bytes:
        if self._offset + size > len(self._data):
            raise StructuralMismatch(f"Network data truncated at byte {self._offset} "
                                     f"(needed {size} more, {len(self._data) - self._offset} left)")
        chunk = self._data[self._offset:self._offset + size]
        self._offset += size
        return chunk

    def uint32(self) -> int:
        return _UINT32.unpack(self.take(_UINT32.size))[0]

    def array(self, dtype: str, count: int) -> np.ndarray:
        item = np.dtype(dtype).itemsize
        return np.frombuffer(self.take(item * count), dtype=dtype)

def _read_routes(words: np.ndarray, num_layers: int) -> list[RoutingGraph]:
    graphs = []
    index  = 0

    def next_word() -> int:
        nonlocal index
        if index >= len(words):
            raise StructuralMismatch("Route block ended early")
        index += 1
        return int(words[index - 1])

    for _ in range(num_layers):
        num_sources = next_word()
        default     = bool(next_word())
        routes = {}
        for _ in range(num_sources):
            source = next_word()
            count  = next_word()
            routes[source] = [next_word() for _ in range(count)]
        graphs.append(RoutingGraph(routes, default))

    if index != len(words):
        raise StructuralMismatch(f"Route block has {len(words) - index} unused words")
    return graphs

def deserialize(data: bytes) -> 'Network':
    """
    Decode a network written by 'serialize'.

    Routing maps are replaced wholesale by the decoded ones, then the
    chromosome is applied.

    Raises:
        StructuralMismatch: if the data is truncated or does not describe a consistent network
    """
    # Import here to avoid circular import
    from evoroute.phenotype.network import Network

    reader = _Reader(data)
    (num_inputs, num_outputs, layer_size, policy, _state,
     upper, lower, user_weight) = _HEADER.unpack(reader.take(_HEADER.size))

    hidden     = reader.array('<u4', reader.uint32())
    routes     = reader.array('<u4', reader.uint32())
    chromosome = reader.array('<u8', reader.uint32()).astype(np.uint64)
    graphs     = _read_routes(routes, len(hidden) + 2)

    try:
        network = Network._from_parts(num_inputs, num_outputs, layer_size, hidden, graphs,
                                      policy, lower, upper, user_weight)
    except ValueError as e:
        raise StructuralMismatch(f"Inconsistent network data: {e}") from e

    if not network.set_chromosome(chromosome):
        raise StructuralMismatch(f"Chromosome of {len(chromosome)} words does not fit the decoded routing")
    return network
