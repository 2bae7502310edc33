"""
Routed Network Phenotype Package

This package implements the executable side of the engine: units, layers with
their routing graphs, and the network that ties them together. A network's
weights and biases can be flattened into a chromosome (see evoroute.genotype)
and written back, which is how the genetic algorithm acts on it.

Modules:
    unit:          Unit, the computational neuron
    layer:         Layer and its RoutingGraph
    network:       Network, WeightPolicy and WeightState
    serialization: Binary network format used by save_to_file/read_from_file

Exported Classes:
    Unit:         A neuron with bias, weights and a backpropagation cursor
    Layer:        The units of one layer and their routing to the next layer
    RoutingGraph: Source unit => destination units in the next layer
    Network:      The routed feedforward network
    WeightPolicy: How missing weights are created
    WeightState:  Whether weights are consistent with the topology
"""

from evoroute.phenotype.unit    import Unit
from evoroute.phenotype.layer   import Layer, RoutingGraph
from evoroute.phenotype.network import Network, WeightPolicy, WeightState

__all__ = ['Unit',
           'Layer',
           'RoutingGraph',
           'Network',
           'WeightPolicy',
           'WeightState']
