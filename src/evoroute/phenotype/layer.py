"""
Layer Module

A network is an ordered list of layers. Each layer owns its units and a
routing graph describing which units of the *next* layer receive each of
its units' outputs. Routing never skips a layer and never points backwards.

Classes:
    RoutingGraph: Per-layer map from source unit index to destination indices
    Layer:        The units of one layer together with their routing graph
"""

from typing import Optional, Sequence

from evoroute.activations     import ActivationFunction
from evoroute.phenotype.unit  import Unit

class RoutingGraph:
    """
    Routing from the units of one layer to the units of the next.

    Maps each source unit index to the ordered list of destination unit
    indices it feeds. A source absent from the map feeds nothing.

    Default routing is complete bipartite (every source feeds every
    destination). The output layer instead uses identity routing
    (unit i feeds output slot i). Overriding any route clears the
    'default' flag, so later structural changes leave the graph alone.

    Public Attributes:
        default: Whether the graph is still the automatically built one

    Public Methods:
        connect_fully(num_sources, num_destinations): Complete bipartite routing
        connect_identity(num_sources):                Unit i -> slot i
        set_route(source, destinations):              Override one source's destinations
        destinations(source):                         Destinations of one source
        fan_ins(num_destinations):                    Input count of each destination
        items():                                      (source, destinations) pairs, by source
        copy():                                       Independent copy
    """

    def __init__(self, routes: Optional[dict[int, list[int]]] = None, default: bool = True):
        self._routes: dict[int, list[int]] = {}
        if routes:
            for source, destinations in routes.items():
                self._routes[int(source)] = [int(d) for d in destinations]
        self.default: bool = default

    def connect_fully(self, num_sources: int, num_destinations: int) -> None:
        self._routes = {source: list(range(num_destinations)) for source in range(num_sources)}

    def connect_identity(self, num_sources: int) -> None:
        self._routes = {source: [source] for source in range(num_sources)}

    def set_route(self, source: int, destinations: Sequence[int]) -> None:
        self._routes[source] = [int(d) for d in destinations]
        self.default = False

    def destinations(self, source: int) -> list[int]:
        return self._routes.get(source, [])

    def fan_ins(self, num_destinations: int) -> list[int]:
        """
        Count the inputs each destination unit receives through this graph.

        Destinations outside [0, num_destinations) are ignored.
        """
        counts = [0] * num_destinations
        for destinations in self._routes.values():
            for dest in destinations:
                if 0 <= dest < num_destinations:
                    counts[dest] += 1
        return counts

    def items(self) -> list[tuple[int, list[int]]]:
        return [(source, list(self._routes[source])) for source in sorted(self._routes)]

    def copy(self) -> 'RoutingGraph':
        return RoutingGraph(self._routes, self.default)

    def __len__(self):
        return len(self._routes)

    def __eq__(self, other):
        if not isinstance(other, RoutingGraph):
            return NotImplemented
        return self.items() == other.items() and self.default == other.default

    def __repr__(self):
        return f"RoutingGraph({dict(self.items())}, default={self.default})"

class Layer:
    """
    One layer of a routed network.

    Public Attributes:
        units:   The layer's units, addressed by index
        routing: Routing from this layer's units to the next layer's units
    """

    def __init__(self, size: int, activation: Optional[ActivationFunction] = None):
        """
        Parameters:
            size:       number of units
            activation: activation shared by all units (defaults to Identity)
        """
        self.units  : list[Unit]   = [Unit(activation) for _ in range(size)]
        self.routing: RoutingGraph = RoutingGraph()

    @property
    def default_routing(self) -> bool:
        return self.routing.default

    def __len__(self):
        return len(self.units)

    def __iter__(self):
        return iter(self.units)

    def __repr__(self):
        return f"Layer(size={len(self.units)}, routing={self.routing!r})"
