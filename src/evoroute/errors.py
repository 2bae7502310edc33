"""
Error Taxonomy Module

Exceptions raised by the routed network engine and the genetic algorithm.

Index errors that the caller is expected to handle routinely (a bad layer
index, a rejected network, a chromosome of the wrong size) are reported by
returning False or None instead of raising.

Classes:
    EvoRouteError:       Base class for every error raised by this package
    StructuralMismatch:  Weight/input counts, vector lengths or persisted data disagree
    NotInitialized:      Weights have not been reconciled against the topology yet
    ConfigurationError:  The network or population is not set up for the requested operation
    RepairLimitExceeded: The fitness repair loop gave up on producing a viable individual
"""


class EvoRouteError(Exception):
    """Base class for every error raised by evoroute."""


class StructuralMismatch(EvoRouteError, ValueError):
    """Raised when counts of weights, inputs, outputs or words do not line up."""


class NotInitialized(EvoRouteError):
    """Raised when a weight-dependent operation runs before weight reconciliation."""


class ConfigurationError(EvoRouteError):
    """Raised when a network or population is not ready for the requested operation."""


class RepairLimitExceeded(EvoRouteError, RuntimeError):
    """Raised when no viable offspring is found within the repair attempt ceiling."""
