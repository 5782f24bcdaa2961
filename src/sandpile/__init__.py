"""
sandpile: Abelian sandpile simulation with avalanche visualization.

Grains are dropped on a 2-D grid; cells holding at least ``threshold``
grains topple onto their four neighbours, and grains pushed off the edge are
lost. A worklist relaxation engine drives the grid towards stability, either
one wavefront per tick or to full stability per drop.
"""

__version__ = "1.0.0"

# Core imports for convenience
from sandpile.core import (
    GridState,
    AvalancheTracker,
    RelaxationEngine,
    RelaxPolicy,
    SimulationConfig,
    SimulationLoop,
    Snapshot,
    OutOfBounds,
    InvalidConfiguration,
)

__all__ = [
    "GridState",
    "AvalancheTracker",
    "RelaxationEngine",
    "RelaxPolicy",
    "SimulationConfig",
    "SimulationLoop",
    "Snapshot",
    "OutOfBounds",
    "InvalidConfiguration",
]
