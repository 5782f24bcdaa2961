"""
Core module: grid, avalanche tracking, relaxation engine, drop scheduling
and the simulation loop.
"""

from sandpile.core.errors import OutOfBounds, InvalidConfiguration
from sandpile.core.grid import GridState
from sandpile.core.avalanche import AvalancheTracker
from sandpile.core.relaxation import (
    RelaxationEngine,
    RelaxationResult,
    RelaxPolicy,
)
from sandpile.core.scheduling import (
    DropScheduler,
    FixedDropScheduler,
    RandomDropScheduler,
    make_drop_scheduler,
)
from sandpile.core.simulation import (
    SimulationConfig,
    SimulationLoop,
    SimulationState,
    Snapshot,
    LoopState,
)

__all__ = [
    "OutOfBounds",
    "InvalidConfiguration",
    "GridState",
    "AvalancheTracker",
    "RelaxationEngine",
    "RelaxationResult",
    "RelaxPolicy",
    "DropScheduler",
    "FixedDropScheduler",
    "RandomDropScheduler",
    "make_drop_scheduler",
    "SimulationConfig",
    "SimulationLoop",
    "SimulationState",
    "Snapshot",
    "LoopState",
]
