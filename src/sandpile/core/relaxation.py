"""
Worklist-based relaxation of an unstable sandpile.

A relaxation pass scans the grid once, queues every cell holding at least
``threshold`` grains and then topples queued cells in FIFO order. Each topple
removes ``n * threshold`` grains from the cell (``n = count // threshold``) and
hands ``n`` grains to each of its four neighbours. Shares aimed outside the
grid are dissipated, which is the only way grains leave the system.

Two cascade policies are supported:

- ``partial``: neighbours pushed over the threshold are left for the next
  pass, so an avalanche propagates one wavefront per tick.
- ``full``: such neighbours are queued immediately and the pass only returns
  once the whole grid is stable.

Queue entries are re-validated when popped. A cell can be queued more than
once, or drop below the threshold after being queued, and such stale entries
are skipped without touching any state.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Set, Tuple, Union

import numpy as np

from sandpile.core.avalanche import AvalancheTracker
from sandpile.core.errors import InvalidConfiguration
from sandpile.core.grid import GridState


# Left, right, up, down
NEIGHBOUR_OFFSETS: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


class RelaxPolicy(str, Enum):
    """Cascade policy for a relaxation pass."""

    PARTIAL = "partial"
    FULL = "full"

    @classmethod
    def parse(cls, value: Union[str, "RelaxPolicy"]) -> "RelaxPolicy":
        try:
            return cls(value)
        except ValueError:
            valid = [p.value for p in cls]
            raise InvalidConfiguration(
                f"relax_policy must be one of {valid}, got '{value}'"
            ) from None


@dataclass
class RelaxationResult:
    """
    Outcome of a single relaxation pass.

    Attributes
    ----------
    topples : int
        Number of topple events (a cell toppling k bundles at once counts once).
    dissipated : int
        Grains sent off the edge of the grid.
    toppled_cells : int
        Number of distinct cells that toppled.
    stable : bool
        True if no cell holds ``threshold`` grains or more at return.
    """
    topples: int = 0
    dissipated: int = 0
    toppled_cells: int = 0
    stable: bool = True


class RelaxationEngine:
    """
    FIFO worklist toppling over a GridState.

    Parameters
    ----------
    threshold : int, optional
        Capacity at which a cell topples (default 4). Must be >= 2.
    policy : RelaxPolicy or str, optional
        ``"partial"`` (default) or ``"full"``.

    Examples
    --------
    >>> grid = GridState(5, 5)
    >>> tracker = AvalancheTracker(5, 5)
    >>> grid.add_grain(2, 2, 4)
    >>> RelaxationEngine().relax(grid, tracker).topples
    1
    """

    def __init__(self, threshold: int = 4, policy: Union[str, RelaxPolicy] = RelaxPolicy.PARTIAL):
        if threshold < 2:
            raise InvalidConfiguration(f"threshold must be >= 2, got {threshold}")
        self.threshold = int(threshold)
        self.policy = RelaxPolicy.parse(policy)

    def relax(self, grid: GridState, tracker: AvalancheTracker) -> RelaxationResult:
        """
        Run one relaxation pass, mutating ``grid`` and ``tracker`` in place.

        Parameters
        ----------
        grid : GridState
            Grain counts to relax.
        tracker : AvalancheTracker
            Recency array of the same shape; decayed once, then reset for
            every cell that topples.

        Returns
        -------
        result : RelaxationResult
            Topple and dissipation counters for this pass.
        """
        if (tracker.cols, tracker.rows) != (grid.cols, grid.rows):
            raise ValueError(
                f"Tracker shape ({tracker.cols}x{tracker.rows}) does not match "
                f"grid shape ({grid.cols}x{grid.rows})"
            )

        threshold = self.threshold
        cascade = self.policy is RelaxPolicy.FULL
        result = RelaxationResult()
        toppled: Set[Tuple[int, int]] = set()

        # Decay happens for every cell before any toppling in this pass
        tracker.decay_all()

        # argwhere yields (y, x) pairs in row-major order
        queue: Deque[Tuple[int, int]] = deque(
            (int(x), int(y)) for y, x in np.argwhere(grid.counts >= threshold)
        )

        while queue:
            x, y = queue.popleft()
            count = grid.get(x, y)
            if count < threshold:
                # Stale entry
                continue

            bundles = count // threshold
            grid.topple(x, y, bundles * threshold)
            tracker.mark_toppled(x, y)
            result.topples += 1
            toppled.add((x, y))

            for dx, dy in NEIGHBOUR_OFFSETS:
                nx, ny = x + dx, y + dy
                if not grid.in_bounds(nx, ny):
                    result.dissipated += bundles
                    continue
                grid.add_grain(nx, ny, bundles)
                if cascade and grid.get(nx, ny) >= threshold:
                    queue.append((nx, ny))

        result.toppled_cells = len(toppled)
        result.stable = not bool(np.any(grid.counts >= threshold))
        return result
