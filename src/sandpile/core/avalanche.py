"""
Avalanche recency tracking for visualization.

Each cell carries a value in [1, 255]: 1 means "toppled during the most
recent relaxation pass", 255 means "has not toppled for a long time" (or
never). The value decays geometrically once per pass and is reset when the
cell topples. It has no effect on the sandpile dynamics.
"""

import numpy as np
import numpy.typing as npt

from sandpile.core.errors import OutOfBounds, InvalidConfiguration


NDArrayInt = npt.NDArray[np.int64]


class AvalancheTracker:
    """
    Per-cell decaying "time since last topple" signal.

    Parameters
    ----------
    cols, rows : int
        Grid dimensions, must match the GridState being relaxed.
    decay_factor : int, optional
        Multiplier applied once per relaxation pass (default 2). Must be >= 1;
        a factor of 1 freezes recency after the first topple.
    """

    MAX_RECENCY = 255
    FRESH = 1

    def __init__(self, cols: int, rows: int, decay_factor: int = 2):
        if cols <= 0 or rows <= 0:
            raise InvalidConfiguration(
                f"Grid dimensions must be positive, got cols={cols}, rows={rows}"
            )
        if decay_factor < 1:
            raise InvalidConfiguration(f"decay_factor must be >= 1, got {decay_factor}")

        self.cols = int(cols)
        self.rows = int(rows)
        self.decay_factor = int(decay_factor)
        self._recency: NDArrayInt = np.full(
            (self.rows, self.cols), self.MAX_RECENCY, dtype=np.int64
        )

    def _check(self, x: int, y: int):
        if not (0 <= x < self.cols and 0 <= y < self.rows):
            raise OutOfBounds(x, y, self.cols, self.rows)

    def get(self, x: int, y: int) -> int:
        self._check(x, y)
        return int(self._recency[y, x])

    def decay(self, x: int, y: int):
        """Age one cell: ``recency = min(255, recency * decay_factor)``."""
        self._check(x, y)
        self._recency[y, x] = min(
            self.MAX_RECENCY, int(self._recency[y, x]) * self.decay_factor
        )

    def decay_all(self):
        """Age every cell at once."""
        np.minimum(self._recency * self.decay_factor, self.MAX_RECENCY, out=self._recency)

    def mark_toppled(self, x: int, y: int):
        self._check(x, y)
        self._recency[y, x] = self.FRESH

    def copy_recency(self) -> NDArrayInt:
        """Independent copy of the recency array."""
        return self._recency.copy()
