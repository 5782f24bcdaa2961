"""
Sand-count grid.

GridState owns the rows x cols integer array of grain counts. Arrays are
indexed ``[y, x]`` (row-major, matching the image the renderer builds), while
every public accessor takes ``(x, y)``.
"""

from typing import Tuple
import numpy as np
import numpy.typing as npt

from sandpile.core.errors import OutOfBounds, InvalidConfiguration


NDArrayInt = npt.NDArray[np.int64]


class GridState:
    """
    Fixed-size, zero-initialised grid of non-negative grain counts.

    Parameters
    ----------
    cols : int
        Number of columns (x extent). Must be > 0.
    rows : int
        Number of rows (y extent). Must be > 0.

    Raises
    ------
    InvalidConfiguration
        If either dimension is not positive.
    """

    def __init__(self, cols: int, rows: int):
        if cols <= 0 or rows <= 0:
            raise InvalidConfiguration(
                f"Grid dimensions must be positive, got cols={cols}, rows={rows}"
            )
        self.cols = int(cols)
        self.rows = int(rows)
        self._counts: NDArrayInt = np.zeros((self.rows, self.cols), dtype=np.int64)

    @property
    def shape(self) -> Tuple[int, int]:
        """Array shape ``(rows, cols)``."""
        return self._counts.shape

    @property
    def counts(self) -> NDArrayInt:
        """Read-only view of the counts. Use copy_counts() to keep data."""
        view = self._counts.view()
        view.flags.writeable = False
        return view

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.cols and 0 <= y < self.rows

    def _check(self, x: int, y: int):
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self.cols, self.rows)

    def get(self, x: int, y: int) -> int:
        """Return the grain count at ``(x, y)``."""
        self._check(x, y)
        return int(self._counts[y, x])

    def add_grain(self, x: int, y: int, amount: int = 1):
        """
        Add grains to a cell.

        Parameters
        ----------
        x, y : int
            Cell coordinate.
        amount : int, optional
            Number of grains to add (default 1). Must be non-negative.
        """
        self._check(x, y)
        if amount < 0:
            raise ValueError(f"Cannot add a negative number of grains ({amount})")
        self._counts[y, x] += amount

    def topple(self, x: int, y: int, amount: int):
        """
        Remove ``amount`` grains from a cell.

        Removing more grains than the cell holds is a logic error in the
        caller and raises ValueError rather than clamping.
        """
        self._check(x, y)
        current = self._counts[y, x]
        if amount < 0 or amount > current:
            raise ValueError(
                f"Cannot remove {amount} grains from cell ({x}, {y}) holding {current}"
            )
        self._counts[y, x] = current - amount

    def total(self) -> int:
        """Total number of grains on the grid."""
        return int(self._counts.sum())

    def copy_counts(self) -> NDArrayInt:
        """Independent copy of the counts array."""
        return self._counts.copy()

    def __repr__(self) -> str:
        return f"GridState(cols={self.cols}, rows={self.rows}, total={self.total()})"
