"""
Drop schedulers: choose the cell that receives the next grain.

Two strategies are provided:
- FixedDropScheduler: always the grid centre ``(cols // 2, rows // 2)``
- RandomDropScheduler: uniform over the grid, driven by an injectable
  numpy Generator so runs are reproducible under a fixed seed
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple
import numpy as np

from sandpile.core.errors import InvalidConfiguration


DROP_MODES = ("fixed", "random")


class DropScheduler(ABC):
    """
    Abstract base class for drop-coordinate strategies.

    Parameters
    ----------
    cols, rows : int
        Grid dimensions; returned coordinates always lie in
        ``[0, cols) x [0, rows)``.
    """

    def __init__(self, cols: int, rows: int):
        if cols <= 0 or rows <= 0:
            raise InvalidConfiguration(
                f"Grid dimensions must be positive, got cols={cols}, rows={rows}"
            )
        self.cols = int(cols)
        self.rows = int(rows)

    @abstractmethod
    def next_drop(self) -> Tuple[int, int]:
        """
        Return the ``(x, y)`` coordinate receiving the next grain.
        """
        pass


class FixedDropScheduler(DropScheduler):
    """Always drop at the grid centre (integer division)."""

    def next_drop(self) -> Tuple[int, int]:
        return self.cols // 2, self.rows // 2


class RandomDropScheduler(DropScheduler):
    """
    Drop uniformly at random.

    Parameters
    ----------
    cols, rows : int
        Grid dimensions.
    seed : int, optional
        Seed for ``numpy.random.default_rng``. None seeds from OS entropy.
    rng : numpy.random.Generator, optional
        Pre-built generator; takes precedence over ``seed``.
    """

    def __init__(
        self,
        cols: int,
        rows: int,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        super().__init__(cols, rows)
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def next_drop(self) -> Tuple[int, int]:
        x = int(self.rng.integers(0, self.cols))
        y = int(self.rng.integers(0, self.rows))
        return x, y


def make_drop_scheduler(
    mode: str,
    cols: int,
    rows: int,
    seed: Optional[int] = None,
) -> DropScheduler:
    """
    Build a scheduler from its mode name (``"fixed"`` or ``"random"``).

    Raises
    ------
    InvalidConfiguration
        If ``mode`` is unknown.
    """
    if mode == "fixed":
        return FixedDropScheduler(cols, rows)
    if mode == "random":
        return RandomDropScheduler(cols, rows, seed=seed)
    raise InvalidConfiguration(f"drop_mode must be one of {list(DROP_MODES)}, got '{mode}'")
