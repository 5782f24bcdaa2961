"""
Exception types raised by the sandpile core.

Both derive from builtin exceptions so callers that only know about
IndexError/ValueError keep working.
"""


class OutOfBounds(IndexError):
    """
    Coordinate access outside ``[0, cols) x [0, rows)``.

    Always indicates a caller or logic bug (e.g. a miscomputed drop
    coordinate). It is fatal to the tick in which it occurs.
    """

    def __init__(self, x: int, y: int, cols: int, rows: int):
        self.x = x
        self.y = y
        self.cols = cols
        self.rows = rows
        super().__init__(
            f"Coordinate ({x}, {y}) outside grid of {cols} cols x {rows} rows"
        )


class InvalidConfiguration(ValueError):
    """Configuration rejected before the simulation thread starts."""
