"""
Frame export to image files using Matplotlib.
"""

from pathlib import Path
from typing import Union

import matplotlib.pyplot as plt

from sandpile.core.simulation import Snapshot
from sandpile.visualization.colours import snapshot_to_rgb, upscale_nearest


def save_frame(snapshot: Snapshot, path: Union[str, Path], scale: int = 1) -> Path:
    """
    Write the rendered snapshot to an image file (format from the suffix).

    Parameters
    ----------
    snapshot : Snapshot
        Snapshot to render.
    path : str or Path
        Output file, e.g. ``frame.png``. Parent directories are created.
    scale : int, optional
        Nearest-neighbour upscaling factor (default 1).

    Returns
    -------
    path : Path
        The written file.
    """
    filepath = Path(path)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    image = upscale_nearest(snapshot_to_rgb(snapshot.counts, snapshot.recency), scale)
    plt.imsave(filepath, image)
    return filepath
