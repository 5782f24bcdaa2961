"""
Snapshot to RGB image conversion.

Each cell is coloured by ``count % 4`` from a fixed palette and the red
channel is brightened by ``255 - recency`` (clamped to 255), so cells that
toppled recently glow and fade out as their recency decays.
"""

import numpy as np
import numpy.typing as npt


NDArrayUInt8 = npt.NDArray[np.uint8]

PALETTE = np.array([
    [0x00, 0x00, 0x00],  # black for 0
    [0x0F, 0x48, 0x7F],  # blueish for 1
    [0x7F, 0x7F, 0x7F],  # grey for 2
    [0x7F, 0x6B, 0x00],  # gold for 3
], dtype=np.int64)


def snapshot_to_rgb(counts: np.ndarray, recency: np.ndarray) -> NDArrayUInt8:
    """
    Map grain counts and avalanche recency to an RGB image.

    Parameters
    ----------
    counts : np.ndarray, shape (rows, cols)
        Grain counts.
    recency : np.ndarray, shape (rows, cols)
        Avalanche recency in [1, 255].

    Returns
    -------
    image : np.ndarray, shape (rows, cols, 3), dtype uint8
        RGB pixels, one per cell.
    """
    counts = np.asarray(counts)
    recency = np.asarray(recency)
    if counts.shape != recency.shape:
        raise ValueError(
            f"counts shape {counts.shape} does not match recency shape {recency.shape}"
        )

    rgb = PALETTE[counts % len(PALETTE)].copy()
    glow = np.maximum(0, 255 - recency)
    rgb[..., 0] = np.minimum(255, rgb[..., 0] + glow)
    return rgb.astype(np.uint8)


def upscale_nearest(image: np.ndarray, scale: int) -> np.ndarray:
    """
    Nearest-neighbour upscale of an image by an integer factor.

    Parameters
    ----------
    image : np.ndarray, shape (rows, cols, ...)
        Input image.
    scale : int
        Upscaling factor (>= 1).
    """
    if scale < 1:
        raise ValueError(f"scale must be >= 1, got {scale}")
    if scale == 1:
        return image
    return np.repeat(np.repeat(image, scale, axis=0), scale, axis=1)
