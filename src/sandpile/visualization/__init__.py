"""
Visualization module: colour mapping, upscaling and frame export.

- snapshot_to_rgb / upscale_nearest: pure numpy, used by the GUI and exporter
- save_frame: Matplotlib-based image export for headless runs
"""

from sandpile.visualization.colours import (
    PALETTE,
    snapshot_to_rgb,
    upscale_nearest,
)
from sandpile.visualization.export import save_frame

__all__ = [
    'PALETTE',
    'snapshot_to_rgb',
    'upscale_nearest',
    'save_frame',
]
