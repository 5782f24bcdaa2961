"""
Sandpile GUI Module

PyQt6/PyQt5 viewer for a running sandpile simulation.

Components:
- SandpileWindow: Fixed-size window painting the latest snapshot
- SimulationThread: QThread running a SimulationLoop in the background

Usage:
    from sandpile.gui import launch_gui
    from sandpile.core import SimulationConfig

    launch_gui(SimulationConfig(cols=120, rows=80, scale=5))

Requirements:
    PyQt6 (recommended) or PyQt5
"""

# Check for PyQt availability
try:
    from PyQt6.QtWidgets import QApplication
    HAS_PYQT6 = True
    HAS_PYQT = True
except ImportError:
    HAS_PYQT6 = False
    try:
        from PyQt5.QtWidgets import QApplication
        HAS_PYQT = True
    except ImportError:
        HAS_PYQT = False

if HAS_PYQT:
    from sandpile.gui.viewer import SandpileWindow, launch_gui
    from sandpile.gui.simulation_thread import SimulationThread
else:
    # Provide placeholders if PyQt not available
    SandpileWindow = None
    SimulationThread = None
    launch_gui = None

__all__ = [
    'SandpileWindow',
    'SimulationThread',
    'launch_gui',
    'HAS_PYQT',
    'HAS_PYQT6',
]
