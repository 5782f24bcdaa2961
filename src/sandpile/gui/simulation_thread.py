#!/usr/bin/env python3
"""
Simulation Thread for Background Execution.

Runs a SimulationLoop in a background QThread so the GUI event loop stays
responsive. The window reads frames through SimulationLoop.snapshot(); this
thread only reports lifecycle events.

Features:
- Thread-safe simulation execution (the loop's own lock guards the grid)
- Graceful stop support, forwarded to SimulationLoop.request_stop()
- Error reporting through a Qt signal
"""

from typing import Optional

try:
    from PyQt6.QtCore import QThread, pyqtSignal
    PYQT_VERSION = 6
except ImportError:
    from PyQt5.QtCore import QThread, pyqtSignal
    PYQT_VERSION = 5

from sandpile.core.simulation import SimulationLoop


class SimulationThread(QThread):
    """
    Background thread for running a sandpile simulation.

    Signals:
        simulation_finished (): Emitted when the loop returns cleanly
        error_occurred (str): Emitted if a tick raised

    Usage:
        thread = SimulationThread(loop)
        thread.error_occurred.connect(self.on_error)
        thread.start()
    """

    simulation_finished = pyqtSignal()
    error_occurred = pyqtSignal(str)

    def __init__(self, loop: SimulationLoop, max_ticks: Optional[int] = None, parent=None):
        """
        Initialize SimulationThread.

        Parameters:
            loop: Simulation loop to run
            max_ticks: Optional tick limit; None runs until stopped
            parent: Parent QObject
        """
        super().__init__(parent)
        self.loop = loop
        self.max_ticks = max_ticks

    def request_stop(self):
        """Request graceful stop of simulation."""
        self.loop.request_stop()

    def run(self):
        """Run simulation in background thread."""
        try:
            self.loop.run(max_ticks=self.max_ticks)
            self.simulation_finished.emit()
        except Exception as e:
            self.error_occurred.emit(f"{type(e).__name__}: {e}")
