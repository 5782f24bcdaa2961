#!/usr/bin/env python3
"""
Sandpile GUI: viewer window.

A fixed-size PyQt6 widget that periodically pulls the latest snapshot from a
SimulationLoop, converts it to RGB and paints it upscaled with
nearest-neighbour sampling. Escape or closing the window stops the
simulation.
"""

import sys
from typing import Optional

import numpy as np

try:
    from PyQt6.QtWidgets import QApplication, QWidget
    from PyQt6.QtCore import Qt, QTimer
    from PyQt6.QtGui import QImage, QPainter
    PYQT_VERSION = 6
except ImportError:
    try:
        from PyQt5.QtWidgets import QApplication, QWidget
        from PyQt5.QtCore import Qt, QTimer
        from PyQt5.QtGui import QImage, QPainter
        PYQT_VERSION = 5
    except ImportError:
        raise ImportError(
            "PyQt6 or PyQt5 required for GUI. Install with:\n"
            "  pip install PyQt6   # Recommended\n"
            "  pip install PyQt5   # Alternative"
        )

from sandpile.core.simulation import SimulationConfig, SimulationLoop
from sandpile.gui.simulation_thread import SimulationThread
from sandpile.visualization.colours import snapshot_to_rgb, upscale_nearest


if PYQT_VERSION == 6:
    FORMAT_RGB888 = QImage.Format.Format_RGB888
    KEY_ESCAPE = Qt.Key.Key_Escape
    FOCUS_STRONG = Qt.FocusPolicy.StrongFocus
else:
    FORMAT_RGB888 = QImage.Format_RGB888
    KEY_ESCAPE = Qt.Key_Escape
    FOCUS_STRONG = Qt.StrongFocus


class SandpileWindow(QWidget):
    """
    Window displaying a running sandpile.

    Attributes:
        loop (SimulationLoop): Simulation being displayed
        simulation_thread (SimulationThread): Thread running the loop, if any
        frame_tick (int): Tick of the snapshot currently displayed
    """

    def __init__(
        self,
        loop: SimulationLoop,
        simulation_thread: Optional[SimulationThread] = None,
        refresh_ms: int = 16,
        parent=None,
    ):
        super().__init__(parent)
        self.loop = loop
        self.simulation_thread = simulation_thread
        self.scale = loop.config.scale
        self.frame_tick = -1
        self._image: Optional[QImage] = None

        self.setWindowTitle("Sandpile")
        self.setFixedSize(loop.config.cols * self.scale, loop.config.rows * self.scale)
        self.setFocusPolicy(FOCUS_STRONG)

        if simulation_thread is not None:
            simulation_thread.error_occurred.connect(self._on_simulation_error)
            simulation_thread.simulation_finished.connect(self._on_simulation_finished)

        self._timer = QTimer(self)
        self._timer.timeout.connect(self.refresh)
        self._timer.start(refresh_ms)
        self.refresh()

    def refresh(self):
        """Pull the latest snapshot and schedule a repaint if it changed."""
        snapshot = self.loop.snapshot()
        if snapshot.tick == self.frame_tick:
            return
        rgb = upscale_nearest(snapshot_to_rgb(snapshot.counts, snapshot.recency), self.scale)
        height, width, _ = rgb.shape
        # QImage does not own the buffer
        self._image = QImage(
            np.ascontiguousarray(rgb).tobytes(), width, height, 3 * width, FORMAT_RGB888
        ).copy()
        self.frame_tick = snapshot.tick
        self.update()

    def paintEvent(self, event):
        if self._image is None:
            return
        painter = QPainter(self)
        painter.drawImage(0, 0, self._image)
        painter.end()

    def keyPressEvent(self, event):
        if event.key() == KEY_ESCAPE:
            self.close()
            return
        super().keyPressEvent(event)

    def _on_simulation_finished(self):
        """Show the final state and stop polling; the window stays open."""
        self.refresh()
        self._timer.stop()

    def _on_simulation_error(self, error_message: str):
        print(f"Simulation error: {error_message}", file=sys.stderr)
        self.close()

    def closeEvent(self, event):
        """Stop the simulation before the window goes away."""
        self._timer.stop()
        self.loop.request_stop()
        if self.simulation_thread is not None:
            self.simulation_thread.wait(5000)  # Wait up to 5 seconds
        event.accept()


def launch_gui(config: Optional[SimulationConfig] = None) -> int:
    """
    Run the viewer application until the window is closed.

    Returns
    -------
    exit_code : int
        Qt application exit code.
    """
    config = config if config is not None else SimulationConfig()

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName("Sandpile")

    loop = SimulationLoop(config)
    thread = SimulationThread(loop)
    window = SandpileWindow(loop, simulation_thread=thread)
    window.show()
    window.setFocus()
    thread.start()

    return app.exec() if PYQT_VERSION == 6 else app.exec_()
