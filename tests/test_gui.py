#!/usr/bin/env python3
"""
Tests for GUI Components

Test coverage:
- Viewer window creation and sizing
- Frame refresh from the simulation snapshot
- Escape key and window close stop the simulation
- SimulationThread runs the loop in the background

NOTE: GUI tests require PyQt6 or PyQt5. Tests are skipped if not available.
Uses offscreen platform for headless testing in CI.
"""

import pytest
import sys

# Check for PyQt availability
try:
    from PyQt6.QtWidgets import QApplication
    from PyQt6.QtTest import QTest
    HAS_PYQT = True
    PYQT_VERSION = 6
except ImportError:
    try:
        from PyQt5.QtWidgets import QApplication
        from PyQt5.QtTest import QTest
        HAS_PYQT = True
        PYQT_VERSION = 5
    except ImportError:
        HAS_PYQT = False

pytestmark = pytest.mark.skipif(
    not HAS_PYQT,
    reason="PyQt6 or PyQt5 required for GUI tests"
)

from sandpile.core.simulation import SimulationConfig, SimulationLoop


# QApplication fixture (shared across all tests)
@pytest.fixture(scope='session')
def qapp():
    """Create QApplication for all GUI tests."""
    if HAS_PYQT:
        # Use offscreen platform for headless testing
        app = QApplication.instance()
        if app is None:
            app = QApplication(sys.argv + ['-platform', 'offscreen'])
        yield app
    else:
        yield None


@pytest.fixture
def loop():
    return SimulationLoop(SimulationConfig(cols=10, rows=8, scale=3, delay_ms=0))


@pytest.fixture
def window(qapp, loop):
    """Create viewer window without a simulation thread."""
    from sandpile.gui import SandpileWindow
    win = SandpileWindow(loop)
    yield win
    win.close()


class TestSandpileWindow:
    """Viewer window behaviour."""

    def test_window_size(self, window):
        assert window.width() == 30
        assert window.height() == 24
        assert window.windowTitle() == "Sandpile"

    def test_initial_frame(self, window):
        assert window.frame_tick == 0
        assert window._image is not None
        assert window._image.width() == 30
        assert window._image.height() == 24

    def test_refresh_picks_up_new_ticks(self, window, loop):
        for _ in range(5):
            loop.tick()
        window.refresh()
        assert window.frame_tick == 5

    def test_close_requests_stop(self, window, loop):
        window.close()
        assert loop.stop_requested

    def test_escape_requests_stop(self, window, loop):
        from sandpile.gui.viewer import KEY_ESCAPE
        window.show()
        QTest.keyClick(window, KEY_ESCAPE)
        assert loop.stop_requested


class TestSimulationThread:
    """Background QThread wrapper."""

    def test_runs_requested_ticks(self, qapp, loop):
        from sandpile.gui import SimulationThread
        thread = SimulationThread(loop, max_ticks=25)
        thread.start()
        assert thread.wait(5000)
        assert loop.snapshot().tick == 25

    def test_request_stop_forwards(self, qapp, loop):
        from sandpile.gui import SimulationThread
        thread = SimulationThread(loop)
        thread.start()
        thread.request_stop()
        assert thread.wait(5000)
        assert loop.stop_requested

    def test_error_signal(self, qapp):
        from sandpile.core.scheduling import DropScheduler
        from sandpile.gui import SimulationThread

        class OffGridScheduler(DropScheduler):
            def next_drop(self):
                return -1, 0

        loop = SimulationLoop(
            SimulationConfig(cols=4, rows=4, delay_ms=0),
            scheduler=OffGridScheduler(4, 4),
        )
        thread = SimulationThread(loop)
        errors = []
        thread.error_occurred.connect(errors.append)
        thread.run()  # run synchronously so the signal is delivered directly

        assert len(errors) == 1
        assert "OutOfBounds" in errors[0]

    def test_finished_signal_shows_final_frame(self, qapp, loop):
        from sandpile.gui import SandpileWindow, SimulationThread
        thread = SimulationThread(loop, max_ticks=12)
        win = SandpileWindow(loop, simulation_thread=thread)
        try:
            thread.run()  # synchronous, so the finished signal is delivered directly
            assert win.frame_tick == 12
            assert not win._timer.isActive()
        finally:
            win.close()
