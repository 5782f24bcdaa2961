"""
Tests for the SimulationLoop orchestrator.

Validates:
1. Tick ordering (drop -> relax -> snapshot) and counters
2. Snapshot immutability and independence from the live grid
3. Run/stop lifecycle, including interrupting the pacing wait
4. Error propagation from a tick
5. Readers never observe a half-relaxed grid
"""

import threading
import time

import numpy as np
import pytest

from sandpile.core.errors import InvalidConfiguration, OutOfBounds
from sandpile.core.relaxation import RelaxationEngine, RelaxPolicy
from sandpile.core.scheduling import DropScheduler, FixedDropScheduler
from sandpile.core.simulation import (
    LoopState,
    SimulationConfig,
    SimulationLoop,
    Snapshot,
)


class EdgeScheduler(DropScheduler):
    """Drops one column past the right edge: a logic bug."""

    def next_drop(self):
        return self.cols, 0


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


class TestTick:
    """Single tick behaviour."""

    def test_initial_snapshot(self):
        loop = SimulationLoop(SimulationConfig(cols=5, rows=4))
        snap = loop.snapshot()
        assert snap.tick == 0
        assert snap.counts.shape == (4, 5)
        assert np.all(snap.recency == 255)
        assert loop.loop_state is LoopState.IDLE

    def test_scenario_four_drops_at_centre(self):
        loop = SimulationLoop(SimulationConfig(cols=5, rows=5, delay_ms=0))
        for _ in range(3):
            loop.tick()
        snap = loop.tick()

        assert snap.tick == 4
        assert snap.counts[2, 2] == 0
        for x, y in [(1, 2), (3, 2), (2, 1), (2, 3)]:
            assert snap.counts[y, x] == 1
        assert snap.total_grains == 4
        assert snap.recency[2, 2] == 1
        assert loop.state.topples == 1

    def test_single_cell_dissipation(self):
        loop = SimulationLoop(SimulationConfig(cols=1, rows=1, delay_ms=0))
        for _ in range(4):
            snap = loop.tick()
        assert snap.counts[0, 0] == 0
        assert snap.dissipated == 4
        assert snap.total_grains + snap.dissipated == snap.drops == 4

    def test_policy_from_config(self):
        loop = SimulationLoop(SimulationConfig(relax_policy="full"))
        assert loop.engine.policy is RelaxPolicy.FULL
        assert loop.engine.threshold == 4

    def test_snapshot_is_read_only(self):
        loop = SimulationLoop(SimulationConfig(cols=3, rows=3))
        snap = loop.tick()
        with pytest.raises(ValueError):
            snap.counts[0, 0] = 7
        with pytest.raises(ValueError):
            snap.recency[0, 0] = 7

    def test_snapshot_is_a_copy(self):
        loop = SimulationLoop(SimulationConfig(cols=3, rows=3))
        snap = loop.tick()
        loop.tick()
        assert snap.counts[1, 1] == 1
        assert loop.snapshot().counts[1, 1] == 2

    def test_snapshot_is_frozen(self):
        snap = SimulationLoop(SimulationConfig(cols=2, rows=2)).snapshot()
        assert isinstance(snap, Snapshot)
        with pytest.raises(Exception):
            snap.tick = 10

    def test_random_drops_are_reproducible(self):
        config = SimulationConfig(cols=8, rows=8, drop_mode="random", random_seed=11)
        a = SimulationLoop(config)
        b = SimulationLoop(config)
        for _ in range(200):
            a.tick()
            b.tick()
        np.testing.assert_array_equal(a.snapshot().counts, b.snapshot().counts)

    def test_conservation_over_random_run(self):
        loop = SimulationLoop(
            SimulationConfig(cols=10, rows=10, drop_mode="random", random_seed=3)
        )
        for _ in range(2000):
            snap = loop.tick()
            assert snap.total_grains + snap.dissipated == snap.drops
        assert snap.dissipated > 0

    def test_injected_components(self):
        engine = RelaxationEngine(threshold=3, policy="full")
        loop = SimulationLoop(
            SimulationConfig(cols=3, rows=3, threshold=3),
            scheduler=FixedDropScheduler(3, 3),
            engine=engine,
        )
        for _ in range(3):
            snap = loop.tick()
        assert snap.counts[1, 1] == 0
        assert loop.engine is engine

    def test_engine_threshold_mismatch(self):
        with pytest.raises(InvalidConfiguration, match="threshold 3 does not match"):
            SimulationLoop(
                SimulationConfig(cols=3, rows=3),
                engine=RelaxationEngine(threshold=3),
            )

    def test_snapshot_leaves_source_arrays_writeable(self):
        counts = np.zeros((2, 3), dtype=np.int64)
        recency = np.full((2, 3), 255, dtype=np.int64)

        snap = Snapshot(tick=0, counts=counts, recency=recency)

        assert counts.flags.writeable
        assert recency.flags.writeable
        assert not snap.counts.flags.writeable
        assert not snap.recency.flags.writeable

    def test_scheduler_shape_mismatch(self):
        with pytest.raises(InvalidConfiguration, match="Drop scheduler"):
            SimulationLoop(SimulationConfig(cols=4, rows=4), scheduler=FixedDropScheduler(5, 4))


class TestRunLifecycle:
    """Run/stop state machine."""

    def test_run_max_ticks(self):
        loop = SimulationLoop(SimulationConfig(cols=6, rows=6, delay_ms=0))
        loop.run(max_ticks=25)
        assert loop.snapshot().tick == 25
        assert loop.loop_state is LoopState.STOPPED

    def test_stopped_is_terminal(self):
        loop = SimulationLoop(SimulationConfig(cols=3, rows=3, delay_ms=0))
        loop.run(max_ticks=1)
        with pytest.raises(RuntimeError, match="already stopped"):
            loop.run(max_ticks=1)

    def test_stop_before_run(self):
        loop = SimulationLoop(SimulationConfig(cols=3, rows=3, delay_ms=0))
        loop.request_stop()
        loop.run()
        assert loop.snapshot().tick == 0
        assert loop.loop_state is LoopState.STOPPED

    def test_stop_from_other_thread(self):
        loop = SimulationLoop(SimulationConfig(cols=10, rows=10, delay_ms=0))
        loop.start()
        assert wait_for(lambda: loop.snapshot().tick >= 10)
        loop.request_stop()
        assert loop.join(timeout=5.0)
        assert loop.loop_state is LoopState.STOPPED
        assert loop.error is None

    def test_stop_interrupts_pacing_wait(self):
        """A long pacing delay does not hold up shutdown."""
        loop = SimulationLoop(SimulationConfig(cols=4, rows=4, delay_ms=60_000))
        loop.start()
        assert wait_for(lambda: loop.snapshot().tick == 1)

        started = time.time()
        loop.request_stop()
        assert loop.join(timeout=5.0)
        assert time.time() - started < 5.0
        assert loop.snapshot().tick == 1

    def test_start_twice(self):
        loop = SimulationLoop(SimulationConfig(cols=3, rows=3, delay_ms=0))
        loop.start(max_ticks=1)
        with pytest.raises(RuntimeError, match="already started"):
            loop.start()
        loop.join(timeout=5.0)

    def test_join_without_thread(self):
        assert SimulationLoop(SimulationConfig(cols=2, rows=2)).join()


class TestErrors:
    """Fatal errors inside a tick."""

    def test_out_of_bounds_drop_propagates(self):
        loop = SimulationLoop(
            SimulationConfig(cols=4, rows=4, delay_ms=0),
            scheduler=EdgeScheduler(4, 4),
        )
        with pytest.raises(OutOfBounds):
            loop.run()
        assert loop.loop_state is LoopState.STOPPED
        assert isinstance(loop.error, OutOfBounds)
        assert loop.snapshot().tick == 0
        assert loop.grid.total() == 0


class TestConcurrentReaders:
    """Snapshots taken while the loop runs are always consistent."""

    @pytest.mark.parametrize("policy", ["partial", "full"])
    def test_reader_never_sees_torn_state(self, policy):
        loop = SimulationLoop(SimulationConfig(
            cols=12, rows=12, delay_ms=0, drop_mode="random",
            random_seed=8, relax_policy=policy,
        ))
        problems = []
        seen_ticks = []

        def reader():
            while not loop.stop_requested:
                snap = loop.snapshot()
                if snap.total_grains + snap.dissipated != snap.drops:
                    problems.append(snap.tick)
                if policy == "full" and np.any(snap.counts >= 4):
                    problems.append(snap.tick)
                seen_ticks.append(snap.tick)

        thread = threading.Thread(target=reader)
        thread.start()
        loop.start()
        wait_for(lambda: loop.snapshot().tick >= 1500)
        loop.request_stop()
        loop.join(timeout=5.0)
        thread.join(timeout=5.0)

        assert problems == []
        assert seen_ticks == sorted(seen_ticks)


class TestLogging:
    """Verbose progress output."""

    def test_verbose_prints(self, capsys):
        loop = SimulationLoop(SimulationConfig(cols=3, rows=3, delay_ms=0, verbose=True))
        loop.run(max_ticks=5)
        out = capsys.readouterr().out
        assert "Starting simulation" in out
        assert "stopped after 5 ticks" in out

    def test_quiet_by_default(self, capsys):
        SimulationLoop(SimulationConfig(cols=3, rows=3, delay_ms=0)).run(max_ticks=5)
        assert capsys.readouterr().out == ""
