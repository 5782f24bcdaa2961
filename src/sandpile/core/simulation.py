"""
Simulation orchestrator for the sandpile.

SimulationLoop drives one tick at a time:

    drop grain -> relax -> copy snapshot -> (release lock) -> pace

Design:
- Grid and recency arrays are owned by the loop and mutated only on the
  simulation thread, under a single lock held for the whole tick
- Readers (the GUI timer, tests) take the same lock just long enough to
  fetch the latest immutable Snapshot
- Stopping is cooperative: request_stop() sets an Event that is checked at
  the top of every tick and also interrupts the pacing wait
"""

from typing import Optional
from dataclasses import dataclass, field
from enum import Enum
import threading
import time as time_module
import warnings
import numpy as np
import numpy.typing as npt
from pydantic import (
    BaseModel, Field, AliasChoices, ConfigDict, ValidationError, field_validator, model_validator
)

from sandpile.core.avalanche import AvalancheTracker
from sandpile.core.errors import InvalidConfiguration
from sandpile.core.grid import GridState
from sandpile.core.relaxation import RelaxationEngine, RelaxationResult, RelaxPolicy
from sandpile.core.scheduling import DropScheduler, DROP_MODES, make_drop_scheduler


NDArrayInt = npt.NDArray[np.int64]

# Above this many cells a full cascade per tick gets noticeably slow
LARGE_GRID_CELLS = 512 * 512


class SimulationConfig(BaseModel):
    """
    Configuration for a sandpile run, validated with Pydantic.

    Read once at startup; the loop never mutates it.

    Attributes
    ----------
    cols, rows : int
        Grid dimensions (> 0).
    scale : int
        Display upscaling factor (>= 1). Only used by renderers.
    delay_ms : int
        Pause after each tick in milliseconds; 0 runs as fast as possible.
    drop_mode : str
        ``"fixed"`` (grid centre) or ``"random"``.
    relax_policy : str
        ``"partial"`` (one wavefront per tick) or ``"full"``.
    threshold : int
        Toppling capacity (>= 2).
    decay_factor : int
        Avalanche recency multiplier per pass (>= 1).
    random_seed : int, optional
        Seed for random dropping; None draws from OS entropy.
    verbose : bool
        Print progress messages.

    Constructing the model directly raises pydantic's ``ValidationError`` on
    bad values; use ``create()`` to get ``InvalidConfiguration`` instead.
    """

    # Grid
    cols: int = Field(default=50, gt=0, description="Number of grid columns")
    rows: int = Field(default=50, gt=0, description="Number of grid rows")

    # Display
    scale: int = Field(default=6, ge=1, description="Pixel upscaling factor")
    delay_ms: int = Field(
        default=5,
        ge=0,
        validation_alias=AliasChoices("delay_ms", "delayMs"),
        description="Pacing delay between ticks in milliseconds"
    )

    # Dynamics
    drop_mode: str = Field(
        default="fixed",
        validation_alias=AliasChoices("drop_mode", "dropMode"),
        description="Drop mode: 'fixed' or 'random'"
    )
    relax_policy: str = Field(
        default="partial",
        validation_alias=AliasChoices("relax_policy", "relaxPolicy"),
        description="Cascade policy: 'partial' or 'full'"
    )
    threshold: int = Field(default=4, ge=2, description="Toppling threshold")
    decay_factor: int = Field(
        default=2,
        ge=1,
        validation_alias=AliasChoices("decay_factor", "decayFactor"),
        description="Avalanche recency decay multiplier"
    )

    # Misc
    random_seed: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("random_seed", "randomSeed", "seed"),
        description="Seed for random dropping"
    )
    verbose: bool = Field(default=False, description="Enable verbose logging")

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
    )

    @classmethod
    def create(cls, **kwargs) -> "SimulationConfig":
        """Build a config, reporting bad values as InvalidConfiguration."""
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise InvalidConfiguration(f"Configuration validation failed: {e}") from e

    @field_validator('drop_mode')
    @classmethod
    def validate_drop_mode(cls, v: str) -> str:
        """Validate drop mode."""
        if v not in DROP_MODES:
            raise ValueError(f"drop_mode must be one of {list(DROP_MODES)}, got '{v}'")
        return v

    @field_validator('relax_policy')
    @classmethod
    def validate_relax_policy(cls, v: str) -> str:
        """Validate relaxation policy."""
        valid_policies = [p.value for p in RelaxPolicy]
        if v not in valid_policies:
            raise ValueError(f"relax_policy must be one of {valid_policies}, got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_configuration_consistency(self):
        """Warn about legal but questionable combinations."""
        if self.relax_policy == "full" and self.cols * self.rows > LARGE_GRID_CELLS:
            warnings.warn(
                f"Full cascade relaxation on a {self.cols}x{self.rows} grid may stall "
                "individual ticks. Consider relax_policy='partial'."
            )

        if self.decay_factor == 1:
            warnings.warn(
                "decay_factor=1 never ages avalanche recency; toppled cells stay "
                "highlighted forever."
            )

        return self


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class SimulationState:
    """
    Running counters for the simulation.
    """
    tick: int = 0
    drops: int = 0
    topples: int = 0
    dissipated: int = 0
    last_topples: int = 0
    last_dissipated: int = 0

    # Timing
    wall_time_start: float = field(default_factory=time_module.time)
    wall_time_elapsed: float = 0.0

    def record(self, result: RelaxationResult):
        """Accumulate the outcome of one tick (one drop plus one relax)."""
        self.tick += 1
        self.drops += 1
        self.topples += result.topples
        self.dissipated += result.dissipated
        self.last_topples = result.topples
        self.last_dissipated = result.dissipated


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable copy of the simulation arrays after a completed tick.

    Attributes
    ----------
    tick : int
        Number of ticks applied when the snapshot was taken.
    counts : ndarray, shape (rows, cols)
        Grain counts, read-only.
    recency : ndarray, shape (rows, cols)
        Avalanche recency in [1, 255], read-only.
    drops : int
        Grains dropped so far.
    dissipated : int
        Grains lost off the grid edge so far.
    """
    tick: int
    counts: NDArrayInt
    recency: NDArrayInt
    drops: int = 0
    dissipated: int = 0

    def __post_init__(self):
        # Lock views so the caller's own arrays stay writeable
        for name in ("counts", "recency"):
            view = np.asarray(getattr(self, name)).view()
            view.flags.writeable = False
            object.__setattr__(self, name, view)

    @property
    def total_grains(self) -> int:
        return int(self.counts.sum())


class SimulationLoop:
    """
    Tick orchestrator and run/stop lifecycle for a sandpile.

    Usage:
        >>> config = SimulationConfig(cols=100, rows=100, drop_mode="random")
        >>> loop = SimulationLoop(config)
        >>> loop.start()
        >>> snap = loop.snapshot()      # from any thread
        >>> loop.request_stop()
        >>> loop.join()

    Parameters
    ----------
    config : SimulationConfig, optional
        Run configuration (defaults if omitted).
    scheduler : DropScheduler, optional
        Override for the drop strategy named in ``config``.
    engine : RelaxationEngine, optional
        Override for the engine built from ``config``. Its threshold must
        match ``config.threshold``; its policy may differ.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        scheduler: Optional[DropScheduler] = None,
        engine: Optional[RelaxationEngine] = None,
    ):
        self.config = config if config is not None else SimulationConfig()
        cfg = self.config

        self.grid = GridState(cfg.cols, cfg.rows)
        self.tracker = AvalancheTracker(cfg.cols, cfg.rows, cfg.decay_factor)
        self.engine = engine if engine is not None else RelaxationEngine(
            threshold=cfg.threshold, policy=cfg.relax_policy
        )
        self.scheduler = scheduler if scheduler is not None else make_drop_scheduler(
            cfg.drop_mode, cfg.cols, cfg.rows, seed=cfg.random_seed
        )
        self._validate_components()

        self.state = SimulationState()
        self.error: Optional[BaseException] = None

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._loop_state = LoopState.IDLE
        self._thread: Optional[threading.Thread] = None
        self._latest = self._take_snapshot()

    @classmethod
    def from_config(cls, config_dict: dict) -> "SimulationLoop":
        """Build a loop from a plain (possibly nested) configuration dict."""
        from sandpile.config.loaders import config_from_dict
        return cls(config_from_dict(config_dict))

    def _validate_components(self):
        if (self.scheduler.cols, self.scheduler.rows) != (self.grid.cols, self.grid.rows):
            raise InvalidConfiguration(
                f"Drop scheduler covers {self.scheduler.cols}x{self.scheduler.rows} "
                f"but the grid is {self.grid.cols}x{self.grid.rows}"
            )
        if self.engine.threshold != self.config.threshold:
            raise InvalidConfiguration(
                f"Relaxation engine threshold {self.engine.threshold} does not match "
                f"configured threshold {self.config.threshold}"
            )

    def _log(self, message: str):
        """Log message if verbose."""
        if self.config.verbose:
            print(f"[{self.state.tick:8d}] {message}")

    @property
    def loop_state(self) -> LoopState:
        return self._loop_state

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def _take_snapshot(self) -> Snapshot:
        return Snapshot(
            tick=self.state.tick,
            counts=self.grid.copy_counts(),
            recency=self.tracker.copy_recency(),
            drops=self.state.drops,
            dissipated=self.state.dissipated,
        )

    def tick(self) -> Snapshot:
        """
        Apply one atomic tick: drop a grain, relax, publish a snapshot.

        Returns
        -------
        snapshot : Snapshot
            State after the tick.

        Raises
        ------
        OutOfBounds
            If the scheduler produced a coordinate outside the grid.
        """
        with self._lock:
            x, y = self.scheduler.next_drop()
            self.grid.add_grain(x, y)
            result = self.engine.relax(self.grid, self.tracker)
            self.state.record(result)
            self._latest = self._take_snapshot()
            return self._latest

    def snapshot(self) -> Snapshot:
        """Latest published snapshot; safe to call from any thread."""
        with self._lock:
            return self._latest

    def request_stop(self):
        """Request graceful stop; observed within one tick."""
        self._stop_event.set()

    def run(self, max_ticks: Optional[int] = None):
        """
        Run ticks until a stop is requested (or ``max_ticks`` ticks ran).

        Blocks the calling thread. The pacing wait happens outside the lock and
        is cut short by request_stop(). Any exception raised by a tick stops
        the loop and is re-raised.
        """
        if self._loop_state is LoopState.STOPPED:
            raise RuntimeError("Simulation loop already stopped")

        cfg = self.config
        delay = cfg.delay_ms / 1000.0
        self._loop_state = LoopState.RUNNING
        self.state.wall_time_start = time_module.time()
        self._log(
            f"Starting simulation: {cfg.cols}x{cfg.rows} grid, drop_mode={cfg.drop_mode}, "
            f"relax_policy={cfg.relax_policy}, delay={cfg.delay_ms} ms"
        )

        ticks_run = 0
        try:
            while not self._stop_event.is_set():
                if max_ticks is not None and ticks_run >= max_ticks:
                    break
                self.tick()
                ticks_run += 1
                if delay > 0:
                    self._stop_event.wait(delay)
        except Exception as e:
            self.error = e
            self._log(f"ERROR: {type(e).__name__}: {e}")
            raise
        finally:
            self._loop_state = LoopState.STOPPED
            self.state.wall_time_elapsed = time_module.time() - self.state.wall_time_start
            self._log(
                f"Simulation stopped after {self.state.tick} ticks "
                f"({self.state.topples} topples, {self.state.dissipated} grains dissipated, "
                f"{self.state.wall_time_elapsed:.2f} s)"
            )

    def start(self, max_ticks: Optional[int] = None) -> threading.Thread:
        """Run the loop on a dedicated daemon thread."""
        if self._thread is not None:
            raise RuntimeError("Simulation thread already started")
        self._thread = threading.Thread(
            target=self.run,
            kwargs={'max_ticks': max_ticks},
            name="sandpile-sim",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the simulation thread.

        Returns
        -------
        finished : bool
            False if the thread is still alive after ``timeout``.
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()
