#!/usr/bin/env python3
"""
Command-line entrypoint for sandpile simulations.

Usage:
    sandpile [cols] [rows] [scale] [delayMs] [random]
    sandpile 250 250 random
    sandpile 100 100 4
    sandpile 80 80 1 0 --headless --ticks 20000 --frame-out frame.png
    sandpile --config sandpile.yaml --policy full

Put "random" as the last positional argument to drop grains at random cells
instead of the grid centre. Positional numbers that cannot be parsed are
ignored and the defaults are used instead.
"""

import argparse
import sys
from typing import Any, Dict, List, Optional, Sequence

from sandpile.config import load_config, config_from_dict
from sandpile.core.errors import InvalidConfiguration
from sandpile.core.simulation import SimulationConfig, SimulationLoop


def _parse_int(token: str) -> Optional[int]:
    try:
        return int(token)
    except ValueError:
        return None


def parse_positional(tokens: Sequence[str]) -> Dict[str, Any]:
    """
    Interpret the positional ``[cols] [rows] [scale] [delayMs] [random]`` grammar.

    Only successfully parsed values are returned; anything malformed is left
    out so the configuration defaults apply. ``rows`` is only read when
    ``cols`` parsed. Scale is clamped to >= 1 and delay to >= 0.

    Parameters
    ----------
    tokens : sequence of str
        Positional command-line arguments.

    Returns
    -------
    overrides : dict
        Subset of ``cols``, ``rows``, ``scale``, ``delay_ms``, ``drop_mode``.
    """
    overrides: Dict[str, Any] = {}

    if tokens and tokens[-1] == "random":
        overrides['drop_mode'] = "random"

    if len(tokens) >= 2:
        cols = _parse_int(tokens[0])
        if cols is not None:
            overrides['cols'] = cols
            rows = _parse_int(tokens[1])
            if rows is not None:
                overrides['rows'] = rows

    if len(tokens) >= 3:
        scale = _parse_int(tokens[2])
        if scale is not None:
            overrides['scale'] = max(1, scale)

    if len(tokens) >= 4:
        delay = _parse_int(tokens[3])
        if delay is not None:
            overrides['delay_ms'] = max(0, delay)

    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sandpile",
        description="Run an Abelian sandpile simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("params", nargs="*", metavar="ARG",
                        help="[cols] [rows] [scale] [delayMs] [random]")
    parser.add_argument("--config", "-c", type=str, default=None,
                        help="YAML/JSON configuration file (positional args override it)")
    parser.add_argument("--policy", choices=["partial", "full"], default=None,
                        help="Cascade policy")
    parser.add_argument("--threshold", type=int, default=None,
                        help="Toppling threshold")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for random dropping")

    # Headless mode
    parser.add_argument("--headless", action="store_true",
                        help="Run without a window")
    parser.add_argument("--ticks", type=int, default=1000,
                        help="Number of ticks in headless mode")
    parser.add_argument("--frame-out", type=str, default=None,
                        help="Write the final frame to this image file (headless mode)")

    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print progress messages")
    return parser


def run_headless(config: SimulationConfig, ticks: int, frame_out: Optional[str] = None) -> int:
    """Run ``ticks`` ticks on the calling thread and print a summary."""
    loop = SimulationLoop(config)
    loop.run(max_ticks=ticks)
    snapshot = loop.snapshot()

    print("=" * 60)
    print(f"Sandpile {config.cols}x{config.rows} ({config.relax_policy} cascade)")
    print(f"  Ticks:      {snapshot.tick}")
    print(f"  On grid:    {snapshot.total_grains}")
    print(f"  Dissipated: {snapshot.dissipated}")
    print(f"  Topples:    {loop.state.topples}")
    print(f"  Wall time:  {loop.state.wall_time_elapsed:.2f} s")

    if frame_out:
        from sandpile.visualization import save_frame
        path = save_frame(snapshot, frame_out, scale=config.scale)
        print(f"  Frame:      {path}")
    print("=" * 60)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = parse_positional(args.params)
    if args.policy is not None:
        overrides['relax_policy'] = args.policy
    if args.threshold is not None:
        overrides['threshold'] = args.threshold
    if args.seed is not None:
        overrides['random_seed'] = args.seed
    if args.verbose:
        overrides['verbose'] = True

    try:
        if args.config:
            config = load_config(args.config, **overrides)
        else:
            config = config_from_dict(overrides)
    except (InvalidConfiguration, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.headless:
        return run_headless(config, args.ticks, args.frame_out)

    from sandpile.gui import HAS_PYQT, launch_gui
    if not HAS_PYQT:
        print("Error: PyQt6 or PyQt5 is required for the viewer; "
              "install the 'gui' extra or use --headless", file=sys.stderr)
        return 1
    return launch_gui(config)


if __name__ == "__main__":
    sys.exit(main())
