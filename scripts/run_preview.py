#!/usr/bin/env python3
"""Run a locomotion preview on an MJCF robot and print a summary.

Loads the robot model, reads a preview-sequence file, runs the multi-phase
preview and energy computation, and prints the phase boundaries and the CoM
trajectory summary.

Usage:
    # Default quadruped and trot sequence
    python scripts/run_preview.py

    # Custom model / sequence / tunables
    python scripts/run_preview.py --model assets/quadruped.xml \
        --sequence assets/preview_sequence.yaml --config assets/preview_config.yaml

    # Terminal states only
    python scripts/run_preview.py --summary
"""

import argparse
import sys
from pathlib import Path

import numpy as np
from absl import logging
from rich import print
from rich.console import Console
from rich.table import Table

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from locomotion_preview import (
    PreviewConfig,
    PreviewControl,
    PreviewEngine,
    ReducedBodyState,
)

console = Console()

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _fmt(vec) -> str:
    return "[" + ", ".join(f"{v:+.3f}" for v in np.asarray(vec).reshape(-1)) + "]"


def main():
    parser = argparse.ArgumentParser(description="Locomotion preview on an MJCF robot")
    parser.add_argument(
        "--model",
        type=str,
        default=str(PROJECT_ROOT / "assets" / "quadruped.xml"),
        help="MJCF robot model (default: assets/quadruped.xml)",
    )
    parser.add_argument(
        "--sequence",
        type=str,
        default=str(PROJECT_ROOT / "assets" / "preview_sequence.yaml"),
        help="Preview-sequence YAML (default: assets/preview_sequence.yaml)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=str(PROJECT_ROOT / "assets" / "preview_config.yaml"),
        help="Preview tunables YAML (default: assets/preview_config.yaml)",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Only compute the terminal state of each phase",
    )
    parser.add_argument(
        "--every",
        type=int,
        default=10,
        help="Print every N-th sample of a full preview (default: 10)",
    )
    args = parser.parse_args()

    logging.set_verbosity(logging.INFO)

    engine = PreviewEngine(PreviewConfig.from_yaml(args.config))
    engine.reset_from_mjcf(args.model)

    state = ReducedBodyState()
    control = PreviewControl()
    if not engine.read_preview_sequence(state, control, args.sequence):
        print(f"[red]Could not read preview sequence: {args.sequence}[/red]")
        return 1

    # start with every foot on the ground in the default posture
    for name, stance in engine.get_stance_posture().items():
        state.foot_pos[name] = stance.copy()
        state.foot_vel[name] = np.zeros(3)
        state.foot_acc[name] = np.zeros(3)
        state.support_region[name] = state.com_pos + stance

    trajectory = engine.multi_phase_preview(state, control, full=not args.summary)
    energy = engine.multi_phase_energy(state, control)

    phases = Table(title="Phases")
    phases.add_column("Phase", style="cyan")
    phases.add_column("Type")
    phases.add_column("Duration (s)", justify="right")
    phases.add_column("CoP shift")
    phases.add_column("Swing feet")
    for k, params in enumerate(control.params):
        phases.add_row(
            str(k),
            params.phase.type.value,
            f"{params.duration:.3f}",
            _fmt(params.cop_shift),
            ", ".join(params.phase.feet) or "-",
        )
    console.print(phases)

    samples = Table(title="Preview trajectory")
    samples.add_column("Time (s)", justify="right", style="cyan")
    samples.add_column("CoM pos")
    samples.add_column("CoM vel")
    samples.add_column("Yaw", justify="right")
    samples.add_column("Support")
    step = 1 if args.summary else max(1, args.every)
    last = len(trajectory) - 1
    for i, sample in enumerate(trajectory):
        if i % step != 0 and i != last:
            continue
        samples.add_row(
            f"{sample.time:.3f}",
            _fmt(sample.com_pos),
            _fmt(sample.com_vel),
            f"{sample.angular_pos[2]:+.3f}",
            ", ".join(sorted(sample.support_region)),
        )
    console.print(samples)

    print(f"\n[bold]Samples:[/bold] {len(trajectory)}")
    print(f"[bold]Energy (x, y, z):[/bold] {_fmt(energy)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
