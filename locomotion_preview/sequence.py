"""Preview-sequence description reader.

Layout:

    preview_sequence:
      state:
        com_pos: [x, y, z]
        com_vel: [x, y, z]
        cop: [x, y, z]
      preview_control:
        number_phase: 2
        phase_0:
          duration: 0.4
          cop_shift: [x, y]     # present -> stance phase, absent -> flight phase
          head_acc: 0.0         # optional, stance only
          LF: [x, y]            # footstep shift of each foot swinging in this phase
        phase_1:
          ...
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Sequence

import numpy as np
import yaml
from absl import logging

from locomotion_preview.errors import MissingConfigKeyError
from locomotion_preview.state import (
    Phase,
    PhaseType,
    PreviewControl,
    PreviewParams,
    ReducedBodyState,
)

ROOT_NS = "preview_sequence"


def _namespace(node: Dict[str, Any], key: str, namespace: str) -> Dict[str, Any]:
    child = _read(node, key, namespace)
    if not isinstance(child, dict):
        raise MissingConfigKeyError(key, namespace)
    return child


def _read(node: Dict[str, Any], key: str, namespace: str) -> Any:
    if key not in node or node[key] is None:
        raise MissingConfigKeyError(key, namespace)
    return node[key]


def _read_vector(node: Dict[str, Any], key: str, namespace: str, size: int) -> np.ndarray:
    return np.asarray(_read(node, key, namespace), dtype=np.float64).reshape(size)


def load_preview_sequence(
    state: ReducedBodyState,
    control: PreviewControl,
    data: Dict[str, Any],
    feet_names: Sequence[str],
) -> None:
    """Fill `state` and `control` from a parsed description.

    Fields are written as soon as they are read, so on MissingConfigKeyError
    everything parsed before the missing key is kept.
    """
    root = _namespace(data, ROOT_NS, "root")
    state_ns = f"{ROOT_NS}.state"
    control_ns = f"{ROOT_NS}.preview_control"

    state_node = _namespace(root, "state", ROOT_NS)
    state.com_pos = _read_vector(state_node, "com_pos", state_ns, 3)
    state.com_vel = _read_vector(state_node, "com_vel", state_ns, 3)
    state.cop = _read_vector(state_node, "cop", state_ns, 3)

    control_node = _namespace(root, "preview_control", ROOT_NS)
    num_phases = int(_read(control_node, "number_phase", control_ns))
    control.params = []
    for k in range(num_phases):
        phase_key = f"phase_{k}"
        phase_ns = f"{control_ns}.{phase_key}"
        phase_node = _namespace(control_node, phase_key, control_ns)

        duration = float(_read(phase_node, "duration", phase_ns))
        phase = Phase(type=PhaseType.FLIGHT)
        params = PreviewParams(duration=duration, phase=phase)

        cop_shift = phase_node.get("cop_shift")
        if cop_shift is not None:
            phase.set_type_of_phase(PhaseType.STANCE)
            params.cop_shift = np.asarray(cop_shift, dtype=np.float64).reshape(-1)[:2].copy()
            params.head_acc = float(phase_node.get("head_acc", 0.0) or 0.0)

        for name in feet_names:
            shift = phase_node.get(name)
            if shift is not None:
                phase.set_swing_foot(name, np.asarray(shift, dtype=np.float64).reshape(-1)[:2])

        control.params.append(params)


def read_preview_sequence(
    state: ReducedBodyState,
    control: PreviewControl,
    filename: str | Path,
    feet_names: Sequence[str],
) -> bool:
    """Read a preview-sequence YAML file into `state` and `control`.

    Returns False (after logging) if a required key is missing.
    """
    with open(filename, "r") as f:
        data = yaml.safe_load(f) or {}

    try:
        load_preview_sequence(state, control, data, feet_names)
    except MissingConfigKeyError as e:
        logging.error("Error: %s", e)
        return False
    return True
