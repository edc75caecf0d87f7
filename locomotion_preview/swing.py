"""Closed-form swing-foot trajectories.

Horizontal motion is a single quintic blend from the lift-off to the
touch-down position. Vertical motion is two quintic segments joined at the
apex (mid-swing), so position, velocity and acceleration are continuous and
velocity is zero at lift-off, apex and touch-down.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from locomotion_preview.state import StepParameters


def _quintic_blend(s: float) -> Tuple[float, float, float]:
    """Minimum-jerk blend h(s) with h(0)=0, h(1)=1 and zero h', h'' at both ends."""
    s2 = s * s
    s3 = s2 * s
    h = s3 * (10.0 - 15.0 * s + 6.0 * s2)
    dh = 30.0 * s2 * (1.0 - 2.0 * s + s2)
    ddh = 60.0 * s * (1.0 - 3.0 * s + 2.0 * s2)
    return h, dh, ddh


class SwingGenerator:
    def __init__(self) -> None:
        self._start_time = 0.0
        self._duration = 0.0
        self._step_height = 0.0
        self._initial_pos = np.zeros(3, dtype=np.float64)
        self._target_pos = np.zeros(3, dtype=np.float64)
        self._apex_z = 0.0

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def duration(self) -> float:
        return self._duration

    def set_parameters(
        self,
        start_time: float,
        initial_pos: np.ndarray,
        target_pos: np.ndarray,
        params: StepParameters,
    ) -> None:
        if params.duration <= 0.0:
            raise ValueError(f"Swing duration must be > 0, got {params.duration}")
        if params.step_height < 0.0:
            raise ValueError(f"Step height must be >= 0, got {params.step_height}")

        self._start_time = float(start_time)
        self._duration = float(params.duration)
        self._step_height = float(params.step_height)
        self._initial_pos = np.asarray(initial_pos, dtype=np.float64).reshape(3).copy()
        self._target_pos = np.asarray(target_pos, dtype=np.float64).reshape(3).copy()
        self._apex_z = max(self._initial_pos[2], self._target_pos[2]) + self._step_height

    def generate_trajectory(self, time: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Position, velocity and acceleration of the foot at an absolute time."""
        time = float(time)
        zero = np.zeros(3, dtype=np.float64)
        if time <= self._start_time:
            return self._initial_pos.copy(), zero, zero.copy()
        if time >= self._start_time + self._duration:
            return self._target_pos.copy(), zero, zero.copy()
        s = (time - self._start_time) / self._duration

        T = self._duration
        p0 = self._initial_pos
        pf = self._target_pos

        pos = np.empty(3, dtype=np.float64)
        vel = np.empty(3, dtype=np.float64)
        acc = np.empty(3, dtype=np.float64)

        h, dh, ddh = _quintic_blend(s)
        delta = pf[:2] - p0[:2]
        pos[:2] = p0[:2] + delta * h
        vel[:2] = delta * dh / T
        acc[:2] = delta * ddh / (T * T)

        half = 0.5 * T
        if s <= 0.5:
            z_from, z_to, u = p0[2], self._apex_z, s / 0.5
        else:
            z_from, z_to, u = self._apex_z, pf[2], (s - 0.5) / 0.5
        h, dh, ddh = _quintic_blend(u)
        dz = z_to - z_from
        pos[2] = z_from + dz * h
        vel[2] = dz * dh / half
        acc[2] = dz * ddh / (half * half)
        return pos, vel, acc
