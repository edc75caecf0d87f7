"""Cart-table (linear inverted pendulum) model of the CoM.

The horizontal CoM dynamics are

    com_acc_xy = omega^2 * (com_xy - cop_xy),   omega^2 = gravity / pendulum_height

with the CoP moving linearly from its initial value by `cop_shift` over the
phase duration T. With d0 = com0 - cop0 and s = cop_shift the closed-form
response per planar axis is

    com(t) = com0 + d0 (cosh(wt) - 1) + (v0 - s/T)/w sinh(wt) + s t / T

The vertical CoM is held at its phase-start height (rigid legs).
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from locomotion_preview.state import (
    CartTableControlParams,
    CartTableProperties,
    ReducedBodyState,
)


class CartTableModel:
    def __init__(self, properties: Optional[CartTableProperties] = None) -> None:
        self._props: Optional[CartTableProperties] = None
        self._omega = 0.0
        self._init_state: Optional[ReducedBodyState] = None
        self._params: Optional[CartTableControlParams] = None
        # hyperbolic coefficients per planar axis
        self._cosh_coeff = np.zeros(2, dtype=np.float64)
        self._sinh_coeff = np.zeros(2, dtype=np.float64)
        self._cop_rate = np.zeros(2, dtype=np.float64)
        if properties is not None:
            self.set_model_properties(properties)

    def set_model_properties(self, properties: CartTableProperties) -> None:
        self._props = properties
        self._omega = math.sqrt(properties.gravity / properties.pendulum_height)

    @property
    def properties(self) -> CartTableProperties:
        if self._props is None:
            raise RuntimeError("CartTableModel properties are not set")
        return self._props

    def get_pendulum_height(self) -> float:
        return self.properties.pendulum_height

    def get_omega(self) -> float:
        return self._omega

    def init_response(self, state: ReducedBodyState, params: CartTableControlParams) -> None:
        """Cache the closed-form coefficients of one stance phase."""
        _ = self.properties
        duration = float(params.duration)
        if duration <= 0.0:
            raise ValueError(f"Phase duration must be > 0, got {duration}")

        cop_shift = np.asarray(params.cop_shift, dtype=np.float64).reshape(-1)[:2]
        self._init_state = state.copy()
        self._params = CartTableControlParams(duration=duration, cop_shift=cop_shift.copy())

        self._cop_rate = cop_shift / duration
        self._cosh_coeff = state.com_pos[:2] - state.cop[:2]
        self._sinh_coeff = (state.com_vel[:2] - self._cop_rate) / self._omega

    def compute_response(
        self,
        time: float,
        state: Optional[ReducedBodyState] = None,
    ) -> ReducedBodyState:
        """Evaluate the cached response at an absolute time.

        The returned state is a copy of `state` (or of the phase start state)
        with time, CoM and CoP replaced. Times outside the phase are allowed.
        The legs are rigid: the CoM height is held, so vertical velocity and
        acceleration are zero even when the start state was falling. At the
        start time the horizontal CoM position and velocity, the CoM height
        and the CoP are reproduced exactly.
        """
        if self._init_state is None:
            raise RuntimeError("init_response() must be called before compute_response()")

        init = self._init_state
        dt = float(time) - init.time
        w = self._omega
        ch = math.cosh(w * dt)
        sh = math.sinh(w * dt)

        out = (state if state is not None else init).copy()
        out.time = float(time)

        com_pos = init.com_pos.copy()
        com_vel = np.zeros(3, dtype=np.float64)
        com_acc = np.zeros(3, dtype=np.float64)
        com_pos[:2] = (
            init.com_pos[:2]
            + self._cosh_coeff * (ch - 1.0)
            + self._sinh_coeff * sh
            + self._cop_rate * dt
        )
        com_vel[:2] = (
            init.com_vel[:2]
            + self._cosh_coeff * w * sh
            + self._sinh_coeff * w * (ch - 1.0)
        )
        com_acc[:2] = w * w * (self._cosh_coeff * ch + self._sinh_coeff * sh)

        cop = init.cop.copy()
        cop[:2] = init.cop[:2] + self._cop_rate * dt

        out.com_pos = com_pos
        out.com_vel = com_vel
        out.com_acc = com_acc
        out.cop = cop
        return out

    def compute_system_energy(
        self,
        state: ReducedBodyState,
        params: CartTableControlParams,
    ) -> np.ndarray:
        """Closed-form CoM energy of one stance phase.

        x, y: 0.5 * m * integral(v_i(t)^2, 0..T)
        z:    m * g * (com_z - cop_z) at the start of the phase
        """
        self.init_response(state, params)

        props = self.properties
        w = self._omega
        T = float(params.duration)

        # v(t) = a + b sinh(wt) + c cosh(wt)
        a = self._cop_rate
        b = self._cosh_coeff * w
        c = self._sinh_coeff * w

        sh_T = math.sinh(w * T)
        ch_T = math.cosh(w * T)
        sh_2T = math.sinh(2.0 * w * T)

        int_sinh2 = sh_2T / (4.0 * w) - 0.5 * T
        int_cosh2 = sh_2T / (4.0 * w) + 0.5 * T
        int_sinh = (ch_T - 1.0) / w
        int_cosh = sh_T / w
        int_sinh_cosh = sh_T * sh_T / (2.0 * w)

        vel_sq = (
            a * a * T
            + b * b * int_sinh2
            + c * c * int_cosh2
            + 2.0 * a * b * int_sinh
            + 2.0 * a * c * int_cosh
            + 2.0 * b * c * int_sinh_cosh
        )

        energy = np.zeros(3, dtype=np.float64)
        energy[:2] = 0.5 * props.mass * vel_sq
        energy[2] = props.mass * props.gravity * (state.com_pos[2] - state.cop[2])
        return energy
