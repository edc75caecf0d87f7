from __future__ import annotations

import math

import numpy as np
import pytest

from locomotion_preview.cart_table import CartTableModel
from locomotion_preview.state import (
    CartTableControlParams,
    CartTableProperties,
    ReducedBodyState,
)


def _model() -> CartTableModel:
    return CartTableModel(CartTableProperties(mass=20.0, gravity=9.81, pendulum_height=0.5))


def _state() -> ReducedBodyState:
    return ReducedBodyState(
        time=0.7,
        com_pos=[0.02, -0.01, 0.5],
        com_vel=[0.3, 0.1, 0.0],
        cop=[0.0, 0.01, 0.0],
    )


def _lip_position(state, cop_shift, duration, omega, dt) -> np.ndarray:
    """Exponential form of the cart-table solution."""
    d0 = state.com_pos[:2] - state.cop[:2]
    v0 = state.com_vel[:2]
    s = np.asarray(cop_shift)
    beta1 = 0.5 * d0 + (v0 * duration - s) / (2.0 * omega * duration)
    beta2 = 0.5 * d0 - (v0 * duration - s) / (2.0 * omega * duration)
    return beta1 * math.exp(omega * dt) + beta2 * math.exp(-omega * dt) + state.cop[:2] + s * dt / duration


def test_response_at_start_reproduces_state() -> None:
    model = _model()
    state = _state()
    model.init_response(state, CartTableControlParams(duration=0.4, cop_shift=np.array([0.05, -0.02])))

    out = model.compute_response(state.time)

    assert out.time == state.time
    np.testing.assert_array_equal(out.com_pos, state.com_pos)
    np.testing.assert_array_equal(out.com_vel, state.com_vel)
    np.testing.assert_array_equal(out.cop, state.cop)


def test_response_matches_closed_form() -> None:
    model = _model()
    state = _state()
    cop_shift = np.array([0.05, -0.02])
    model.init_response(state, CartTableControlParams(duration=0.4, cop_shift=cop_shift))
    omega = math.sqrt(9.81 / 0.5)
    assert model.get_omega() == pytest.approx(omega)

    for dt in (0.05, 0.2, 0.4, 0.45):
        out = model.compute_response(state.time + dt)
        np.testing.assert_allclose(out.com_pos[:2], _lip_position(state, cop_shift, 0.4, omega, dt), atol=1e-12)
        np.testing.assert_allclose(out.cop[:2], state.cop[:2] + cop_shift * dt / 0.4, atol=1e-12)
        # cart-table dynamics
        np.testing.assert_allclose(out.com_acc[:2], omega**2 * (out.com_pos[:2] - out.cop[:2]), atol=1e-10)


def test_velocity_is_derivative_of_position() -> None:
    model = _model()
    state = _state()
    model.init_response(state, CartTableControlParams(duration=0.4, cop_shift=np.array([0.05, 0.0])))

    t, eps = state.time + 0.17, 1e-6
    before = model.compute_response(t - eps)
    after = model.compute_response(t + eps)
    mid = model.compute_response(t)

    np.testing.assert_allclose(mid.com_vel[:2], (after.com_pos[:2] - before.com_pos[:2]) / (2 * eps), atol=1e-6)
    np.testing.assert_allclose(mid.com_acc[:2], (after.com_vel[:2] - before.com_vel[:2]) / (2 * eps), atol=1e-5)


def test_vertical_com_is_held() -> None:
    model = _model()
    state = _state()
    model.init_response(state, CartTableControlParams(duration=0.4, cop_shift=np.zeros(2)))

    out = model.compute_response(state.time + 0.3)

    assert out.com_pos[2] == state.com_pos[2]
    assert out.com_vel[2] == 0.0
    assert out.com_acc[2] == 0.0


def test_response_keeps_other_fields_of_given_state() -> None:
    model = _model()
    state = _state()
    state.support_region["LF"] = np.array([0.3, 0.2, 0.0])
    model.init_response(state, CartTableControlParams(duration=0.4, cop_shift=np.zeros(2)))

    out = model.compute_response(state.time + 0.1, state)

    assert set(out.support_region) == {"LF"}
    out.support_region["LF"][0] = 1.0
    assert state.support_region["LF"][0] == 0.3


def test_system_energy_matches_numerical_integral() -> None:
    model = _model()
    state = _state()
    params = CartTableControlParams(duration=0.4, cop_shift=np.array([0.05, -0.02]))

    energy = model.compute_system_energy(state, params)

    n = 4000
    dt = params.duration / n
    vel_sq = np.zeros(2)
    for i in range(n):
        out = model.compute_response(state.time + (i + 0.5) * dt)
        vel_sq += out.com_vel[:2] ** 2 * dt
    np.testing.assert_allclose(energy[:2], 0.5 * 20.0 * vel_sq, rtol=1e-6)
    assert energy[2] == pytest.approx(20.0 * 9.81 * (state.com_pos[2] - state.cop[2]))


def test_response_requires_init() -> None:
    with pytest.raises(RuntimeError, match="init_response"):
        _model().compute_response(0.0)


def test_missing_properties() -> None:
    model = CartTableModel()
    with pytest.raises(RuntimeError, match="properties"):
        model.init_response(_state(), CartTableControlParams(duration=0.4, cop_shift=np.zeros(2)))


@pytest.mark.parametrize(
    "mass, gravity, height",
    [(0.0, 9.81, 0.5), (20.0, -9.81, 0.5), (20.0, 9.81, 0.0)],
)
def test_invalid_properties(mass: float, gravity: float, height: float) -> None:
    with pytest.raises(ValueError):
        CartTableProperties(mass=mass, gravity=gravity, pendulum_height=height)


def test_vertical_velocity_resets_at_start() -> None:
    model = _model()
    state = _state()
    state.com_vel = np.array([0.1, 0.0, -1.0])
    model.init_response(state, CartTableControlParams(duration=0.4, cop_shift=np.zeros(2)))

    out = model.compute_response(state.time)

    np.testing.assert_array_equal(out.com_pos, state.com_pos)
    np.testing.assert_array_equal(out.com_vel, [0.1, 0.0, 0.0])
    np.testing.assert_array_equal(out.cop, state.cop)
