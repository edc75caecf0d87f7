from __future__ import annotations

import numpy as np

from locomotion_preview.cart_table import CartTableModel
from locomotion_preview.engine import FLIGHT_ENERGY_SUPPORTED, PreviewEngine
from locomotion_preview.state import (
    CartTableControlParams,
    CartTableProperties,
    Phase,
    PhaseType,
    PreviewControl,
    PreviewParams,
)


def _stance(duration, cop_shift=(0.0, 0.0)) -> PreviewParams:
    return PreviewParams(duration=duration, phase=Phase(type=PhaseType.STANCE), cop_shift=np.asarray(cop_shift))


def _flight(duration) -> PreviewParams:
    return PreviewParams(duration=duration, phase=Phase(type=PhaseType.FLIGHT))


def test_single_stance_energy_is_analytic(engine: PreviewEngine, standing_state) -> None:
    state = standing_state(com_vel=(0.2, 0.05, 0.0))
    params = _stance(0.4, cop_shift=(0.05, 0.0))

    energy = engine.multi_phase_energy(state, PreviewControl([params]))

    reference = CartTableModel(CartTableProperties(mass=20.0, gravity=9.81, pendulum_height=0.5))
    expected = reference.compute_system_energy(
        state, CartTableControlParams(duration=0.4, cop_shift=np.array([0.05, 0.0]))
    )
    np.testing.assert_allclose(energy, expected, rtol=1e-12)
    assert energy[0] > 0.0
    assert energy[2] > 0.0


def test_flight_energy_is_zero(engine: PreviewEngine, standing_state) -> None:
    assert FLIGHT_ENERGY_SUPPORTED is False
    state = standing_state(com_vel=(0.5, 0.0, 1.0))

    energy = engine.multi_phase_energy(state, PreviewControl([_flight(0.3)]))

    np.testing.assert_array_equal(energy, np.zeros(3))


def test_flight_adds_nothing_after_stance(engine: PreviewEngine, standing_state) -> None:
    state = standing_state(com_vel=(0.2, 0.0, 0.0))

    stance_only = engine.multi_phase_energy(state, PreviewControl([_stance(0.3)]))
    with_flight = engine.multi_phase_energy(state, PreviewControl([_stance(0.3), _flight(0.2)]))

    np.testing.assert_array_equal(with_flight, stance_only)


def test_energy_advances_state_between_phases(engine: PreviewEngine, standing_state) -> None:
    state = standing_state(com_vel=(0.2, 0.0, 0.0))
    control = PreviewControl([_stance(0.3, cop_shift=(0.03, 0.0)), _stance(0.3)])

    energy = engine.multi_phase_energy(state, control)

    reference = CartTableModel(CartTableProperties(mass=20.0, gravity=9.81, pendulum_height=0.5))
    first = CartTableControlParams(duration=0.3, cop_shift=np.array([0.03, 0.0]))
    expected = reference.compute_system_energy(state, first)
    next_state = reference.compute_response(state.time + 0.3, state)
    expected = expected + reference.compute_system_energy(
        next_state, CartTableControlParams(duration=0.3, cop_shift=np.zeros(2))
    )
    np.testing.assert_allclose(energy, expected, rtol=1e-12)


def test_empty_control_has_zero_energy(engine: PreviewEngine, standing_state) -> None:
    energy = engine.multi_phase_energy(standing_state(), PreviewControl())
    np.testing.assert_array_equal(energy, np.zeros(3))
