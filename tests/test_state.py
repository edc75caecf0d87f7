from __future__ import annotations

import numpy as np

from locomotion_preview.engine import PreviewEngine
from locomotion_preview.state import Phase, PhaseType, PreviewControl, PreviewParams


def test_listed_foot_swings_in_place() -> None:
    phase = Phase(type=PhaseType.STANCE, feet=["LF"])

    assert phase.is_swing_foot("LF")
    np.testing.assert_array_equal(phase.get_foot_shift("LF"), np.zeros(2))
    assert not phase.is_swing_foot("RF")


def test_shifted_foot_is_listed() -> None:
    phase = Phase(feet_shift={"RH": [0.1, 0.0]})

    assert phase.feet == ["RH"]
    assert phase.is_swing_foot("RH")


def test_phases_do_not_share_feet_list() -> None:
    feet: list = []

    Phase(feet=feet, feet_shift={"LF": [0.1, 0.0]})

    assert feet == []
    assert Phase(feet=feet).feet == []


def test_listed_foot_leaves_support(engine: PreviewEngine, standing_state) -> None:
    state = standing_state()
    control = PreviewControl(
        [
            PreviewParams(duration=0.4, phase=Phase(type=PhaseType.STANCE, feet=["LF"])),
            PreviewParams(duration=0.4),
        ]
    )

    trajectory = engine.multi_phase_preview(state, control)

    mid_swing = trajectory[1]
    assert mid_swing.com_pos[2] + mid_swing.foot_pos["LF"][2] > 0.0
    assert "LF" not in mid_swing.support_region
    assert "LF" in trajectory[5].support_region
