from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from locomotion_preview.engine import PreviewEngine  # noqa: E402
from locomotion_preview.frames import rotation_from_rpy  # noqa: E402
from locomotion_preview.state import ReducedBodyState  # noqa: E402

FEET = ["LF", "RF", "LH", "RH"]
# base-frame feet positions in the default posture
NOMINAL_FEET_B = {
    "LF": np.array([0.3, 0.2, -0.48]),
    "RF": np.array([0.3, -0.2, -0.48]),
    "LH": np.array([-0.3, 0.2, -0.48]),
    "RH": np.array([-0.3, -0.2, -0.48]),
}
# CoM w.r.t. the base in the default posture; gives a 0.5 m pendulum
COM_OFFSET = np.array([0.01, 0.0, 0.02])
MASS = 20.0
GRAVITY = 9.81
PENDULUM_HEIGHT = 0.5


class StubRobot:
    """Floating-base model, kinematics and dynamics with Cartesian "joints".

    The joints of each foot are its base-frame displacement from the default
    posture, so FK/IK and the joint rate solvers are exact and trivial.
    """

    def total_mass(self) -> float:
        return MASS

    def gravity(self) -> float:
        return GRAVITY

    def joint_dof(self) -> int:
        return 3 * len(FEET)

    def default_posture(self) -> np.ndarray:
        return np.zeros(self.joint_dof())

    def end_effector_count(self, kind="foot") -> int:
        return len(FEET)

    def end_effector_names(self, kind="foot") -> List[str]:
        return list(FEET)

    def system_com(self, base_pos, base_rpy, joint_pos) -> np.ndarray:
        return np.asarray(base_pos, dtype=float) + rotation_from_rpy(base_rpy) @ COM_OFFSET

    def system_com_rate(self, base_pos, base_rpy, joint_pos, base_vel, base_omega, joint_vel) -> np.ndarray:
        offset_w = rotation_from_rpy(base_rpy) @ COM_OFFSET
        return np.asarray(base_vel, dtype=float) + np.cross(base_omega, offset_w)

    def _block(self, name: str) -> slice:
        i = FEET.index(name)
        return slice(3 * i, 3 * i + 3)

    def forward_kinematics(self, base_pos, base_rpy, joint_pos, body_names: Sequence[str]) -> Dict[str, np.ndarray]:
        rot = rotation_from_rpy(base_rpy)
        joint_pos = np.asarray(joint_pos, dtype=float)
        return {
            name: np.asarray(base_pos, dtype=float) + rot @ (NOMINAL_FEET_B[name] + joint_pos[self._block(name)])
            for name in body_names
        }

    def inverse_kinematics(self, foot_targets, joint_pos0=None) -> np.ndarray:
        q = np.zeros(self.joint_dof()) if joint_pos0 is None else np.asarray(joint_pos0, dtype=float).copy()
        for name, target in foot_targets.items():
            q[self._block(name)] = np.asarray(target, dtype=float) - NOMINAL_FEET_B[name]
        return q

    def joint_velocity(self, joint_pos, foot_vel, body_names) -> np.ndarray:
        qd = np.zeros(self.joint_dof())
        for name in body_names:
            qd[self._block(name)] = foot_vel[name]
        return qd

    def joint_acceleration(self, joint_pos, joint_vel, foot_acc, body_names) -> np.ndarray:
        qdd = np.zeros(self.joint_dof())
        for name in body_names:
            qdd[self._block(name)] = foot_acc[name]
        return qdd

    def center_of_pressure(self, contact_wrenches, contact_positions, foot_names) -> np.ndarray:
        weighted = np.zeros(3)
        total = 0.0
        for name in foot_names:
            if name not in contact_wrenches:
                continue
            fz = float(contact_wrenches[name][5])
            if fz <= 0.0:
                continue
            weighted += fz * np.asarray(contact_positions[name], dtype=float)
            total += fz
        return weighted / total if total > 0.0 else np.zeros(3)

    def active_contacts(self, contact_wrenches, threshold) -> List[str]:
        return [
            name
            for name in FEET
            if name in contact_wrenches and np.linalg.norm(contact_wrenches[name][3:6]) > threshold
        ]


def make_standing_state(
    com_pos=(0.0, 0.0, PENDULUM_HEIGHT),
    com_vel=(0.0, 0.0, 0.0),
    cop=(0.0, 0.0, 0.0),
) -> ReducedBodyState:
    """All four feet on the ground in the default posture."""
    com_pos = np.asarray(com_pos, dtype=float)
    state = ReducedBodyState(com_pos=com_pos, com_vel=com_vel, cop=cop)
    for name in FEET:
        stance = NOMINAL_FEET_B[name] - COM_OFFSET
        state.foot_pos[name] = stance
        state.foot_vel[name] = np.zeros(3)
        state.foot_acc[name] = np.zeros(3)
        state.support_region[name] = com_pos + stance
    return state


@pytest.fixture
def stub_robot() -> StubRobot:
    return StubRobot()


@pytest.fixture
def standing_state():
    return make_standing_state


@pytest.fixture
def engine(stub_robot) -> PreviewEngine:
    preview = PreviewEngine()
    preview.reset_from_model(stub_robot, stub_robot, stub_robot)
    preview.set_sample_time(0.1)
    return preview
