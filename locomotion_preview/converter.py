"""Lossy mapping between reduced-body and whole-body states.

The reduced model knows nothing about joints, so going reduced -> whole-body
treats the CoM-to-base offset as the constant offset of the default posture
and asks the kinematics collaborator for joint states. Going whole-body ->
reduced asks the floating-base model for the CoM and the dynamics
collaborator for the CoP and the active contacts.
"""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np

from locomotion_preview.frames import rotation_from_rpy
from locomotion_preview.io import Dynamics, FloatingBaseModel, Kinematics
from locomotion_preview.state import (
    ReducedBodyState,
    ReducedBodyTrajectory,
    WholeBodyState,
    WholeBodyTrajectory,
)


class StateConverter:
    def __init__(
        self,
        system: FloatingBaseModel,
        kinematics: Kinematics,
        dynamics: Dynamics,
        com_offset: np.ndarray,
        feet_names: Sequence[str],
        force_threshold: float = 0.0,
    ) -> None:
        self._system = system
        self._kinematics = kinematics
        self._dynamics = dynamics
        # CoM position w.r.t. the base in the default posture
        self._com_offset = np.asarray(com_offset, dtype=np.float64).reshape(3).copy()
        self._feet_names = list(feet_names)
        self.force_threshold = float(force_threshold)

    @property
    def com_offset(self) -> np.ndarray:
        return self._com_offset.copy()

    def to_whole_body_state(self, reduced: ReducedBodyState) -> WholeBodyState:
        full = WholeBodyState(time=reduced.time)

        full.base_pos = reduced.com_pos - self._com_offset
        full.base_vel = reduced.com_vel.copy()
        full.base_acc = reduced.com_acc.copy()
        full.base_rpy = reduced.angular_pos.copy()
        full.base_omega = reduced.angular_vel.copy()
        full.base_omega_dot = reduced.angular_acc.copy()

        feet_pos: Dict[str, np.ndarray] = {}
        for name, pos in reduced.foot_pos.items():
            feet_pos[name] = pos + self._com_offset
        full.contact_pos = {name: p.copy() for name, p in feet_pos.items()}
        full.contact_vel = {name: v.copy() for name, v in reduced.foot_vel.items()}
        full.contact_acc = {name: a.copy() for name, a in reduced.foot_acc.items()}

        for name in self._feet_names:
            full.set_contact_condition(name, name in reduced.support_region)

        feet = [name for name in self._feet_names if name in feet_pos]
        full.joint_pos = np.asarray(self._kinematics.inverse_kinematics(feet_pos), dtype=np.float64)
        full.joint_vel = np.asarray(
            self._kinematics.joint_velocity(full.joint_pos, full.contact_vel, feet),
            dtype=np.float64,
        )
        full.joint_acc = np.asarray(
            self._kinematics.joint_acceleration(full.joint_pos, full.joint_vel, full.contact_acc, feet),
            dtype=np.float64,
        )
        # no torques are produced by the preview
        full.joint_eff = np.zeros(self._system.joint_dof(), dtype=np.float64)
        return full

    def from_whole_body_state(self, full: WholeBodyState) -> ReducedBodyState:
        reduced = ReducedBodyState(time=full.time)

        reduced.com_pos = np.asarray(
            self._system.system_com(full.base_pos, full.base_rpy, full.joint_pos),
            dtype=np.float64,
        )
        reduced.com_vel = np.asarray(
            self._system.system_com_rate(
                full.base_pos,
                full.base_rpy,
                full.joint_pos,
                full.base_vel,
                full.base_omega,
                full.joint_vel,
            ),
            dtype=np.float64,
        )
        # joint acceleration contributions are neglected
        reduced.com_acc = np.asarray(full.base_acc, dtype=np.float64).copy()

        reduced.angular_pos = np.asarray(full.base_rpy, dtype=np.float64).copy()
        reduced.angular_vel = np.asarray(full.base_omega, dtype=np.float64).copy()
        reduced.angular_acc = np.asarray(full.base_omega_dot, dtype=np.float64).copy()

        base_pos = np.asarray(full.base_pos, dtype=np.float64).reshape(3)
        base_rot = rotation_from_rpy(full.base_rpy)

        cop_b = self._dynamics.center_of_pressure(full.contact_eff, full.contact_pos, self._feet_names)
        reduced.cop = base_pos + base_rot @ np.asarray(cop_b, dtype=np.float64).reshape(3)

        reduced.support_region = {}
        for name in self._dynamics.active_contacts(full.contact_eff, self.force_threshold):
            reduced.support_region[name] = base_pos + base_rot @ full.get_contact_position_b(name)

        reduced.foot_pos = {
            name: np.asarray(pos, dtype=np.float64) - self._com_offset
            for name, pos in full.contact_pos.items()
        }
        reduced.foot_vel = {name: np.asarray(v, dtype=np.float64).copy() for name, v in full.contact_vel.items()}
        reduced.foot_acc = {name: np.asarray(a, dtype=np.float64).copy() for name, a in full.contact_acc.items()}
        return reduced

    def to_whole_body_trajectory(self, reduced_traj: ReducedBodyTrajectory) -> WholeBodyTrajectory:
        return [self.to_whole_body_state(state) for state in reduced_traj]
