"""Collaborator contracts consumed by the preview engine.

The engine never builds a robot model; it only calls into objects that
satisfy these protocols. `locomotion_preview.mujoco_model.MujocoRobotModel`
implements all three on top of an MJCF model.

Base poses are passed as a world-frame position plus a roll-pitch-yaw
orientation. Contact wrenches are 6D `[moment; force]` vectors.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Protocol, Sequence

import numpy as np

EndEffectorKind = Literal["foot", "all"]


class FloatingBaseModel(Protocol):
    def total_mass(self) -> float:
        ...

    def gravity(self) -> float:
        ...

    def joint_dof(self) -> int:
        ...

    def system_com(self, base_pos: np.ndarray, base_rpy: np.ndarray, joint_pos: np.ndarray) -> np.ndarray:
        ...

    def system_com_rate(
        self,
        base_pos: np.ndarray,
        base_rpy: np.ndarray,
        joint_pos: np.ndarray,
        base_vel: np.ndarray,
        base_omega: np.ndarray,
        joint_vel: np.ndarray,
    ) -> np.ndarray:
        ...

    def default_posture(self) -> np.ndarray:
        ...

    def end_effector_count(self, kind: EndEffectorKind = "foot") -> int:
        ...

    def end_effector_names(self, kind: EndEffectorKind = "foot") -> List[str]:
        ...


class Kinematics(Protocol):
    def forward_kinematics(
        self,
        base_pos: np.ndarray,
        base_rpy: np.ndarray,
        joint_pos: np.ndarray,
        body_names: Sequence[str],
    ) -> Dict[str, np.ndarray]:
        """World positions of the named end-effectors."""
        ...

    def inverse_kinematics(
        self,
        foot_targets: Dict[str, np.ndarray],
        joint_pos0: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Joint positions that place each foot at its base-frame target."""
        ...

    def joint_velocity(
        self,
        joint_pos: np.ndarray,
        foot_vel: Dict[str, np.ndarray],
        body_names: Sequence[str],
    ) -> np.ndarray:
        ...

    def joint_acceleration(
        self,
        joint_pos: np.ndarray,
        joint_vel: np.ndarray,
        foot_acc: Dict[str, np.ndarray],
        body_names: Sequence[str],
    ) -> np.ndarray:
        ...


class Dynamics(Protocol):
    def center_of_pressure(
        self,
        contact_wrenches: Dict[str, np.ndarray],
        contact_positions: Dict[str, np.ndarray],
        foot_names: Sequence[str],
    ) -> np.ndarray:
        """CoP expressed in the same frame as `contact_positions`."""
        ...

    def active_contacts(
        self,
        contact_wrenches: Dict[str, np.ndarray],
        threshold: float,
    ) -> List[str]:
        ...
