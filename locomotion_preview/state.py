"""Reduced-body and whole-body state types used by the preview engine.

Vectors are float64 NumPy arrays. Per-foot quantities are dictionaries keyed
by the end-effector names reported by the floating-base model.

Frames:
- ReducedBodyState: CoM/CoP/support region in the world frame, foot states in
  the CoM frame (CoM origin, base orientation).
- WholeBodyState: base pose/rates in the world frame, contact states in the
  base frame.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np


def _vec(value, size: int = 3) -> np.ndarray:
    return np.asarray(value, dtype=np.float64).reshape(size).copy()


def _zeros3() -> np.ndarray:
    return np.zeros(3, dtype=np.float64)


def _copy_vectors(values: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
    return {name: np.array(v, dtype=np.float64, copy=True) for name, v in values.items()}


@dataclass
class ReducedBodyState:
    time: float = 0.0
    com_pos: np.ndarray = field(default_factory=_zeros3)
    com_vel: np.ndarray = field(default_factory=_zeros3)
    com_acc: np.ndarray = field(default_factory=_zeros3)
    angular_pos: np.ndarray = field(default_factory=_zeros3)
    angular_vel: np.ndarray = field(default_factory=_zeros3)
    angular_acc: np.ndarray = field(default_factory=_zeros3)
    cop: np.ndarray = field(default_factory=_zeros3)
    support_region: Dict[str, np.ndarray] = field(default_factory=dict)
    foot_pos: Dict[str, np.ndarray] = field(default_factory=dict)
    foot_vel: Dict[str, np.ndarray] = field(default_factory=dict)
    foot_acc: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.time = float(self.time)
        for name in ("com_pos", "com_vel", "com_acc", "angular_pos", "angular_vel", "angular_acc", "cop"):
            setattr(self, name, _vec(getattr(self, name)))
        for name in ("support_region", "foot_pos", "foot_vel", "foot_acc"):
            setattr(self, name, {k: _vec(v) for k, v in getattr(self, name).items()})

    def get_rpy_w(self) -> np.ndarray:
        """Roll-pitch-yaw orientation of the base w.r.t. the world."""
        return self.angular_pos

    def copy(self) -> "ReducedBodyState":
        return ReducedBodyState(
            time=self.time,
            com_pos=self.com_pos,
            com_vel=self.com_vel,
            com_acc=self.com_acc,
            angular_pos=self.angular_pos,
            angular_vel=self.angular_vel,
            angular_acc=self.angular_acc,
            cop=self.cop,
            support_region=_copy_vectors(self.support_region),
            foot_pos=_copy_vectors(self.foot_pos),
            foot_vel=_copy_vectors(self.foot_vel),
            foot_acc=_copy_vectors(self.foot_acc),
        )


ReducedBodyTrajectory = List[ReducedBodyState]


class PhaseType(Enum):
    STANCE = "stance"
    FLIGHT = "flight"


@dataclass
class Phase:
    """Phase type plus the feet that swing during it and their planar shifts."""

    type: PhaseType = PhaseType.STANCE
    feet: List[str] = field(default_factory=list)
    feet_shift: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.feet = list(self.feet)
        self.feet_shift = {k: _vec(v, 2) for k, v in self.feet_shift.items()}
        for name in self.feet_shift:
            if name not in self.feet:
                self.feet.append(name)
        # a listed foot without a shift swings in place
        for name in self.feet:
            if name not in self.feet_shift:
                self.feet_shift[name] = np.zeros(2, dtype=np.float64)

    def set_type_of_phase(self, phase_type: PhaseType) -> None:
        self.type = phase_type

    def get_type_of_phase(self) -> PhaseType:
        return self.type

    def set_swing_foot(self, name: str, shift: Optional[np.ndarray] = None) -> None:
        if name not in self.feet:
            self.feet.append(name)
        self.feet_shift[name] = _vec(shift if shift is not None else np.zeros(2), 2)

    def is_swing_foot(self, name: str) -> bool:
        return name in self.feet_shift

    def get_foot_shift(self, name: str) -> np.ndarray:
        shift = self.feet_shift.get(name)
        if shift is None:
            return np.zeros(2, dtype=np.float64)
        return shift.copy()


@dataclass
class PreviewParams:
    duration: float
    phase: Phase = field(default_factory=Phase)
    cop_shift: np.ndarray = field(default_factory=lambda: np.zeros(2, dtype=np.float64))
    head_acc: float = 0.0

    def __post_init__(self) -> None:
        self.duration = float(self.duration)
        if self.duration <= 0.0:
            raise ValueError(f"Phase duration must be > 0, got {self.duration}")
        self.cop_shift = np.asarray(self.cop_shift, dtype=np.float64).reshape(-1)[:2].copy()
        self.head_acc = float(self.head_acc)


@dataclass
class PreviewControl:
    params: List[PreviewParams] = field(default_factory=list)


@dataclass(frozen=True)
class CartTableProperties:
    mass: float
    gravity: float
    pendulum_height: float

    def __post_init__(self) -> None:
        if self.mass <= 0.0:
            raise ValueError(f"mass must be > 0, got {self.mass}")
        if self.gravity <= 0.0:
            raise ValueError(f"gravity must be > 0, got {self.gravity}")
        if self.pendulum_height <= 0.0:
            raise ValueError(f"pendulum_height must be > 0, got {self.pendulum_height}")


@dataclass(frozen=True)
class CartTableControlParams:
    duration: float
    cop_shift: np.ndarray


@dataclass(frozen=True)
class StepParameters:
    duration: float
    step_height: float


@dataclass(frozen=True)
class SwingParams:
    duration: float
    feet_shift: Dict[str, np.ndarray]


@dataclass
class WholeBodyState:
    time: float = 0.0
    base_pos: np.ndarray = field(default_factory=_zeros3)
    base_rpy: np.ndarray = field(default_factory=_zeros3)
    base_vel: np.ndarray = field(default_factory=_zeros3)
    base_omega: np.ndarray = field(default_factory=_zeros3)
    base_acc: np.ndarray = field(default_factory=_zeros3)
    base_omega_dot: np.ndarray = field(default_factory=_zeros3)
    joint_pos: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))
    joint_vel: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))
    joint_acc: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))
    joint_eff: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))
    contact_pos: Dict[str, np.ndarray] = field(default_factory=dict)
    contact_vel: Dict[str, np.ndarray] = field(default_factory=dict)
    contact_acc: Dict[str, np.ndarray] = field(default_factory=dict)
    # [moment; force] per contact
    contact_eff: Dict[str, np.ndarray] = field(default_factory=dict)
    contact_condition: Dict[str, bool] = field(default_factory=dict)

    def set_contact_condition(self, name: str, active: bool) -> None:
        self.contact_condition[name] = bool(active)

    def get_contact_condition(self, name: str) -> bool:
        return self.contact_condition.get(name, False)

    def get_contact_position_b(self, name: str) -> np.ndarray:
        return np.asarray(self.contact_pos[name], dtype=np.float64).reshape(3)


WholeBodyTrajectory = List[WholeBodyState]
