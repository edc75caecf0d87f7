"""MuJoCo-backed floating-base model, kinematics and contact dynamics.

Conventions of the MJCF model:
- the base body carries the (only) free joint;
- every other joint is a hinge or slide joint and is part of the joint vector,
  in MJCF order;
- each foot is a site named `<foot>_foot` (e.g. `LF_foot`); the foot name
  reported to the engine is `<foot>`;
- an optional keyframe named `home` holds the default posture.

A branch is the chain of joints between the base and one foot site.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import mujoco
import numpy as np
from absl import logging

from locomotion_preview.errors import InconsistentBranchStateError
from locomotion_preview.frames import quat_wxyz_from_rpy, rotation_from_rpy
from locomotion_preview.io import EndEffectorKind

FOOT_SITE_SUFFIX = "_foot"
HOME_KEYFRAME = "home"


class MujocoRobotModel:
    """Implements FloatingBaseModel, Kinematics and Dynamics on an MjModel."""

    def __init__(
        self,
        mj_model: mujoco.MjModel,
        ik_max_iterations: int = 100,
        ik_tolerance: float = 1e-6,
        ik_damping: float = 1e-3,
    ) -> None:
        self._mj_model = mj_model
        self._mj_data = mujoco.MjData(mj_model)
        self._ik_max_iterations = int(ik_max_iterations)
        self._ik_tolerance = float(ik_tolerance)
        self._ik_damping = float(ik_damping)

        free_joints = [
            j for j in range(mj_model.njnt) if int(mj_model.jnt_type[j]) == int(mujoco.mjtJoint.mjJNT_FREE)
        ]
        if len(free_joints) != 1:
            raise ValueError(f"Expected exactly one free joint in MJCF, found {len(free_joints)}")
        free_joint = free_joints[0]
        self._base_body = int(mj_model.jnt_bodyid[free_joint])
        self._base_qpos = int(mj_model.jnt_qposadr[free_joint])
        self._base_dof = int(mj_model.jnt_dofadr[free_joint])

        self._joint_ids: List[int] = []
        self._joint_names: List[str] = []
        self._joint_qpos: List[int] = []
        self._joint_dofs: List[int] = []
        for j in range(mj_model.njnt):
            if j == free_joint:
                continue
            if int(mj_model.jnt_type[j]) not in (int(mujoco.mjtJoint.mjJNT_HINGE), int(mujoco.mjtJoint.mjJNT_SLIDE)):
                raise ValueError(f"Unsupported joint type for joint {j} in MJCF")
            self._joint_ids.append(j)
            self._joint_names.append(mujoco.mj_id2name(mj_model, mujoco.mjtObj.mjOBJ_JOINT, j) or f"joint_{j}")
            self._joint_qpos.append(int(mj_model.jnt_qposadr[j]))
            self._joint_dofs.append(int(mj_model.jnt_dofadr[j]))
        self._joint_qpos_idx = np.asarray(self._joint_qpos, dtype=np.int64)
        self._joint_dof_idx = np.asarray(self._joint_dofs, dtype=np.int64)

        self._foot_sites: Dict[str, int] = {}
        self._end_effector_sites: Dict[str, int] = {}
        for s in range(mj_model.nsite):
            site_name = mujoco.mj_id2name(mj_model, mujoco.mjtObj.mjOBJ_SITE, s)
            if not site_name:
                continue
            if site_name.endswith(FOOT_SITE_SUFFIX):
                name = site_name[: -len(FOOT_SITE_SUFFIX)]
                self._foot_sites[name] = s
            else:
                name = site_name
            self._end_effector_sites[name] = s
        if not self._foot_sites:
            raise ValueError(f"No '*{FOOT_SITE_SUFFIX}' sites found in MJCF")

        # indices into the joint vector of each branch, base to foot
        self._branches: Dict[str, List[int]] = {
            name: self._discover_branch(site_id) for name, site_id in self._end_effector_sites.items()
        }

        key_id = mujoco.mj_name2id(mj_model, mujoco.mjtObj.mjOBJ_KEY, HOME_KEYFRAME)
        if key_id >= 0:
            qpos = np.asarray(mj_model.key_qpos[key_id], dtype=np.float64)
        else:
            qpos = np.asarray(mj_model.qpos0, dtype=np.float64)
        self._default_posture = qpos[self._joint_qpos_idx].copy()

        self._lower = np.full(len(self._joint_ids), -np.inf)
        self._upper = np.full(len(self._joint_ids), np.inf)
        for i, j in enumerate(self._joint_ids):
            if mj_model.jnt_limited[j]:
                self._lower[i], self._upper[i] = mj_model.jnt_range[j]

    @classmethod
    def from_xml_path(cls, xml_path: str | Path, **kwargs) -> "MujocoRobotModel":
        xml_path = Path(xml_path)
        if not xml_path.exists():
            raise FileNotFoundError(f"Model file not found: {xml_path}")
        return cls(mujoco.MjModel.from_xml_path(str(xml_path)), **kwargs)

    @property
    def mj_model(self) -> mujoco.MjModel:
        return self._mj_model

    @property
    def joint_names(self) -> List[str]:
        return list(self._joint_names)

    def _discover_branch(self, site_id: int) -> List[int]:
        model = self._mj_model
        body = int(model.site_bodyid[site_id])
        branch: List[int] = []
        while body != self._base_body and body != 0:
            for i, j in enumerate(self._joint_ids):
                if int(model.jnt_bodyid[j]) == body:
                    branch.append(i)
            body = int(model.body_parentid[body])
        return sorted(branch)

    # ------------------------------------------------------------------
    # Floating-base model
    # ------------------------------------------------------------------

    def total_mass(self) -> float:
        return float(mujoco.mj_getTotalmass(self._mj_model))

    def gravity(self) -> float:
        return float(np.linalg.norm(self._mj_model.opt.gravity))

    def joint_dof(self) -> int:
        return len(self._joint_ids)

    def default_posture(self) -> np.ndarray:
        return self._default_posture.copy()

    def end_effector_count(self, kind: EndEffectorKind = "foot") -> int:
        return len(self.end_effector_names(kind))

    def end_effector_names(self, kind: EndEffectorKind = "foot") -> List[str]:
        if kind == "foot":
            return list(self._foot_sites)
        if kind == "all":
            return list(self._end_effector_sites)
        raise ValueError(f"Unknown end-effector kind: {kind!r}")

    def _set_configuration(
        self,
        base_pos: np.ndarray,
        base_rpy: np.ndarray,
        joint_pos: np.ndarray,
    ) -> None:
        data = self._mj_data
        qpos = data.qpos
        qpos[self._base_qpos : self._base_qpos + 3] = np.asarray(base_pos, dtype=np.float64).reshape(3)
        qpos[self._base_qpos + 3 : self._base_qpos + 7] = quat_wxyz_from_rpy(base_rpy)
        qpos[self._joint_qpos_idx] = np.asarray(joint_pos, dtype=np.float64).reshape(-1)
        mujoco.mj_kinematics(self._mj_model, data)
        mujoco.mj_comPos(self._mj_model, data)

    def system_com(self, base_pos: np.ndarray, base_rpy: np.ndarray, joint_pos: np.ndarray) -> np.ndarray:
        self._set_configuration(base_pos, base_rpy, joint_pos)
        return self._mj_data.subtree_com[self._base_body].copy()

    def system_com_rate(
        self,
        base_pos: np.ndarray,
        base_rpy: np.ndarray,
        joint_pos: np.ndarray,
        base_vel: np.ndarray,
        base_omega: np.ndarray,
        joint_vel: np.ndarray,
    ) -> np.ndarray:
        self._set_configuration(base_pos, base_rpy, joint_pos)
        model = self._mj_model

        qvel = np.zeros(model.nv, dtype=np.float64)
        qvel[self._base_dof : self._base_dof + 3] = np.asarray(base_vel, dtype=np.float64).reshape(3)
        # free-joint angular velocity is expressed in the base frame
        rot = rotation_from_rpy(base_rpy)
        qvel[self._base_dof + 3 : self._base_dof + 6] = rot.T @ np.asarray(base_omega, dtype=np.float64).reshape(3)
        qvel[self._joint_dof_idx] = np.asarray(joint_vel, dtype=np.float64).reshape(-1)

        jacp = np.zeros((3, model.nv), dtype=np.float64)
        mujoco.mj_jacSubtreeCom(model, self._mj_data, jacp, self._base_body)
        return jacp @ qvel

    # ------------------------------------------------------------------
    # Kinematics
    # ------------------------------------------------------------------

    def _site_id(self, name: str) -> int:
        site_id = self._end_effector_sites.get(name)
        if site_id is None:
            raise ValueError(f"End-effector '{name}' not found in MJCF")
        return site_id

    def forward_kinematics(
        self,
        base_pos: np.ndarray,
        base_rpy: np.ndarray,
        joint_pos: np.ndarray,
        body_names: Sequence[str],
    ) -> Dict[str, np.ndarray]:
        self._set_configuration(base_pos, base_rpy, joint_pos)
        return {name: self._mj_data.site_xpos[self._site_id(name)].copy() for name in body_names}

    def _site_jacobian(self, name: str) -> np.ndarray:
        """Translational Jacobian of a site w.r.t. the joint vector (base fixed)."""
        jacp = np.zeros((3, self._mj_model.nv), dtype=np.float64)
        mujoco.mj_jacSite(self._mj_model, self._mj_data, jacp, None, self._site_id(name))
        return jacp[:, self._joint_dof_idx]

    def _stacked_jacobian(self, joint_pos: np.ndarray, body_names: Sequence[str]) -> np.ndarray:
        zero = np.zeros(3, dtype=np.float64)
        self._set_configuration(zero, zero, joint_pos)
        if not body_names:
            return np.zeros((0, self.joint_dof()), dtype=np.float64)
        return np.vstack([self._site_jacobian(name) for name in body_names])

    def inverse_kinematics(
        self,
        foot_targets: Dict[str, np.ndarray],
        joint_pos0: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Damped least-squares IK, solved branch by branch with the base at the origin."""
        if joint_pos0 is None:
            joint_pos = self._default_posture.copy()
        else:
            joint_pos = np.asarray(joint_pos0, dtype=np.float64).reshape(-1).copy()
        zero = np.zeros(3, dtype=np.float64)

        for name, target in foot_targets.items():
            branch = self._branches.get(name)
            if not branch:
                continue
            target = np.asarray(target, dtype=np.float64).reshape(3)
            site_id = self._site_id(name)
            for _ in range(self._ik_max_iterations):
                self._set_configuration(zero, zero, joint_pos)
                error = target - self._mj_data.site_xpos[site_id]
                if np.linalg.norm(error) < self._ik_tolerance:
                    break
                jac = self._site_jacobian(name)[:, branch]
                lhs = jac @ jac.T + (self._ik_damping**2) * np.eye(3)
                joint_pos[branch] += jac.T @ np.linalg.solve(lhs, error)
                joint_pos[branch] = np.clip(joint_pos[branch], self._lower[branch], self._upper[branch])
        return joint_pos

    def joint_velocity(
        self,
        joint_pos: np.ndarray,
        foot_vel: Dict[str, np.ndarray],
        body_names: Sequence[str],
    ) -> np.ndarray:
        names = [name for name in body_names if name in foot_vel]
        jac = self._stacked_jacobian(joint_pos, names)
        if not names:
            return np.zeros(self.joint_dof(), dtype=np.float64)
        rhs = np.concatenate([np.asarray(foot_vel[name], dtype=np.float64).reshape(3) for name in names])
        return np.linalg.pinv(jac) @ rhs

    def joint_acceleration(
        self,
        joint_pos: np.ndarray,
        joint_vel: np.ndarray,
        foot_acc: Dict[str, np.ndarray],
        body_names: Sequence[str],
        eps: float = 1e-6,
    ) -> np.ndarray:
        names = [name for name in body_names if name in foot_acc]
        if not names:
            return np.zeros(self.joint_dof(), dtype=np.float64)
        joint_pos = np.asarray(joint_pos, dtype=np.float64).reshape(-1)
        joint_vel = np.asarray(joint_vel, dtype=np.float64).reshape(-1)

        # dJ/dt * qdot from a forward difference along qdot
        jac_next = self._stacked_jacobian(joint_pos + eps * joint_vel, names)
        jac = self._stacked_jacobian(joint_pos, names)
        jac_dot = (jac_next - jac) / eps

        rhs = np.concatenate([np.asarray(foot_acc[name], dtype=np.float64).reshape(3) for name in names])
        return np.linalg.pinv(jac) @ (rhs - jac_dot @ joint_vel)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def get_branch_state(self, joint_pos: np.ndarray, name: str) -> np.ndarray:
        branch = self._branches.get(name)
        if branch is None:
            raise ValueError(f"Branch '{name}' not found in MJCF")
        return np.asarray(joint_pos, dtype=np.float64).reshape(-1)[branch].copy()

    def set_branch_state(self, joint_pos: np.ndarray, branch_pos: np.ndarray, name: str) -> np.ndarray:
        """Return a copy of `joint_pos` with the joints of one branch replaced."""
        branch = self._branches.get(name)
        if branch is None:
            raise ValueError(f"Branch '{name}' not found in MJCF")
        branch_pos = np.asarray(branch_pos, dtype=np.float64).reshape(-1)
        if branch_pos.size != len(branch):
            logging.error(
                "Error: the branch %s has %d joints but %d values were given",
                name,
                len(branch),
                branch_pos.size,
            )
            raise InconsistentBranchStateError(
                f"Branch '{name}' has {len(branch)} joints, got {branch_pos.size} values"
            )
        out = np.asarray(joint_pos, dtype=np.float64).reshape(-1).copy()
        out[branch] = branch_pos
        return out

    # ------------------------------------------------------------------
    # Contact dynamics
    # ------------------------------------------------------------------

    def center_of_pressure(
        self,
        contact_wrenches: Dict[str, np.ndarray],
        contact_positions: Dict[str, np.ndarray],
        foot_names: Sequence[str],
    ) -> np.ndarray:
        """Normal-force weighted average of the point-contact positions."""
        weighted = np.zeros(3, dtype=np.float64)
        total = 0.0
        for name in foot_names:
            wrench = contact_wrenches.get(name)
            if wrench is None or name not in contact_positions:
                continue
            normal_force = float(np.asarray(wrench, dtype=np.float64).reshape(6)[5])
            if normal_force <= 0.0:
                continue
            weighted += normal_force * np.asarray(contact_positions[name], dtype=np.float64).reshape(3)
            total += normal_force
        if total <= 0.0:
            return np.zeros(3, dtype=np.float64)
        return weighted / total

    def active_contacts(self, contact_wrenches: Dict[str, np.ndarray], threshold: float) -> List[str]:
        active = []
        for name in self._foot_sites:
            wrench = contact_wrenches.get(name)
            if wrench is None:
                continue
            force = np.asarray(wrench, dtype=np.float64).reshape(6)[3:6]
            if np.linalg.norm(force) > threshold:
                active.append(name)
        return active
