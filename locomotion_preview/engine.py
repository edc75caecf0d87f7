"""Multi-phase locomotion preview.

Threads the cart-table CoM model and the swing generators through an ordered
sequence of stance/flight phases, keeping the support region consistent at
every phase boundary:

- a foot that swings in a phase leaves the support region when that phase
  starts;
- a foot that swung in the previous phase is committed back into the support
  region at its foothold when the next phase starts (or in the trailing state
  appended after the last phase).

All mutable per-call data lives in a PreviewContext created by each public
call, so consecutive calls never see each other's swing generators.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np
from absl import logging

from locomotion_preview.cart_table import CartTableModel
from locomotion_preview.config import PreviewConfig
from locomotion_preview.converter import StateConverter
from locomotion_preview.errors import UnknownPhaseTypeError
from locomotion_preview.frames import from_base_to_world, rotation_from_rpy
from locomotion_preview.io import Dynamics, FloatingBaseModel, Kinematics
from locomotion_preview.sequence import read_preview_sequence
from locomotion_preview.state import (
    CartTableControlParams,
    CartTableProperties,
    PhaseType,
    PreviewControl,
    PreviewParams,
    ReducedBodyState,
    ReducedBodyTrajectory,
    StepParameters,
    SwingParams,
    WholeBodyState,
    WholeBodyTrajectory,
)
from locomotion_preview.swing import SwingGenerator
from locomotion_preview.terrain import NoTerrain, TerrainProvider

# Flight phases add nothing to multi_phase_energy(); there is no flight-phase
# energy model.
FLIGHT_ENERGY_SUPPORTED = False

PhaseResponse = Callable[[ReducedBodyState, PreviewParams, float], ReducedBodyState]


@dataclass
class PreviewContext:
    """Per-call mutable state of a preview."""

    initial_state: ReducedBodyState
    phase_state: Optional[ReducedBodyState] = None
    swing_params: Optional[SwingParams] = None
    swing_generators: Dict[str, SwingGenerator] = field(default_factory=dict)


class PreviewEngine:
    def __init__(self, config: Optional[PreviewConfig] = None) -> None:
        config = config or PreviewConfig()
        self._sample_time = config.sample_time
        self._step_height = config.step_height
        self._force_threshold = config.force_threshold

        self._robot_model = False
        self._system: Optional[FloatingBaseModel] = None
        self._kinematics: Optional[Kinematics] = None
        self._dynamics: Optional[Dynamics] = None
        self._converter: Optional[StateConverter] = None
        self._terrain: TerrainProvider = NoTerrain()

        self._mass = 0.0
        self._gravity = 9.81
        self._feet_names: List[str] = []
        # feet positions w.r.t. the CoM in the default posture
        self._stance_posture: Dict[str, np.ndarray] = {}
        # CoM w.r.t. the base in the default posture
        self._system_com = np.zeros(3, dtype=np.float64)
        self._cart_table = CartTableModel()

    # ------------------------------------------------------------------
    # Model loading and tunables
    # ------------------------------------------------------------------

    def reset_from_model(
        self,
        system: FloatingBaseModel,
        kinematics: Kinematics,
        dynamics: Dynamics,
    ) -> None:
        self._system = system
        self._kinematics = kinematics
        self._dynamics = dynamics

        self._gravity = float(system.gravity())
        self._mass = float(system.total_mass())
        self._feet_names = list(system.end_effector_names("foot"))

        q0 = np.asarray(system.default_posture(), dtype=np.float64)
        zero = np.zeros(3, dtype=np.float64)
        self._system_com = np.asarray(system.system_com(zero, zero, q0), dtype=np.float64).reshape(3)

        feet_pos = kinematics.forward_kinematics(zero, zero, q0, self._feet_names)
        self._stance_posture = {
            name: np.asarray(feet_pos[name], dtype=np.float64).reshape(3) - self._system_com
            for name in self._feet_names
        }

        if not self._stance_posture:
            raise ValueError("The robot model has no feet")
        pendulum_height = -float(np.mean([p[2] for p in self._stance_posture.values()]))
        self._cart_table.set_model_properties(
            CartTableProperties(mass=self._mass, gravity=self._gravity, pendulum_height=pendulum_height)
        )

        self._converter = StateConverter(
            system,
            kinematics,
            dynamics,
            com_offset=self._system_com,
            feet_names=self._feet_names,
            force_threshold=self._force_threshold,
        )
        self._robot_model = True
        logging.info(
            "Preview model loaded: mass=%.3f kg, gravity=%.3f, pendulum height=%.3f m, feet=%s",
            self._mass,
            self._gravity,
            pendulum_height,
            self._feet_names,
        )

    def reset_from_mjcf(self, xml_path: str | Path) -> None:
        from locomotion_preview.mujoco_model import MujocoRobotModel

        model = MujocoRobotModel.from_xml_path(xml_path)
        self.reset_from_model(model, model, model)

    def configure(self, config: PreviewConfig) -> None:
        self.set_sample_time(config.sample_time)
        self.set_step_height(config.step_height)
        self.set_force_threshold(config.force_threshold)

    def set_sample_time(self, sample_time: float) -> None:
        if not sample_time > 0.0:
            raise ValueError(f"sample_time must be > 0, got {sample_time}")
        self._sample_time = float(sample_time)

    def set_step_height(self, step_height: float) -> None:
        if step_height < 0.0:
            raise ValueError(f"step_height must be >= 0, got {step_height}")
        self._step_height = float(step_height)

    def set_force_threshold(self, force_threshold: float) -> None:
        if force_threshold < 0.0:
            raise ValueError(f"force_threshold must be >= 0, got {force_threshold}")
        self._force_threshold = float(force_threshold)
        if self._converter is not None:
            self._converter.force_threshold = self._force_threshold

    def set_terrain(self, terrain: Optional[TerrainProvider]) -> None:
        self._terrain = terrain if terrain is not None else NoTerrain()

    def get_sample_time(self) -> float:
        return self._sample_time

    def get_step_height(self) -> float:
        return self._step_height

    def get_force_threshold(self) -> float:
        return self._force_threshold

    def get_floating_base_system(self) -> Optional[FloatingBaseModel]:
        return self._system

    def get_whole_body_dynamics(self) -> Optional[Dynamics]:
        return self._dynamics

    def get_terrain_map(self) -> TerrainProvider:
        return self._terrain

    def get_cart_table(self) -> CartTableModel:
        return self._cart_table

    def get_stance_posture(self) -> Dict[str, np.ndarray]:
        return {name: p.copy() for name, p in self._stance_posture.items()}

    @property
    def feet_names(self) -> List[str]:
        return list(self._feet_names)

    @property
    def is_model_loaded(self) -> bool:
        return self._robot_model

    def _check_model(self) -> bool:
        if not self._robot_model:
            logging.error("Error: the robot model was not initialized")
            return False
        return True

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def read_preview_sequence(
        self,
        state: ReducedBodyState,
        control: PreviewControl,
        filename: str | Path,
    ) -> bool:
        if not self._check_model():
            return False
        return read_preview_sequence(state, control, filename, self._feet_names)

    def multi_phase_preview(
        self,
        state: ReducedBodyState,
        control: PreviewControl,
        full: bool = True,
    ) -> Optional[ReducedBodyTrajectory]:
        """Preview the reduced-body trajectory of a phase sequence.

        In full mode every phase is sampled every `sample_time` seconds (its
        last sample pinned at the phase duration) with swing trajectories; in
        summary mode each phase contributes only its terminal state. The
        returned trajectory always ends with a trailing state where the
        footholds of the last phase are committed to the support region.

        Returns None if no robot model has been loaded.
        """
        if not self._check_model():
            return None

        if not control.params:
            return [state.copy()]

        ctx = PreviewContext(initial_state=state.copy())
        trajectory: ReducedBodyTrajectory = []
        for k, params in enumerate(control.params):
            if k == 0:
                phase_start = state.copy()
            else:
                phase_start = trajectory[-1].copy()

            # swing feet leave support at every phase start, including the first
            for name in self._feet_names:
                if params.phase.is_swing_foot(name):
                    phase_start.support_region.pop(name, None)

            if k > 0:
                prev_params = control.params[k - 1]
                if prev_params.duration > self._sample_time:
                    self._commit_footholds(ctx, phase_start, prev_params)

            trajectory.extend(self._phase_preview(ctx, phase_start, params, full))

            # a degenerate first phase still leaves a state to continue from
            if not trajectory:
                trajectory.append(phase_start)

        end_state = trajectory[-1].copy()
        end_params = control.params[-1]
        if end_params.duration > self._sample_time:
            self._commit_footholds(ctx, end_state, end_params)
        trajectory.append(end_state)
        return trajectory

    def multi_phase_energy(
        self,
        state: ReducedBodyState,
        control: PreviewControl,
    ) -> Optional[np.ndarray]:
        """Sum of the closed-form CoM energies of the stance phases.

        Flight phases contribute zero (see FLIGHT_ENERGY_SUPPORTED).
        Returns None if no robot model has been loaded.
        """
        if not self._check_model():
            return None

        energy = np.zeros(3, dtype=np.float64)
        current = state.copy()
        for k, params in enumerate(control.params):
            phase_type = params.phase.type
            if phase_type is PhaseType.STANCE:
                model_params = CartTableControlParams(duration=params.duration, cop_shift=params.cop_shift)
                energy += self._cart_table.compute_system_energy(current, model_params)
                current = self._stance_response(current, params, params.duration)
            elif phase_type is PhaseType.FLIGHT:
                logging.warning("phase_%d is a flight phase; its energy is not modeled and counts as zero", k)
                current = self._flight_response(current, params, params.duration)
            else:
                raise UnknownPhaseTypeError(f"Unknown phase type: {phase_type!r}")
        return energy

    def phase_preview(
        self,
        state: ReducedBodyState,
        params: PreviewParams,
        full: bool = True,
    ) -> Optional[ReducedBodyTrajectory]:
        """Samples of a single phase started from `state`, without support-region updates."""
        if not self._check_model():
            return None
        ctx = PreviewContext(initial_state=state.copy())
        return self._phase_preview(ctx, state.copy(), params, full)

    def _phase_preview(
        self,
        ctx: PreviewContext,
        state: ReducedBodyState,
        params: PreviewParams,
        full: bool,
    ) -> ReducedBodyTrajectory:
        # a phase not longer than the sample time has no samples to show
        if full and params.duration <= self._sample_time:
            return []

        phase_type = params.phase.type
        response: PhaseResponse
        if phase_type is PhaseType.STANCE:
            model_params = CartTableControlParams(duration=params.duration, cop_shift=params.cop_shift)
            self._cart_table.init_response(state, model_params)
            response = self._stance_response
        elif phase_type is PhaseType.FLIGHT:
            response = self._flight_response
        else:
            raise UnknownPhaseTypeError(f"Unknown phase type: {phase_type!r}")

        num_samples = int(math.floor(params.duration / self._sample_time))
        if full:
            self._init_swing(ctx, state, params, response(state, params, params.duration))
            indices = range(num_samples + 1)
        else:
            indices = range(num_samples, num_samples + 1)

        phase_traj: ReducedBodyTrajectory = []
        for k in indices:
            if k == num_samples:
                elapsed = params.duration
            else:
                elapsed = self._sample_time * (k + 1)

            current = response(state, params, elapsed)
            if full:
                self._generate_swing(ctx, current)
            phase_traj.append(current)
        return phase_traj

    def _stance_response(
        self,
        state: ReducedBodyState,
        params: PreviewParams,
        elapsed: float,
    ) -> ReducedBodyState:
        current = self._cart_table.compute_response(state.time + elapsed, state)
        _apply_heading(current, state, params.head_acc, elapsed)
        return current

    def _flight_response(
        self,
        state: ReducedBodyState,
        params: PreviewParams,
        elapsed: float,
    ) -> ReducedBodyState:
        gravity_vec = np.array([0.0, 0.0, -self._gravity], dtype=np.float64)

        current = state.copy()
        current.time = state.time + elapsed
        # airborne: no foot is in stance
        current.support_region = {}
        current.com_pos = state.com_pos + state.com_vel * elapsed + 0.5 * gravity_vec * elapsed * elapsed
        current.com_vel = state.com_vel + gravity_vec * elapsed
        current.com_acc = gravity_vec
        # no angular momentum change in flight
        _apply_heading(current, state, 0.0, elapsed)
        return current

    # ------------------------------------------------------------------
    # Footholds and swing
    # ------------------------------------------------------------------

    def _foot_shift(self, params: PreviewParams, name: str) -> np.ndarray:
        shift_2d = params.phase.get_foot_shift(name)
        return np.array([shift_2d[0], shift_2d[1], 0.0], dtype=np.float64)

    def _flat_footshift_z(self, ctx: PreviewContext, com_z: float, stance: np.ndarray) -> float:
        # Flat terrain: cancel the drift between the actual and the default
        # postures and the CoM height change since the preview started.
        comz_shift = com_z - ctx.initial_state.com_pos[2]
        return -(self._cart_table.get_pendulum_height() + stance[2]) - comz_shift

    def _foothold(
        self,
        ctx: PreviewContext,
        state: ReducedBodyState,
        params: PreviewParams,
        name: str,
    ) -> np.ndarray:
        stance = self._stance_posture[name]
        footshift = self._foot_shift(params, name)
        foothold = state.com_pos + from_base_to_world(stance + footshift, state.get_rpy_w())
        if self._terrain.has_terrain_data():
            foothold[2] = self._terrain.terrain_height(foothold[:2])
        else:
            foothold[2] = state.com_pos[2] + stance[2] + self._flat_footshift_z(ctx, state.com_pos[2], stance)
        return foothold

    def _commit_footholds(
        self,
        ctx: PreviewContext,
        state: ReducedBodyState,
        params: PreviewParams,
    ) -> None:
        for name in self._feet_names:
            if params.phase.is_swing_foot(name):
                state.support_region[name] = self._foothold(ctx, state, params, name)

    def _init_swing(
        self,
        ctx: PreviewContext,
        state: ReducedBodyState,
        params: PreviewParams,
        terminal_state: ReducedBodyState,
    ) -> None:
        ctx.phase_state = state.copy()

        swing_shift: Dict[str, np.ndarray] = {}
        for name in params.phase.feet:
            stance = self._stance_posture.get(name)
            if stance is None:
                continue
            footshift = self._foot_shift(params, name)
            if self._terrain.has_terrain_data():
                foothold = terminal_state.com_pos + from_base_to_world(
                    stance + footshift, terminal_state.get_rpy_w()
                )
                footshift[2] = self._terrain.terrain_height(foothold[:2]) - (
                    terminal_state.com_pos[2] + stance[2]
                )
            else:
                footshift[2] = self._flat_footshift_z(ctx, terminal_state.com_pos[2], stance)
            swing_shift[name] = footshift

        ctx.swing_params = SwingParams(duration=params.duration, feet_shift=swing_shift)

        ctx.swing_generators = {}
        step_params = StepParameters(duration=params.duration, step_height=self._step_height)
        for name, actual_pos in state.foot_pos.items():
            footshift = swing_shift.get(name)
            if footshift is None:
                continue
            target_pos = self._stance_posture[name] + footshift
            generator = SwingGenerator()
            generator.set_parameters(state.time, actual_pos, target_pos, step_params)
            ctx.swing_generators[name] = generator

    def _generate_swing(self, ctx: PreviewContext, state: ReducedBodyState) -> None:
        phase_state = ctx.phase_state
        rot = rotation_from_rpy(state.get_rpy_w())
        rot0 = rotation_from_rpy(phase_state.get_rpy_w())
        for name, actual_pos in phase_state.foot_pos.items():
            generator = ctx.swing_generators.get(name)
            if generator is not None:
                foot_pos, foot_vel, foot_acc = generator.generate_trajectory(state.time)
            else:
                # grounded foot: fixed in the world, moving w.r.t. the CoM frame
                com_disp = state.com_pos - phase_state.com_pos
                foot_pos = rot.T @ (rot0 @ actual_pos - com_disp)
                foot_vel = rot.T @ (-state.com_vel)
                foot_acc = rot.T @ (-state.com_acc)
            state.foot_pos[name] = foot_pos
            state.foot_vel[name] = foot_vel
            state.foot_acc[name] = foot_acc

    # ------------------------------------------------------------------
    # Whole-body conversion
    # ------------------------------------------------------------------

    def to_whole_body_state(self, reduced_state: ReducedBodyState) -> Optional[WholeBodyState]:
        if not self._check_model():
            return None
        return self._converter.to_whole_body_state(reduced_state)

    def from_whole_body_state(self, full_state: WholeBodyState) -> Optional[ReducedBodyState]:
        if not self._check_model():
            return None
        return self._converter.from_whole_body_state(full_state)

    def to_whole_body_trajectory(self, reduced_traj: ReducedBodyTrajectory) -> Optional[WholeBodyTrajectory]:
        if not self._check_model():
            return None
        return self._converter.to_whole_body_trajectory(reduced_traj)


def _apply_heading(
    current: ReducedBodyState,
    start: ReducedBodyState,
    head_acc: float,
    elapsed: float,
) -> None:
    """Heading kinematics: constant yaw acceleration, roll and pitch held."""
    yaw_rate0 = float(start.angular_vel[2])
    angular_pos = start.angular_pos.copy()
    angular_vel = start.angular_vel.copy()
    angular_acc = start.angular_acc.copy()
    angular_pos[2] = start.angular_pos[2] + yaw_rate0 * elapsed + 0.5 * head_acc * elapsed * elapsed
    angular_vel[2] = yaw_rate0 + head_acc * elapsed
    angular_acc[2] = head_acc
    current.angular_pos = angular_pos
    current.angular_vel = angular_vel
    current.angular_acc = angular_acc
