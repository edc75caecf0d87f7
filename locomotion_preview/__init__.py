"""Locomotion preview: closed-form CoM and swing-foot prediction for legged robots."""

from __future__ import annotations

from .cart_table import CartTableModel
from .config import PreviewConfig
from .converter import StateConverter
from .engine import FLIGHT_ENERGY_SUPPORTED, PreviewContext, PreviewEngine
from .errors import (
    InconsistentBranchStateError,
    MissingConfigKeyError,
    PreviewError,
    UnknownPhaseTypeError,
)
from .io import Dynamics, FloatingBaseModel, Kinematics
from .sequence import load_preview_sequence, read_preview_sequence
from .state import (
    CartTableControlParams,
    CartTableProperties,
    Phase,
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
from .swing import SwingGenerator
from .terrain import HeightMap, NoTerrain, TerrainProvider

__all__ = [
    "PreviewEngine",
    "PreviewContext",
    "PreviewConfig",
    "FLIGHT_ENERGY_SUPPORTED",
    "CartTableModel",
    "SwingGenerator",
    "StateConverter",
    "ReducedBodyState",
    "ReducedBodyTrajectory",
    "WholeBodyState",
    "WholeBodyTrajectory",
    "Phase",
    "PhaseType",
    "PreviewParams",
    "PreviewControl",
    "CartTableProperties",
    "CartTableControlParams",
    "StepParameters",
    "SwingParams",
    "FloatingBaseModel",
    "Kinematics",
    "Dynamics",
    "TerrainProvider",
    "NoTerrain",
    "HeightMap",
    "PreviewError",
    "MissingConfigKeyError",
    "InconsistentBranchStateError",
    "UnknownPhaseTypeError",
    "load_preview_sequence",
    "read_preview_sequence",
]
