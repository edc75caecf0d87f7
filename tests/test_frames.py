from __future__ import annotations

import numpy as np
import pytest

from locomotion_preview.frames import (
    from_base_to_world,
    from_world_to_base,
    quat_wxyz_from_rpy,
    rotation_from_rpy,
    rpy_from_quat_wxyz,
    rpy_from_rotation,
)


def test_rotation_is_orthonormal() -> None:
    rot = rotation_from_rpy(np.array([0.1, -0.3, 1.2]))
    np.testing.assert_allclose(rot @ rot.T, np.eye(3), atol=1e-12)
    assert np.linalg.det(rot) == pytest.approx(1.0)


def test_yaw_rotates_x_into_y() -> None:
    rpy = np.array([0.0, 0.0, np.pi / 2])
    np.testing.assert_allclose(from_base_to_world(np.array([1.0, 0.0, 0.0]), rpy), [0.0, 1.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(from_world_to_base(np.array([0.0, 1.0, 0.0]), rpy), [1.0, 0.0, 0.0], atol=1e-12)


def test_rpy_round_trips() -> None:
    rpy = np.array([0.2, -0.4, 2.5])
    np.testing.assert_allclose(rpy_from_rotation(rotation_from_rpy(rpy)), rpy, atol=1e-12)
    np.testing.assert_allclose(rpy_from_quat_wxyz(quat_wxyz_from_rpy(rpy)), rpy, atol=1e-12)


def test_identity_quaternion() -> None:
    np.testing.assert_allclose(quat_wxyz_from_rpy(np.zeros(3)), [1.0, 0.0, 0.0, 0.0])
    np.testing.assert_array_equal(rpy_from_quat_wxyz(np.zeros(4)), np.zeros(3))
