from __future__ import annotations

import math

import numpy as np


def rotation_from_rpy(rpy: np.ndarray) -> np.ndarray:
    """Rotation matrix R = Rz(yaw) @ Ry(pitch) @ Rx(roll) (base -> world)."""
    roll, pitch, yaw = [float(v) for v in np.asarray(rpy, dtype=np.float64).reshape(3)]
    cr, sr = math.cos(roll), math.sin(roll)
    cp, sp = math.cos(pitch), math.sin(pitch)
    cy, sy = math.cos(yaw), math.sin(yaw)
    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ],
        dtype=np.float64,
    )


def rpy_from_rotation(rot: np.ndarray) -> np.ndarray:
    rot = np.asarray(rot, dtype=np.float64).reshape(3, 3)
    pitch = math.asin(max(-1.0, min(1.0, -float(rot[2, 0]))))
    roll = math.atan2(float(rot[2, 1]), float(rot[2, 2]))
    yaw = math.atan2(float(rot[1, 0]), float(rot[0, 0]))
    return np.array([roll, pitch, yaw], dtype=np.float64)


def from_base_to_world(vec: np.ndarray, rpy: np.ndarray) -> np.ndarray:
    return rotation_from_rpy(rpy) @ np.asarray(vec, dtype=np.float64).reshape(3)


def from_world_to_base(vec: np.ndarray, rpy: np.ndarray) -> np.ndarray:
    return rotation_from_rpy(rpy).T @ np.asarray(vec, dtype=np.float64).reshape(3)


def quat_wxyz_from_rpy(rpy: np.ndarray) -> np.ndarray:
    """Quaternion (wxyz, MuJoCo order) for a roll-pitch-yaw orientation."""
    roll, pitch, yaw = [float(v) for v in np.asarray(rpy, dtype=np.float64).reshape(3)]
    cr, sr = math.cos(roll / 2.0), math.sin(roll / 2.0)
    cp, sp = math.cos(pitch / 2.0), math.sin(pitch / 2.0)
    cy, sy = math.cos(yaw / 2.0), math.sin(yaw / 2.0)
    w = cr * cp * cy + sr * sp * sy
    x = sr * cp * cy - cr * sp * sy
    y = cr * sp * cy + sr * cp * sy
    z = cr * cp * sy - sr * sp * cy
    return np.array([w, x, y, z], dtype=np.float64)


def rpy_from_quat_wxyz(quat_wxyz: np.ndarray) -> np.ndarray:
    w, x, y, z = [float(v) for v in np.asarray(quat_wxyz, dtype=np.float64).reshape(4)]
    n = math.sqrt(w * w + x * x + y * y + z * z)
    if n <= 1e-12:
        return np.zeros(3, dtype=np.float64)
    w, x, y, z = w / n, x / n, y / n, z / n
    roll = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
    pitch = math.asin(max(-1.0, min(1.0, 2.0 * (w * y - z * x))))
    yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    return np.array([roll, pitch, yaw], dtype=np.float64)
