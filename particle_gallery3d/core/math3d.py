"""
Small 3D helpers shared by the entity update pass and the scene graph.

Vectors are plain ``(x, y, z)`` tuples; 4x4 matrices are numpy arrays using
the column-vector convention (``p' = M @ [x, y, z, 1]``).
"""

from __future__ import annotations

import math

import numpy as np

Vec3 = tuple[float, float, float]


def clamp01(value: float) -> float:
    return 0.0 if value < 0.0 else 1.0 if value > 1.0 else value


def lerp(a: float, b: float, alpha: float) -> float:
    return a + (b - a) * alpha


def lerp_vec(a: Vec3, b: Vec3, alpha: float) -> Vec3:
    return (
        a[0] + (b[0] - a[0]) * alpha,
        a[1] + (b[1] - a[1]) * alpha,
        a[2] + (b[2] - a[2]) * alpha,
    )


def length(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def normalize(v: Vec3) -> Vec3:
    n = max(1e-9, length(v))
    return (v[0] / n, v[1] / n, v[2] / n)


def rotation_y(angle: float) -> np.ndarray:
    """4x4 rotation about the vertical axis."""
    c = math.cos(angle)
    s = math.sin(angle)
    return np.array(
        [
            [c, 0.0, s, 0.0],
            [0.0, 1.0, 0.0, 0.0],
            [-s, 0.0, c, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def translation(offset: Vec3) -> np.ndarray:
    m = np.identity(4, dtype=np.float64)
    m[0:3, 3] = offset
    return m


def group_world_matrix(yaw: float, origin: Vec3 = (0.0, 0.0, 0.0)) -> np.ndarray:
    """World matrix of a group translated to ``origin`` and spun by ``yaw``."""
    return translation(origin) @ rotation_y(yaw)


def invert(matrix: np.ndarray) -> np.ndarray:
    return np.linalg.inv(matrix)


def transform_point(matrix: np.ndarray, point: Vec3) -> Vec3:
    x, y, z, w = matrix @ np.array((point[0], point[1], point[2], 1.0), dtype=np.float64)
    if abs(w) > 1e-12 and w != 1.0:
        x, y, z = x / w, y / w, z / w
    return (float(x), float(y), float(z))


def look_at_euler(origin: Vec3, target: Vec3) -> Vec3:
    """
    Euler angles (x, y, z) that turn an object's +Z axis from ``origin`` toward ``target``.

    Angles are meant to be applied yaw first, then pitch (YXZ order); roll is
    always zero so the object stays upright.
    """
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    dz = target[2] - origin[2]
    yaw = math.atan2(dx, dz)
    pitch = -math.atan2(dy, math.hypot(dx, dz))
    return (pitch, yaw, 0.0)
