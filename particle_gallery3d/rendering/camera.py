"""
Orbital camera model for the gallery.

The camera orbits around a center point and is driven by drag / wheel input.
Besides the view parameters this module builds picking rays from window
coordinates, which the scene graph uses for raycasting.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

Vec3 = tuple[float, float, float]

# Elevation limits: polar angle from +Y stays within [pi/4, pi/2.2].
MIN_PITCH = math.pi / 2.0 - math.pi / 2.2
MAX_PITCH = math.pi / 4.0


@dataclass
class CameraState:
    """
    State of the orbital camera.

    Attributes:
        yaw: Horizontal rotation angle in radians (pi/2 looks down -Z)
        pitch: Elevation angle in radians
        distance: Distance from center to camera position
        center: Point the camera looks at
        fov: Vertical field of view in degrees
        min_distance, max_distance: Zoom limits
    """
    yaw: float = math.pi / 2.0
    pitch: float = MIN_PITCH
    distance: float = 50.0
    center: Vec3 = (0.0, 0.0, 0.0)
    fov: float = 42.0
    min_distance: float = 20.0
    max_distance: float = 100.0


@dataclass(slots=True)
class Ray:
    origin: Vec3
    direction: Vec3


def camera_for_position(
    height: float,
    distance: float,
    *,
    fov: float = 42.0,
    min_distance: float = 20.0,
    max_distance: float = 100.0,
) -> CameraState:
    """Camera placed at ``(0, height, ~distance)`` looking at the origin."""
    ratio = max(-0.99, min(0.99, float(height) / max(1e-6, float(distance))))
    return CameraState(
        yaw=math.pi / 2.0,
        pitch=clamp_pitch(math.asin(ratio)),
        distance=clamp_distance(distance, min_distance, max_distance),
        fov=fov,
        min_distance=min_distance,
        max_distance=max_distance,
    )


def compute_camera_position(
    yaw: float,
    pitch: float,
    distance: float,
    center: Vec3,
) -> Vec3:
    """
    Compute camera position from orbital parameters.

    Args:
        yaw: Horizontal angle in radians
        pitch: Vertical angle in radians
        distance: Distance from center
        center: Point camera looks at

    Returns:
        (x, y, z) camera position
    """
    cp = math.cos(pitch)
    sp = math.sin(pitch)
    cy = math.cos(yaw)
    sy = math.sin(yaw)

    return (
        center[0] + distance * cp * cy,
        center[1] + distance * sp,
        center[2] + distance * cp * sy,
    )


def compute_camera_basis(yaw: float, pitch: float) -> tuple[Vec3, Vec3, Vec3]:
    """
    Compute the camera forward, right and up unit vectors.

    Args:
        yaw: Horizontal angle in radians
        pitch: Vertical angle in radians

    Returns:
        (forward, right, up) unit vectors
    """
    cp = math.cos(pitch)
    sp = math.sin(pitch)
    cy = math.cos(yaw)
    sy = math.sin(yaw)

    forward = (-cp * cy, -sp, -cp * sy)

    # Right = cross(forward, Y) normalized
    right_x = -forward[2]
    right_z = forward[0]
    r_len = max(1e-6, math.sqrt(right_x**2 + right_z**2))
    right = (right_x / r_len, 0.0, right_z / r_len)

    # Up = cross(right, forward)
    up_x = right[1] * forward[2] - right[2] * forward[1]
    up_y = right[2] * forward[0] - right[0] * forward[2]
    up_z = right[0] * forward[1] - right[1] * forward[0]
    u_len = max(1e-6, math.sqrt(up_x**2 + up_y**2 + up_z**2))
    up = (up_x / u_len, up_y / u_len, up_z / u_len)

    return forward, right, up


def camera_position(state: CameraState) -> Vec3:
    return compute_camera_position(state.yaw, state.pitch, state.distance, state.center)


def point_in_front(state: CameraState, offset: float) -> Vec3:
    """World-space point ``offset`` units in front of the camera along its view axis."""
    eye = camera_position(state)
    forward, _right, _up = compute_camera_basis(state.yaw, state.pitch)
    return (
        eye[0] + forward[0] * offset,
        eye[1] + forward[1] * offset,
        eye[2] + forward[2] * offset,
    )


def screen_ray(
    state: CameraState,
    x: float,
    y: float,
    width: int,
    height: int,
) -> Ray:
    """
    Build a world-space picking ray through a window pixel.

    Window coordinates have their origin in the bottom-left corner (pyglet
    convention).
    """
    w = max(1.0, float(width))
    h = max(1.0, float(height))
    ndc_x = (2.0 * float(x) / w) - 1.0
    ndc_y = (2.0 * float(y) / h) - 1.0
    tan_half = math.tan(math.radians(state.fov) / 2.0)
    aspect = w / h

    forward, right, up = compute_camera_basis(state.yaw, state.pitch)
    sx = ndc_x * tan_half * aspect
    sy = ndc_y * tan_half
    dx = forward[0] + right[0] * sx + up[0] * sy
    dy = forward[1] + right[1] * sx + up[1] * sy
    dz = forward[2] + right[2] * sx + up[2] * sy
    n = max(1e-9, math.sqrt(dx * dx + dy * dy + dz * dz))
    return Ray(origin=camera_position(state), direction=(dx / n, dy / n, dz / n))


def project_point(
    state: CameraState,
    point: Vec3,
    width: int,
    height: int,
) -> tuple[float, float] | None:
    """
    Window pixel of a world-space point (inverse of ``screen_ray``).

    Returns:
        (x, y) with a bottom-left origin, or None for points behind the camera
    """
    eye = camera_position(state)
    forward, right, up = compute_camera_basis(state.yaw, state.pitch)
    d = (point[0] - eye[0], point[1] - eye[1], point[2] - eye[2])
    depth = d[0] * forward[0] + d[1] * forward[1] + d[2] * forward[2]
    if depth <= 1e-9:
        return None
    w = max(1.0, float(width))
    h = max(1.0, float(height))
    tan_half = math.tan(math.radians(state.fov) / 2.0)
    sx = (d[0] * right[0] + d[1] * right[1] + d[2] * right[2]) / depth
    sy = (d[0] * up[0] + d[1] * up[1] + d[2] * up[2]) / depth
    ndc_x = sx / (tan_half * (w / h))
    ndc_y = sy / tan_half
    return ((ndc_x + 1.0) * 0.5 * w, (ndc_y + 1.0) * 0.5 * h)


def clamp_distance(
    distance: float,
    min_distance: float,
    max_distance: float,
) -> float:
    """
    Clamp camera distance to valid range.

    Args:
        distance: Current distance
        min_distance: Minimum allowed distance
        max_distance: Maximum allowed distance

    Returns:
        Clamped distance value
    """
    min_d = max(0.01, float(min_distance))
    max_d = max(min_d, float(max_distance))
    return max(min_d, min(max_d, float(distance)))


def clamp_pitch(pitch: float) -> float:
    """Clamp elevation so the camera stays between the orbit-control polar limits."""
    return max(MIN_PITCH, min(MAX_PITCH, float(pitch)))


def zoom_camera(state: CameraState, factor: float) -> None:
    """
    Zoom the camera by a factor (in-place).

    Args:
        state: Camera state to modify
        factor: Zoom factor (< 1 = zoom in, > 1 = zoom out)
    """
    state.distance = clamp_distance(state.distance * factor, state.min_distance, state.max_distance)


def orbit_camera(state: CameraState, delta_yaw: float, delta_pitch: float) -> None:
    """
    Orbit the camera by the given deltas (in-place).

    Args:
        state: Camera state to modify
        delta_yaw: Change in yaw angle
        delta_pitch: Change in pitch angle
    """
    state.yaw += delta_yaw
    state.pitch = clamp_pitch(state.pitch + delta_pitch)
