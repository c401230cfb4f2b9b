"""
Tests for camera module.
"""

import math

import pytest

from particle_gallery3d.rendering.camera import (
    MAX_PITCH,
    MIN_PITCH,
    CameraState,
    camera_for_position,
    camera_position,
    compute_camera_basis,
    compute_camera_position,
    orbit_camera,
    point_in_front,
    project_point,
    screen_ray,
    zoom_camera,
)


def length(v):
    return math.sqrt(sum(c**2 for c in v))


class TestCameraState:
    """Tests for CameraState dataclass."""

    def test_default_values(self):
        """Test default initialization."""
        state = CameraState()
        assert state.yaw == pytest.approx(math.pi / 2.0)
        assert state.pitch == pytest.approx(MIN_PITCH)
        assert state.distance == 50.0
        assert state.center == (0.0, 0.0, 0.0)
        assert state.fov == 42.0
        assert (state.min_distance, state.max_distance) == (20.0, 100.0)

    def test_default_looks_down_negative_z(self):
        forward, _right, _up = compute_camera_basis(CameraState().yaw, 0.0)
        assert forward == pytest.approx((0.0, 0.0, -1.0), abs=1e-9)

    def test_camera_for_position_clamps_elevation(self):
        # (0, 2, 50) is below the orbit limit, so the camera is lifted to it.
        state = camera_for_position(2.0, 50.0)
        assert state.pitch == pytest.approx(MIN_PITCH)
        eye = camera_position(state)
        assert eye[0] == pytest.approx(0.0, abs=1e-9)
        assert eye[2] == pytest.approx(50.0 * math.cos(MIN_PITCH))
        assert length(eye) == pytest.approx(50.0)

    def test_camera_for_position_clamps_distance(self):
        state = camera_for_position(2.0, 500.0)
        assert state.distance == 100.0


class TestComputeCameraPosition:
    """Tests for compute_camera_position function."""

    def test_zero_angles(self):
        """Test with zero yaw and pitch."""
        eye = compute_camera_position(yaw=0.0, pitch=0.0, distance=100.0, center=(0, 0, 0))
        assert abs(eye[0] - 100.0) < 0.01
        assert abs(eye[1]) < 0.01
        assert abs(eye[2]) < 0.01

    def test_offset_center(self):
        """Test with offset center."""
        eye = compute_camera_position(yaw=0.0, pitch=0.0, distance=100.0, center=(50, 50, 50))
        assert abs(eye[0] - 150.0) < 0.01
        assert abs(eye[1] - 50.0) < 0.01
        assert abs(eye[2] - 50.0) < 0.01


class TestComputeCameraBasis:
    """Tests for compute_camera_basis function."""

    def test_vectors_are_orthonormal(self):
        forward, right, up = compute_camera_basis(yaw=0.5, pitch=0.3)
        for v in (forward, right, up):
            assert length(v) == pytest.approx(1.0, abs=1e-6)
        dot = lambda a, b: sum(x * y for x, y in zip(a, b))  # noqa: E731
        assert dot(forward, right) == pytest.approx(0.0, abs=1e-6)
        assert dot(forward, up) == pytest.approx(0.0, abs=1e-6)
        assert up[1] > 0.0


class TestPicking:
    """Tests for screen rays and projection."""

    def test_center_ray_is_forward(self):
        state = CameraState()
        ray = screen_ray(state, 640, 400, 1280, 800)
        forward, _right, _up = compute_camera_basis(state.yaw, state.pitch)
        assert ray.direction == pytest.approx(forward, abs=1e-9)
        assert ray.origin == pytest.approx(camera_position(state))

    def test_ray_orientation(self):
        state = CameraState()
        right_ray = screen_ray(state, 1280, 400, 1280, 800)
        top_ray = screen_ray(state, 640, 800, 1280, 800)
        assert right_ray.direction[0] > 0.0
        assert top_ray.direction[1] > screen_ray(state, 640, 400, 1280, 800).direction[1]

    def test_project_inverts_screen_ray(self):
        state = CameraState(yaw=1.1, pitch=0.3, distance=40.0)
        for px, py in ((10.0, 20.0), (640.0, 400.0), (1200.0, 700.0)):
            ray = screen_ray(state, px, py, 1280, 800)
            point = tuple(o + d * 25.0 for o, d in zip(ray.origin, ray.direction))
            assert project_point(state, point, 1280, 800) == pytest.approx((px, py), abs=1e-6)

    def test_project_behind_camera(self):
        state = CameraState()
        eye = camera_position(state)
        behind = (eye[0], eye[1] + 1.0, eye[2] + 10.0)
        assert project_point(state, behind, 1280, 800) is None

    def test_point_in_front(self):
        state = CameraState()
        p = point_in_front(state, 15.0)
        eye = camera_position(state)
        assert length(tuple(a - b for a, b in zip(p, eye))) == pytest.approx(15.0)
        assert p[2] < eye[2]


class TestZoomCamera:
    """Tests for zoom_camera function."""

    def test_zoom_in(self):
        state = CameraState(distance=50.0)
        zoom_camera(state, factor=0.5)
        assert state.distance == 25.0

    def test_zoom_respects_limits(self):
        state = CameraState(distance=50.0)
        zoom_camera(state, factor=0.001)
        assert state.distance == 20.0
        zoom_camera(state, factor=1000.0)
        assert state.distance == 100.0


class TestOrbitCamera:
    """Tests for orbit_camera function."""

    def test_orbit_yaw(self):
        state = CameraState(yaw=0.0, pitch=0.3)
        orbit_camera(state, delta_yaw=0.5, delta_pitch=0.0)
        assert state.yaw == 0.5
        assert state.pitch == 0.3

    def test_orbit_pitch_clamped(self):
        state = CameraState(pitch=0.3)
        orbit_camera(state, delta_yaw=0.0, delta_pitch=5.0)
        assert state.pitch == pytest.approx(MAX_PITCH)
        orbit_camera(state, delta_yaw=0.0, delta_pitch=-5.0)
        assert state.pitch == pytest.approx(MIN_PITCH)
