"""
In-memory scene graph implementing the rendering backend interface.

Entities never own their renderables: they are created and kept alive here,
and the engine only holds weak references. All renderables live inside one
parent group that spins around the vertical axis; the camera sits outside the
group in world space.

The pyglet window reads this graph every frame; tests and the headless mode
use it directly.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

import numpy as np

from particle_gallery3d.core import math3d
from particle_gallery3d.rendering import camera as camera_mod
from particle_gallery3d.rendering.camera import CameraState, Ray

Vec3 = tuple[float, float, float]

LAYER_FORMATION = "formation"
LAYER_PHOTO = "photo"
LAYER_DUST = "dust"

VISIBLE_SCALE_EPS = 1e-3


@dataclass(frozen=True, slots=True)
class GeometryDescriptor:
    """
    Shape of a renderable.

    Attributes:
        shape: Shape name (box, sphere, cane, dust, photo, star)
        radius: Bounding-sphere radius at scale 1, used for picking and sprite size
    """
    shape: str
    radius: float


@dataclass(frozen=True, slots=True)
class MaterialDescriptor:
    color: tuple[int, int, int]
    alpha: int = 255
    emissive: bool = False
    texture: Any = None


@dataclass(eq=False)
class RenderHandle:
    """A renderable owned by the scene graph (weak-referenceable)."""
    id: int
    geometry: GeometryDescriptor
    material: MaterialDescriptor
    layer: str = LAYER_FORMATION
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)
    scale: float = 1.0

    @property
    def visible(self) -> bool:
        return self.scale > VISIBLE_SCALE_EPS


class RenderBackend(Protocol):
    def create_renderable(
        self,
        geometry: GeometryDescriptor,
        material: MaterialDescriptor,
        layer: str = LAYER_FORMATION,
    ) -> RenderHandle: ...

    def set_transform(self, handle: RenderHandle, position: Vec3, rotation: Vec3, scale: float) -> None: ...

    def raycast(self, ray: Ray, candidates: Iterable[RenderHandle]) -> list[tuple[RenderHandle, float]]: ...

    def camera_world_position(self) -> Vec3: ...

    def group_inverse_world_transform(self) -> np.ndarray: ...

    def set_group_yaw(self, yaw: float) -> None: ...

    def focus_point(self, offset: float) -> Vec3: ...

    def screen_ray(self, x: float, y: float) -> Ray: ...


@dataclass
class SceneGraph:
    """
    Renderable store, parent group transform and camera.

    Attributes:
        camera: Orbital camera state
        viewport: Window size in pixels, used to build picking rays
        group_yaw: Current rotation of the parent group (radians)
    """
    camera: CameraState = field(default_factory=CameraState)
    viewport: tuple[int, int] = (1280, 800)
    group_yaw: float = 0.0
    handles: dict[int, RenderHandle] = field(default_factory=dict)
    _ids: Any = field(default_factory=lambda: itertools.count(1), repr=False)

    # --- backend interface -------------------------------------------------

    def create_renderable(
        self,
        geometry: GeometryDescriptor,
        material: MaterialDescriptor,
        layer: str = LAYER_FORMATION,
    ) -> RenderHandle:
        handle = RenderHandle(id=next(self._ids), geometry=geometry, material=material, layer=layer)
        self.handles[handle.id] = handle
        return handle

    def set_transform(self, handle: RenderHandle, position: Vec3, rotation: Vec3, scale: float) -> None:
        handle.position = position
        handle.rotation = rotation
        handle.scale = scale

    def raycast(self, ray: Ray, candidates: Iterable[RenderHandle]) -> list[tuple[RenderHandle, float]]:
        """
        Intersect a world-space ray with the bounding spheres of ``candidates``.

        Returns:
            (handle, distance) pairs, nearest first. Hidden (zero-scale)
            renderables are never hit.
        """
        pool = [h for h in candidates if h.visible]
        if not pool:
            return []

        local = np.array([h.position for h in pool], dtype=np.float64)
        radii = np.array([h.geometry.radius * h.scale for h in pool], dtype=np.float64)
        world = self._to_world(local)

        origin = np.asarray(ray.origin, dtype=np.float64)
        direction = np.asarray(ray.direction, dtype=np.float64)
        direction = direction / max(1e-12, float(np.linalg.norm(direction)))

        oc = origin - world
        b = oc @ direction
        c = np.einsum("ij,ij->i", oc, oc) - radii * radii
        disc = b * b - c
        hit = disc >= 0.0
        if not np.any(hit):
            return []

        sq = np.sqrt(np.where(hit, disc, 0.0))
        t_near = -b - sq
        t_far = -b + sq
        # Origin inside the sphere: the exit point is the hit.
        t = np.where(t_near >= 0.0, t_near, t_far)
        hit &= t >= 0.0

        order = np.argsort(t[hit], kind="stable")
        hit_idx = np.nonzero(hit)[0][order]
        return [(pool[i], float(t[i])) for i in hit_idx]

    def camera_world_position(self) -> Vec3:
        return camera_mod.camera_position(self.camera)

    def group_world_transform(self) -> np.ndarray:
        return math3d.group_world_matrix(self.group_yaw)

    def group_inverse_world_transform(self) -> np.ndarray:
        return math3d.invert(self.group_world_transform())

    # --- helpers -----------------------------------------------------------

    def set_group_yaw(self, yaw: float) -> None:
        self.group_yaw = math.fmod(float(yaw), 2.0 * math.pi)

    def focus_point(self, offset: float) -> Vec3:
        return camera_mod.point_in_front(self.camera, offset)

    def screen_ray(self, x: float, y: float) -> Ray:
        w, h = self.viewport
        return camera_mod.screen_ray(self.camera, x, y, w, h)

    def resize(self, width: int, height: int) -> None:
        self.viewport = (max(1, int(width)), max(1, int(height)))

    def handles_in_layers(self, *layers: str) -> list[RenderHandle]:
        return [h for h in self.handles.values() if h.layer in layers]

    def world_positions(self, handles: list[RenderHandle]) -> np.ndarray:
        if not handles:
            return np.zeros((0, 3), dtype=np.float64)
        local = np.array([h.position for h in handles], dtype=np.float64)
        return self._to_world(local)

    def _to_world(self, local: np.ndarray) -> np.ndarray:
        m = self.group_world_transform()
        return local @ m[:3, :3].T + m[:3, 3]
