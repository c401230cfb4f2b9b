"""
Live entity set and the per-tick update pass.

The scene creates every entity (decoratives, dust, photos), owns the id
counter and the elapsed clock, and drives the single synchronous update pass
that pushes each entity's transform to the rendering backend.
"""

from __future__ import annotations

import logging
import random
import weakref
from typing import Any

from particle_gallery3d.core import positions
from particle_gallery3d.core.entity import EntityId, EntityKind, FrameContext, ParticleEntity
from particle_gallery3d.core.math3d import lerp, clamp01
from particle_gallery3d.core.modes import Mode, ModeState
from particle_gallery3d.params import GalleryParams
from particle_gallery3d.rendering import palette
from particle_gallery3d.rendering.scene_graph import (
    LAYER_DUST,
    LAYER_FORMATION,
    LAYER_PHOTO,
    MaterialDescriptor,
    RenderBackend,
)

logger = logging.getLogger(__name__)

# Cumulative thresholds of the decorative mix.
DECORATIVE_MIX: tuple[tuple[float, EntityKind], ...] = (
    (0.40, EntityKind.BOX),
    (0.70, EntityKind.GOLD_BOX),
    (0.92, EntityKind.GOLD_SPHERE),
    (0.97, EntityKind.RED),
    (1.00, EntityKind.CANE),
)

DECORATIVE_SCALE = (0.4, 0.9)
DUST_SCALE = (0.5, 1.5)
PHOTO_SCALE = 0.8
PHOTO_SPIN = 0.15
DEFAULT_SPIN = 1.0
INITIAL_ROTATION_MAX = 6.0

TOPPER_OFFSET = 1.2
TOPPER_SCALE = 1.5


def pick_decorative_kind(rng: random.Random) -> EntityKind:
    r = rng.random()
    for threshold, kind in DECORATIVE_MIX:
        if r < threshold:
            return kind
    return DECORATIVE_MIX[-1][1]


class GalleryScene:
    """
    Owns the append-only entity list and runs the per-frame pass.

    Args:
        params: Gallery parameters (counts, formation size, spin rate)
        backend: Rendering backend that owns the renderables
        rng: Random source for placement (seeded from ``params.seed`` by default)
    """

    def __init__(self, params: GalleryParams, backend: RenderBackend, rng: random.Random | None = None):
        self.params = params
        self.backend = backend
        self.rng = rng if rng is not None else random.Random(params.seed)

        self.entities: list[ParticleEntity] = []
        self._by_id: dict[EntityId, ParticleEntity] = {}
        self._photo_ids: list[EntityId] = []
        self._owners: "weakref.WeakKeyDictionary[Any, EntityId]" = weakref.WeakKeyDictionary()
        self._next_id = 0

        self.elapsed = 0.0
        self.group_yaw = 0.0
        self.topper: Any = None
        self._topper_scale = TOPPER_SCALE

    # =========================================================================
    # Construction
    # =========================================================================

    def populate(self) -> None:
        """Create the decorative entities, the dust and the topper ornament."""
        p = self.params
        for _ in range(p.particle_count):
            kind = pick_decorative_kind(self.rng)
            rotation = tuple(self.rng.random() * INITIAL_ROTATION_MAX for _ in range(3))
            self._spawn(
                kind,
                base_scale=self.rng.uniform(*DECORATIVE_SCALE),
                spin=DEFAULT_SPIN,
                material=palette.material_for(kind),
                layer=LAYER_FORMATION,
                rotation=rotation,  # type: ignore[arg-type]
            )

        for _ in range(p.dust_count):
            self._spawn(
                EntityKind.DUST,
                base_scale=self.rng.uniform(*DUST_SCALE),
                spin=DEFAULT_SPIN,
                material=palette.material_for(EntityKind.DUST),
                layer=LAYER_DUST,
            )

        if p.topper_enabled:
            self.topper = self.backend.create_renderable(palette.STAR_GEOMETRY, palette.STAR_MATERIAL, LAYER_FORMATION)
            self._push_topper()

        logger.info(
            "Scene populated: %d decorative, %d dust, topper=%s",
            p.particle_count,
            p.dust_count,
            "on" if self.topper is not None else "off",
        )

    def add_photo(self, material: MaterialDescriptor, caption: str = "") -> ParticleEntity:
        """Append a PHOTO entity built from an already prepared material."""
        entity = self._spawn(
            EntityKind.PHOTO,
            base_scale=PHOTO_SCALE,
            spin=PHOTO_SPIN,
            material=material,
            layer=LAYER_PHOTO,
            caption=(caption or "").strip(),
        )
        self._photo_ids.append(entity.id)
        logger.info("Photo entity %d created (%d photos total)", entity.id, len(self._photo_ids))
        return entity

    def _spawn(
        self,
        kind: EntityKind,
        *,
        base_scale: float,
        spin: float,
        material: MaterialDescriptor,
        layer: str,
        rotation: tuple[float, float, float] = (0.0, 0.0, 0.0),
        caption: str | None = None,
    ) -> ParticleEntity:
        p = self.params
        is_dust = kind is EntityKind.DUST
        entity = ParticleEntity(
            id=EntityId(self._next_id),
            kind=kind,
            compact_position=positions.compact_position(p.tree_height, p.tree_radius, is_dust, self.rng),
            dispersed_position=positions.dispersed_position(is_dust, self.rng),
            base_scale=base_scale,
            spin_rate=(
                self.rng.uniform(-spin, spin),
                self.rng.uniform(-spin, spin),
                self.rng.uniform(-spin, spin),
            ),
            caption=caption,
            rotation=rotation,
        )
        self._next_id += 1

        handle = self.backend.create_renderable(palette.geometry_for(kind), material, layer)
        entity.attach(handle)
        self._owners[handle] = entity.id
        self.backend.set_transform(handle, entity.position, entity.rotation, entity.scale)

        self.entities.append(entity)
        self._by_id[entity.id] = entity
        return entity

    # =========================================================================
    # Queries
    # =========================================================================

    def photo_ids(self) -> list[EntityId]:
        return list(self._photo_ids)

    def entity(self, entity_id: EntityId) -> ParticleEntity:
        return self._by_id[entity_id]

    def caption_of(self, entity_id: EntityId) -> str:
        entity = self._by_id.get(entity_id)
        if entity is None:
            return ""
        return entity.caption or ""

    def counts(self) -> dict[str, int]:
        photos = len(self._photo_ids)
        dust = sum(1 for e in self.entities if e.is_dust)
        return {
            "total": len(self.entities),
            "decorative": len(self.entities) - photos - dust,
            "dust": dust,
            "photo": photos,
        }

    # =========================================================================
    # Per-tick pass
    # =========================================================================

    def tick(self, dt: float, state: ModeState) -> FrameContext:
        """
        Advance every entity by ``dt`` seconds under ``state``.

        Returns:
            The frame context the entities were updated with.
        """
        dt = max(0.0, float(dt))
        self.elapsed += dt
        self.group_yaw += self.params.group_spin_rate * dt
        self.backend.set_group_yaw(self.group_yaw)

        frame = FrameContext(
            elapsed=self.elapsed,
            camera_position=self.backend.camera_world_position(),
            focus_point=self.backend.focus_point(self.params.focus_distance),
            group_inverse=self.backend.group_inverse_world_transform(),
        )

        mode = state.mode
        target = state.focus_target
        for entity in self.entities:
            entity.update(dt, mode, target, frame)
            handle = entity.handle
            if handle is not None:
                self.backend.set_transform(handle, entity.position, entity.rotation, entity.scale)

        if self.topper is not None:
            goal = TOPPER_SCALE if mode is Mode.COMPACT else 0.0
            self._topper_scale = lerp(self._topper_scale, goal, clamp01(4.0 * dt))
            self._push_topper()
        return frame

    def _push_topper(self) -> None:
        y = self.params.tree_height / 2.0 + TOPPER_OFFSET
        spin = self.elapsed * 0.5
        self.backend.set_transform(self.topper, (0.0, y, 0.0), (0.0, spin, 0.0), self._topper_scale)

    # =========================================================================
    # Picking
    # =========================================================================

    def pick_photo(self, x: float, y: float) -> EntityId | None:
        """Nearest PHOTO entity under the window pixel, if any."""
        if not self._photo_ids:
            return None
        handles = [h for h in (self._by_id[i].handle for i in self._photo_ids) if h is not None]
        hits = self.backend.raycast(self.backend.screen_ray(x, y), handles)
        if not hits:
            return None
        return self._owners.get(hits[0][0])

    def hits_formation(self, x: float, y: float) -> bool:
        """True when the pointer ray touches any non-dust entity or the topper."""
        handles = [e.handle for e in self.entities if not e.is_dust]
        if self.topper is not None:
            handles.append(self.topper)
        hits = self.backend.raycast(self.backend.screen_ray(x, y), [h for h in handles if h is not None])
        return bool(hits)
