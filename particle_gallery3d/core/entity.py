"""
Gallery entities and their per-frame interpolation.

An entity owns its static data (kind, formation targets, base scale, spin)
and a mutable transform that eases every frame toward whatever the current
mode implies. The renderable itself belongs to the rendering backend; the
entity only keeps a weak reference to it.
"""

from __future__ import annotations

import math
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, NewType

import numpy as np

from particle_gallery3d.core import math3d
from particle_gallery3d.core.modes import Mode

if TYPE_CHECKING:
    from particle_gallery3d.core.math3d import Vec3

EntityId = NewType("EntityId", int)

COMPACT_YAW_RATE = 0.5  # rad/s
POSITION_RATE = 2.0
FOCUS_POSITION_RATE = 5.0
SCALE_RATE = 4.0
PHOTO_DISPERSED_SCALE = 2.5
FOCUS_TARGET_SCALE = 4.5
FOCUS_OTHERS_SCALE = 0.8
DUST_PULSE_FREQ = 4.0


class EntityKind(str, Enum):
    BOX = "BOX"
    GOLD_BOX = "GOLD_BOX"
    GOLD_SPHERE = "GOLD_SPHERE"
    RED = "RED"
    CANE = "CANE"
    DUST = "DUST"
    PHOTO = "PHOTO"

    @property
    def is_decorative(self) -> bool:
        return self not in (EntityKind.DUST, EntityKind.PHOTO)


@dataclass(slots=True)
class FrameContext:
    """
    Per-tick inputs shared by every entity update.

    Attributes:
        elapsed: Seconds since the scene started (drives dust pulses)
        camera_position: Camera position in world space
        focus_point: World-space point where the focused photo should sit
        group_inverse: Inverse of the parent group's current world matrix
    """
    elapsed: float = 0.0
    camera_position: tuple[float, float, float] = (0.0, 2.0, 50.0)
    focus_point: tuple[float, float, float] = (0.0, 2.0, 35.0)
    group_inverse: np.ndarray = field(default_factory=lambda: np.identity(4))


@dataclass(eq=False)
class ParticleEntity:
    id: EntityId
    kind: EntityKind
    compact_position: tuple[float, float, float]
    dispersed_position: tuple[float, float, float]
    base_scale: float
    spin_rate: tuple[float, float, float]
    caption: str | None = None
    handle_ref: "weakref.ReferenceType[Any] | None" = None

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    scale: float = field(default=-1.0)

    def __post_init__(self) -> None:
        # Formation targets are frozen as tuples; nothing reassigns them after this.
        self.compact_position = tuple(float(c) for c in self.compact_position)  # type: ignore[assignment]
        self.dispersed_position = tuple(float(c) for c in self.dispersed_position)  # type: ignore[assignment]
        if self.scale < 0.0:
            self.scale = float(self.base_scale)
        if self.kind is EntityKind.PHOTO and self.caption is None:
            self.caption = ""

    @property
    def is_dust(self) -> bool:
        return self.kind is EntityKind.DUST

    @property
    def is_photo(self) -> bool:
        return self.kind is EntityKind.PHOTO

    @property
    def phase(self) -> float:
        return float(self.id)

    @property
    def handle(self) -> Any | None:
        """The backend renderable, or None once the backend dropped it."""
        return self.handle_ref() if self.handle_ref is not None else None

    def attach(self, handle: Any) -> None:
        self.handle_ref = weakref.ref(handle)

    def target_position(self, mode: Mode, is_focus_target: bool, frame: FrameContext) -> "Vec3":
        if mode is Mode.COMPACT:
            return self.compact_position
        if mode is Mode.FOCUS and is_focus_target:
            # The group keeps spinning, so the world point is re-expressed in its frame every tick.
            return math3d.transform_point(frame.group_inverse, frame.focus_point)
        return self.dispersed_position

    def target_scale(self, mode: Mode, is_focus_target: bool, elapsed: float) -> float:
        if mode is Mode.COMPACT:
            return 0.0 if self.is_dust else self.base_scale
        if mode is Mode.DISPERSED:
            if self.is_dust:
                pulse = 0.8 + 0.4 * math.sin(DUST_PULSE_FREQ * elapsed + self.phase)
                return self.base_scale * pulse
            if self.is_photo:
                return self.base_scale * PHOTO_DISPERSED_SCALE
            return self.base_scale
        if is_focus_target:
            return FOCUS_TARGET_SCALE
        return self.base_scale * FOCUS_OTHERS_SCALE

    def update(
        self,
        dt: float,
        mode: Mode,
        focus_target: EntityId | None,
        frame: FrameContext,
    ) -> None:
        """
        Advance the transform by one frame.

        Args:
            dt: Frame time in seconds
            mode: Current formation mode
            focus_target: Id of the focused photo (FOCUS only)
            frame: Shared per-tick context
        """
        is_focus_target = mode is Mode.FOCUS and focus_target is not None and self.id == focus_target

        target = self.target_position(mode, is_focus_target, frame)
        rate = FOCUS_POSITION_RATE if is_focus_target else POSITION_RATE
        self.position = math3d.lerp_vec(self.position, target, math3d.clamp01(rate * dt))

        rx, ry, rz = self.rotation
        if mode is Mode.DISPERSED:
            sx, sy, sz = self.spin_rate
            self.rotation = (rx + sx * dt, ry + sy * dt, rz + sz * dt)
        elif mode is Mode.COMPACT:
            ease = math3d.clamp01(dt)
            self.rotation = (
                math3d.lerp(rx, 0.0, ease),
                ry + COMPACT_YAW_RATE * dt,
                math3d.lerp(rz, 0.0, ease),
            )
        elif is_focus_target:
            camera_local = math3d.transform_point(frame.group_inverse, frame.camera_position)
            self.rotation = math3d.look_at_euler(self.position, camera_local)

        s = self.target_scale(mode, is_focus_target, frame.elapsed)
        self.scale = math3d.lerp(self.scale, s, math3d.clamp01(SCALE_RATE * dt))
