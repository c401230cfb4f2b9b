"""
Geometry and colour descriptors for each entity kind.

Colours follow the gallery's champagne-gold / deep-green / accent-red theme.
"""

from __future__ import annotations

from particle_gallery3d.core.entity import EntityKind
from particle_gallery3d.rendering.scene_graph import GeometryDescriptor, MaterialDescriptor

CHAMPAGNE_GOLD = (255, 217, 102)
DEEP_GREEN = (3, 24, 10)
ACCENT_RED = (153, 0, 0)
CANE_WHITE = (240, 225, 225)
DUST_GLOW = (255, 238, 187)
STAR_GOLD = (255, 221, 136)

# Foliage boxes are nearly black; lift them a little so they stay visible as sprites.
FOLIAGE_GREEN = (18, 92, 40)

GEOMETRY: dict[EntityKind, GeometryDescriptor] = {
    EntityKind.BOX: GeometryDescriptor("box", 0.48),
    EntityKind.GOLD_BOX: GeometryDescriptor("box", 0.48),
    EntityKind.GOLD_SPHERE: GeometryDescriptor("sphere", 0.5),
    EntityKind.RED: GeometryDescriptor("sphere", 0.5),
    EntityKind.CANE: GeometryDescriptor("cane", 0.55),
    EntityKind.DUST: GeometryDescriptor("dust", 0.08),
    EntityKind.PHOTO: GeometryDescriptor("photo", 0.99),
}

MATERIALS: dict[EntityKind, MaterialDescriptor] = {
    EntityKind.BOX: MaterialDescriptor(FOLIAGE_GREEN),
    EntityKind.GOLD_BOX: MaterialDescriptor(CHAMPAGNE_GOLD, emissive=True),
    EntityKind.GOLD_SPHERE: MaterialDescriptor(CHAMPAGNE_GOLD, emissive=True),
    EntityKind.RED: MaterialDescriptor(ACCENT_RED),
    EntityKind.CANE: MaterialDescriptor(CANE_WHITE),
    EntityKind.DUST: MaterialDescriptor(DUST_GLOW, alpha=204),
}

STAR_GEOMETRY = GeometryDescriptor("star", 1.2)
STAR_MATERIAL = MaterialDescriptor(STAR_GOLD, emissive=True)


def geometry_for(kind: EntityKind) -> GeometryDescriptor:
    return GEOMETRY[kind]


def material_for(kind: EntityKind) -> MaterialDescriptor:
    """Material for a non-photo kind; photos get a textured material from their image."""
    if kind is EntityKind.PHOTO:
        raise ValueError("photo materials are built from the uploaded image")
    return MATERIALS[kind]


def photo_material(texture: object, average_color: tuple[int, int, int]) -> MaterialDescriptor:
    return MaterialDescriptor(tuple(int(c) for c in average_color), texture=texture)  # type: ignore[arg-type]
