"""
Formation target generators for gallery entities.

Each entity receives two static targets when it is created:

- compact: a point on a tapered spiral (the resting "tree" formation)
- dispersed: a point on a spherical shell around the origin

Both generators take the random source explicitly so that a seeded
``random.Random`` reproduces the same layout.
"""

from __future__ import annotations

import math
import random

Vec3 = tuple[float, float, float]

# Exponent < 1 pushes samples toward t=1 before the taper, i.e. denser near the base.
HEIGHT_BIAS = 0.8
SPIRAL_TURNS_PI = 50.0
MIN_SPIRAL_RADIUS = 0.5

DUST_SHELL = (12.0, 32.0)
ORNAMENT_SHELL = (8.0, 20.0)


def sample_unit_vector(rng: random.Random) -> Vec3:
    """
    Sample a uniformly distributed unit vector on the sphere.

    Args:
        rng: Random number generator instance

    Returns:
        (x, y, z) unit vector
    """
    theta = rng.random() * 2.0 * math.pi
    phi = math.acos(2.0 * rng.random() - 1.0)
    sin_phi = math.sin(phi)
    return (
        sin_phi * math.cos(theta),
        sin_phi * math.sin(theta),
        math.cos(phi),
    )


def compact_position(
    height: float,
    radius: float,
    is_dust: bool,  # noqa: ARG001
    rng: random.Random,
) -> Vec3:
    """
    Sample a point of the compact spiral formation.

    The spiral spans ``[-height/2, height/2]`` vertically and tapers from
    ``radius`` at the base to ``MIN_SPIRAL_RADIUS`` at the top. Many turns plus
    a random phase hide the seam of the spiral.

    Args:
        height: Total height H of the formation
        radius: Base radius R of the formation
        is_dust: Dust entities share the same spiral (they are hidden while compact)
        rng: Random number generator

    Returns:
        (x, y, z) position; ``|y| <= H/2`` and radial distance ``<= 1.2 * R``
    """
    t = rng.random() ** HEIGHT_BIAS
    y = t * height - height / 2.0
    r_max = max(MIN_SPIRAL_RADIUS, radius * (1.0 - t))
    angle = t * SPIRAL_TURNS_PI * math.pi + rng.random() * math.pi
    r = r_max * rng.uniform(0.8, 1.2)
    return (math.cos(angle) * r, y, math.sin(angle) * r)


def dispersed_position(is_dust: bool, rng: random.Random) -> Vec3:
    """
    Sample a point of the dispersed formation.

    Dust lives on a wider shell so that it forms a halo around the ornaments.

    Args:
        is_dust: Whether the entity is a dust flourish
        rng: Random number generator

    Returns:
        (x, y, z) position at distance [12, 32] (dust) or [8, 20] from the origin
    """
    r_min, r_max = DUST_SHELL if is_dust else ORNAMENT_SHELL
    r = rng.uniform(r_min, r_max)
    dx, dy, dz = sample_unit_vector(rng)
    return (r * dx, r * dy, r * dz)
