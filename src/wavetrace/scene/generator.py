"""Procedural placement of non-overlapping spheres.

The generator scatters spheres over a disk of the ground plane by rejection
sampling: each attempt draws a radius and a horizontal position and keeps the
candidate only if it does not interpenetrate any sphere accepted before it.
A rejected candidate still uses up its attempt, so dense configurations
simply yield fewer spheres than requested. That is expected, not an error.

The overlap test is two-dimensional: it compares horizontal (x, z) distances
against the sum of radii. Heights are derived afterwards (1.5 radii, the
resting height the animation oscillates around).

Example:
    >>> from wavetrace.core.rng import RngSource
    >>> from wavetrace.scene.generator import SceneGenerator
    >>> generator = SceneGenerator()
    >>> spheres = generator.generate(
    ...     count=100, radius_range=(3.0, 8.0), placement_radius=100.0, rng=RngSource(1)
    ... )
    >>> len(spheres) <= 100
    True
"""

import logging

import numpy as np

from wavetrace.core.rng import RngSource
from wavetrace.errors import ConfigurationError, SceneInvariantError
from wavetrace.scene.model import REST_HEIGHT_FACTOR, Sphere

logger = logging.getLogger(__name__)

# Probability that an accepted sphere is metallic
METAL_PROBABILITY = 0.5

# Specular reflectance of non-metal (dielectric) spheres
DIELECTRIC_SPECULAR = (0.1, 0.1, 0.1)


def validate_generation_params(
    count: int,
    radius_range: tuple[float, float],
    placement_radius: float,
) -> None:
    """Reject invalid generation parameters before any sampling happens.

    Raises:
        ConfigurationError: If count is negative, the radius range is empty
            or non-positive, or the placement radius is negative.
    """
    min_radius, max_radius = radius_range
    if count < 0:
        raise ConfigurationError(f"Sphere count must be non-negative, got {count}")
    if min_radius > max_radius:
        raise ConfigurationError(
            f"Minimum sphere radius ({min_radius}) exceeds maximum ({max_radius})"
        )
    if min_radius <= 0.0:
        raise ConfigurationError(f"Sphere radii must be positive, got minimum {min_radius}")
    if placement_radius < 0.0:
        raise ConfigurationError(
            f"Placement radius must be non-negative, got {placement_radius}"
        )


def check_no_overlap(spheres: list[Sphere], tolerance: float = 1e-4) -> None:
    """Verify that no two spheres interpenetrate on the placement plane.

    Args:
        spheres: The spheres to check.
        tolerance: Allowed penetration depth for float32 round-off.

    Raises:
        SceneInvariantError: If any pair overlaps.
    """
    if len(spheres) < 2:
        return
    centers = np.array([(s.position[0], s.position[2]) for s in spheres], dtype=np.float64)
    radii = np.array([s.radius for s in spheres], dtype=np.float64)

    deltas = centers[:, None, :] - centers[None, :, :]
    distances = np.sqrt(np.sum(deltas * deltas, axis=-1))
    min_distances = radii[:, None] + radii[None, :]
    np.fill_diagonal(distances, np.inf)

    overlapping = np.argwhere(distances < min_distances - tolerance)
    if overlapping.size:
        i, j = overlapping[0]
        raise SceneInvariantError(f"Spheres {i} and {j} overlap")


class SceneGenerator:
    """Rejection-sampling generator for non-overlapping sphere scenes.

    Attributes:
        dielectric_specular: Specular color assigned to non-metal spheres.
        metal_probability: Probability that a sphere is metallic.
    """

    def __init__(
        self,
        dielectric_specular: tuple[float, float, float] = DIELECTRIC_SPECULAR,
        metal_probability: float = METAL_PROBABILITY,
    ) -> None:
        self.dielectric_specular = dielectric_specular
        self.metal_probability = metal_probability

    def generate(
        self,
        count: int,
        radius_range: tuple[float, float],
        placement_radius: float,
        rng: RngSource,
    ) -> list[Sphere]:
        """Generate up to ``count`` non-overlapping spheres.

        Each attempt draws, in order: a radius uniform in ``radius_range``, a
        position uniform in the disk of ``placement_radius`` around the origin,
        and, only if the candidate is accepted, an albedo color, the metal
        trait and a second color used as specular reflectance for metals.

        Args:
            count: Number of placement attempts (upper bound on the result).
            radius_range: (min_radius, max_radius).
            placement_radius: Radius of the placement disk on the ground plane.
            rng: Random source used for every draw.

        Returns:
            The accepted spheres in acceptance order.

        Raises:
            ConfigurationError: If the parameters are invalid.
        """
        validate_generation_params(count, radius_range, placement_radius)
        min_radius, max_radius = radius_range

        # Accepted horizontal centers and radii, filled in acceptance order
        centers_x = np.empty(count, dtype=np.float64)
        centers_z = np.empty(count, dtype=np.float64)
        radii = np.empty(count, dtype=np.float64)
        accepted: list[Sphere] = []

        for _ in range(count):
            radius = min_radius + rng.value() * (max_radius - min_radius)
            x, z = rng.point_in_disk(placement_radius)

            n = len(accepted)
            if n:
                dx = centers_x[:n] - x
                dz = centers_z[:n] - z
                min_dist = radii[:n] + radius
                if np.any(dx * dx + dz * dz < min_dist * min_dist):
                    continue

            albedo = rng.color_hsv()
            metal = rng.value() < self.metal_probability
            second = rng.color_hsv()
            specular = second if metal else self.dielectric_specular

            centers_x[n] = x
            centers_z[n] = z
            radii[n] = radius
            accepted.append(
                Sphere(
                    position=(x, radius * REST_HEIGHT_FACTOR, z),
                    radius=radius,
                    albedo=albedo,
                    specular=specular,
                )
            )

        logger.debug("Placed %d of %d requested spheres", len(accepted), count)
        return accepted
