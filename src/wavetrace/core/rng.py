"""Seeded random sampling primitives for procedural scene generation.

This module provides the RngSource class, a thin wrapper around a NumPy
``Generator`` exposing the three distributions the scene generator needs:

- a uniform scalar in [0, 1)
- a uniform point inside the unit disk
- a random color drawn uniformly in hue/saturation/value space

Passing a seed makes generation reproducible; ``seed=None`` draws fresh
entropy from the operating system.

Example:
    >>> from wavetrace.core.rng import RngSource
    >>> rng = RngSource(seed=7)
    >>> x, y = rng.inside_unit_circle()
    >>> r, g, b = rng.color_hsv()
"""

import colorsys
import math

import numpy as np

# Type alias for an inclusive (low, high) sampling range
Range = tuple[float, float]


class RngSource:
    """Uniform random sampling backed by ``numpy.random.Generator``.

    Attributes:
        seed: The seed used to create the generator, or None when the
            generator was seeded from OS entropy.
    """

    def __init__(self, seed: int | None = None) -> None:
        """Create a sampler.

        Args:
            seed: Optional integer seed. The same seed always yields the same
                sequence of draws.
        """
        self.seed = seed
        self._generator = np.random.default_rng(seed)

    def value(self) -> float:
        """Draw a uniform scalar in [0, 1)."""
        return float(self._generator.random())

    def inside_unit_circle(self) -> tuple[float, float]:
        """Draw a point uniformly distributed over the unit disk.

        The radius is the square root of a uniform draw so that the area
        density is constant across the disk.

        Returns:
            Tuple (x, y) with x^2 + y^2 <= 1.
        """
        radius = math.sqrt(self.value())
        angle = 2.0 * math.pi * self.value()
        return radius * math.cos(angle), radius * math.sin(angle)

    def point_in_disk(self, radius: float) -> tuple[float, float]:
        """Draw a point uniformly inside a disk of the given radius at the origin."""
        x, y = self.inside_unit_circle()
        return x * radius, y * radius

    def color_hsv(
        self,
        hue: Range = (0.0, 1.0),
        saturation: Range = (0.0, 1.0),
        value: Range = (0.0, 1.0),
    ) -> tuple[float, float, float]:
        """Draw a random RGB color through a uniform HSV draw.

        Each of hue, saturation and value is drawn uniformly in its range and
        the result is converted to RGB. The defaults cover the whole HSV cube.

        Args:
            hue: (min, max) hue in [0, 1].
            saturation: (min, max) saturation in [0, 1].
            value: (min, max) value (brightness) in [0, 1].

        Returns:
            Tuple (r, g, b) with components in [0, 1].
        """
        h = self._lerp(hue)
        s = self._lerp(saturation)
        v = self._lerp(value)
        r, g, b = colorsys.hsv_to_rgb(h, s, v)
        return r, g, b

    def _lerp(self, bounds: Range) -> float:
        low, high = bounds
        return low + self.value() * (high - low)

    def __repr__(self) -> str:
        return f"RngSource(seed={self.seed})"
