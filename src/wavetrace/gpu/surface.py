"""Render surface lifecycle and compute dispatch sizing.

The render surface is the intermediate HDR image the compute kernel writes
into before it is blitted to the destination. It is an RGBA float32 Taichi
field of shape (width, height) holding linear color, written by the kernel in
arbitrary pixel order.

The RenderSurfaceManager allocates the surface lazily and only reallocates it
when the requested output size changes, so a stable window size costs a single
allocation for the whole session.

Example:
    >>> manager = RenderSurfaceManager()
    >>> surface = manager.ensure(1920, 1080)
    >>> manager.ensure(1920, 1080) is surface
    True
    >>> dispatch_grid(1920, 1080)
    (240, 135, 1)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from wavetrace.errors import ConfigurationError
from wavetrace.gpu.resources import Allocator, GpuAllocation, allocate_field

logger = logging.getLogger(__name__)

# Threads per thread group along each image axis
THREAD_BLOCK_SIZE = 8

# RGBA
SURFACE_COMPONENTS = 4


def dispatch_grid(
    width: int, height: int, block_size: int = THREAD_BLOCK_SIZE
) -> tuple[int, int, int]:
    """Compute the thread-group grid covering a width x height image.

    Each axis is derived from its own dimension.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        block_size: Threads per group along each axis.

    Returns:
        Tuple (ceil(width / block_size), ceil(height / block_size), 1).
    """
    return math.ceil(width / block_size), math.ceil(height / block_size), 1


@dataclass
class RenderSurface:
    """An HDR, linear-color, randomly writable 2D image.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        allocation: The backing GPU allocation.
        hdr: Always True; the surface stores float32 RGBA.
        linear: Always True; no sRGB encoding is applied on write.
        random_write: Always True; the kernel writes pixels out of order.
    """

    width: int
    height: int
    allocation: GpuAllocation
    hdr: bool = True
    linear: bool = True
    random_write: bool = True

    @property
    def field(self) -> Any:
        """The RGBA Taichi vector field of shape (width, height)."""
        return self.allocation.field

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def released(self) -> bool:
        return self.allocation.released


class RenderSurfaceManager:
    """Owns the render surface and recreates it when the output is resized.

    Attributes:
        allocations: Number of surfaces allocated so far.
        releases: Number of surfaces released so far.
    """

    def __init__(self, allocator: Allocator = allocate_field) -> None:
        self._allocator = allocator
        self._surface: RenderSurface | None = None
        self.allocations = 0
        self.releases = 0

    @property
    def surface(self) -> RenderSurface | None:
        """The current surface, or None before the first ensure()."""
        return self._surface

    def ensure(self, width: int, height: int) -> RenderSurface:
        """Return a surface of exactly width x height pixels.

        The existing surface is returned untouched when its size already
        matches. Otherwise the current surface is released and a new one is
        allocated.

        Raises:
            ConfigurationError: If width or height is not positive.
            ResourceAllocationError: If the surface cannot be allocated.
        """
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Invalid render surface size {width}x{height}")

        surface = self._surface
        if surface is not None and surface.size == (width, height):
            return surface

        if surface is not None:
            logger.debug(
                "Output resized from %dx%d to %dx%d", surface.width, surface.height, width, height
            )
        self.release()

        allocation = self._allocator(
            (width, height), components=SURFACE_COMPONENTS, label="render surface"
        )
        self.allocations += 1
        self._surface = RenderSurface(width=width, height=height, allocation=allocation)
        return self._surface

    def release(self) -> None:
        """Release the current surface, if any.

        The allocation flushes pending kernel launches before freeing memory,
        so no dispatch still bound to the surface is outstanding.
        """
        if self._surface is None:
            return
        self._surface.allocation.release()
        self._surface = None
        self.releases += 1

    def __enter__(self) -> "RenderSurfaceManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
