"""Core building blocks.

Components:
    rng: Seeded uniform sampling (scalars, unit disk, HSV colors)
    ray: Ray dataclass, reflection and camera ray reconstruction (Taichi)
"""

from .rng import RngSource

# Note: ray is not imported here; it defines Taichi functions and is only
# needed by kernels. Import it as wavetrace.core.ray.

__all__ = [
    "RngSource",
]
