"""Scene module.

Components:
    model: Sphere records, the SceneModel and its serialization views
    generator: Rejection-sampling placement of non-overlapping spheres

Spheres are placed on a disk of the ground plane; two spheres never overlap
when projected onto it. Each frame the model animates the sphere heights.
"""

from .generator import SceneGenerator, check_no_overlap
from .model import (
    FLOATS_PER_SPHERE,
    SPHERE_DTYPE,
    SPHERE_STRIDE,
    SceneModel,
    SceneView,
    Sphere,
)

__all__ = [
    "Sphere",
    "SceneModel",
    "SceneView",
    "SceneGenerator",
    "check_no_overlap",
    "SPHERE_DTYPE",
    "SPHERE_STRIDE",
    "FLOATS_PER_SPHERE",
]
