"""Geometry module for the reference kernel.

Components:
    sphere: Scene-buffer sphere loading, ray-sphere and ray-ground tests
"""

from .sphere import GpuSphere, HitRecord, hit_ground, hit_sphere, load_sphere

__all__ = [
    "GpuSphere",
    "HitRecord",
    "hit_ground",
    "hit_sphere",
    "load_sphere",
]
