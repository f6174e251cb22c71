"""GPU resource ownership.

Components:
    resources: Fields allocated in their own, destroyable SNode trees
    scene_buffer: GPU mirror of the scene (count x 10 float32)
    surface: HDR render surface lifecycle and dispatch grid sizing
"""

from .resources import GpuAllocation, allocate_field
from .scene_buffer import GpuSceneBuffer
from .surface import RenderSurface, RenderSurfaceManager, dispatch_grid

__all__ = [
    "GpuAllocation",
    "allocate_field",
    "GpuSceneBuffer",
    "RenderSurface",
    "RenderSurfaceManager",
    "dispatch_grid",
]
