"""Rendering module.

Components:
    kernel: Named-binding compute kernel contract and the reference
        sphere-tracing kernel
    sky: Procedural and file-based equirectangular sky images
    compositor: Per-frame animate, sync, bind, dispatch and blit

Example:
    >>> from wavetrace.render import FrameCompositor, SphereTracingKernel
    >>> from wavetrace.render.sky import gradient_sky_image, sky_field_from_image
    >>> sky = sky_field_from_image(gradient_sky_image())
    >>> compositor = FrameCompositor(RayTracingConfig(seed=1), SphereTracingKernel(), sky)
    >>> compositor.render_frame(frame)
"""

from .compositor import FrameCompositor, FrameStats
from .kernel import REQUIRED_BINDINGS, ComputeKernel, SphereTracingKernel

__all__ = [
    "ComputeKernel",
    "SphereTracingKernel",
    "REQUIRED_BINDINGS",
    "FrameCompositor",
    "FrameStats",
]
