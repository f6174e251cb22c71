"""GPU ray tracer for procedurally placed, waving spheres.

This package generates a scene of non-overlapping spheres, keeps a GPU copy
of it in sync while the spheres bob up and down, and drives a Taichi compute
kernel that ray traces the scene into an HDR render surface every frame.

Subpackages:
    core: Random sampling and ray helpers
    scene: Sphere scene model and procedural generator
    gpu: GPU allocations, the scene buffer and the render surface
    geometry: Sphere and ground-plane intersection for kernels
    camera: Look-at camera and view matrices
    render: Kernel binding contract, reference kernel, sky, frame compositor
    preview: Tone mapping, PNG export and the interactive window
"""

__version__ = "0.1.0"
