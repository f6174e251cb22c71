"""Ray data structure and camera ray reconstruction for the GPU kernels.

This module provides the Ray dataclass, the reflection helper and the
reconstruction of a primary ray from the camera matrices bound to the kernel.
All functions are designed to work within Taichi kernels.

Example:
    >>> # Inside a Taichi kernel, with the matrices bound as kernel arguments
    >>> ray = camera_ray(uv, camera_to_world, inverse_projection)
    >>> bounced = reflect(ray.direction, normal)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3), normalized.
    """

    origin: vec3
    direction: vec3


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def camera_ray(uv: tm.vec2, camera_to_world: tm.mat4, inverse_projection: tm.mat4) -> Ray:
    """Reconstruct the primary ray through a clip-space point.

    The origin is the camera position (camera-to-world applied to the camera
    space origin). The direction un-projects (u, v, 0, 1) into camera space and
    rotates it into world space.

    Args:
        uv: Clip-space coordinates in [-1, 1] (left/bottom to right/top).
        camera_to_world: Camera-to-world transform.
        inverse_projection: Inverse of the camera projection.

    Returns:
        The primary ray with a normalized direction.
    """
    origin = (camera_to_world @ tm.vec4(0.0, 0.0, 0.0, 1.0)).xyz
    view = (inverse_projection @ tm.vec4(uv.x, uv.y, 0.0, 1.0)).xyz
    direction = (camera_to_world @ tm.vec4(view, 0.0)).xyz
    return Ray(origin=origin, direction=tm.normalize(direction))
