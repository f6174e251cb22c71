"""Compute kernel binding contract and the reference sphere-tracing kernel.

A ComputeKernel mirrors the interface of a GPU compute shader: resources are
bound by name and the kernel is then dispatched over a grid of thread groups.
The frame compositor binds:

    result                   RGBA float32 render surface (written)
    skyboxTexture            RGB(A) sky image, equirectangular
    directionalLight         (dx, dy, dz, intensity)
    cameraToWorld            4x4 camera-to-world transform
    cameraInverseProjection  4x4 inverse projection
    spheres                  GpuSceneBuffer (count x 10 floats)

and dispatches ``(ceil(w / 8), ceil(h / 8), 1)`` groups of 8 x 8 threads.

SphereTracingKernel is the reference implementation used by the command-line
tools: a Whitted-style tracer with a ground plane, hard shadows from the
directional light, specular reflection bounces and sky lookups on escape.

Example:
    >>> kernel = SphereTracingKernel(bounces=8)
    >>> kernel.set_texture("result", surface.field)
    >>> ...
    >>> kernel.dispatch(240, 135, 1)
"""

import logging
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from wavetrace.core.ray import camera_ray, reflect
from wavetrace.errors import ConfigurationError
from wavetrace.geometry.sphere import HitRecord, hit_ground, hit_sphere, load_sphere
from wavetrace.gpu.resources import GpuAllocation, allocate_field
from wavetrace.gpu.surface import THREAD_BLOCK_SIZE
from wavetrace.scene.model import FLOATS_PER_SPHERE

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Binding names of the kernel interface
RESULT = "result"
SKYBOX_TEXTURE = "skyboxTexture"
DIRECTIONAL_LIGHT = "directionalLight"
CAMERA_TO_WORLD = "cameraToWorld"
CAMERA_INVERSE_PROJECTION = "cameraInverseProjection"
SPHERES = "spheres"

REQUIRED_BINDINGS = (
    RESULT,
    SKYBOX_TEXTURE,
    DIRECTIONAL_LIGHT,
    CAMERA_TO_WORLD,
    CAMERA_INVERSE_PROJECTION,
    SPHERES,
)


class ComputeKernel:
    """Named-binding interface of a compute kernel.

    Subclasses implement _launch(); the base class stores bindings and refuses
    to dispatch while a required binding is missing.

    Attributes:
        entry_point: Name of the kernel entry point.
        thread_block_size: Threads per group along x and y.
        dispatches: Number of successful dispatches.
    """

    entry_point = "CSMain"
    thread_block_size = THREAD_BLOCK_SIZE

    def __init__(self) -> None:
        self._bindings: dict[str, Any] = {}
        self.dispatches = 0

    @property
    def bindings(self) -> dict[str, Any]:
        """A copy of the current bindings."""
        return dict(self._bindings)

    def set_texture(self, name: str, texture: Any) -> None:
        if texture is None:
            raise ConfigurationError(f"Texture binding {name!r} is missing")
        self._bindings[name] = texture

    def set_vector(self, name: str, values: Any) -> None:
        vector = np.asarray(values, dtype=np.float32)
        if vector.shape != (4,):
            raise ConfigurationError(f"Vector binding {name!r} must have 4 components")
        self._bindings[name] = vector

    def set_matrix(self, name: str, matrix: Any) -> None:
        matrix = np.asarray(matrix, dtype=np.float32)
        if matrix.shape != (4, 4):
            raise ConfigurationError(f"Matrix binding {name!r} must be 4x4")
        self._bindings[name] = matrix

    def set_buffer(self, name: str, buffer: Any) -> None:
        if buffer is None:
            raise ConfigurationError(f"Buffer binding {name!r} is missing")
        self._bindings[name] = buffer

    def clear_bindings(self) -> None:
        self._bindings.clear()

    def release(self) -> None:
        """Drop every binding and any resource the kernel owns."""
        self.clear_bindings()

    def dispatch(self, groups_x: int, groups_y: int, groups_z: int = 1) -> None:
        """Run the kernel over a grid of thread groups.

        Raises:
            ConfigurationError: If a required binding is missing or the grid
                is empty.
        """
        missing = [name for name in REQUIRED_BINDINGS if name not in self._bindings]
        if missing:
            raise ConfigurationError(
                f"Cannot dispatch {self.entry_point}: missing bindings {missing}"
            )
        if groups_x <= 0 or groups_y <= 0 or groups_z <= 0:
            raise ConfigurationError(
                f"Invalid dispatch grid ({groups_x}, {groups_y}, {groups_z})"
            )
        self._launch(groups_x, groups_y, groups_z)
        self.dispatches += 1

    def _launch(self, groups_x: int, groups_y: int, groups_z: int) -> None:
        raise NotImplementedError


# =============================================================================
# Reference kernel
# =============================================================================

# Intersection range along a ray
T_MIN = 1e-3
T_MAX = 1e10

# Offset applied along the normal when spawning secondary rays
RAY_EPSILON = 1e-3

# Ground plane material
GROUND_ALBEDO = vec3(0.8, 0.8, 0.8)
GROUND_SPECULAR = vec3(0.03, 0.03, 0.03)

# Paths whose remaining energy drops below this stop bouncing
MIN_ENERGY = 1e-3

@ti.func
def _trace_scene(
    spheres: ti.template(), sphere_count: ti.i32, origin: vec3, direction: vec3
) -> HitRecord:
    """Find the closest hit among the ground plane and all spheres."""
    best = hit_ground(origin, direction, T_MIN, T_MAX, GROUND_ALBEDO, GROUND_SPECULAR)
    best_t = T_MAX
    if best.hit == 1:
        best_t = best.t
    for k in range(sphere_count):
        rec = hit_sphere(origin, direction, load_sphere(spheres, k), T_MIN, best_t)
        if rec.hit == 1:
            best = rec
            best_t = rec.t
    return best


@ti.func
def _sample_sky(skybox: ti.template(), sky_width: ti.i32, sky_height: ti.i32, direction: vec3) -> vec3:
    """Look up an equirectangular sky image (row 0 at the bottom)."""
    u = 0.5 + ti.atan2(direction.x, -direction.z) / (2.0 * tm.pi)
    v = 1.0 - ti.acos(tm.clamp(direction.y, -1.0, 1.0)) / tm.pi
    i = tm.clamp(ti.cast(u * sky_width, ti.i32), 0, sky_width - 1)
    j = tm.clamp(ti.cast(v * sky_height, ti.i32), 0, sky_height - 1)
    texel = skybox[i, j]
    return vec3(texel[0], texel[1], texel[2])


@ti.func
def _direct_light(
    spheres: ti.template(), sphere_count: ti.i32, hit: HitRecord, light: tm.vec4
) -> vec3:
    """Diffuse contribution of the directional light, with a hard shadow."""
    contribution = vec3(0.0, 0.0, 0.0)
    if light.w > 0.0:
        to_light = -vec3(light.x, light.y, light.z)
        shadow = _trace_scene(spheres, sphere_count, hit.point + hit.normal * RAY_EPSILON, to_light)
        if shadow.hit == 0:
            lambert = tm.clamp(tm.dot(hit.normal, to_light), 0.0, 1.0)
            contribution = lambert * light.w * hit.albedo
    return contribution


@ti.kernel
def _trace(
    result: ti.template(),
    skybox: ti.template(),
    spheres: ti.template(),
    sphere_count: ti.i32,
    light: tm.vec4,
    camera_to_world: tm.mat4,
    inverse_projection: tm.mat4,
    threads_x: ti.i32,
    threads_y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    sky_width: ti.i32,
    sky_height: ti.i32,
    bounces: ti.i32,
):
    """One thread per grid cell; threads outside the surface do nothing.

    The fields are template arguments, so Taichi compiles one instantiation per
    distinct (result, skybox, spheres) combination. Every reallocated surface or
    scene buffer is a new field and adds an entry to the kernel cache for the
    lifetime of the runtime.
    """
    for x, y in ti.ndrange(threads_x, threads_y):
        if x < width and y < height:
            uv = tm.vec2(
                (ti.cast(x, ti.f32) + 0.5) / ti.cast(width, ti.f32) * 2.0 - 1.0,
                (ti.cast(y, ti.f32) + 0.5) / ti.cast(height, ti.f32) * 2.0 - 1.0,
            )
            ray = camera_ray(uv, camera_to_world, inverse_projection)
            origin = ray.origin
            direction = ray.direction

            color = vec3(0.0, 0.0, 0.0)
            energy = vec3(1.0, 1.0, 1.0)

            # Active flag for path continuation (no break inside the bounce loop)
            active = 1
            for bounce in range(bounces):
                if active == 1:
                    hit = _trace_scene(spheres, sphere_count, origin, direction)
                    if hit.hit == 1:
                        color += energy * _direct_light(spheres, sphere_count, hit, light)
                        energy *= hit.specular
                        origin = hit.point + hit.normal * RAY_EPSILON
                        direction = reflect(direction, hit.normal)
                        if tm.max(energy.x, tm.max(energy.y, energy.z)) < MIN_ENERGY:
                            active = 0
                    else:
                        color += energy * _sample_sky(skybox, sky_width, sky_height, direction)
                        active = 0

            result[x, y] = tm.vec4(color.x, color.y, color.z, 1.0)


class SphereTracingKernel(ComputeKernel):
    """Reference Taichi kernel rendering the sphere scene.

    Attributes:
        bounces: Maximum number of specular bounces per pixel.
    """

    entry_point = "trace_spheres"

    def __init__(self, bounces: int = 8) -> None:
        super().__init__()
        if bounces < 1:
            raise ConfigurationError(f"bounces must be at least 1, got {bounces}")
        self.bounces = bounces
        # Bound as the scene buffer while the scene is empty
        self._empty_spheres: GpuAllocation | None = None

    def _placeholder_spheres(self) -> Any:
        if self._empty_spheres is None:
            self._empty_spheres = allocate_field(
                (1, FLOATS_PER_SPHERE), label="empty scene buffer"
            )
        return self._empty_spheres.field

    def release(self) -> None:
        """Clear the bindings and free the empty-scene placeholder buffer."""
        super().release()
        if self._empty_spheres is not None:
            self._empty_spheres.release()
            self._empty_spheres = None

    def _launch(self, groups_x: int, groups_y: int, groups_z: int) -> None:
        result = self._bindings[RESULT]
        skybox = self._bindings[SKYBOX_TEXTURE]
        buffer = self._bindings[SPHERES]

        width, height = result.shape
        sky_width, sky_height = skybox.shape
        sphere_field = buffer.field if buffer.count else self._placeholder_spheres()

        light = self._bindings[DIRECTIONAL_LIGHT]
        camera_to_world = self._bindings[CAMERA_TO_WORLD]
        inverse_projection = self._bindings[CAMERA_INVERSE_PROJECTION]

        block = self.thread_block_size
        _trace(
            result,
            skybox,
            sphere_field,
            buffer.count,
            ti.Vector(light.tolist()),
            ti.Matrix(camera_to_world.tolist()),
            ti.Matrix(inverse_projection.tolist()),
            groups_x * block,
            groups_y * block,
            width,
            height,
            sky_width,
            sky_height,
            self.bounces,
        )
