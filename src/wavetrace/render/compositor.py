"""Per-frame orchestration of the waving-spheres ray tracer.

The FrameCompositor owns the scene, its GPU mirror and the render surface,
and runs one frame at a time in a fixed order:

    1. animate the scene for the current time
    2. synchronize the GPU scene buffer (and verify it)
    3. ensure a render surface matching the destination size
    4. bind sky, light, camera matrices, scene buffer and surface
    5. dispatch the kernel over ceil(w / 8) x ceil(h / 8) thread groups
    6. blit the surface into the destination

Every handle is validated before any GPU work, so a misconfigured frame
raises ConfigurationError without allocating anything.

Example:
    >>> compositor = FrameCompositor(config, SphereTracingKernel(), sky, camera)
    >>> frame = ti.Vector.field(4, dtype=ti.f32, shape=(640, 360))
    >>> stats = compositor.render_frame(frame, time=0.0)
    >>> stats.grid
    (80, 45, 1)
    >>> compositor.release()
"""

import logging
import time as _time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import taichi as ti

from wavetrace.camera import PinholeCamera
from wavetrace.config import NO_LIGHT_VECTOR, RayTracingConfig
from wavetrace.core.rng import RngSource
from wavetrace.errors import ConfigurationError
from wavetrace.gpu.resources import Allocator, allocate_field
from wavetrace.gpu.scene_buffer import GpuSceneBuffer
from wavetrace.gpu.surface import SURFACE_COMPONENTS, RenderSurfaceManager, dispatch_grid
from wavetrace.render.kernel import (
    CAMERA_INVERSE_PROJECTION,
    CAMERA_TO_WORLD,
    DIRECTIONAL_LIGHT,
    RESULT,
    SKYBOX_TEXTURE,
    SPHERES,
    ComputeKernel,
)
from wavetrace.scene.generator import SceneGenerator
from wavetrace.scene.model import SceneModel

logger = logging.getLogger(__name__)


@ti.kernel
def _blit(src: ti.template(), dst: ti.template()):
    """Copy the render surface into the destination, pixel for pixel.

    Compiled once per (surface, destination) pair of fields; each resize adds
    an instantiation to the kernel cache.
    """
    for i, j in dst:
        dst[i, j] = src[i, j]


class ElapsedClock:
    """Seconds elapsed since construction, unaffected by frame pacing."""

    def __init__(self) -> None:
        self._start = _time.perf_counter()

    def __call__(self) -> float:
        return _time.perf_counter() - self._start


@dataclass(frozen=True)
class FrameStats:
    """Summary of one rendered frame.

    Attributes:
        frame_index: Zero-based index of the frame.
        time: Animation time the frame was rendered at.
        grid: Thread-group grid the kernel was dispatched with.
        sphere_count: Number of spheres in the scene buffer.
        surface_reallocated: Whether the render surface was (re)created.
    """

    frame_index: int
    time: float
    grid: tuple[int, int, int]
    sphere_count: int
    surface_reallocated: bool


class FrameCompositor:
    """Drives the kernel once per frame over an animated sphere scene.

    Attributes:
        config: Scene, animation and light parameters.
        kernel: Compute kernel bound and dispatched every frame.
        skybox: Sky image field bound as ``skyboxTexture``.
        camera: Camera providing the view matrices.
        scene: The authoritative scene.
        scene_buffer: GPU mirror of the scene.
        surfaces: Owner of the render surface.
        frames: Number of frames rendered.
    """

    def __init__(
        self,
        config: RayTracingConfig,
        kernel: ComputeKernel | None,
        skybox: Any,
        camera: PinholeCamera | None = None,
        rng: RngSource | None = None,
        clock: Callable[[], float] | None = None,
        allocator: Allocator = allocate_field,
        generator: SceneGenerator | None = None,
    ) -> None:
        """Create the compositor and generate the initial scene.

        Args:
            config: Renderer configuration; validated here.
            kernel: Kernel to dispatch. May be None until set, but render_frame
                refuses to run without one.
            skybox: Sky image field. Same rule as ``kernel``.
            camera: View camera (default PinholeCamera()).
            rng: Random source for scene generation (default seeded from
                ``config.seed``).
            clock: Callable returning elapsed seconds, used when render_frame
                is called without an explicit time.
            allocator: Allocator for the scene buffer and render surface.
            generator: Scene generator (default SceneGenerator()).

        Raises:
            ConfigurationError: If the configuration or camera is invalid.
        """
        config.validate()
        self.config = config
        self.kernel = kernel
        self.skybox = skybox
        self.camera = camera if camera is not None else PinholeCamera()
        self.camera.validate()

        self._rng = rng if rng is not None else RngSource(config.seed)
        self._clock = clock if clock is not None else ElapsedClock()
        self._generator = generator if generator is not None else SceneGenerator()

        self.scene = SceneModel()
        self.scene_buffer = GpuSceneBuffer(allocator)
        self.surfaces = RenderSurfaceManager(allocator)
        self.frames = 0

        self.regenerate_scene()

    def regenerate_scene(self) -> SceneModel:
        """Replace the scene with a freshly generated one.

        Returns:
            The (same) scene model, now holding the new spheres.
        """
        spheres = self._generator.generate(
            self.config.sphere_count,
            self.config.radius_range,
            self.config.placement_radius,
            self._rng,
        )
        self.scene.replace(spheres)
        logger.info(
            "Generated scene with %d of %d spheres", len(spheres), self.config.sphere_count
        )
        return self.scene

    def _validate_handles(self, destination: Any) -> tuple[int, int]:
        if self.kernel is None:
            raise ConfigurationError("No compute kernel is set")
        if self.skybox is None:
            raise ConfigurationError("No sky texture is set")
        if destination is None:
            raise ConfigurationError("No destination to render into")

        shape = getattr(destination, "shape", ())
        if len(shape) != 2 or getattr(destination, "n", None) != SURFACE_COMPONENTS:
            raise ConfigurationError(
                f"Destination must be a 2D RGBA vector field, got shape {shape}"
            )
        width, height = shape
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Invalid destination size {width}x{height}")
        return width, height

    def render_frame(self, destination: Any, time: float | None = None) -> FrameStats:
        """Render one frame into ``destination``.

        Args:
            destination: RGBA float32 Taichi vector field of shape
                (width, height).
            time: Animation time in seconds; the clock is read when None.

        Returns:
            A FrameStats record describing the frame.

        Raises:
            ConfigurationError: If the kernel, sky or destination is missing
                or malformed. Nothing is allocated in that case.
            ResourceAllocationError: If the scene buffer or render surface
                cannot be allocated.
            SceneInvariantError: If the scene buffer disagrees with the scene.
        """
        width, height = self._validate_handles(destination)
        if time is None:
            time = self._clock()

        self.scene.animate(time, self.config.waving_speed)

        self.scene_buffer.sync(self.scene)
        self.scene_buffer.check(self.scene)

        allocations = self.surfaces.allocations
        surface = self.surfaces.ensure(width, height)
        reallocated = self.surfaces.allocations != allocations

        light = self.config.light
        aspect_ratio = width / height
        kernel = self.kernel
        kernel.set_texture(SKYBOX_TEXTURE, self.skybox)
        kernel.set_vector(
            DIRECTIONAL_LIGHT, light.as_vector() if light is not None else NO_LIGHT_VECTOR
        )
        kernel.set_matrix(CAMERA_TO_WORLD, self.camera.camera_to_world())
        kernel.set_matrix(CAMERA_INVERSE_PROJECTION, self.camera.inverse_projection(aspect_ratio))
        kernel.set_buffer(SPHERES, self.scene_buffer)
        kernel.set_texture(RESULT, surface.field)

        grid = dispatch_grid(width, height, kernel.thread_block_size)
        kernel.dispatch(*grid)

        _blit(surface.field, destination)

        stats = FrameStats(
            frame_index=self.frames,
            time=float(time),
            grid=grid,
            sphere_count=self.scene_buffer.count,
            surface_reallocated=reallocated,
        )
        self.frames += 1
        return stats

    def release(self) -> None:
        """Release the scene buffer, the render surface and the kernel's resources."""
        self.surfaces.release()
        self.scene_buffer.release()
        if self.kernel is not None:
            self.kernel.release()

    def __enter__(self) -> "FrameCompositor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
