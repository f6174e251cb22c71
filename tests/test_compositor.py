"""Tests for the per-frame compositor.

Tests cover:
- End-to-end frames with the reference kernel
- Handle validation before any GPU work
- Binding of the light sentinel, camera matrices and surfaces
- Surface reuse across frames and reallocation on resize
- Scene regeneration, including empty scenes
- Allocation failures
"""

import numpy as np
import pytest
import taichi as ti


def _frame(width=24, height=16):
    return ti.Vector.field(4, dtype=ti.f32, shape=(width, height))


def _recording_kernel():
    from wavetrace.render.kernel import ComputeKernel

    class _Recording(ComputeKernel):
        def __init__(self):
            super().__init__()
            self.launches = []

        def _launch(self, groups_x, groups_y, groups_z):
            self.launches.append(((groups_x, groups_y, groups_z), self.bindings))

    return _Recording()


def _config(**changes):
    from wavetrace.config import RayTracingConfig

    values = {"sphere_count": 20, "seed": 3}
    values.update(changes)
    return RayTracingConfig(**values)


class TestRenderFrame:
    """End-to-end frames through the reference kernel."""

    def test_renders_into_destination(self, uniform_sky):
        """Test that a frame fills the destination with opaque, finite color."""
        from wavetrace.render.compositor import FrameCompositor
        from wavetrace.render.kernel import SphereTracingKernel

        frame = _frame()
        with FrameCompositor(_config(), SphereTracingKernel(bounces=2), uniform_sky) as compositor:
            stats = compositor.render_frame(frame, time=0.5)

        image = frame.to_numpy()
        assert np.all(np.isfinite(image))
        np.testing.assert_allclose(image[..., 3], 1.0)
        assert stats.frame_index == 0
        assert stats.time == 0.5
        assert stats.grid == (3, 2, 1)
        assert stats.sphere_count == len(compositor.scene)
        assert stats.surface_reallocated

    def test_destination_matches_surface(self, uniform_sky):
        """Test that the blit copies the render surface exactly."""
        from wavetrace.render.compositor import FrameCompositor
        from wavetrace.render.kernel import SphereTracingKernel

        frame = _frame(10, 6)
        with FrameCompositor(_config(), SphereTracingKernel(bounces=2), uniform_sky) as compositor:
            compositor.render_frame(frame, time=0.0)
            surface = compositor.surfaces.surface
            np.testing.assert_array_equal(frame.to_numpy(), surface.field.to_numpy())

    def test_empty_scene_renders(self, uniform_sky):
        """Test that zero spheres render without faulting."""
        from wavetrace.render.compositor import FrameCompositor
        from wavetrace.render.kernel import SphereTracingKernel

        frame = _frame()
        with FrameCompositor(
            _config(sphere_count=0), SphereTracingKernel(bounces=2), uniform_sky
        ) as compositor:
            stats = compositor.render_frame(frame, time=0.0)
            assert stats.sphere_count == 0
            assert compositor.scene_buffer.field is None
        np.testing.assert_allclose(frame.to_numpy()[..., 3], 1.0)

    def test_release_frees_kernel_placeholder(self, uniform_sky):
        """Test that releasing after an empty-scene frame frees the kernel's buffer."""
        from wavetrace.render.compositor import FrameCompositor
        from wavetrace.render.kernel import SphereTracingKernel

        kernel = SphereTracingKernel(bounces=2)
        with FrameCompositor(_config(sphere_count=0), kernel, uniform_sky) as compositor:
            compositor.render_frame(_frame(), time=0.0)
            placeholder = kernel._empty_spheres
            assert not placeholder.released
        assert placeholder.released
        assert kernel._empty_spheres is None

    def test_animation_applied_before_sync(self, uniform_sky):
        """Test that the GPU buffer holds the heights for the frame time."""
        import math

        from wavetrace.render.compositor import FrameCompositor

        kernel = _recording_kernel()
        with FrameCompositor(_config(), kernel, uniform_sky) as compositor:
            compositor.render_frame(_frame(), time=1.25)
            heights = compositor.scene_buffer.field.to_numpy()[:, 1]
            for i, sphere in enumerate(compositor.scene):
                expected = sphere.radius * 1.5 + math.sin((1.25 + i) * 10.0) * sphere.radius
                assert heights[i] == pytest.approx(expected, abs=1e-4)

    def test_clock_used_without_time(self, uniform_sky):
        """Test that the injected clock supplies the frame time."""
        from wavetrace.render.compositor import FrameCompositor

        with FrameCompositor(_config(), _recording_kernel(), uniform_sky, clock=lambda: 7.5) as compositor:
            assert compositor.render_frame(_frame()).time == 7.5


class TestBindings:
    """Tests for what the compositor binds each frame."""

    def test_all_bindings_and_grid(self, uniform_sky):
        """Test the bound values and the dispatched grid."""
        from wavetrace.camera import PinholeCamera
        from wavetrace.render.compositor import FrameCompositor

        kernel = _recording_kernel()
        camera = PinholeCamera()
        with FrameCompositor(_config(), kernel, uniform_sky, camera=camera) as compositor:
            compositor.render_frame(_frame(1920 // 40, 1080 // 40), time=0.0)
            grid, bindings = kernel.launches[0]

            assert grid == (6, 4, 1)
            assert bindings["skyboxTexture"] is uniform_sky
            assert bindings["spheres"] is compositor.scene_buffer
            assert bindings["result"] is compositor.surfaces.surface.field
            np.testing.assert_allclose(bindings["cameraToWorld"], camera.camera_to_world())
            np.testing.assert_allclose(
                bindings["cameraInverseProjection"], camera.inverse_projection(48 / 27)
            )
            np.testing.assert_allclose(
                bindings["directionalLight"], compositor.config.light.as_vector(), rtol=1e-6
            )

    def test_no_light_binds_zero_vector(self, uniform_sky):
        """Test that a missing light binds (0, 0, 0, 0)."""
        from wavetrace.render.compositor import FrameCompositor

        kernel = _recording_kernel()
        with FrameCompositor(_config(light=None), kernel, uniform_sky) as compositor:
            compositor.render_frame(_frame(), time=0.0)
        np.testing.assert_array_equal(kernel.launches[0][1]["directionalLight"], [0.0, 0.0, 0.0, 0.0])

    def test_release_clears_bindings(self, uniform_sky):
        """Test that release() drops the kernel's references to freed resources."""
        from wavetrace.render.compositor import FrameCompositor

        kernel = _recording_kernel()
        compositor = FrameCompositor(_config(), kernel, uniform_sky)
        compositor.render_frame(_frame(), time=0.0)
        compositor.release()
        assert kernel.bindings == {}
        assert compositor.surfaces.surface is None
        assert compositor.scene_buffer.field is None


class TestSurfaceLifecycle:
    """Tests for surface reuse across frames."""

    def test_stable_size_allocates_once(self, uniform_sky, recording_allocator):
        """Test that N frames at one size allocate one surface."""
        from wavetrace.render.compositor import FrameCompositor

        frame = _frame()
        with FrameCompositor(
            _config(), _recording_kernel(), uniform_sky, allocator=recording_allocator
        ) as compositor:
            stats = [compositor.render_frame(frame, time=i / 30.0) for i in range(5)]
            assert compositor.surfaces.allocations == 1
            assert compositor.scene_buffer.allocations == 1
            assert [s.surface_reallocated for s in stats] == [True, False, False, False, False]
            assert [s.frame_index for s in stats] == [0, 1, 2, 3, 4]

    def test_resize_reallocates(self, uniform_sky):
        """Test that a new destination size recreates the surface."""
        from wavetrace.render.compositor import FrameCompositor

        with FrameCompositor(_config(), _recording_kernel(), uniform_sky) as compositor:
            compositor.render_frame(_frame(16, 16), time=0.0)
            first = compositor.surfaces.surface
            stats = compositor.render_frame(_frame(32, 8), time=0.0)
            assert first.released
            assert stats.surface_reallocated
            assert compositor.surfaces.surface.size == (32, 8)
            assert stats.grid == (4, 1, 1)

    def test_alternating_sizes_render_correctly(self, uniform_sky):
        """Test that frames stay correct when the destination size keeps changing."""
        from wavetrace.render.compositor import FrameCompositor
        from wavetrace.render.kernel import SphereTracingKernel

        small, large = _frame(12, 8), _frame(20, 10)
        with FrameCompositor(
            _config(sphere_count=0), SphereTracingKernel(bounces=2), uniform_sky
        ) as compositor:
            for frame in (small, large, small, large):
                stats = compositor.render_frame(frame, time=0.0)
                assert stats.surface_reallocated
                np.testing.assert_array_equal(
                    frame.to_numpy(), compositor.surfaces.surface.field.to_numpy()
                )
            assert compositor.surfaces.allocations == 4
            assert compositor.surfaces.releases == 3


class TestValidation:
    """Tests for handle validation."""

    def test_missing_sky(self):
        """Test that a missing sky fails before any allocation."""
        from wavetrace.errors import ConfigurationError
        from wavetrace.render.compositor import FrameCompositor

        kernel = _recording_kernel()
        compositor = FrameCompositor(_config(), kernel, None)
        with pytest.raises(ConfigurationError, match="sky"):
            compositor.render_frame(_frame())
        assert compositor.surfaces.allocations == 0
        assert compositor.scene_buffer.allocations == 0
        assert kernel.dispatches == 0

    def test_missing_kernel(self, uniform_sky):
        """Test that a missing kernel fails before any allocation."""
        from wavetrace.errors import ConfigurationError
        from wavetrace.render.compositor import FrameCompositor

        compositor = FrameCompositor(_config(), None, uniform_sky)
        with pytest.raises(ConfigurationError, match="kernel"):
            compositor.render_frame(_frame())
        assert compositor.surfaces.allocations == 0

    def test_missing_destination(self, uniform_sky):
        """Test that a missing destination is rejected."""
        from wavetrace.errors import ConfigurationError
        from wavetrace.render.compositor import FrameCompositor

        compositor = FrameCompositor(_config(), _recording_kernel(), uniform_sky)
        with pytest.raises(ConfigurationError):
            compositor.render_frame(None)

    def test_wrong_destination_type(self, uniform_sky):
        """Test that a non-RGBA destination is rejected."""
        from wavetrace.errors import ConfigurationError
        from wavetrace.render.compositor import FrameCompositor

        compositor = FrameCompositor(_config(), _recording_kernel(), uniform_sky)
        rgb = ti.Vector.field(3, dtype=ti.f32, shape=(8, 8))
        with pytest.raises(ConfigurationError):
            compositor.render_frame(rgb)

    def test_invalid_config(self, uniform_sky):
        """Test that an invalid configuration is rejected at construction."""
        from wavetrace.errors import ConfigurationError
        from wavetrace.render.compositor import FrameCompositor

        with pytest.raises(ConfigurationError):
            FrameCompositor(_config(min_sphere_radius=10.0), _recording_kernel(), uniform_sky)

    def test_allocation_failure_renders_nothing(self, uniform_sky):
        """Test that a failed allocation aborts the frame before dispatch."""
        from wavetrace.errors import ResourceAllocationError
        from wavetrace.render.compositor import FrameCompositor

        def failing(shape, components=None, **kwargs):
            raise ResourceAllocationError("out of memory")

        kernel = _recording_kernel()
        compositor = FrameCompositor(_config(), kernel, uniform_sky, allocator=failing)
        with pytest.raises(ResourceAllocationError):
            compositor.render_frame(_frame())
        assert kernel.dispatches == 0
        assert compositor.frames == 0


class TestRegeneration:
    """Tests for the regenerate-scene action."""

    def test_regenerate_replaces_scene(self, uniform_sky):
        """Test that regeneration produces a new scene and resyncs it."""
        from wavetrace.render.compositor import FrameCompositor
        from wavetrace.scene.generator import check_no_overlap

        with FrameCompositor(_config(), _recording_kernel(), uniform_sky) as compositor:
            compositor.render_frame(_frame(), time=0.0)
            before = compositor.scene.spheres
            generation = compositor.scene.generation

            compositor.regenerate_scene()
            assert compositor.scene.generation == generation + 1
            assert compositor.scene.spheres != before
            check_no_overlap(compositor.scene.spheres)

            compositor.render_frame(_frame(), time=0.0)
            compositor.scene_buffer.check(compositor.scene)

    def test_regenerate_to_empty(self, uniform_sky):
        """Test regenerating with zero spheres between frames."""
        import dataclasses

        from wavetrace.render.compositor import FrameCompositor

        with FrameCompositor(_config(), _recording_kernel(), uniform_sky) as compositor:
            compositor.render_frame(_frame(), time=0.0)
            compositor.config = dataclasses.replace(compositor.config, sphere_count=0)
            compositor.regenerate_scene()
            stats = compositor.render_frame(_frame(), time=0.0)
            assert stats.sphere_count == 0
            assert compositor.scene_buffer.field is None

    def test_seeded_compositors_agree(self, uniform_sky):
        """Test that the configured seed reproduces the initial scene."""
        from wavetrace.render.compositor import FrameCompositor

        a = FrameCompositor(_config(seed=5), _recording_kernel(), uniform_sky)
        b = FrameCompositor(_config(seed=5), _recording_kernel(), uniform_sky)
        assert a.scene.spheres == b.scene.spheres
