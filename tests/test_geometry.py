"""Unit tests for sphere and ground-plane intersection.

Tests cover:
- Reading a sphere row from the scene buffer
- Ray hitting a sphere from outside and from inside
- Ray missing a sphere, and hits outside (t_min, t_max)
- Ground plane hits from above and misses from below
"""

import taichi as ti

from wavetrace.geometry.sphere import GpuSphere, hit_ground, hit_sphere, load_sphere, vec3


class TestLoadSphere:
    """Tests for reading spheres from the flat buffer."""

    def test_load_sphere_reads_row(self):
        """Test that load_sphere maps the 10 floats of a row to its fields."""
        buffer = ti.field(dtype=ti.f32, shape=(2, 10))
        center = ti.field(dtype=ti.math.vec3, shape=())
        radius = ti.field(dtype=ti.f32, shape=())
        albedo = ti.field(dtype=ti.math.vec3, shape=())
        specular = ti.field(dtype=ti.math.vec3, shape=())

        for column in range(10):
            buffer[1, column] = float(column + 1)

        @ti.kernel
        def test_kernel():
            sphere = load_sphere(buffer, 1)
            center[None] = sphere.center
            radius[None] = sphere.radius
            albedo[None] = sphere.albedo
            specular[None] = sphere.specular

        test_kernel()
        assert [center[None][i] for i in range(3)] == [1.0, 2.0, 3.0]
        assert radius[None] == 4.0
        assert [albedo[None][i] for i in range(3)] == [5.0, 6.0, 7.0]
        assert [specular[None][i] for i in range(3)] == [8.0, 9.0, 10.0]


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def _trace(self, origin, direction, t_min=0.001, t_max=1000.0):
        hit = ti.field(dtype=ti.i32, shape=())
        t_val = ti.field(dtype=ti.f32, shape=())
        normal = ti.field(dtype=ti.math.vec3, shape=())
        albedo = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            sphere = GpuSphere(
                center=vec3(0.0, 0.0, 0.0),
                radius=1.0,
                albedo=vec3(0.2, 0.4, 0.6),
                specular=vec3(0.0, 0.0, 0.0),
            )
            record = hit_sphere(
                vec3(origin[0], origin[1], origin[2]),
                vec3(direction[0], direction[1], direction[2]),
                sphere,
                t_min,
                t_max,
            )
            hit[None] = record.hit
            t_val[None] = record.t
            normal[None] = record.normal
            albedo[None] = record.albedo

        test_kernel()
        return hit[None], t_val[None], normal[None], albedo[None]

    def test_direct_hit(self):
        """Test ray hitting the sphere head-on from outside."""
        hit, t, normal, albedo = self._trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t - 4.0) < 1e-5
        assert abs(normal[2] - 1.0) < 1e-5
        assert abs(albedo[0] - 0.2) < 1e-6
        assert abs(albedo[2] - 0.6) < 1e-6

    def test_miss(self):
        """Test ray passing beside the sphere."""
        hit, _, _, _ = self._trace((3.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_ray_from_inside_uses_far_root(self):
        """Test that a ray starting at the center hits the far side."""
        hit, t, normal, _ = self._trace((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 1
        assert abs(t - 1.0) < 1e-5
        assert abs(normal[0] - 1.0) < 1e-5

    def test_hit_beyond_t_max_is_rejected(self):
        """Test that intersections past t_max are not reported."""
        hit, _, _, _ = self._trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=3.0)
        assert hit == 0


class TestGroundIntersection:
    """Tests for the y = 0 ground plane."""

    def _trace(self, origin, direction):
        hit = ti.field(dtype=ti.i32, shape=())
        t_val = ti.field(dtype=ti.f32, shape=())
        normal = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            record = hit_ground(
                vec3(origin[0], origin[1], origin[2]),
                vec3(direction[0], direction[1], direction[2]),
                0.001,
                1000.0,
                vec3(0.5, 0.5, 0.5),
                vec3(0.0, 0.0, 0.0),
            )
            hit[None] = record.hit
            t_val[None] = record.t
            normal[None] = record.normal

        test_kernel()
        return hit[None], t_val[None], normal[None]

    def test_hit_from_above(self):
        """Test a downward ray hits the ground with an upward normal."""
        hit, t, normal = self._trace((0.0, 2.0, 0.0), (0.0, -1.0, 0.0))
        assert hit == 1
        assert abs(t - 2.0) < 1e-5
        assert abs(normal[1] - 1.0) < 1e-6

    def test_upward_ray_misses(self):
        """Test a ray pointing away from the ground misses it."""
        hit, _, _ = self._trace((0.0, 2.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 0

    def test_parallel_ray_misses(self):
        """Test a ray parallel to the ground misses it."""
        hit, _, _ = self._trace((0.0, 2.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 0
