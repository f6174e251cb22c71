"""Sphere and ground-plane intersection for the reference kernel.

Spheres are read from the flat scene buffer (one row of 10 floats per sphere)
and intersected using the robust quadratic formula from Ray Tracing Gems to
avoid floating-point artifacts.

The robust quadratic formula avoids catastrophic cancellation when b^2 is
nearly equal to 4ac by using a reformulated calculation that maintains
numerical stability.

Example:
    >>> # Inside a Taichi kernel, with `spheres` the scene buffer field
    >>> sphere = load_sphere(spheres, k)
    >>> rec = hit_sphere(origin, direction, sphere, 1e-3, best_t)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class GpuSphere:
    """A sphere as stored in the scene buffer.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
        albedo: Diffuse color.
        specular: Specular reflectance.
    """

    center: vec3
    radius: ti.f32
    albedo: vec3
    specular: vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-surface intersection.

    Attributes:
        hit: Whether the ray intersected the surface (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the surface.
        normal: The outward surface normal at the intersection point.
        albedo: Diffuse color of the surface hit.
        specular: Specular reflectance of the surface hit.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    albedo: vec3
    specular: vec3


@ti.func
def load_sphere(spheres: ti.template(), k: ti.i32) -> GpuSphere:
    """Read sphere k from the scene buffer (position, radius, albedo, specular)."""
    return GpuSphere(
        center=vec3(spheres[k, 0], spheres[k, 1], spheres[k, 2]),
        radius=spheres[k, 3],
        albedo=vec3(spheres[k, 4], spheres[k, 5], spheres[k, 6]),
        specular=vec3(spheres[k, 7], spheres[k, 8], spheres[k, 9]),
    )


@ti.func
def make_miss() -> HitRecord:
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        albedo=vec3(0.0, 0.0, 0.0),
        specular=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 with the numerically stable formula.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray: fall back to the standard formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: GpuSphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection in (t_min, t_max).

    Solves |origin + t * direction - center|^2 = radius^2 in the half-b form
    a*t^2 + 2*h*t + c = 0 with
        a = dot(direction, direction)
        h = dot(direction, oc)
        c = dot(oc, oc) - radius^2
        oc = origin - center

    Returns:
        A HitRecord for the nearest valid root, carrying the sphere's
        albedo and specular colors.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    result = make_miss()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)
        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            point = ray_origin + t * ray_direction
            result = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=(point - sphere.center) / sphere.radius,
                albedo=sphere.albedo,
                specular=sphere.specular,
            )

    return result


@ti.func
def hit_ground(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
    albedo: vec3,
    specular: vec3,
) -> HitRecord:
    """Test for intersection with the ground plane y = 0, seen from above."""
    result = make_miss()
    if ray_direction.y < -1e-6:
        t = -ray_origin.y / ray_direction.y
        if t > t_min and t < t_max:
            result = HitRecord(
                hit=1,
                t=t,
                point=ray_origin + t * ray_direction,
                normal=vec3(0.0, 1.0, 0.0),
                albedo=albedo,
                specular=specular,
            )
    return result
