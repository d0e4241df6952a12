"""Ray data structure and vector utilities for kernel-side ray tracing.

This module provides the Ray dataclass together with the small vector
helpers every other kernel module builds on: evaluating a ray, moving
points and directions through 4x4 transforms, and the reflection and
refraction formulas used by the shading engine. All functions are Taichi
functions meant to be called from inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, -5.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 4.0)  # Point (0, 0, -1)
"""

import taichi as ti
import taichi.math as tm

from src.glint.core.tuples import EPSILON

# Type aliases using Taichi's math module
vec3 = tm.vec3
vec4 = tm.vec4
mat4 = tm.mat4

# Squared direction lengths below this are treated as degenerate rays
DEGENERATE_EPSILON = 1e-12


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). It is not
            required to be unit length; t values are measured in multiples
            of this vector.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def is_degenerate(direction: vec3) -> ti.i32:
    """Return 1 for zero-length directions, which intersect nothing."""
    return tm.dot(direction, direction) < DEGENERATE_EPSILON


# =============================================================================
# Transforms
# =============================================================================


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    """Apply a 4x4 transform to a point (w = 1)."""
    r = m @ vec4(p.x, p.y, p.z, 1.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_direction(m: mat4, v: vec3) -> vec3:
    """Apply a 4x4 transform to a vector (w = 0), ignoring translation."""
    r = m @ vec4(v.x, v.y, v.z, 0.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_ray(m: mat4, ray: Ray) -> Ray:
    """Move a ray into another space. The direction is not renormalized."""
    return Ray(origin=transform_point(m, ray.origin), direction=transform_direction(m, ray.direction))


# =============================================================================
# Reflection and Refraction
# =============================================================================


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
def refract(eyev: vec3, normal: vec3, n1: ti.f32, n2: ti.f32):
    """Refract a ray through an interface using Snell's law.

    Args:
        eyev: Unit vector pointing back toward the ray origin.
        normal: Unit surface normal on the same side as ``eyev``.
        n1: Refractive index of the medium being left.
        n2: Refractive index of the medium being entered.

    Returns:
        A tuple (ok, direction). ``ok`` is 0 under total internal
        reflection, in which case ``direction`` is the zero vector.
    """
    n_ratio = n1 / n2
    cos_i = tm.dot(eyev, normal)
    sin2_t = n_ratio * n_ratio * (1.0 - cos_i * cos_i)
    ok = 0
    direction = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        direction = tm.normalize(normal * (n_ratio * cos_i - cos_t) - eyev * n_ratio)
        ok = 1
    return ok, direction


@ti.func
def offset_point(point: vec3, normal: vec3) -> vec3:
    """Nudge a point along ``normal`` by EPSILON to avoid self-intersection."""
    return point + normal * EPSILON
