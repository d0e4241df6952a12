"""Unit sphere primitive with robust ray-sphere intersection.

The sphere is centered at the object-space origin with radius 1; position
and size come from the shape transform. Intersection uses the robust
quadratic formula from Ray Tracing Gems to avoid floating-point artifacts
when the discriminant is close to zero.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.core.matrix import scaling
    >>> from src.glint.geometry.sphere import Sphere, intersect_sphere
    >>> big = Sphere(transform=scaling(2, 2, 2))
    >>> # Use intersect_sphere within a Taichi kernel
"""

from dataclasses import dataclass
from typing import ClassVar

import taichi as ti
import taichi.math as tm

from src.glint.core.ray import DEGENERATE_EPSILON, vec3
from src.glint.geometry.base import Shape, ShapeKind, push_hit, solve_quadratic, vec4


@dataclass(frozen=True, eq=False)
class Sphere(Shape):
    """A unit sphere at the object-space origin."""

    kind: ClassVar[ShapeKind] = ShapeKind.SPHERE


@ti.func
def intersect_sphere(origin: vec3, direction: vec3):
    """Intersect an object-space ray with the unit sphere.

    The intersection is found by solving:
        |origin + t * direction|^2 = 1

    which expands to a*t^2 + 2*h*t + c = 0 with:
        a = dot(direction, direction)
        h = dot(direction, origin)  (half of the traditional 'b')
        c = dot(origin, origin) - 1

    Args:
        origin: Ray origin in object space.
        direction: Ray direction in object space (need not be normalized).

    Returns:
        A tuple (count, ts): 0 hits on a miss, otherwise 2 t-values in
        ascending order (equal for a tangent ray).
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)

    a = tm.dot(direction, direction)
    h = tm.dot(direction, origin)
    c = tm.dot(origin, origin) - 1.0
    discriminant = h * h - a * c

    if a > DEGENERATE_EPSILON and discriminant >= 0.0:
        t0, t1 = solve_quadratic(h, a, c, ti.sqrt(discriminant))
        count, ts = push_hit(count, ts, t0)
        count, ts = push_hit(count, ts, t1)

    return count, ts


@ti.func
def sphere_normal(point: vec3) -> vec3:
    """Object-space normal of the unit sphere: the point itself."""
    return point
