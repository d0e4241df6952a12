"""Axis-aligned cube primitive.

The cube spans [-1, 1] on every object-space axis. Intersection uses the
slab method: each axis gives an entry and exit distance for its pair of
faces, and the ray is inside the cube between the largest entry and the
smallest exit.
"""

from dataclasses import dataclass
from typing import ClassVar

import taichi as ti

from src.glint.core.ray import vec3
from src.glint.core.tuples import EPSILON
from src.glint.geometry.base import Shape, ShapeKind, push_hit, vec4

# Stand-in for infinity when a ray runs parallel to a slab
_FAR = 1e30


@dataclass(frozen=True, eq=False)
class Cube(Shape):
    """The object-space cube [-1, 1]^3."""

    kind: ClassVar[ShapeKind] = ShapeKind.CUBE


@ti.func
def _check_axis(origin: ti.f32, direction: ti.f32):
    """Entry and exit distances for one pair of parallel faces."""
    tmin_numerator = -1.0 - origin
    tmax_numerator = 1.0 - origin

    tmin = 0.0
    tmax = 0.0
    if ti.abs(direction) >= EPSILON:
        tmin = tmin_numerator / direction
        tmax = tmax_numerator / direction
    else:
        tmin = tmin_numerator * _FAR
        tmax = tmax_numerator * _FAR

    if tmin > tmax:
        temp = tmin
        tmin = tmax
        tmax = temp
    return tmin, tmax


@ti.func
def intersect_cube(origin: vec3, direction: vec3):
    """Intersect an object-space ray with the cube.

    Returns:
        A tuple (count, ts) with 0 or 2 t-values.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)

    xtmin, xtmax = _check_axis(origin.x, direction.x)
    ytmin, ytmax = _check_axis(origin.y, direction.y)
    ztmin, ztmax = _check_axis(origin.z, direction.z)

    tmin = ti.max(xtmin, ytmin, ztmin)
    tmax = ti.min(xtmax, ytmax, ztmax)

    if tmin <= tmax:
        count, ts = push_hit(count, ts, tmin)
        count, ts = push_hit(count, ts, tmax)
    return count, ts


@ti.func
def cube_normal(point: vec3) -> vec3:
    """Normal of the face the point lies on (the axis of largest magnitude)."""
    ax = ti.abs(point.x)
    ay = ti.abs(point.y)
    az = ti.abs(point.z)
    maxc = ti.max(ax, ay, az)

    normal = vec3(0.0, 0.0, point.z)
    if maxc == ax:
        normal = vec3(point.x, 0.0, 0.0)
    elif maxc == ay:
        normal = vec3(0.0, point.y, 0.0)
    return normal
