"""Cylinder primitive around the y axis.

The cylinder has radius 1 in object space and can be truncated to
``minimum < y < maximum``; a closed cylinder also has flat caps at both
bounds. Lateral hits come from a quadratic in x and z, and caps are
tested separately as discs.

Example:
    >>> from src.glint.geometry.cylinder import Cylinder
    >>> pillar = Cylinder(minimum=0.0, maximum=3.0, closed=True)
"""

from dataclasses import dataclass
from typing import ClassVar

import taichi as ti

from src.glint.core.ray import vec3
from src.glint.core.tuples import EPSILON
from src.glint.geometry.base import ShapeKind, TruncatedShape, push_hit, solve_quadratic, vec4


@dataclass(frozen=True, eq=False)
class Cylinder(TruncatedShape):
    """A unit-radius cylinder around the object-space y axis."""

    kind: ClassVar[ShapeKind] = ShapeKind.CYLINDER


@ti.func
def check_cap(origin: vec3, direction: vec3, t: ti.f32, radius: ti.f32) -> ti.i32:
    """Return 1 if the ray at t lies within ``radius`` of the y axis."""
    x = origin.x + t * direction.x
    z = origin.z + t * direction.z
    return x * x + z * z <= radius * radius + EPSILON


@ti.func
def intersect_cylinder(
    origin: vec3,
    direction: vec3,
    minimum: ti.f32,
    maximum: ti.f32,
    closed: ti.i32,
):
    """Intersect an object-space ray with a truncated cylinder.

    Args:
        origin: Ray origin in object space.
        direction: Ray direction in object space.
        minimum: Lower y bound of the lateral surface.
        maximum: Upper y bound of the lateral surface.
        closed: 1 if the cylinder has caps.

    Returns:
        A tuple (count, ts) with up to 4 unsorted t-values.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)

    a = direction.x * direction.x + direction.z * direction.z
    # Rays parallel to the axis can only hit the caps
    if a >= EPSILON:
        h = origin.x * direction.x + origin.z * direction.z
        c = origin.x * origin.x + origin.z * origin.z - 1.0
        discriminant = h * h - a * c
        if discriminant >= 0.0:
            t0, t1 = solve_quadratic(h, a, c, ti.sqrt(discriminant))
            y0 = origin.y + t0 * direction.y
            if minimum < y0 and y0 < maximum:
                count, ts = push_hit(count, ts, t0)
            y1 = origin.y + t1 * direction.y
            if minimum < y1 and y1 < maximum:
                count, ts = push_hit(count, ts, t1)

    if closed == 1 and ti.abs(direction.y) >= EPSILON:
        t_low = (minimum - origin.y) / direction.y
        if check_cap(origin, direction, t_low, 1.0):
            count, ts = push_hit(count, ts, t_low)
        t_high = (maximum - origin.y) / direction.y
        if check_cap(origin, direction, t_high, 1.0):
            count, ts = push_hit(count, ts, t_high)

    return count, ts


@ti.func
def cylinder_normal(point: vec3, minimum: ti.f32, maximum: ti.f32) -> vec3:
    """Object-space normal: radial on the side, +/-y on the caps."""
    dist = point.x * point.x + point.z * point.z
    normal = vec3(point.x, 0.0, point.z)
    if dist < 1.0 and point.y >= maximum - EPSILON:
        normal = vec3(0.0, 1.0, 0.0)
    elif dist < 1.0 and point.y <= minimum + EPSILON:
        normal = vec3(0.0, -1.0, 0.0)
    return normal
