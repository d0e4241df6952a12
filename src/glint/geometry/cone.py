"""Double-napped cone primitive around the y axis.

In object space the cone satisfies x^2 + z^2 = y^2, so its radius at any
height equals |y| and the two nappes meet at the origin. Like the
cylinder it can be truncated and capped; each cap's radius is the absolute
value of its bound.
"""

from dataclasses import dataclass
from typing import ClassVar

import taichi as ti

from src.glint.core.ray import vec3
from src.glint.core.tuples import EPSILON
from src.glint.geometry.base import ShapeKind, TruncatedShape, push_hit, solve_quadratic, vec4
from src.glint.geometry.cylinder import check_cap


@dataclass(frozen=True, eq=False)
class Cone(TruncatedShape):
    """A double cone x^2 + z^2 = y^2 around the object-space y axis."""

    kind: ClassVar[ShapeKind] = ShapeKind.CONE


@ti.func
def intersect_cone(
    origin: vec3,
    direction: vec3,
    minimum: ti.f32,
    maximum: ti.f32,
    closed: ti.i32,
):
    """Intersect an object-space ray with a truncated double cone.

    When the ray is parallel to one nappe the quadratic term vanishes and
    the single remaining root is t = -c / (2 * h).

    Returns:
        A tuple (count, ts) with up to 4 unsorted t-values.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)

    a = direction.x * direction.x - direction.y * direction.y + direction.z * direction.z
    h = origin.x * direction.x - origin.y * direction.y + origin.z * direction.z
    c = origin.x * origin.x - origin.y * origin.y + origin.z * origin.z

    if ti.abs(a) < EPSILON:
        if ti.abs(h) >= EPSILON:
            t = -c / (2.0 * h)
            y = origin.y + t * direction.y
            if minimum < y and y < maximum:
                count, ts = push_hit(count, ts, t)
    else:
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
        if check_cap(origin, direction, t_low, ti.abs(minimum)):
            count, ts = push_hit(count, ts, t_low)
        t_high = (maximum - origin.y) / direction.y
        if check_cap(origin, direction, t_high, ti.abs(maximum)):
            count, ts = push_hit(count, ts, t_high)

    return count, ts


@ti.func
def cone_normal(point: vec3, minimum: ti.f32, maximum: ti.f32) -> vec3:
    """Object-space normal: sloped on the side, +/-y on the caps."""
    dist = point.x * point.x + point.z * point.z
    normal = vec3(0.0, 0.0, 0.0)
    if dist < maximum * maximum and point.y >= maximum - EPSILON:
        normal = vec3(0.0, 1.0, 0.0)
    elif dist < minimum * minimum and point.y <= minimum + EPSILON:
        normal = vec3(0.0, -1.0, 0.0)
    else:
        y = ti.sqrt(dist)
        if point.y > 0.0:
            y = -y
        normal = vec3(point.x, y, point.z)
    return normal
