"""Infinite xz plane primitive.

The plane is y = 0 in object space, extends forever in x and z, and faces
+y. Rays parallel to it (|direction.y| < EPSILON) never hit, including rays
that lie inside the plane.
"""

from dataclasses import dataclass
from typing import ClassVar

import taichi as ti

from src.glint.core.ray import vec3
from src.glint.core.tuples import EPSILON
from src.glint.geometry.base import Shape, ShapeKind, push_hit, vec4


@dataclass(frozen=True, eq=False)
class Plane(Shape):
    """The object-space plane y = 0."""

    kind: ClassVar[ShapeKind] = ShapeKind.PLANE


@ti.func
def intersect_plane(origin: vec3, direction: vec3):
    """Intersect an object-space ray with the y = 0 plane.

    Returns:
        A tuple (count, ts) with at most one t-value.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)
    if ti.abs(direction.y) >= EPSILON:
        count, ts = push_hit(count, ts, -origin.y / direction.y)
    return count, ts


@ti.func
def plane_normal(point: vec3) -> vec3:
    return vec3(0.0, 1.0, 0.0)
