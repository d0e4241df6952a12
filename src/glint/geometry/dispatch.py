"""Kernel-side dispatch over primitive kinds.

The shape set is closed, so local intersection and local normal queries
branch on the ShapeKind stored with each uploaded primitive instead of
going through any form of virtual dispatch. Groups never reach these
functions; they are flattened into their leaves at upload time.
"""

import taichi as ti

from src.glint.core.ray import vec3
from src.glint.geometry.base import ShapeKind, sort_hits, vec4
from src.glint.geometry.cone import cone_normal, intersect_cone
from src.glint.geometry.cube import cube_normal, intersect_cube
from src.glint.geometry.cylinder import cylinder_normal, intersect_cylinder
from src.glint.geometry.plane import intersect_plane, plane_normal
from src.glint.geometry.sphere import intersect_sphere, sphere_normal


@ti.func
def local_intersect(
    kind: ti.i32,
    origin: vec3,
    direction: vec3,
    minimum: ti.f32,
    maximum: ti.f32,
    closed: ti.i32,
):
    """Intersect an object-space ray with a primitive of the given kind.

    Args:
        kind: The ShapeKind of the primitive.
        origin: Ray origin in object space.
        direction: Ray direction in object space.
        minimum: Lower y bound (cylinders and cones).
        maximum: Upper y bound (cylinders and cones).
        closed: 1 if capped (cylinders and cones).

    Returns:
        A tuple (count, ts) with the t-values sorted ascending.
    """
    count = 0
    ts = vec4(0.0, 0.0, 0.0, 0.0)
    if kind == int(ShapeKind.SPHERE):
        count, ts = intersect_sphere(origin, direction)
    elif kind == int(ShapeKind.PLANE):
        count, ts = intersect_plane(origin, direction)
    elif kind == int(ShapeKind.CUBE):
        count, ts = intersect_cube(origin, direction)
    elif kind == int(ShapeKind.CYLINDER):
        count, ts = intersect_cylinder(origin, direction, minimum, maximum, closed)
    elif kind == int(ShapeKind.CONE):
        count, ts = intersect_cone(origin, direction, minimum, maximum, closed)
    return count, sort_hits(count, ts)


@ti.func
def local_normal_at(kind: ti.i32, point: vec3, minimum: ti.f32, maximum: ti.f32) -> vec3:
    """Object-space surface normal of a primitive (not necessarily unit length)."""
    normal = vec3(0.0, 0.0, 0.0)
    if kind == int(ShapeKind.SPHERE):
        normal = sphere_normal(point)
    elif kind == int(ShapeKind.PLANE):
        normal = plane_normal(point)
    elif kind == int(ShapeKind.CUBE):
        normal = cube_normal(point)
    elif kind == int(ShapeKind.CYLINDER):
        normal = cylinder_normal(point, minimum, maximum)
    elif kind == int(ShapeKind.CONE):
        normal = cone_normal(point, minimum, maximum)
    return normal
