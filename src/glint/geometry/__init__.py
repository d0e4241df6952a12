"""Geometry module for shape descriptions and intersection routines.

Components:
    base: Shape base classes, ShapeKind and hit-list helpers
    sphere, plane, cube, cylinder, cone: Primitives with local
        intersection and normal routines
    group: Composite shapes and tree flattening
    dispatch: Kernel-side dispatch over primitive kinds
"""

from .base import MAX_LOCAL_HITS, Shape, ShapeKind, TruncatedShape
from .cone import Cone, intersect_cone
from .cube import Cube, intersect_cube
from .cylinder import Cylinder, intersect_cylinder
from .dispatch import local_intersect, local_normal_at
from .group import Group, flatten
from .plane import Plane, intersect_plane
from .sphere import Sphere, intersect_sphere

__all__ = [
    "MAX_LOCAL_HITS",
    "Cone",
    "Cube",
    "Cylinder",
    "Group",
    "Plane",
    "Shape",
    "ShapeKind",
    "Sphere",
    "TruncatedShape",
    "flatten",
    "intersect_cone",
    "intersect_cube",
    "intersect_cylinder",
    "intersect_plane",
    "intersect_sphere",
    "local_intersect",
    "local_normal_at",
]
