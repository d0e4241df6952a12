"""Scene-level primitive storage and intersection testing.

Every leaf primitive of a world is uploaded into Taichi fields: its kind,
its world-to-object transform, the normal matrix (the transpose of that
inverse), its y bounds and cap flag, and its material. Kernels then scan
the whole list for each ray; there is no acceleration structure.

Queries provided here:
    - intersect_world_nearest: the hit (lowest non-negative t) of a ray
    - is_shadowed: whether any opaque shape lies between a point and a light
    - normal_at: world-space unit normal of a primitive at a world point
    - refractive_indices: n1/n2 at a hit, from every crossing along the ray

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.scene.intersection import clear_scene, intersect_world
    >>> clear_scene()
    >>> # add_primitive(...) for each leaf, then
    >>> intersect_world((0, 0, -5), (0, 0, 1))
    []
"""

import math

import numpy as np
import taichi as ti
import taichi.math as tm

from src.glint.core.matrix import Matrix
from src.glint.core.ray import (
    DEGENERATE_EPSILON,
    is_degenerate,
    transform_direction,
    transform_point,
    vec3,
)
from src.glint.geometry.base import MAX_LOCAL_HITS, ShapeKind
from src.glint.geometry.dispatch import local_intersect, local_normal_at
from src.glint.materials.material import get_material_refractive_index

# Maximum number of flattened primitives in a world
MAX_SHAPES = 512

# Infinite bounds are stored as large finite numbers
_BOUND_LIMIT = 1e30


@ti.dataclass
class HitRecord:
    """Nearest intersection of a ray with the world.

    Attributes:
        hit: 1 if the ray hit anything at t >= 0, 0 otherwise.
        t: Ray parameter of the hit. Only valid if hit == 1.
        shape: Index of the hit primitive. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    shape: ti.i32


# =============================================================================
# Primitive Storage (Structure of Arrays)
# =============================================================================

shape_kinds = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_inverses = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_SHAPES)
shape_normal_matrices = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_SHAPES)
shape_minimums = ti.field(dtype=ti.f32, shape=MAX_SHAPES)
shape_maximums = ti.field(dtype=ti.f32, shape=MAX_SHAPES)
shape_closed = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_materials = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_casts_shadow = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
num_shapes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all primitives.

    The field data is not zeroed; it is overwritten by later uploads.
    """
    num_shapes[None] = 0


def _clamp_bound(value: float) -> float:
    return max(-_BOUND_LIMIT, min(_BOUND_LIMIT, value))


def add_primitive(
    kind: ShapeKind,
    transform: Matrix,
    material_id: int,
    casts_shadow: bool = True,
    minimum: float = -math.inf,
    maximum: float = math.inf,
    closed: bool = False,
) -> int:
    """Upload one leaf primitive.

    Args:
        kind: The primitive's ShapeKind. Groups must be flattened first.
        transform: Composed object-to-world transform.
        material_id: Index returned by ``add_material``.
        casts_shadow: Whether the primitive occludes lights.
        minimum: Lower y bound (cylinders and cones).
        maximum: Upper y bound (cylinders and cones).
        closed: Whether the ends are capped (cylinders and cones).

    Returns:
        The index of the uploaded primitive.

    Raises:
        ValueError: If ``kind`` is GROUP.
        RuntimeError: If the maximum number of primitives is exceeded.
        ConstructionError: If ``transform`` is singular.
    """
    if kind == ShapeKind.GROUP:
        raise ValueError("Groups must be flattened before upload")
    idx = num_shapes[None]
    if idx >= MAX_SHAPES:
        raise RuntimeError(f"Maximum number of shapes ({MAX_SHAPES}) exceeded")
    inverse = transform.inverse()
    shape_kinds[idx] = int(kind)
    shape_inverses[idx] = ti.Matrix(inverse.tolist())
    shape_normal_matrices[idx] = ti.Matrix(inverse.transpose().tolist())
    shape_minimums[idx] = _clamp_bound(minimum)
    shape_maximums[idx] = _clamp_bound(maximum)
    shape_closed[idx] = 1 if closed else 0
    shape_materials[idx] = material_id
    shape_casts_shadow[idx] = 1 if casts_shadow else 0
    num_shapes[None] = idx + 1
    return idx


def get_shape_count() -> int:
    """Get the number of uploaded primitives."""
    return int(num_shapes[None])


# =============================================================================
# Kernel-side Queries
# =============================================================================


@ti.func
def intersect_shape(index: ti.i32, origin: vec3, direction: vec3):
    """Intersect a world-space ray with one uploaded primitive.

    Returns:
        A tuple (count, ts) with the t-values sorted ascending. The
        t-values are valid for the world-space ray as well, since the
        object-space direction is not renormalized.
    """
    inverse = shape_inverses[index]
    local_origin = transform_point(inverse, origin)
    local_direction = transform_direction(inverse, direction)
    return local_intersect(
        shape_kinds[index],
        local_origin,
        local_direction,
        shape_minimums[index],
        shape_maximums[index],
        shape_closed[index],
    )


@ti.func
def intersect_world_nearest(origin: vec3, direction: vec3) -> HitRecord:
    """Find the hit of a ray: its intersection with the smallest t >= 0.

    A zero-length direction never hits anything.
    """
    hit = 0
    closest_t = 0.0
    closest_shape = -1
    if not is_degenerate(direction):
        for i in range(num_shapes[None]):
            count, ts = intersect_shape(i, origin, direction)
            for k in ti.static(range(MAX_LOCAL_HITS)):
                if k < count:
                    t = ts[k]
                    if t >= 0.0 and (hit == 0 or t < closest_t):
                        hit = 1
                        closest_t = t
                        closest_shape = i
    return HitRecord(hit=hit, t=closest_t, shape=closest_shape)


@ti.func
def is_shadowed(point: vec3, light_position: vec3) -> ti.i32:
    """Return 1 if an opaque primitive lies strictly between point and light.

    Transparent primitives (``casts_shadow == 0``) are ignored.
    """
    v = light_position - point
    distance = tm.length(v)
    shadowed = 0
    if distance * distance > DEGENERATE_EPSILON:
        direction = v / distance
        for i in range(num_shapes[None]):
            if shadowed == 0 and shape_casts_shadow[i] == 1:
                count, ts = intersect_shape(i, point, direction)
                for k in ti.static(range(MAX_LOCAL_HITS)):
                    if k < count and ts[k] > 0.0 and ts[k] < distance:
                        shadowed = 1
    return shadowed


@ti.func
def normal_at(index: ti.i32, world_point: vec3) -> vec3:
    """World-space unit normal of a primitive at a point on its surface.

    The local normal is carried back to world space by the inverse
    transpose of the primitive's transform.
    """
    local_point = transform_point(shape_inverses[index], world_point)
    local_normal = local_normal_at(
        shape_kinds[index], local_point, shape_minimums[index], shape_maximums[index]
    )
    world_normal = transform_direction(shape_normal_matrices[index], local_normal)
    length = tm.length(world_normal)
    # The cone apex has no defined normal
    if length > 0.0:
        world_normal = world_normal / length
    return world_normal


@ti.func
def refractive_indices(origin: vec3, direction: vec3, hit_t: ti.f32, hit_shape: ti.i32):
    """Refractive indices on either side of the surface at a hit.

    Walking the sorted intersections of the ray, every crossing toggles
    whether the ray is inside that shape; the innermost open shape is the
    one entered most recently. Per primitive this reduces to the number of
    crossings before the hit (odd means inside) and the last of them.

    Returns:
        A tuple (n1, n2): the index of the medium being left and of the
        one being entered. Empty space has index 1.0.
    """
    hit_open = 0
    hit_last = 0.0
    best_shape = -1
    best_t = 0.0
    for i in range(num_shapes[None]):
        count, ts = intersect_shape(i, origin, direction)
        crossings = 0
        last_t = 0.0
        for k in ti.static(range(MAX_LOCAL_HITS)):
            if k < count and ts[k] < hit_t:
                crossings += 1
                last_t = ts[k]
        if crossings % 2 == 1:
            if i == hit_shape:
                hit_open = 1
                hit_last = last_t
            elif best_shape < 0 or last_t > best_t:
                best_shape = i
                best_t = last_t

    outside = 1.0
    if best_shape >= 0:
        outside = get_material_refractive_index(shape_materials[best_shape])
    hit_index = get_material_refractive_index(shape_materials[hit_shape])

    n1 = outside
    n2 = hit_index
    if hit_open == 1:
        # Leaving the hit shape
        if best_shape < 0 or hit_last > best_t:
            n1 = hit_index
        n2 = outside
    return n1, n2


# =============================================================================
# Host Queries
# =============================================================================

_query_counts = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
_query_ts = ti.field(dtype=ti.f32, shape=(MAX_SHAPES, MAX_LOCAL_HITS))
_query_vec = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_flag = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _intersect_all_kernel(origin: vec3, direction: vec3):
    for i in range(num_shapes[None]):
        count = 0
        if not is_degenerate(direction):
            c, ts = intersect_shape(i, origin, direction)
            count = c
            for k in ti.static(range(MAX_LOCAL_HITS)):
                _query_ts[i, k] = ts[k]
        _query_counts[i] = count


@ti.kernel
def _normal_kernel(index: ti.i32, point: vec3):
    _query_vec[None] = normal_at(index, point)


@ti.kernel
def _shadow_kernel(point: vec3, light_position: vec3):
    _query_flag[None] = is_shadowed(point, light_position)


def intersect_world(origin, direction) -> list[tuple[float, int]]:
    """Intersect a ray with every uploaded primitive.

    Args:
        origin: Ray origin as an (x, y, z) sequence.
        direction: Ray direction as an (x, y, z) sequence.

    Returns:
        All (t, shape_index) pairs, negative t included, sorted by t.
    """
    _intersect_all_kernel(vec3(*origin[:3]), vec3(*direction[:3]))
    n = get_shape_count()
    if n == 0:
        return []
    counts = _query_counts.to_numpy()[:n]
    ts = _query_ts.to_numpy()[:n]
    found = [
        (float(ts[i, k]), i) for i in range(n) for k in range(int(counts[i]))
    ]
    found.sort(key=lambda pair: pair[0])
    return found


def world_normal(index: int, point) -> np.ndarray:
    """World-space normal of primitive ``index`` at ``point``."""
    _normal_kernel(index, vec3(*point[:3]))
    return _query_vec[None].to_numpy()


def point_shadowed(point, light_position) -> bool:
    """Whether an opaque primitive occludes ``light_position`` from ``point``."""
    _shadow_kernel(vec3(*point[:3]), vec3(*light_position[:3]))
    return bool(_query_flag[None])
