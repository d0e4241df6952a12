"""Whitted-style shading integrator.

This module turns a ray into a color: it finds the ray's hit, shades the
surface with the Phong model once per light (shadowed lights keep only
their ambient term) and spawns reflected and refracted rays.

Reflection and refraction are naturally recursive, but Taichi functions
cannot recurse. Instead, each call to ``trace`` keeps a small stack of
pending rays. Every entry carries a weight (the product of the reflective,
transparency and Fresnel factors along its path) and the number of
bounces it may still spawn. Popping an entry adds ``weight * surface
color`` to the result and pushes its children with one bounce less, so
the sum is identical to the recursive formulation:

    color_at(ray, remaining) = surface
        + reflective * color_at(reflected, remaining - 1)
        + transparency * color_at(refracted, remaining - 1)

with the reflected/refracted terms blended by Schlick reflectance when a
surface is both reflective and transparent. An entry with no remaining
bounces spawns nothing, which is the depth cap.

Key features:
    - Hit selection (lowest non-negative t) and surface computations
    - Refractive indices from every crossing along the ray
    - Shadows from opaque shapes only
    - Total internal reflection contributes nothing
    - Over/under point offsets to avoid self-intersection

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.core.integrator import shade_ray
    >>> from src.glint.scene.world import default_world
    >>> default_world().upload()
    >>> shade_ray((0, 0, -5), (0, 0, 1), depth=5)
    (0.38066..., 0.47583..., 0.2855...)
"""

import taichi as ti
import taichi.math as tm

from src.glint.core.config import MAX_REFLECTION_DEPTH
from src.glint.core.ray import reflect, refract, transform_point, vec3
from src.glint.core.tuples import EPSILON
from src.glint.materials.material import MaterialRecord, get_material
from src.glint.materials.patterns import pattern_at
from src.glint.materials.phong import lighting, schlick
from src.glint.scene.intersection import (
    HitRecord,
    intersect_world_nearest,
    is_shadowed,
    normal_at,
    refractive_indices,
    shape_inverses,
    shape_materials,
)
from src.glint.scene.light import light_intensities, light_positions, num_lights

# Background color for rays that hit nothing
BACKGROUND_COLOR = vec3(0.0, 0.0, 0.0)

# Pending-ray stack size. Depth-first traversal holds at most one entry
# per level plus the sibling of each entry on the current path.
STACK_SIZE = MAX_REFLECTION_DEPTH + 2

stack_vecs = ti.types.matrix(STACK_SIZE, 3, ti.f32)
stack_ints = ti.types.vector(STACK_SIZE, ti.i32)


@ti.dataclass
class Computations:
    """Everything needed to shade one hit.

    Attributes:
        t: Ray parameter of the hit.
        shape_id: Index of the hit primitive.
        point: World-space hit point.
        eyev: Unit vector from the point back toward the ray origin.
        normalv: Unit surface normal, flipped to face the eye.
        inside: 1 if the ray hit the surface from inside the shape.
        over_point: Point nudged along the normal, for shadow and
            reflection rays.
        under_point: Point nudged against the normal, for refraction rays.
        reflectv: Direction of the mirror-reflected ray.
        n1: Refractive index of the medium being left.
        n2: Refractive index of the medium being entered.
    """

    t: ti.f32
    shape_id: ti.i32
    point: vec3
    eyev: vec3
    normalv: vec3
    inside: ti.i32
    over_point: vec3
    under_point: vec3
    reflectv: vec3
    n1: ti.f32
    n2: ti.f32


# =============================================================================
# Surface Computations
# =============================================================================


@ti.func
def prepare_computations(origin: vec3, direction: vec3, hit: HitRecord) -> Computations:
    """Precompute the shading state of a hit.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction (unit length).
        hit: The ray's hit; ``hit.hit`` must be 1.

    Returns:
        The computations for shading the hit.
    """
    point = origin + hit.t * direction
    eyev = -direction
    normalv = normal_at(hit.shape, point)
    inside = 0
    if tm.dot(normalv, eyev) < 0.0:
        inside = 1
        normalv = -normalv

    n1 = 1.0
    n2 = 1.0
    material = get_material(shape_materials[hit.shape])
    # Indices only matter for refraction and Fresnel blending
    if material.transparency > 0.0:
        n1, n2 = refractive_indices(origin, direction, hit.t, hit.shape)

    return Computations(
        t=hit.t,
        shape_id=hit.shape,
        point=point,
        eyev=eyev,
        normalv=normalv,
        inside=inside,
        over_point=point + normalv * EPSILON,
        under_point=point - normalv * EPSILON,
        reflectv=reflect(direction, normalv),
        n1=n1,
        n2=n2,
    )


@ti.func
def surface_color(comps: Computations, material: MaterialRecord) -> vec3:
    """Local (non-recursive) color of a hit, summed over all lights."""
    object_point = transform_point(shape_inverses[comps.shape_id], comps.over_point)
    base_color = pattern_at(material.pattern, object_point)
    result = vec3(0.0, 0.0, 0.0)
    for i in range(num_lights[None]):
        light_position = light_positions[i]
        shadowed = is_shadowed(comps.over_point, light_position)
        result += lighting(
            material,
            base_color,
            light_position,
            light_intensities[i],
            comps.over_point,
            comps.eyev,
            comps.normalv,
            shadowed,
        )
    return result


@ti.func
def secondary_weights(comps: Computations, material: MaterialRecord):
    """Weights of the reflected and refracted rays spawned at a hit.

    Returns:
        A tuple (reflect_weight, refract_weight).
    """
    reflect_weight = material.reflective
    refract_weight = material.transparency
    if material.reflective > 0.0 and material.transparency > 0.0:
        reflectance = schlick(comps.eyev, comps.normalv, comps.n1, comps.n2)
        reflect_weight = material.reflective * reflectance
        refract_weight = material.transparency * (1.0 - reflectance)
    return reflect_weight, refract_weight


# =============================================================================
# Ray Stack Helpers
# =============================================================================


@ti.func
def _get_row(m: stack_vecs, index: ti.i32) -> vec3:
    row = vec3(0.0, 0.0, 0.0)
    for k in ti.static(range(STACK_SIZE)):
        if k == index:
            row = vec3(m[k, 0], m[k, 1], m[k, 2])
    return row


@ti.func
def _set_row(m: stack_vecs, index: ti.i32, value: vec3) -> stack_vecs:
    result = m
    for k in ti.static(range(STACK_SIZE)):
        if k == index:
            for c in ti.static(range(3)):
                result[k, c] = value[c]
    return result


@ti.func
def _get_entry(v: stack_ints, index: ti.i32) -> ti.i32:
    entry = 0
    for k in ti.static(range(STACK_SIZE)):
        if k == index:
            entry = v[k]
    return entry


@ti.func
def _set_entry(v: stack_ints, index: ti.i32, value: ti.i32) -> stack_ints:
    result = v
    for k in ti.static(range(STACK_SIZE)):
        if k == index:
            result[k] = value
    return result


# =============================================================================
# Tracing
# =============================================================================


@ti.func
def trace(origin: vec3, direction: vec3, depth: ti.i32) -> vec3:
    """Color seen along a ray, including up to ``depth`` bounces.

    Args:
        origin: World-space ray origin.
        direction: World-space ray direction. Zero-length directions see
            the background.
        depth: Reflection/refraction bounces allowed below this ray.

    Returns:
        The RGB color. Unclamped.
    """
    color = vec3(0.0, 0.0, 0.0)

    origins = stack_vecs(0.0)
    directions = stack_vecs(0.0)
    weights = stack_vecs(0.0)
    remaining = stack_ints(0)

    length = tm.length(direction)
    unit_direction = direction
    if length > 0.0:
        unit_direction = direction / length

    origins = _set_row(origins, 0, origin)
    directions = _set_row(directions, 0, unit_direction)
    weights = _set_row(weights, 0, vec3(1.0, 1.0, 1.0))
    remaining = _set_entry(remaining, 0, depth)
    top = 1

    while top > 0:
        top -= 1
        ray_origin = _get_row(origins, top)
        ray_direction = _get_row(directions, top)
        weight = _get_row(weights, top)
        bounces = _get_entry(remaining, top)

        hit = intersect_world_nearest(ray_origin, ray_direction)
        if hit.hit == 0:
            color += weight * BACKGROUND_COLOR
        else:
            comps = prepare_computations(ray_origin, ray_direction, hit)
            material = get_material(shape_materials[hit.shape])
            color += weight * surface_color(comps, material)

            if bounces > 0:
                reflect_weight, refract_weight = secondary_weights(comps, material)

                if refract_weight > 0.0 and top < STACK_SIZE:
                    ok, refracted = refract(comps.eyev, comps.normalv, comps.n1, comps.n2)
                    # Total internal reflection adds nothing here
                    if ok == 1:
                        origins = _set_row(origins, top, comps.under_point)
                        directions = _set_row(directions, top, refracted)
                        weights = _set_row(weights, top, weight * refract_weight)
                        remaining = _set_entry(remaining, top, bounces - 1)
                        top += 1

                if reflect_weight > 0.0 and top < STACK_SIZE:
                    origins = _set_row(origins, top, comps.over_point)
                    directions = _set_row(directions, top, comps.reflectv)
                    weights = _set_row(weights, top, weight * reflect_weight)
                    remaining = _set_entry(remaining, top, bounces - 1)
                    top += 1

    return color


# =============================================================================
# Host Queries
# =============================================================================

_query_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_comps = Computations.field(shape=())
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_scalar = ti.field(dtype=ti.f32, shape=())


@ti.kernel
def _shade_ray_kernel(origin: vec3, direction: vec3, depth: ti.i32):
    _query_color[None] = trace(origin, direction, depth)


@ti.kernel
def _computations_kernel(origin: vec3, direction: vec3):
    unit_direction = tm.normalize(direction)
    hit = intersect_world_nearest(origin, unit_direction)
    _query_hit[None] = hit.hit
    if hit.hit == 1:
        comps = prepare_computations(origin, unit_direction, hit)
        _query_comps[None] = comps
        material = get_material(shape_materials[hit.shape])
        _query_color[None] = surface_color(comps, material)
        _query_scalar[None] = schlick(comps.eyev, comps.normalv, comps.n1, comps.n2)


def _check_depth(depth: int) -> None:
    if not 0 <= depth <= MAX_REFLECTION_DEPTH:
        raise ValueError(f"depth must be in [0, {MAX_REFLECTION_DEPTH}], got {depth}")


def shade_ray(origin, direction, depth: int = 5) -> tuple[float, float, float]:
    """Trace one ray through the uploaded world.

    Args:
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z).
        depth: Reflection/refraction bounces allowed.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        ValueError: If depth is outside [0, MAX_REFLECTION_DEPTH].
    """
    _check_depth(depth)
    _shade_ray_kernel(vec3(*origin[:3]), vec3(*direction[:3]), depth)
    color = _query_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def hit_computations(origin, direction) -> dict | None:
    """Shading state of a ray's hit, for inspection and tests.

    Returns:
        None on a miss. Otherwise a dict with the Computations members as
        tuples/floats, plus ``surface`` (the local color without
        reflection or refraction) and ``reflectance`` (Schlick).
    """
    _computations_kernel(vec3(*origin[:3]), vec3(*direction[:3]))
    if _query_hit[None] == 0:
        return None
    comps = _query_comps[None]
    result = {
        "t": float(comps.t),
        "shape": int(comps.shape_id),
        "inside": bool(comps.inside),
        "n1": float(comps.n1),
        "n2": float(comps.n2),
    }
    for name in ("point", "eyev", "normalv", "over_point", "under_point", "reflectv"):
        value = getattr(comps, name)
        result[name] = (float(value[0]), float(value[1]), float(value[2]))
    color = _query_color[None]
    result["surface"] = (float(color[0]), float(color[1]), float(color[2]))
    result["reflectance"] = float(_query_scalar[None])
    return result
