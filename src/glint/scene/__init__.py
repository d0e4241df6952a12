"""Scene module for world construction and ray-scene queries.

Components:
    intersection: Kernel-side primitive storage, nearest-hit, shadow,
        normal and refractive-index queries
    light: Point lights and their storage
    world: The World container, Intersection records and default_world
    loader: Scene descriptions (dicts or JSON files) to Camera/World
    showcase: A ready-made demonstration scene

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for primitive data
    - Groups flattened into leaf primitives with composed transforms
    - Each distinct material uploaded once
"""

from .intersection import (
    MAX_SHAPES,
    HitRecord,
    add_primitive,
    clear_scene,
    get_shape_count,
    intersect_world,
    intersect_world_nearest,
    is_shadowed,
    normal_at,
)
from .light import MAX_LIGHTS, PointLight, add_light, clear_lights, get_light_count
from .world import Intersection, World, default_world, hit

# Note: loader and showcase are NOT imported here; they depend on the camera
# package, which depends on the integrator, which depends on this package.
# Import them directly:
#   from src.glint.scene.loader import load_scene_file
#   from src.glint.scene.showcase import create_showcase_scene

__all__ = [
    "MAX_LIGHTS",
    "MAX_SHAPES",
    "HitRecord",
    "Intersection",
    "PointLight",
    "World",
    "add_light",
    "add_primitive",
    "clear_lights",
    "clear_scene",
    "default_world",
    "get_light_count",
    "get_shape_count",
    "hit",
    "intersect_world",
    "intersect_world_nearest",
    "is_shadowed",
    "normal_at",
]
