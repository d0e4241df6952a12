"""Core rendering module.

This module contains the fundamental building blocks of the ray tracer:

Components:
    errors: Construction and scene-format exceptions
    tuples: Host-side point/vector/color helpers and the shared EPSILON
    matrix: Immutable 4x4 transforms and their builders
    ray: Kernel-side Ray dataclass and vector utilities
    config: RenderConfig and antialiasing modes
    integrator: Whitted-style shading with reflection, refraction and shadows
    renderer: Render target, render kernel and the ``render`` entry point

All per-ray work runs in Taichi kernels; host-side code only builds and
validates scene data.
"""

from .config import MAX_REFLECTION_DEPTH, AntialiasingMode, RenderConfig
from .errors import ConstructionError, GlintError, SceneFormatError
from .matrix import (
    Matrix,
    identity,
    rotation_x,
    rotation_y,
    rotation_z,
    scaling,
    shearing,
    translation,
    view_transform,
)
from .ray import Ray, make_ray, ray_at, reflect, refract, transform_direction, transform_point, vec3
from .tuples import EPSILON, color, point, vector

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from src.glint.core.renderer when needed:
#   from src.glint.core.renderer import Renderer, render

__all__ = [
    "EPSILON",
    "MAX_REFLECTION_DEPTH",
    "AntialiasingMode",
    "ConstructionError",
    "GlintError",
    "Matrix",
    "Ray",
    "RenderConfig",
    "SceneFormatError",
    "color",
    "identity",
    "make_ray",
    "point",
    "ray_at",
    "reflect",
    "refract",
    "rotation_x",
    "rotation_y",
    "rotation_z",
    "scaling",
    "shearing",
    "transform_direction",
    "transform_point",
    "translation",
    "vec3",
    "vector",
    "view_transform",
]
