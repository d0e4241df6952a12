"""Point lights and their kernel-side storage.

A point light has a position and an RGB intensity and casts hard
shadows. The world may hold any number of lights up to MAX_LIGHTS; a
surface point's color is the sum of one Phong evaluation per light.
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti

from src.glint.core.errors import ConstructionError
from src.glint.core.tuples import WHITE, Color, as_color, as_point

# Maximum number of lights per world
MAX_LIGHTS = 16


@dataclass(frozen=True)
class PointLight:
    """A point light source.

    Attributes:
        position: World-space position (x, y, z).
        intensity: RGB intensity. Values above 1 are allowed.
    """

    position: tuple[float, float, float]
    intensity: Color = WHITE

    def __post_init__(self) -> None:
        try:
            position = tuple(float(v) for v in as_point(self.position)[:3])
            intensity = as_color(self.intensity)
        except (TypeError, ValueError) as exc:
            raise ConstructionError(f"Invalid point light: {exc}") from exc
        if not all(np.isfinite(position)):
            raise ConstructionError(f"Light position must be finite, got {position}")
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "intensity", intensity)


light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    num_lights[None] = 0


def add_light(light: PointLight) -> int:
    """Upload a light.

    Returns:
        The index of the uploaded light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = light.position
    light_intensities[idx] = light.intensity
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of uploaded lights."""
    return int(num_lights[None])
