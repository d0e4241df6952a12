"""Shared shape model and intersection helpers.

Every shape is described on the host by a frozen dataclass carrying its
world transform and material. The transform is inverted when the shape is
constructed, so a singular transform raises ConstructionError immediately
and never reaches a render.

Kernel side, each shape variant implements a local intersection routine
returning up to MAX_LOCAL_HITS t-values in a fixed-size vec4 plus a count,
and a local normal routine. The helpers here append to and sort those
fixed-size hit lists and solve the quadratics the curved shapes share.
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

import taichi as ti
import taichi.math as tm

from src.glint.core.errors import ConstructionError
from src.glint.core.matrix import Matrix
from src.glint.materials.material import Material

# Type alias for fixed-size local hit lists
vec4 = tm.vec4

# Maximum t-values a single primitive can report (cone: 2 lateral + 2 caps)
MAX_LOCAL_HITS = 4


class ShapeKind(IntEnum):
    """Shape variants, used for kernel-side dispatch."""

    SPHERE = 0
    PLANE = 1
    CUBE = 2
    CYLINDER = 3
    CONE = 4
    GROUP = 5


@dataclass(frozen=True, eq=False)
class Shape:
    """Base class of all shapes.

    Attributes:
        transform: Object-to-world transform. Must be invertible.
        material: Surface material, shared by reference.
    """

    transform: Matrix = field(default_factory=Matrix.identity)
    material: Material = field(default_factory=Material)

    kind: ClassVar[ShapeKind]

    def __post_init__(self) -> None:
        if not isinstance(self.transform, Matrix):
            raise ConstructionError(
                f"Shape transform must be a Matrix, got {type(self.transform).__name__}"
            )
        if not isinstance(self.material, Material):
            raise ConstructionError(
                f"Shape material must be a Material, got {type(self.material).__name__}"
            )
        object.__setattr__(self, "_inverse", self.transform.inverse())

    @property
    def inverse_transform(self) -> Matrix:
        """World-to-object transform, computed once at construction."""
        return self._inverse

    def __repr__(self) -> str:
        return f"{type(self).__name__}(transform={self.transform!r})"


@dataclass(frozen=True, eq=False)
class TruncatedShape(Shape):
    """A shape bounded along y, with optional end caps.

    Attributes:
        minimum: Lower y bound (exclusive) of the lateral surface.
        maximum: Upper y bound (exclusive) of the lateral surface.
        closed: Whether the ends are capped.
    """

    minimum: float = -math.inf
    maximum: float = math.inf
    closed: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        if math.isnan(self.minimum) or math.isnan(self.maximum):
            raise ConstructionError("Shape bounds must be numbers")
        if self.minimum > self.maximum:
            raise ConstructionError(
                f"Shape minimum ({self.minimum}) must not exceed maximum ({self.maximum})"
            )


# =============================================================================
# Hit List Helpers (Taichi-compatible)
# =============================================================================


@ti.func
def push_hit(count: ti.i32, ts: vec4, t: ti.f32):
    """Append t to a fixed-size hit list, dropping it when the list is full.

    Returns:
        The updated (count, ts) pair.
    """
    result = ts
    for k in ti.static(range(MAX_LOCAL_HITS)):
        if k == count:
            result[k] = t
    new_count = count
    if count < MAX_LOCAL_HITS:
        new_count = count + 1
    return new_count, result


@ti.func
def sort_hits(count: ti.i32, ts: vec4) -> vec4:
    """Sort the first ``count`` entries of a hit list in ascending order."""
    result = ts
    for i in ti.static(range(MAX_LOCAL_HITS - 1)):
        for j in ti.static(range(MAX_LOCAL_HITS - 1 - i)):
            if j + 1 < count and result[j] > result[j + 1]:
                tmp = result[j]
                result[j] = result[j + 1]
                result[j + 1] = tmp
    return result


@ti.func
def solve_quadratic(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 with the numerically robust formula.

    Uses the sign of h to avoid catastrophic cancellation when h^2 is
    nearly equal to a*c (Ray Tracing Gems, chapter 7). ``a`` may be
    negative but must not be zero.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of the discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1
